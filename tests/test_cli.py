import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from elementpicker.__main__ import cli

PAGE_HTML = """
<html><body>
<ul><li class="item">A</li><li class="item">B</li></ul>
<button id="submit" data-testid="submit-btn" style="position: absolute; left: 100px; top: 100px; width: 200px; height: 50px">Submit</button>
</body></html>
"""


@pytest.fixture()
def page_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("HOME", str(tmp_path))
    path = tmp_path / "page.html"
    path.write_text(PAGE_HTML, encoding="utf-8")
    return path


def test_locate_by_selector(page_file: Path, tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli, ["locate", str(page_file), "--selector", "#submit", "--policy", str(tmp_path / "missing.json")]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["profile"]["tag"] == "button"
    assert payload["hybrid"] == 'button[data-testid="submit-btn"]'
    assert payload["slots"]["by_id"] == "#submit"


def test_locate_by_point(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["locate", str(page_file), "--point", "150", "120", "--viewport", "1280x720"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["profile"]["durable_id"] == "submit"


def test_locate_requires_exactly_one_target(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["locate", str(page_file)])
    assert result.exit_code == 2


def test_locate_reports_missing_element(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["locate", str(page_file), "--selector", ".missing"])
    assert result.exit_code == 1
    assert "No element matches" in result.output


def test_locate_rejects_bad_viewport(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["locate", str(page_file), "--selector", "li", "--viewport", "wide"])
    assert result.exit_code == 2


def test_test_command_counts_matches(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["test", str(page_file), "li.item"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"matched": True, "match_count": 2}


def test_test_command_reports_invalid_expression(page_file: Path) -> None:
    result = CliRunner().invoke(cli, ["test", str(page_file), "//li[", "--dialect", "path"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["matched"] is False


def test_init_policy_writes_editable_file(page_file: Path, tmp_path: Path) -> None:
    policy_path = tmp_path / "config" / "policy.json"
    policy_path.parent.mkdir()
    policy_path.write_text(json.dumps({"search_radius": 9}), encoding="utf-8")

    result = CliRunner().invoke(cli, ["init-policy", "--policy", str(policy_path)])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == str(policy_path)
    payload = json.loads(policy_path.read_text(encoding="utf-8"))
    assert payload["search_radius"] == 9
    assert payload["best_count"] == 3
