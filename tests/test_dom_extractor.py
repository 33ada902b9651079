from elementpicker.document import LiveDocument
from elementpicker.dom_extractor import analyze, detect_ui_library, extract_durable_attributes, is_interactive

FORM_HTML = """
<html><body>
<nav><form><div class="field css-1abc">
<button id="submit" data-testid="submit-btn" aria-label="Submit form" class="btn btn-primary p-4" type="submit">
  Send <span>now</span> please
</button>
</div></form></nav>
</body></html>
"""


def _button() -> tuple[LiveDocument, object]:
    document = LiveDocument.from_html(FORM_HTML)
    return document, document.query("button")[0]


def test_analyze_builds_full_profile() -> None:
    _document, button = _button()
    profile = analyze(button)

    assert profile.tag == "button"
    assert profile.durable_id == "submit"
    assert [item.name for item in profile.durable_attributes] == ["data-testid", "aria-label", "id", "type"]
    assert profile.durable_classes == ("btn", "btn-primary")
    assert profile.direct_text == "Send please"
    assert [(item.tag, item.depth) for item in profile.semantic_ancestry] == [("form", 2), ("nav", 3)]
    assert profile.accessibility.has_aria_label is True
    assert profile.accessibility.has_role is False
    assert profile.accessibility.is_interactive is True
    assert profile.ui_library == "none"


def test_durable_attributes_are_sorted_by_rank() -> None:
    _document, button = _button()
    ranks = [item.rank for item in extract_durable_attributes(button)]
    assert ranks == sorted(ranks)


def test_direct_text_is_capped() -> None:
    document = LiveDocument.from_html(f"<html><body><p>{'x' * 80}</p></body></html>")
    profile = analyze(document.query("p")[0])
    assert len(profile.direct_text) == 50


def test_generated_id_is_not_kept() -> None:
    document = LiveDocument.from_html('<html><body><div id=":r5:" class="panel">x</div></body></html>')
    profile = analyze(document.query("div")[0])
    assert profile.durable_id is None
    assert profile.durable_attributes == ()


def test_detects_radix_through_container_marker() -> None:
    document = LiveDocument.from_html(
        "<html><body><div data-radix-dropdown-menu-content>"
        '<div role="menuitem"><span class="label">Edit</span></div>'
        "</div></body></html>"
    )
    label = document.query("span.label")[0]
    assert detect_ui_library(label) == "radix"


def test_detects_shadcn_utility_fingerprint() -> None:
    document = LiveDocument.from_html('<html><body><a class="inline-flex items-center">Go</a></body></html>')
    assert detect_ui_library(document.query("a")[0]) == "shadcn"


def test_interactive_by_marker() -> None:
    document = LiveDocument.from_html('<html><body><div tabindex="0">Open</div><div>Plain</div></body></html>')
    first, second = document.query("div")
    assert is_interactive(first)
    assert not is_interactive(second)
