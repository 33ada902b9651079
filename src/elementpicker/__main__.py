from __future__ import annotations

import json
import logging
from pathlib import Path
import sys
from typing import Any

import click

from .document import InvalidExpression, LiveDocument
from .engine import LocatorEngine
from .models import ExpressionError, LocatorSet, Node
from .policy import POLICY_PATH, load_policy, save_policy

DEFAULT_VIEWPORT = (1280, 720)


def build_logger(log_dir: Path | None = None) -> logging.Logger:
    logger = logging.getLogger("elementpicker")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        target_dir = log_dir or Path.home() / ".elementpicker"
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target_dir / "engine.log", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(file_handler)
    except OSError:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(stream_handler)
    return logger


def _parse_viewport(_ctx: click.Context, _param: click.Parameter, value: str | None) -> tuple[int, int]:
    if not value:
        return DEFAULT_VIEWPORT
    try:
        width, height = value.lower().split("x", 1)
        parsed = (int(width), int(height))
    except ValueError as exc:
        raise click.BadParameter("expected WIDTHxHEIGHT, for example 1280x720") from exc
    if parsed[0] <= 0 or parsed[1] <= 0:
        raise click.BadParameter("viewport dimensions must be positive")
    return parsed


def _echo_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _load_document(path: Path, viewport: tuple[int, int]) -> LiveDocument:
    try:
        markup = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"Cannot read {path}: {exc}") from exc
    if not markup.strip():
        raise click.ClickException(f"{path} is empty.")
    return LiveDocument.from_html(markup, viewport)


def _locate(engine: LocatorEngine, selector: str | None, point: tuple[float, float] | None) -> Node:
    if selector:
        try:
            matches = engine.document.query(selector)
        except InvalidExpression as exc:
            raise click.ClickException(str(exc)) from exc
        if not matches:
            raise click.ClickException(f"No element matches {selector!r}.")
        return matches[0]

    if point is None:
        raise click.UsageError("Pass --selector or --point.")
    node = engine.resolve_point(*point)
    if node is None:
        raise click.ClickException(f"No element found at {point[0]}, {point[1]}.")
    return node


def _report(locator_set: LocatorSet) -> None:
    logger = logging.getLogger("elementpicker.cli")
    if locator_set.low_confidence:
        logger.info("Only the positional fallback is available: %s", locator_set.fallback)
    _echo_json(locator_set.to_dict())


@click.group()
def cli() -> None:
    """Synthesize durable locators for elements of an HTML document."""
    build_logger()


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--selector", "-s", help="Pick the first element matching this expression.")
@click.option("--point", "-p", nargs=2, type=float, help="Pick the element at viewport coordinates X Y.")
@click.option("--viewport", callback=_parse_viewport, help="Viewport size as WIDTHxHEIGHT.")
@click.option("--policy", "policy_path", type=click.Path(dir_okay=False, path_type=Path), help="Policy JSON file.")
def locate(
    file: Path,
    selector: str | None,
    point: tuple[float, float] | None,
    viewport: tuple[int, int],
    policy_path: Path | None,
) -> None:
    """Print the ranked locator set for one element as JSON."""
    if bool(selector) == bool(point):
        raise click.UsageError("Pass exactly one of --selector or --point.")

    engine = LocatorEngine(_load_document(file, viewport), policy=load_policy(policy_path))
    node = _locate(engine, selector, point)
    _report(engine.synthesize_for_node(node))


@cli.command(name="test")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("expression")
@click.option("--dialect", type=click.Choice(["structural", "path"]), default=None, help="Force the expression dialect.")
def test_command(file: Path, expression: str, dialect: str | None) -> None:
    """Count how many elements an expression matches."""
    engine = LocatorEngine(_load_document(file, DEFAULT_VIEWPORT))
    result = engine.test_expression(expression, dialect)  # type: ignore[arg-type]
    if isinstance(result, ExpressionError):
        logging.getLogger("elementpicker.cli").info("Expression test failed: %s", result.message)
        _echo_json({"matched": False, "match_count": 0, "error": result.message})
        sys.exit(1)
    _echo_json({"matched": result.matched, "match_count": result.match_count})


@cli.command()
@click.argument("url")
@click.option("--point", "-p", nargs=2, type=float, required=True, help="Viewport coordinates X Y.")
@click.option("--viewport", callback=_parse_viewport, help="Viewport size as WIDTHxHEIGHT.")
@click.option("--policy", "policy_path", type=click.Path(dir_okay=False, path_type=Path), help="Policy JSON file.")
def capture(url: str, point: tuple[float, float], viewport: tuple[int, int], policy_path: Path | None) -> None:
    """Open URL in Chromium, snapshot it and locate the element at a point."""
    from playwright.sync_api import Error as PlaywrightError
    from playwright.sync_api import sync_playwright

    from .page_snapshot import capture_document

    logger = logging.getLogger("elementpicker.cli")
    try:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(headless=True)
            try:
                page = browser.new_page(viewport={"width": viewport[0], "height": viewport[1]})
                page.goto(url, wait_until="domcontentloaded")
                document = capture_document(page)
            finally:
                browser.close()
    except PlaywrightError as exc:
        logger.exception("Capture failed for %s", url, exc_info=exc)
        raise click.ClickException(f"Capture failed: {exc}") from exc

    engine = LocatorEngine(document, policy=load_policy(policy_path))
    _report(engine.synthesize_for_node(_locate(engine, None, point)))


@cli.command(name="init-policy")
@click.option("--policy", "policy_path", type=click.Path(dir_okay=False, path_type=Path), help="Policy JSON file.")
def init_policy(policy_path: Path | None) -> None:
    """Write the effective policy as JSON so its thresholds can be edited."""
    path = policy_path or POLICY_PATH
    ok, message = save_policy(load_policy(path), path)
    if not ok:
        raise click.ClickException(message or f"Could not write {path}.")
    logging.getLogger("elementpicker.cli").info("Policy written to %s", path)
    click.echo(str(path))


def main() -> None:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "elementpicker requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    cli(prog_name="elementpicker")


if __name__ == "__main__":
    main()
