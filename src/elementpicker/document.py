from __future__ import annotations

"""In-process live document used by every engine component.

The tree is an ``lxml.html`` document. Structural expressions are CSS
selectors translated by ``cssselect``; path expressions are XPath 1.0 run by
lxml. Layout comes from inline ``style`` declarations with viewport-relative
coordinates, which is also the shape :mod:`elementpicker.page_snapshot`
writes when it captures a real page.
"""

from contextlib import ExitStack, contextmanager
from functools import lru_cache
from typing import Callable, Iterable, Iterator

from cssselect import HTMLTranslator, SelectorError
from lxml import etree
import lxml.html

from .layout import DeclaredStyle, declared_style, parse_style, resolve_length, serialize_style
from .models import Box, Dialect, Node

ROOT_CONTAINER_TAGS = frozenset({"html", "body"})
OUTLINE_STYLE = {"outline": "3px solid red", "outline-offset": "2px"}

_TRANSLATOR = HTMLTranslator()


class InvalidExpression(ValueError):
    """A locator expression failed to parse or evaluate."""


def detect_dialect(expression: str) -> Dialect:
    text = expression.strip()
    if text.startswith("/") or text.startswith("("):
        return "path"
    return "structural"


@lru_cache(maxsize=512)
def _css_to_xpath(expression: str) -> str:
    return _TRANSLATOR.css_to_xpath(expression)


def is_element(item: object) -> bool:
    return isinstance(getattr(item, "tag", None), str)


def tag_name(node: Node) -> str:
    return str(node.tag).lower()


def iter_ancestors(node: Node, limit: int | None = None) -> Iterator[Node]:
    current = node.getparent()
    depth = 0
    while current is not None and (limit is None or depth < limit):
        yield current
        current = current.getparent()
        depth += 1


def closest(node: Node, predicate: Callable[[Node], bool], max_depth: int | None = None) -> Node | None:
    if predicate(node):
        return node
    for ancestor in iter_ancestors(node, max_depth):
        if predicate(ancestor):
            return ancestor
    return None


def direct_text(node: Node) -> str:
    pieces = [node.text or ""]
    pieces.extend(child.tail or "" for child in node)
    return " ".join(piece.strip() for piece in pieces if piece and piece.strip())


def is_root_container(node: Node) -> bool:
    return tag_name(node) in ROOT_CONTAINER_TAGS


def same_tag_position(node: Node) -> tuple[int, int]:
    """Return the 1-based ordinal of ``node`` among same-tag siblings and their count."""
    parent = node.getparent()
    if parent is None:
        return 1, 1
    siblings = [child for child in parent if is_element(child) and child.tag == node.tag]
    for index, sibling in enumerate(siblings, start=1):
        if sibling is node:
            return index, len(siblings)
    return 1, len(siblings)


class LiveDocument:
    def __init__(self, root: Node, viewport: tuple[int, int] = (1280, 720)) -> None:
        self.root = root
        self.viewport = (max(1, int(viewport[0])), max(1, int(viewport[1])))

    @classmethod
    def from_html(cls, markup: str, viewport: tuple[int, int] = (1280, 720)) -> LiveDocument:
        return cls(lxml.html.document_fromstring(markup), viewport)

    @property
    def body(self) -> Node | None:
        return self.root.find("body")

    def iter_nodes(self) -> Iterator[Node]:
        yield from self.root.iter(etree.Element)

    def document_index(self, node: Node) -> int:
        for index, candidate in enumerate(self.iter_nodes()):
            if candidate is node:
                return index
        return -1

    def is_root_container(self, node: Node) -> bool:
        return is_root_container(node)

    # -- querying -----------------------------------------------------------

    def query(self, expression: str, dialect: Dialect | None = None) -> list[Node]:
        text = (expression or "").strip()
        if not text:
            raise InvalidExpression("Expression is empty.")

        resolved = dialect or detect_dialect(text)
        try:
            xpath = _css_to_xpath(text) if resolved == "structural" else text
            raw = self.root.xpath(xpath)
        except SelectorError as exc:
            raise InvalidExpression(f"Invalid structural expression {text!r}: {exc}") from exc
        except etree.XPathError as exc:
            raise InvalidExpression(f"Invalid path expression {text!r}: {exc}") from exc
        except ValueError as exc:
            # lxml refuses NUL bytes and control characters in expressions
            raise InvalidExpression(f"Unusable expression {text!r}: {exc}") from exc

        if not isinstance(raw, list):
            return []
        return [item for item in raw if is_element(item)]

    # -- layout -------------------------------------------------------------

    def declared(self, node: Node) -> DeclaredStyle:
        return declared_style(node.get("style"))

    def box(self, node: Node) -> Box | None:
        style = self.declared(node)
        viewport_width, viewport_height = self.viewport

        if self.is_root_container(node) and style.width is None and style.height is None:
            return Box(0.0, 0.0, float(viewport_width), float(viewport_height))

        if style.position == "fixed":
            reference = Box(0.0, 0.0, float(viewport_width), float(viewport_height))
        else:
            parent = node.getparent()
            parent_box = self.box(parent) if parent is not None else None
            reference = parent_box or Box(0.0, 0.0, float(viewport_width), float(viewport_height))

        zero_inset = (style.inset or "").strip() in {"0", "0px"}
        left = resolve_length(style.left, reference.width, self.viewport)
        top = resolve_length(style.top, reference.height, self.viewport)
        width = resolve_length(style.width, reference.width, self.viewport)
        height = resolve_length(style.height, reference.height, self.viewport)

        if zero_inset:
            left = 0.0 if left is None else left
            top = 0.0 if top is None else top
            width = reference.width if width is None else width
            height = reference.height if height is None else height

        if width is None or height is None:
            return None
        # explicit offsets are viewport coordinates; missing ones follow the parent
        if left is None:
            left = reference.left
        if top is None:
            top = reference.top
        return Box(float(left), float(top), float(width), float(height))

    def is_rendered(self, node: Node) -> bool:
        current: Node | None = node
        while current is not None:
            if self.declared(current).display == "none":
                return False
            current = current.getparent()
        return True

    def _inherited(self, node: Node, read: Callable[[DeclaredStyle], str | None], default: str) -> str:
        current: Node | None = node
        while current is not None:
            value = read(self.declared(current))
            if value is not None and value != "inherit":
                return value
            current = current.getparent()
        return default

    def pointer_events(self, node: Node) -> str:
        return self._inherited(node, lambda style: style.pointer_events, "auto")

    def visibility(self, node: Node) -> str:
        return self._inherited(node, lambda style: style.visibility, "visible")

    def stacking_level(self, node: Node) -> int:
        current: Node | None = node
        while current is not None:
            style = self.declared(current)
            if style.z_index is not None and style.is_positioned:
                return style.z_index
            current = current.getparent()
        return 0

    def is_hit_testable(self, node: Node) -> bool:
        if not self.is_rendered(node):
            return False
        if self.visibility(node) == "hidden":
            return False
        return self.pointer_events(node) != "none"

    # -- hit testing --------------------------------------------------------

    def elements_from_point(self, x: float, y: float) -> list[Node]:
        viewport_width, viewport_height = self.viewport
        if not (0 <= x < viewport_width and 0 <= y < viewport_height):
            return []

        hits: list[tuple[int, int, Node]] = []
        for index, node in enumerate(self.iter_nodes()):
            if not self.is_hit_testable(node):
                continue
            box = self.box(node)
            if box is not None and box.contains(x, y):
                hits.append((self.stacking_level(node), index, node))

        hits.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [node for _, _, node in hits]

    def element_from_point(self, x: float, y: float) -> Node | None:
        hits = self.elements_from_point(x, y)
        return hits[0] if hits else None

    # -- scoped cosmetic mutation --------------------------------------------

    @contextmanager
    def overridden_style(self, node: Node, overrides: dict[str, str]) -> Iterator[Node]:
        original = node.get("style")
        declarations = parse_style(original)
        declarations.update(overrides)
        node.set("style", serialize_style(declarations))
        try:
            yield node
        finally:
            if original is None:
                node.attrib.pop("style", None)
            else:
                node.set("style", original)

    def suppressed_hit_testing(self, node: Node):
        return self.overridden_style(node, {"pointer-events": "none"})

    @contextmanager
    def outlined(self, nodes: Iterable[Node]) -> Iterator[list[Node]]:
        targets = list(nodes)
        with ExitStack() as stack:
            for node in targets:
                stack.enter_context(self.overridden_style(node, OUTLINE_STYLE))
            yield targets
