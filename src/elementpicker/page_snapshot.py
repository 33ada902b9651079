from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

import lxml.html
from lxml import etree

from .document import ROOT_CONTAINER_TAGS, LiveDocument
from .layout import serialize_style
from .models import Node

if TYPE_CHECKING:
    from playwright.sync_api import Page

LOGGER = logging.getLogger("elementpicker.engine")

SNAPSHOT_SCRIPT = """
() => {
  const SKIP = new Set(['script', 'style', 'noscript', 'template']);
  const LAYOUT = ['position', 'zIndex', 'pointerEvents', 'display', 'visibility'];

  const walk = (el) => {
    const attrs = {};
    for (const attr of Array.from(el.attributes || [])) {
      if (attr.name !== 'style') attrs[attr.name] = attr.value;
    }
    const rect = el.getBoundingClientRect();
    const computed = window.getComputedStyle(el);
    const style = {};
    for (const key of LAYOUT) style[key] = computed[key];

    const node = {
      tag: el.tagName.toLowerCase(),
      attrs,
      text: '',
      tail: '',
      rect: { left: rect.left, top: rect.top, width: rect.width, height: rect.height },
      style,
      children: [],
    };

    let previous = null;
    for (const child of Array.from(el.childNodes)) {
      if (child.nodeType === Node.TEXT_NODE) {
        if (previous) previous.tail += child.textContent;
        else node.text += child.textContent;
      } else if (child.nodeType === Node.ELEMENT_NODE) {
        if (SKIP.has(child.tagName.toLowerCase())) continue;
        previous = walk(child);
        node.children.push(previous);
      }
    }
    return node;
  };

  return {
    viewport: [window.innerWidth, window.innerHeight],
    url: location.href || '',
    root: walk(document.documentElement),
  };
}
"""


def capture_document(page: Page) -> LiveDocument:
    """Snapshot the page's current DOM and layout into a LiveDocument."""
    payload: dict[str, Any] = page.evaluate(SNAPSHOT_SCRIPT)
    document = build_document(payload)
    LOGGER.info("Captured %s (%s elements).", payload.get("url", ""), sum(1 for _ in document.iter_nodes()))
    return document


def build_document(payload: Mapping[str, Any], viewport: tuple[int, int] | None = None) -> LiveDocument:
    raw_viewport = viewport or payload.get("viewport") or (1280, 720)
    resolved_viewport = (_to_int(raw_viewport[0], 1280), _to_int(raw_viewport[1], 720))

    raw_root = payload.get("root") or {}
    root = lxml.html.Element("html")
    _fill_element(root, raw_root)
    for child in raw_root.get("children", []) or []:
        _append_child(root, child)
    return LiveDocument(root, resolved_viewport)


def layout_style(raw: Mapping[str, Any]) -> str:
    rect = raw.get("rect") or {}
    computed = raw.get("style") or {}

    declarations: dict[str, str] = {}
    position = str(computed.get("position") or "").strip()
    if position and position != "static":
        declarations["position"] = position
    z_index = str(computed.get("zIndex") or "").strip()
    if z_index and z_index != "auto":
        declarations["z-index"] = z_index
    pointer_events = str(computed.get("pointerEvents") or "").strip()
    if pointer_events and pointer_events != "auto":
        declarations["pointer-events"] = pointer_events
    # only the hiding values matter for hit testing
    if str(computed.get("display") or "").strip() == "none":
        declarations["display"] = "none"
    visibility = str(computed.get("visibility") or "").strip()
    if visibility and visibility != "visible":
        declarations["visibility"] = visibility

    # html and body keep spanning the viewport
    if rect and str(raw.get("tag") or "").lower() not in ROOT_CONTAINER_TAGS:
        declarations["left"] = _px(rect.get("left"))
        declarations["top"] = _px(rect.get("top"))
        declarations["width"] = _px(rect.get("width"))
        declarations["height"] = _px(rect.get("height"))
    return serialize_style(declarations)


def _append_child(parent: Node, raw: Mapping[str, Any]) -> None:
    try:
        element = etree.SubElement(parent, str(raw.get("tag") or "div"))
    except ValueError:
        # lxml rejects some tag names browsers accept; keep the text flowing
        LOGGER.info("Skipped element with unsupported tag %r.", raw.get("tag"))
        _append_text(parent, str(raw.get("tail") or ""))
        return

    _fill_element(element, raw)
    for child in raw.get("children", []) or []:
        _append_child(element, child)
    element.tail = str(raw.get("tail") or "") or None


def _fill_element(element: Node, raw: Mapping[str, Any]) -> None:
    for name, value in dict(raw.get("attrs") or {}).items():
        try:
            element.set(str(name), str(value))
        except ValueError:
            LOGGER.info("Skipped attribute with unsupported name %r.", name)
    style = layout_style(raw)
    if style:
        element.set("style", style)
    element.text = str(raw.get("text") or "") or None


def _append_text(parent: Node, text: str) -> None:
    if not text:
        return
    children = list(parent)
    if children:
        children[-1].tail = (children[-1].tail or "") + text
    else:
        parent.text = (parent.text or "") + text


def _px(value: Any) -> str:
    try:
        number = round(float(value), 2)
    except (TypeError, ValueError):
        number = 0.0
    if number == int(number):
        return f"{int(number)}px"
    return f"{number}px"


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
