from __future__ import annotations

import re

from .document import LiveDocument, direct_text, tag_name
from .models import Node
from .policy import DEFAULT_POLICY, EnginePolicy
from .selector_rules import INTERACTIVE_TAGS, split_classes

BACKDROP_CLASS_PATTERNS = (
    "backdrop",
    "overlay",
    "modal-backdrop",
    "dialog-backdrop",
    "popover-backdrop",
    "dropdown-backdrop",
    "radix-backdrop",
)

BACKDROP_MARKER_ATTRIBUTES = (
    "data-radix-dialog-overlay",
    "data-radix-popover-backdrop",
    "data-aria-hidden-overlay",
)

_UTILITY_Z_PATTERN = re.compile(r"^z-(\d+)$")


def is_backdrop(node: Node | None, document: LiveDocument, policy: EnginePolicy = DEFAULT_POLICY) -> bool:
    """Return True for non-interactive overlay layers that only catch outside clicks."""
    if node is None:
        return False
    if tag_name(node) in INTERACTIVE_TAGS:
        return False
    if direct_text(node):
        return False

    classes = split_classes(node.get("class"))
    return (
        has_backdrop_class(classes)
        or has_backdrop_marker(node)
        or is_full_viewport_layer(node, document, policy)
        or has_backdrop_utilities(classes, policy)
    )


def has_backdrop_class(classes: list[str]) -> bool:
    lowered = [name.lower() for name in classes]
    return any(pattern in name for name in lowered for pattern in BACKDROP_CLASS_PATTERNS)


def has_backdrop_marker(node: Node) -> bool:
    return any(node.get(marker) is not None for marker in BACKDROP_MARKER_ATTRIBUTES)


def is_full_viewport_layer(node: Node, document: LiveDocument, policy: EnginePolicy = DEFAULT_POLICY) -> bool:
    style = document.declared(node)
    if style.position != "fixed":
        return False
    if style.z_index is None or style.z_index <= policy.backdrop_z_index:
        return False

    box = document.box(node)
    if box is None:
        return False
    viewport_width, viewport_height = document.viewport
    return box.left == 0 and box.top == 0 and box.width >= viewport_width and box.height >= viewport_height


def has_backdrop_utilities(classes: list[str], policy: EnginePolicy = DEFAULT_POLICY) -> bool:
    names = set(classes)
    if "fixed" not in names or "inset-0" not in names:
        return False
    for name in names:
        match = _UTILITY_Z_PATTERN.match(name)
        if match and int(match.group(1)) >= policy.utility_z_index:
            return True
    return False
