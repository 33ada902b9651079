from __future__ import annotations

from .document import closest, direct_text, iter_ancestors, tag_name
from .models import AccessibilityFlags, DurableAttribute, Node, NodeProfile, SemanticAncestor, UiLibrary
from .policy import DEFAULT_POLICY, EnginePolicy
from .selector_rules import (
    INTERACTIVE_TAGS,
    SEMANTIC_TAGS,
    attribute_rank,
    durable_classes,
    is_durable_attribute,
    is_durable_id,
    split_classes,
)

RADIX_NODE_MARKERS = (
    "data-radix-collection-item",
    "data-state",
    "data-radix-dropdown-menu-trigger",
    "data-radix-popover-trigger",
    "data-radix-dialog-trigger",
)

RADIX_CONTAINER_MARKERS = (
    "data-radix-collection-item",
    "data-radix-dropdown-menu-content",
    "data-radix-popover-content",
    "data-radix-dialog-content",
)

SHADCN_PAIR_CLASSES = ("inline-flex", "items-center")
SHADCN_MARKER_CLASSES = frozenset({"rounded-md", "shadow-sm", "border"})

INTERACTIVE_MARKERS = ("role", "tabindex", "onclick")


def analyze(node: Node, policy: EnginePolicy = DEFAULT_POLICY) -> NodeProfile:
    """Build a fresh profile of ``node`` from the current tree state."""
    tag = tag_name(node)
    raw_id = (node.get("id") or "").strip()
    durable_id = raw_id if raw_id and is_durable_id(raw_id) else None

    return NodeProfile(
        tag=tag,
        durable_id=durable_id,
        durable_attributes=tuple(extract_durable_attributes(node)),
        durable_classes=tuple(durable_classes(split_classes(node.get("class")), limit=policy.class_limit)),
        direct_text=direct_text(node)[: policy.text_limit],
        ui_library=detect_ui_library(node, policy),
        semantic_ancestry=tuple(semantic_ancestry(node, policy.semantic_ancestry_depth)),
        accessibility=AccessibilityFlags(
            has_aria_label=node.get("aria-label") is not None,
            has_role=node.get("role") is not None,
            is_interactive=is_interactive(node),
        ),
    )


def extract_durable_attributes(node: Node) -> list[DurableAttribute]:
    found: list[DurableAttribute] = []
    for name, raw in node.attrib.items():
        lowered = name.strip().lower()
        rank = attribute_rank(lowered)
        if rank is None:
            continue
        value = str(raw).strip()
        if not is_durable_attribute(lowered, value):
            continue
        found.append(DurableAttribute(name=lowered, value=value, rank=rank))
    found.sort(key=lambda item: item.rank)
    return found


def semantic_ancestry(node: Node, depth_limit: int = 5) -> list[SemanticAncestor]:
    found: list[SemanticAncestor] = []
    for depth, ancestor in enumerate(iter_ancestors(node, depth_limit), start=1):
        tag = tag_name(ancestor)
        if tag in SEMANTIC_TAGS:
            found.append(SemanticAncestor(tag=tag, depth=depth))
    return found


def is_interactive(node: Node) -> bool:
    if tag_name(node) in INTERACTIVE_TAGS:
        return True
    return any(node.get(marker) is not None for marker in INTERACTIVE_MARKERS)


def detect_ui_library(node: Node, policy: EnginePolicy = DEFAULT_POLICY) -> UiLibrary:
    if any(node.get(marker) is not None for marker in RADIX_NODE_MARKERS):
        return "radix"
    container = closest(
        node,
        lambda candidate: any(candidate.get(marker) is not None for marker in RADIX_CONTAINER_MARKERS),
        max_depth=policy.library_ancestor_depth,
    )
    if container is not None:
        return "radix"

    classes = set(split_classes(node.get("class")))
    if all(name in classes for name in SHADCN_PAIR_CLASSES):
        return "shadcn"
    if classes & SHADCN_MARKER_CLASSES or any(name.startswith("border-") for name in classes):
        return "shadcn"
    return "none"
