from __future__ import annotations

from dataclasses import dataclass
import logging

from .backdrop_detection import is_backdrop
from .document import LiveDocument, closest, is_root_container
from .dom_extractor import is_interactive
from .models import Node
from .policy import DEFAULT_POLICY, EnginePolicy

LOGGER = logging.getLogger("elementpicker.engine")

LIBRARY_INTERACTIVE_MARKERS = (
    "data-radix-dropdown-menu-trigger",
    "data-radix-popover-trigger",
    "data-state",
    "aria-haspopup",
    "data-radix-collection-item",
)


@dataclass(frozen=True, slots=True)
class PointResolution:
    node: Node | None
    reason: str


def is_engine_node(node: Node | None, policy: EnginePolicy = DEFAULT_POLICY) -> bool:
    if node is None:
        return False
    if (node.get("id") or "") in policy.engine_node_ids:
        return True
    container = closest(node, lambda candidate: (candidate.get("id") or "") in policy.engine_container_ids)
    return container is not None


def has_library_marker(node: Node) -> bool:
    if node.get("role") == "button":
        return True
    return any(node.get(marker) is not None for marker in LIBRARY_INTERACTIVE_MARKERS)


def resolve_point(
    document: LiveDocument,
    x: float,
    y: float,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> Node | None:
    return resolve_point_detailed(document, x, y, policy).node


def resolve_point_detailed(
    document: LiveDocument,
    x: float,
    y: float,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> PointResolution:
    candidate = document.element_from_point(x, y)
    if candidate is None:
        return PointResolution(None, "none:outside")

    reason = "direct"
    if is_backdrop(candidate, document, policy):
        behind = _hit_behind(document, candidate, x, y)
        if behind is not None and not is_root_container(behind):
            LOGGER.info("Point (%s, %s) bypassed backdrop <%s>", x, y, candidate.tag)
            return PointResolution(behind, "behind-backdrop")
        if behind is not None:
            candidate = behind
            reason = "behind-backdrop:root"

    if not is_root_container(candidate):
        return PointResolution(candidate, reason)

    stacked = _pick_from_stack(document, x, y, policy)
    if stacked.node is not None:
        LOGGER.info("Point (%s, %s) resolved from hit stack: %s", x, y, stacked.reason)
        return stacked

    nearby = _search_radius(document, x, y, policy)
    if nearby.node is not None:
        LOGGER.info("Point (%s, %s) resolved by radius search: %s", x, y, nearby.reason)
        return nearby
    return PointResolution(None, "none:exhausted")


def _hit_behind(document: LiveDocument, backdrop: Node, x: float, y: float) -> Node | None:
    with document.suppressed_hit_testing(backdrop):
        behind = document.element_from_point(x, y)
    if behind is backdrop:
        return None
    return behind


def _is_acceptable(node: Node, document: LiveDocument, policy: EnginePolicy) -> bool:
    if is_root_container(node) or is_engine_node(node, policy):
        return False
    return not is_backdrop(node, document, policy)


def _pick_from_stack(document: LiveDocument, x: float, y: float, policy: EnginePolicy) -> PointResolution:
    stack = [node for node in document.elements_from_point(x, y) if _is_acceptable(node, document, policy)]
    if not stack:
        return PointResolution(None, "stack:empty")

    for node in stack:
        if has_library_marker(node):
            return PointResolution(node, "stack:library-marker")
    for node in stack:
        if is_interactive(node):
            return PointResolution(node, "stack:interactive")
    return PointResolution(stack[0], "stack:first")


def _search_radius(document: LiveDocument, x: float, y: float, policy: EnginePolicy) -> PointResolution:
    viewport_width, viewport_height = document.viewport
    radius = policy.search_radius
    offsets = range(-radius, radius + 1, max(1, policy.search_step))
    for dx in offsets:
        for dy in offsets:
            probe_x, probe_y = x + dx, y + dy
            if not (0 <= probe_x < viewport_width and 0 <= probe_y < viewport_height):
                continue
            hit = document.element_from_point(probe_x, probe_y)
            if hit is not None and _is_acceptable(hit, document, policy):
                return PointResolution(hit, f"radius:{dx},{dy}")
    return PointResolution(None, "radius:empty")
