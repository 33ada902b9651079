from __future__ import annotations

import re
from typing import Iterable

from .models import DurabilityKind

TEST_HOOK_ATTRIBUTES = (
    "data-testid",
    "data-test",
    "data-test-id",
)

AUTOMATION_HOOK_ATTRIBUTES = (
    "data-qa",
    "data-cy",
    "data-automation",
    "data-qa-id",
    "data-selenium",
    "data-e2e",
    "data-automation-id",
)

ACCESSIBILITY_ATTRIBUTES = (
    "aria-label",
    "aria-labelledby",
    "aria-describedby",
    "role",
    "aria-controls",
)

SEMANTIC_ATTRIBUTES = ("name", "id", "title", "alt", "placeholder", "type")

CONTENT_ATTRIBUTES = ("href", "src", "value", "for")

LIBRARY_STATE_ATTRIBUTES = (
    "data-radix-collection-item",
    "data-state",
    "data-orientation",
    "data-side",
    "data-align",
    "data-radix-aspect-ratio-wrapper",
    "data-radix-scroll-area-viewport",
    "data-radix-dropdown-menu-trigger",
    "data-radix-dropdown-menu-content",
    "data-radix-popover-trigger",
    "data-radix-popover-content",
    "data-radix-dialog-trigger",
    "data-radix-dialog-content",
    "data-slot",
    "data-component",
    "data-part",
    "data-theme",
)

# Lower rank means more durable.
PRIORITY_ATTRIBUTES = (
    TEST_HOOK_ATTRIBUTES
    + AUTOMATION_HOOK_ATTRIBUTES
    + ACCESSIBILITY_ATTRIBUTES
    + SEMANTIC_ATTRIBUTES
    + CONTENT_ATTRIBUTES
    + LIBRARY_STATE_ATTRIBUTES
)
ATTRIBUTE_RANKS: dict[str, int] = {name: rank for rank, name in enumerate(PRIORITY_ATTRIBUTES)}

# Matched as exact names or name prefixes.
UNSTABLE_ATTRIBUTE_MARKERS = (
    "style",
    "class",
    "data-reactid",
    "data-react-checksum",
    "data-react-root",
    "data-v-",
    "ng-",
    "data-ng-",
    "_ngcontent",
    "_nghost",
    "data-server-rendered",
    "data-ssr",
    "data-hydrated",
    "data-emotion",
    "data-styled",
)

ID_REFERENCE_ATTRIBUTES = frozenset({"id", "for", "aria-labelledby", "aria-describedby", "aria-controls"})

SEMANTIC_TAGS = (
    "header",
    "nav",
    "main",
    "section",
    "article",
    "aside",
    "footer",
    "button",
    "input",
    "select",
    "textarea",
    "form",
    "label",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "p",
    "a",
    "img",
)

INTERACTIVE_TAGS = frozenset({"button", "input", "select", "textarea", "a"})

_UNSTABLE_CLASS_PATTERNS = (
    # CSS-in-JS
    re.compile(r"^css-\w+"),
    re.compile(r"^sc-\w+"),
    re.compile(r"^jsx-\d+"),
    re.compile(r"^emotion-\w+"),
    re.compile(r"^styled-\w+"),
    re.compile(r"^jss\d+$"),
    re.compile(r"^[a-z]+__[a-z]+___[a-z0-9]{5,}$", re.IGNORECASE),
    # generated
    re.compile(r"^_\w+"),
    re.compile(r"\d{4,}"),
    re.compile(r"^(?=[a-f0-9]*\d)[a-f0-9]{6,}$", re.IGNORECASE),
    # utility / atomic CSS
    re.compile(
        r"^(p|px|py|pt|pb|pl|pr|m|mx|my|mt|mb|ml|mr|w|h|min-w|min-h|max-w|max-h|gap|space-x|space-y"
        r"|text|bg|border|flex|grid|col|row|absolute|relative|fixed|z|top|left|right|bottom|inset)-"
    ),
    re.compile(r"^[a-z0-9-]+:"),
    # component library internals
    re.compile(r"^radix-"),
    re.compile(r"^react-"),
    re.compile(r"^vue-"),
    re.compile(r"^ng-"),
    re.compile(r"^chakra-"),
    re.compile(r"^mantine-"),
    # build tools
    re.compile(r"^vite-"),
    re.compile(r"^webpack-"),
    re.compile(r"^parcel-"),
)

_UNSTABLE_ID_PATTERN = re.compile(r"^(__|\d|:|react-|ng-|vue-|css-|sc-|jsx-|radix-|ember\d)")

_DYNAMIC_VALUE_PATTERNS = (
    re.compile(r"^[0-9]{4,}$"),
    re.compile(r"^(?=[a-f0-9]*\d)[a-f0-9]{10,}$", re.IGNORECASE),
    re.compile(r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$", re.IGNORECASE),
    re.compile(r":r[0-9a-z]+:"),
)


def normalize_space(value: str | None, limit: int = 200) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    return compact[:limit] if compact else ""


def digit_ratio(value: str) -> float:
    text = value.strip()
    if not text:
        return 0.0
    digits = sum(1 for char in text if char.isdigit())
    return digits / len(text)


def attribute_rank(name: str) -> int | None:
    return ATTRIBUTE_RANKS.get(name.strip().lower())


def is_unstable_attribute_name(name: str) -> bool:
    lowered = name.strip().lower()
    return any(lowered == marker or lowered.startswith(marker) for marker in UNSTABLE_ATTRIBUTE_MARKERS)


def is_durable_attribute_name(name: str) -> bool:
    if is_unstable_attribute_name(name):
        return False
    return attribute_rank(name) is not None


def is_durable_class(class_name: str) -> bool:
    value = class_name.strip()
    if len(value) < 2:
        return False
    if any(pattern.search(value) for pattern in _UNSTABLE_CLASS_PATTERNS):
        return False
    return digit_ratio(value) <= 0.5


def is_durable_id(id_value: str) -> bool:
    value = id_value.strip()
    if not value:
        return False
    if _UNSTABLE_ID_PATTERN.match(value):
        return False
    return not any(pattern.search(value) for pattern in _DYNAMIC_VALUE_PATTERNS)


def is_durable(token: str, kind: DurabilityKind) -> bool:
    """Classify an attribute name, class name or id value as durable."""
    if kind == "attribute":
        return is_durable_attribute_name(token)
    if kind == "class":
        return is_durable_class(token)
    return is_durable_id(token)


def is_durable_attribute_value(name: str, value: str) -> bool:
    text = value.strip()
    if not text:
        return False
    if name.strip().lower() in ID_REFERENCE_ATTRIBUTES:
        return all(is_durable_id(token) for token in text.split())
    return not any(pattern.search(text) for pattern in _DYNAMIC_VALUE_PATTERNS)


def is_durable_attribute(name: str, value: str) -> bool:
    return is_durable_attribute_name(name) and is_durable_attribute_value(name, value)


def durable_classes(classes: Iterable[str], limit: int = 3) -> list[str]:
    picks: list[str] = []
    for class_name in classes:
        if class_name in picks or not is_durable_class(class_name):
            continue
        picks.append(class_name)
        if len(picks) >= limit:
            break
    return picks


def split_classes(raw: str | None) -> list[str]:
    if not raw:
        return []
    seen: set[str] = set()
    normalized: list[str] = []
    for item in raw.split():
        clean = item.strip()
        if not clean or clean in seen:
            continue
        seen.add(clean)
        normalized.append(clean)
    return normalized
