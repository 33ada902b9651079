from __future__ import annotations

from dataclasses import dataclass
import re

_LENGTH_PATTERN = re.compile(r"^(-?\d+(?:\.\d+)?)(px|%|vw|vh)?$")


@dataclass(frozen=True, slots=True)
class DeclaredStyle:
    """Layout-relevant declarations read from one element's inline style."""

    position: str
    z_index: int | None
    pointer_events: str | None
    display: str | None
    visibility: str | None
    left: str | None
    top: str | None
    width: str | None
    height: str | None
    inset: str | None

    @property
    def is_positioned(self) -> bool:
        return self.position in {"relative", "absolute", "fixed", "sticky"}


def parse_style(value: str | None) -> dict[str, str]:
    declarations: dict[str, str] = {}
    if not value:
        return declarations
    for chunk in value.split(";"):
        if ":" not in chunk:
            continue
        name, raw = chunk.split(":", 1)
        prop = name.strip().lower()
        text = raw.replace("!important", "").strip()
        if prop and text:
            declarations[prop] = text
    return declarations


def serialize_style(declarations: dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in declarations.items())


def declared_style(value: str | None) -> DeclaredStyle:
    declarations = parse_style(value)
    return DeclaredStyle(
        position=declarations.get("position", "static").lower(),
        z_index=_parse_z_index(declarations.get("z-index")),
        pointer_events=_lower_or_none(declarations.get("pointer-events")),
        display=_lower_or_none(declarations.get("display")),
        visibility=_lower_or_none(declarations.get("visibility")),
        left=declarations.get("left"),
        top=declarations.get("top"),
        width=declarations.get("width"),
        height=declarations.get("height"),
        inset=declarations.get("inset"),
    )


def resolve_length(value: str | None, reference: float, viewport: tuple[int, int]) -> float | None:
    if value is None:
        return None
    text = value.strip().lower()
    match = _LENGTH_PATTERN.match(text)
    if not match:
        return None
    number = float(match.group(1))
    unit = match.group(2) or "px"
    if unit == "px":
        return number
    if unit == "%":
        return reference * number / 100.0
    if unit == "vw":
        return viewport[0] * number / 100.0
    return viewport[1] * number / 100.0


def _parse_z_index(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _lower_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower() or None
