from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

from lxml.html import HtmlElement

Node = HtmlElement

Dialect = Literal["structural", "path"]
UiLibrary = Literal["none", "radix", "shadcn"]
DurabilityKind = Literal["attribute", "class", "id"]

CandidateKind = Literal[
    "id",
    "attribute",
    "attribute_class",
    "class",
    "multi_class",
    "ancestor_chain",
    "text",
    "class_text",
    "library_state",
    "library_collection",
    "library_pattern",
    "path_absolute",
    "path_relative",
    "path_attribute",
    "path_text",
    "path_exact_text",
]

Category = Literal[
    "by_id",
    "by_attribute",
    "by_class",
    "by_structure",
    "by_text",
    "by_library",
    "xpath_absolute",
    "xpath_relative",
    "xpath_by_attribute",
    "xpath_by_text",
]

CATEGORIES: tuple[Category, ...] = (
    "by_id",
    "by_attribute",
    "by_class",
    "by_structure",
    "by_text",
    "by_library",
    "xpath_absolute",
    "xpath_relative",
    "xpath_by_attribute",
    "xpath_by_text",
)

PATH_KINDS: frozenset[str] = frozenset(
    {"path_absolute", "path_relative", "path_attribute", "path_text", "path_exact_text"}
)


@dataclass(frozen=True, slots=True)
class Box:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, x: float, y: float) -> bool:
        if self.width <= 0 or self.height <= 0:
            return False
        return self.left <= x < self.right and self.top <= y < self.bottom


@dataclass(frozen=True, slots=True)
class DurableAttribute:
    name: str
    value: str
    rank: int


@dataclass(frozen=True, slots=True)
class SemanticAncestor:
    tag: str
    depth: int


@dataclass(frozen=True, slots=True)
class AccessibilityFlags:
    has_aria_label: bool
    has_role: bool
    is_interactive: bool


@dataclass(frozen=True, slots=True)
class NodeProfile:
    tag: str
    durable_id: str | None
    durable_attributes: tuple[DurableAttribute, ...]
    durable_classes: tuple[str, ...]
    direct_text: str
    ui_library: UiLibrary
    semantic_ancestry: tuple[SemanticAncestor, ...]
    accessibility: AccessibilityFlags

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "durable_id": self.durable_id,
            "durable_attributes": [
                {"name": item.name, "value": item.value, "rank": item.rank} for item in self.durable_attributes
            ],
            "durable_classes": list(self.durable_classes),
            "direct_text": self.direct_text,
            "ui_library": self.ui_library,
            "semantic_ancestry": [{"tag": item.tag, "depth": item.depth} for item in self.semantic_ancestry],
            "accessibility": {
                "has_aria_label": self.accessibility.has_aria_label,
                "has_role": self.accessibility.has_role,
                "is_interactive": self.accessibility.is_interactive,
            },
        }


@dataclass(frozen=True, slots=True)
class Candidate:
    expression: str
    kind: CandidateKind
    category: Category
    base_priority: int

    @property
    def dialect(self) -> Dialect:
        return "path" if self.kind in PATH_KINDS else "structural"


@dataclass(frozen=True, slots=True)
class Uniqueness:
    is_unique: bool
    match_count: int
    matches_target: bool = False


NO_MATCHES = Uniqueness(is_unique=False, match_count=0, matches_target=False)


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    expression: str
    kind: CandidateKind
    category: Category
    base_priority: int
    score: int
    uniqueness: Uniqueness

    @classmethod
    def from_candidate(cls, candidate: Candidate, score: int, uniqueness: Uniqueness) -> ScoredCandidate:
        return cls(
            expression=candidate.expression,
            kind=candidate.kind,
            category=candidate.category,
            base_priority=candidate.base_priority,
            score=score,
            uniqueness=uniqueness,
        )

    @property
    def dialect(self) -> Dialect:
        return "path" if self.kind in PATH_KINDS else "structural"

    def to_dict(self) -> dict[str, Any]:
        return {
            "expression": self.expression,
            "kind": self.kind,
            "category": self.category,
            "dialect": self.dialect,
            "score": self.score,
            "match_count": self.uniqueness.match_count,
            "is_unique": self.uniqueness.is_unique,
        }


@dataclass(slots=True)
class LocatorSet:
    profile: NodeProfile
    fallback: str
    best: list[ScoredCandidate] = field(default_factory=list)
    all: list[ScoredCandidate] = field(default_factory=list)
    by_id: str | None = None
    by_attribute: str | None = None
    by_class: str | None = None
    by_structure: str | None = None
    by_text: str | None = None
    by_library: str | None = None
    xpath_absolute: str | None = None
    xpath_relative: str | None = None
    xpath_by_attribute: str | None = None
    xpath_by_text: str | None = None
    fallback_only: bool = False

    @property
    def hybrid(self) -> str:
        if self.best:
            return self.best[0].expression
        return self.fallback

    def slot(self, category: Category) -> str | None:
        return getattr(self, category)

    def slots(self) -> dict[str, str | None]:
        return {category: self.slot(category) for category in CATEGORIES}

    def preferred_structural(self) -> str | None:
        if self.best and self.best[0].dialect == "structural":
            return self.best[0].expression
        return self.by_structure

    def preferred_path(self) -> str:
        return self.xpath_by_attribute or self.xpath_relative or self.xpath_absolute or self.fallback

    @property
    def low_confidence(self) -> bool:
        return self.fallback_only or not self.best

    def to_dict(self) -> dict[str, Any]:
        return {
            "hybrid": self.hybrid,
            "fallback": self.fallback,
            "fallback_only": self.fallback_only,
            "best": [item.to_dict() for item in self.best],
            "slots": self.slots(),
            "profile": self.profile.to_dict(),
            "all": [item.to_dict() for item in self.all],
        }


@dataclass(frozen=True, slots=True)
class ExpressionTest:
    match_count: int
    matched: bool


@dataclass(frozen=True, slots=True)
class ExpressionError:
    message: str
    matched: bool = False
    match_count: int = 0


ExpressionResult = Union[ExpressionTest, ExpressionError]


@dataclass(frozen=True, slots=True)
class Committed:
    locator_set: LocatorSet
    node: Node


RejectReason = Literal["engine-node", "no-match", "inactive"]


@dataclass(frozen=True, slots=True)
class CommitRejected:
    reason: RejectReason
    rejected: bool = True


CommitResult = Union[Committed, CommitRejected]
