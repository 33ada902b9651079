from __future__ import annotations

import logging
import re

from .document import InvalidExpression, LiveDocument
from .models import NO_MATCHES, Candidate, Dialect, Node, ScoredCandidate, Uniqueness
from .policy import DEFAULT_POLICY, EnginePolicy
from .selector_rules import AUTOMATION_HOOK_ATTRIBUTES, SEMANTIC_TAGS, TEST_HOOK_ATTRIBUTES

LOGGER = logging.getLogger("elementpicker.engine")

_QUOTED_PATTERN = re.compile(r'"(?:\\.|[^"\\])*"|\'[^\']*\'')
_STRUCTURAL_ORDINAL_PATTERN = re.compile(r":nth-(?:of-type|child)\(")
_PATH_ORDINAL_PATTERN = re.compile(r"\[\d+\]")
_PSEUDO_CHAIN_PATTERN = re.compile(r":(?:not|has|is|where|nth-last-child|nth-last-of-type)\(")
_ID_SELECTOR_PATTERN = re.compile(r"#[\w\\-]")
_SEMANTIC_TAG_PATTERN = re.compile(
    r"(?<![\w\-@.#])(?:" + "|".join(sorted(SEMANTIC_TAGS, key=len, reverse=True)) + r")(?![\w-])"
)


def _attribute_pattern(names: tuple[str, ...]) -> re.Pattern[str]:
    joined = "|".join(re.escape(name) for name in names)
    return re.compile(r"[\[@](?:" + joined + r")(?:[\]=~|^$*]|$)")


_TEST_HOOK_PATTERN = _attribute_pattern(TEST_HOOK_ATTRIBUTES)
_AUTOMATION_HOOK_PATTERN = _attribute_pattern(AUTOMATION_HOOK_ATTRIBUTES)
_ARIA_LABEL_PATTERN = _attribute_pattern(("aria-label",))
_ID_ATTRIBUTE_PATTERN = _attribute_pattern(("id",))
_ROLE_PATTERN = _attribute_pattern(("role",))


def measure_uniqueness(
    expression: str, node: Node, document: LiveDocument, dialect: Dialect | None = None
) -> Uniqueness:
    """Run ``expression`` against the whole tree; raises InvalidExpression."""
    matches = document.query(expression, dialect)
    return Uniqueness(
        is_unique=len(matches) == 1,
        match_count=len(matches),
        matches_target=any(match is node for match in matches),
    )


def uniqueness_score(match_count: int, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    if match_count <= 0:
        return 0
    return max(0, policy.unique_match_score - (match_count - 1) * policy.extra_match_penalty)


def durability_bonus(expression: str, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    """Bonus for the strongest durability tier the expression relies on."""
    bare = _QUOTED_PATTERN.sub('""', expression)
    if _TEST_HOOK_PATTERN.search(bare):
        return policy.test_hook_bonus
    if _AUTOMATION_HOOK_PATTERN.search(bare):
        return policy.automation_hook_bonus
    if _ARIA_LABEL_PATTERN.search(bare):
        return policy.accessibility_label_bonus
    if (_ID_SELECTOR_PATTERN.search(bare) or _ID_ATTRIBUTE_PATTERN.search(bare)) and not uses_ordinal(bare):
        return policy.id_bonus
    if _ROLE_PATTERN.search(bare):
        return policy.role_bonus
    return 0


def uses_ordinal(expression: str) -> bool:
    return bool(_STRUCTURAL_ORDINAL_PATTERN.search(expression) or _PATH_ORDINAL_PATTERN.search(expression))


def ordinal_penalty(expression: str, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    bare = _QUOTED_PATTERN.sub('""', expression)
    penalty = 0
    if _PATH_ORDINAL_PATTERN.search(bare):
        penalty += policy.path_ordinal_penalty
    if _STRUCTURAL_ORDINAL_PATTERN.search(bare):
        penalty += policy.structural_ordinal_penalty
    if _PSEUDO_CHAIN_PATTERN.search(bare):
        penalty += policy.pseudo_chain_penalty
    return penalty


def length_adjustment(expression: str, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    if len(expression) < policy.short_expression_length:
        return policy.short_expression_bonus
    if len(expression) > policy.long_expression_length:
        return -policy.long_expression_penalty
    return 0


def semantic_bonus(expression: str, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    bare = _QUOTED_PATTERN.sub('""', expression)
    return policy.semantic_tag_bonus if _SEMANTIC_TAG_PATTERN.search(bare) else 0


def score_expression(expression: str, uniqueness: Uniqueness, policy: EnginePolicy = DEFAULT_POLICY) -> int:
    if uniqueness.match_count <= 0 or not uniqueness.matches_target:
        return 0

    score = uniqueness_score(uniqueness.match_count, policy)
    score += durability_bonus(expression, policy)
    score -= ordinal_penalty(expression, policy)
    score += length_adjustment(expression, policy)
    score += semantic_bonus(expression, policy)
    return max(0, min(policy.max_score, score))


def score_candidate(
    candidate: Candidate,
    node: Node,
    document: LiveDocument,
    policy: EnginePolicy = DEFAULT_POLICY,
) -> ScoredCandidate:
    try:
        uniqueness = measure_uniqueness(candidate.expression, node, document, candidate.dialect)
    except InvalidExpression as exc:
        LOGGER.info("Candidate %s scored 0: %s", candidate.kind, exc)
        return ScoredCandidate.from_candidate(candidate, 0, NO_MATCHES)

    score = score_expression(candidate.expression, uniqueness, policy)
    return ScoredCandidate.from_candidate(candidate, score, uniqueness)
