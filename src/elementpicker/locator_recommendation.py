from __future__ import annotations

import logging

from .document import InvalidExpression, LiveDocument
from .dom_extractor import analyze
from .locator_generator import GENERATORS, CandidateGenerator, absolute_path_expression, generate_candidates
from .models import CATEGORIES, NO_MATCHES, Candidate, LocatorSet, Node, ScoredCandidate
from .policy import DEFAULT_POLICY, EnginePolicy
from .scoring import measure_uniqueness, score_candidate, score_expression

LOGGER = logging.getLogger("elementpicker.engine")


def synthesize(
    node: Node,
    document: LiveDocument,
    policy: EnginePolicy = DEFAULT_POLICY,
    generators: tuple[CandidateGenerator, ...] = GENERATORS,
) -> LocatorSet:
    """Analyze ``node``, score every generated candidate and rank the result."""
    profile = analyze(node, policy)
    candidates = generate_candidates(node, profile, policy, generators)
    scored = [score_candidate(candidate, node, document, policy) for candidate in candidates]
    ranked = rank_candidates(scored)

    fallback = absolute_path_expression(node)
    locator_set = LocatorSet(profile=profile, fallback=fallback, all=ranked)

    usable = [item for item in ranked if item.score > 0]
    if usable:
        locator_set.best = usable[: policy.best_count]
    else:
        locator_set.best = [_fallback_candidate(fallback, node, document, policy)]
        locator_set.fallback_only = True
        LOGGER.info("No candidate cleared the score floor for <%s>; using %s", profile.tag, fallback)

    for category in CATEGORIES:
        for item in usable:
            if item.category == category and item.score > policy.slot_min_confidence:
                setattr(locator_set, category, item.expression)
                break
    return locator_set


def rank_candidates(scored: list[ScoredCandidate]) -> list[ScoredCandidate]:
    # sorted() is stable, so equal scores keep generation order
    return sorted(scored, key=lambda item: item.score, reverse=True)


def _fallback_candidate(
    expression: str,
    node: Node,
    document: LiveDocument,
    policy: EnginePolicy,
) -> ScoredCandidate:
    candidate = Candidate(expression, "path_absolute", "xpath_absolute", 20)
    try:
        uniqueness = measure_uniqueness(expression, node, document, "path")
    except InvalidExpression:
        return ScoredCandidate.from_candidate(candidate, 0, NO_MATCHES)
    return ScoredCandidate.from_candidate(candidate, score_expression(expression, uniqueness, policy), uniqueness)
