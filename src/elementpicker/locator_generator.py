from __future__ import annotations

import re
from typing import Callable, Iterable

from .document import iter_ancestors, same_tag_position, tag_name
from .dom_extractor import extract_durable_attributes
from .models import Candidate, Node, NodeProfile
from .policy import DEFAULT_POLICY, EnginePolicy
from .selector_rules import durable_classes, is_durable_id, normalize_space, split_classes

CandidateGenerator = Callable[[Node, NodeProfile, EnginePolicy], list[Candidate]]

SHADCN_IDIOM_CLASSES = ("inline-flex", "items-center", "justify-center", "rounded-md")
_XPATH_NAME_PATTERN = re.compile(r"^[A-Za-z_][\w.-]*$")


def generate_attribute_candidates(
    node: Node, profile: NodeProfile, policy: EnginePolicy = DEFAULT_POLICY
) -> list[Candidate]:
    tag = _css_tag(profile.tag)
    candidates: list[Candidate] = []

    if profile.durable_id:
        candidates.append(Candidate(f"#{_escape_css_identifier(profile.durable_id)}", "id", "by_id", 100))

    primary_class = profile.durable_classes[0] if profile.durable_classes else None
    for attr in profile.durable_attributes[: policy.attribute_candidate_limit]:
        predicate = f'[{attr.name}="{_escape_css_string(attr.value)}"]'
        candidates.append(Candidate(f"{tag}{predicate}", "attribute", "by_attribute", 90 - attr.rank))
        if primary_class:
            candidates.append(
                Candidate(
                    f"{tag}.{_escape_css_identifier(primary_class)}{predicate}",
                    "attribute_class",
                    "by_attribute",
                    85 - attr.rank,
                )
            )
    return candidates


def generate_structural_candidates(
    node: Node, profile: NodeProfile, policy: EnginePolicy = DEFAULT_POLICY
) -> list[Candidate]:
    tag = _css_tag(profile.tag)
    candidates: list[Candidate] = []

    if profile.durable_classes:
        candidates.append(
            Candidate(f"{tag}.{_escape_css_identifier(profile.durable_classes[0])}", "class", "by_class", 70)
        )
        if len(profile.durable_classes) > 1:
            joined = "".join(f".{_escape_css_identifier(name)}" for name in profile.durable_classes[:2])
            candidates.append(Candidate(f"{tag}{joined}", "multi_class", "by_class", 75))

    chain = ancestor_chain_expression(node, policy.structural_ancestor_limit)
    if chain:
        candidates.append(Candidate(chain, "ancestor_chain", "by_structure", 60))
    return candidates


def generate_text_candidates(
    node: Node, profile: NodeProfile, policy: EnginePolicy = DEFAULT_POLICY
) -> list[Candidate]:
    text = profile.direct_text
    if len(text) < policy.min_text_length:
        return []

    tag = _css_tag(profile.tag)
    literal = _escape_css_string(text)
    candidates = [Candidate(f'{tag}:contains("{literal}")', "text", "by_text", 50)]
    if profile.durable_classes:
        class_part = _escape_css_identifier(profile.durable_classes[0])
        candidates.append(Candidate(f'{tag}.{class_part}:contains("{literal}")', "class_text", "by_text", 55))
    return candidates


def generate_library_candidates(
    node: Node, profile: NodeProfile, policy: EnginePolicy = DEFAULT_POLICY
) -> list[Candidate]:
    tag = _css_tag(profile.tag)
    candidates: list[Candidate] = []

    if profile.ui_library == "radix":
        state = node.get("data-state")
        if state is not None:
            candidates.append(
                Candidate(f'{tag}[data-state="{_escape_css_string(state)}"]', "library_state", "by_library", 80)
            )
        if node.get("data-radix-collection-item") is not None:
            candidates.append(
                Candidate(f"{tag}[data-radix-collection-item]", "library_collection", "by_library", 75)
            )

    if profile.ui_library == "shadcn":
        idiom = [name for name in profile.durable_classes if name in SHADCN_IDIOM_CLASSES]
        if len(idiom) >= 2:
            joined = ".".join(_escape_css_identifier(name) for name in idiom[:3])
            candidates.append(Candidate(f"{tag}.{joined}", "library_pattern", "by_library", 70))
    return candidates


def generate_path_candidates(
    node: Node, profile: NodeProfile, policy: EnginePolicy = DEFAULT_POLICY
) -> list[Candidate]:
    tag = _xpath_step(profile.tag)
    candidates: list[Candidate] = []

    for attr in profile.durable_attributes[: policy.path_attribute_limit]:
        candidates.append(
            Candidate(
                f"//{tag}[@{attr.name}={_xpath_literal(attr.value)}]",
                "path_attribute",
                "xpath_by_attribute",
                85 - attr.rank,
            )
        )

    if len(profile.direct_text) >= policy.min_text_length:
        candidates.append(
            Candidate(
                f"//{tag}[contains(text(), {_xpath_literal(profile.direct_text)})]",
                "path_text",
                "xpath_by_text",
                60,
            )
        )
        candidates.append(
            Candidate(
                f"//{tag}[normalize-space(text())={_xpath_literal(normalize_space(profile.direct_text))}]",
                "path_exact_text",
                "xpath_by_text",
                65,
            )
        )

    relative = relative_path_expression(node, policy.relative_anchor_depth)
    if relative:
        candidates.append(Candidate(relative, "path_relative", "xpath_relative", 70))

    candidates.append(Candidate(absolute_path_expression(node), "path_absolute", "xpath_absolute", 20))
    return candidates


# Invocation order doubles as the tie-break order when scores are equal.
GENERATORS: tuple[CandidateGenerator, ...] = (
    generate_attribute_candidates,
    generate_structural_candidates,
    generate_text_candidates,
    generate_library_candidates,
    generate_path_candidates,
)


def generate_candidates(
    node: Node,
    profile: NodeProfile,
    policy: EnginePolicy = DEFAULT_POLICY,
    generators: Iterable[CandidateGenerator] = GENERATORS,
) -> list[Candidate]:
    candidates: list[Candidate] = []
    seen: set[tuple[str, str]] = set()
    for generator in generators:
        for candidate in generator(node, profile, policy):
            key = (candidate.dialect, candidate.expression)
            if key in seen:
                continue
            seen.add(key)
            candidates.append(candidate)
    return candidates


def absolute_path_expression(node: Node) -> str:
    parts: list[str] = []
    current: Node | None = node
    while current is not None:
        index, _count = same_tag_position(current)
        parts.append(f"{_xpath_step(tag_name(current))}[{index}]")
        current = current.getparent()
    parts.reverse()
    return "/" + "/".join(parts)


def ancestor_chain_expression(node: Node, ancestor_limit: int = 4) -> str | None:
    parts: list[str] = []
    levels = [node, *iter_ancestors(node, ancestor_limit)]
    for current in levels:
        tag = _css_tag(tag_name(current))
        raw_id = (current.get("id") or "").strip()
        if raw_id and is_durable_id(raw_id):
            parts.append(f"#{_escape_css_identifier(raw_id)}")
            break

        part = tag
        attributes = extract_durable_attributes(current)
        classes = durable_classes(split_classes(current.get("class")), limit=1)
        if attributes:
            part += f'[{attributes[0].name}="{_escape_css_string(attributes[0].value)}"]'
        elif classes:
            part += f".{_escape_css_identifier(classes[0])}"
        else:
            index, count = same_tag_position(current)
            if count > 1:
                part += f":nth-of-type({index})"
        parts.append(part)

    if not parts:
        return None
    parts.reverse()
    return " > ".join(parts)


def relative_path_expression(node: Node, anchor_depth: int = 5) -> str | None:
    steps: list[str] = []
    current = node
    for ancestor in iter_ancestors(node, anchor_depth):
        index, _count = same_tag_position(current)
        steps.append(f"{_xpath_step(tag_name(current))}[{index}]")

        raw_id = (ancestor.get("id") or "").strip()
        if raw_id and is_durable_id(raw_id):
            anchor = f"//*[@id={_xpath_literal(raw_id)}]"
        else:
            attributes = extract_durable_attributes(ancestor)
            if not attributes:
                current = ancestor
                continue
            anchor = f"//{_xpath_step(tag_name(ancestor))}[@{attributes[0].name}={_xpath_literal(attributes[0].value)}]"

        steps.reverse()
        return f"{anchor}/{'/'.join(steps)}"
    return None


def _escape_css_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    # raw line breaks end a CSS string; hex escapes keep them in the value
    return escaped.replace("\r", "\\d ").replace("\n", "\\a ").replace("\f", "\\c ")


def _css_tag(tag: str) -> str:
    return _escape_css_identifier(tag)


def _xpath_step(tag: str) -> str:
    """Name test for ``tag``; prefixed names such as ``o:p`` have no namespace to resolve."""
    if _XPATH_NAME_PATTERN.match(tag):
        return tag
    return f"*[name()={_xpath_literal(tag)}]"


def _escape_css_identifier(value: str) -> str:
    escaped: list[str] = []
    for char in value:
        if char.isalnum() or char in ("-", "_"):
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)


def _xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    pieces = value.split("'")
    quoted = [f"'{piece}'" for piece in pieces]
    return "concat(" + ", \"'\", ".join(quoted) + ")"
