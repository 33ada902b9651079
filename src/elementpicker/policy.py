from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import json
from pathlib import Path
import tempfile
from typing import Any

CONFIG_DIR = Path.home() / ".elementpicker"
POLICY_PATH = CONFIG_DIR / "policy.json"


@dataclass(frozen=True, slots=True)
class EnginePolicy:
    """Empirically tuned cutoffs used across the engine.

    None of these values are load-bearing contracts; they are the defaults the
    heuristics were tuned with and can be overridden from ``policy.json``.
    """

    # scoring
    unique_match_score: int = 100
    extra_match_penalty: int = 10
    test_hook_bonus: int = 50
    automation_hook_bonus: int = 40
    accessibility_label_bonus: int = 35
    id_bonus: int = 30
    role_bonus: int = 25
    structural_ordinal_penalty: int = 15
    path_ordinal_penalty: int = 20
    pseudo_chain_penalty: int = 10
    short_expression_length: int = 20
    short_expression_bonus: int = 10
    long_expression_length: int = 100
    long_expression_penalty: int = 10
    semantic_tag_bonus: int = 5
    max_score: int = 200

    # synthesis
    best_count: int = 3
    slot_min_confidence: int = 50

    # analysis
    text_limit: int = 50
    class_limit: int = 3
    min_text_length: int = 3
    semantic_ancestry_depth: int = 5
    structural_ancestor_limit: int = 4
    relative_anchor_depth: int = 5
    library_ancestor_depth: int = 8
    attribute_candidate_limit: int = 5
    path_attribute_limit: int = 3

    # backdrop detection
    backdrop_z_index: int = 1000
    utility_z_index: int = 40

    # point resolution
    search_radius: int = 5
    search_step: int = 2
    settle_delay: float = 0.05
    engine_node_ids: tuple[str, ...] = ("__ep_overlay", "__ep_tooltip", "__ep_panel")
    engine_container_ids: tuple[str, ...] = ("__ep_panel",)


DEFAULT_POLICY = EnginePolicy()


def policy_from_mapping(payload: Any) -> EnginePolicy:
    if not isinstance(payload, dict):
        return DEFAULT_POLICY

    values: dict[str, Any] = {}
    for item in fields(EnginePolicy):
        if item.name not in payload:
            continue
        default = getattr(DEFAULT_POLICY, item.name)
        raw = payload[item.name]
        try:
            if isinstance(default, tuple):
                if not isinstance(raw, (list, tuple)):
                    continue
                values[item.name] = tuple(str(entry) for entry in raw)
            elif isinstance(default, float):
                values[item.name] = float(raw)
            elif isinstance(default, int):
                values[item.name] = int(raw)
        except (TypeError, ValueError):
            continue
    return EnginePolicy(**values)


def load_policy(config_path: Path | None = None) -> EnginePolicy:
    path = config_path or POLICY_PATH
    if not path.exists() or not path.is_file():
        return DEFAULT_POLICY

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError):
        return DEFAULT_POLICY

    return policy_from_mapping(payload)


def save_policy(policy: EnginePolicy, config_path: Path | None = None) -> tuple[bool, str | None]:
    """Atomically write ``policy`` as JSON; returns ``(ok, error message)``."""
    path = config_path or POLICY_PATH
    payload = json.dumps(asdict(policy), ensure_ascii=True, indent=2, sort_keys=True) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"Could not create policy folder {path.parent}: {exc}"

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as handle:
            temp_path = Path(handle.name)
            handle.write(payload)
        temp_path.replace(path)
    except OSError as exc:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        return False, f"Could not write policy to {path}: {exc}"
    return True, None
