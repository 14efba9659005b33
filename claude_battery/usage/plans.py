"""Map a rate-limit tier string to a token ceiling and a plan label.

Tier strings look like ``default_claude_max_5x``; the informative token is
buried inside, so keys are matched by substring containment.  Since one tier
can contain several keys, matching order is fixed: longest key first, ties
broken alphabetically.  Insertion order of the configuration never matters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Mapping, TypeVar

import yaml

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TOKEN_LIMIT = 88_000
DEFAULT_PLAN_LIMITS: dict[str, int] = {"20x": 150_000, "5x": 60_000, "pro": 30_000}
DEFAULT_PLAN_NAMES: dict[str, str] = {"20x": "Max20", "5x": "Max5", "pro": "Pro"}
DEFAULT_PLAN_NAME_ABSENT = "Max5"
DEFAULT_PLAN_NAME_UNMATCHED = "Max"


def _precedence(key: str) -> tuple[int, str]:
    return (-len(key), key)


@dataclass(frozen=True)
class TierTable(Generic[T]):
    """Immutable substring-match table with deterministic precedence."""

    entries: tuple[tuple[str, T], ...]

    @classmethod
    def build(cls, mapping: Mapping[str, T]) -> TierTable[T]:
        folded: dict[str, T] = {}
        for key, value in mapping.items():
            key = str(key).strip().casefold()
            if not key:
                raise ValueError("plan table keys must be non-empty")
            folded[key] = value
        ordered = sorted(folded.items(), key=lambda kv: _precedence(kv[0]))
        return cls(entries=tuple(ordered))

    def match(self, tier: str | None) -> T | None:
        if tier is None:
            return None
        folded = tier.casefold()
        for key, value in self.entries:
            if key in folded:
                return value
        return None

    def keys(self) -> list[str]:
        return [key for key, _ in self.entries]


class PlanLimitTable(TierTable[int]):
    """Tier key -> token ceiling."""

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> PlanLimitTable:
        limits: dict[str, int] = {}
        for key, value in mapping.items():
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"plan limit for {key!r} must be a positive integer, got {value!r}")
            limits[key] = value
        return cls.build(limits)  # type: ignore[return-value]

    @classmethod
    def from_yaml(cls, path: Path) -> PlanLimitTable:
        """Load a table from YAML: either ``{key: limit}`` or ``{plans: {key: limit}}``."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if isinstance(data, dict) and isinstance(data.get("plans"), dict):
            data = data["plans"]
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of tier key to limit")
        logger.info("Loaded %d plan limits from %s", len(data), path)
        return cls.from_mapping(data)


def resolve_limit(
    tier: str | None,
    table: PlanLimitTable | None = None,
    default: int = DEFAULT_TOKEN_LIMIT,
) -> int:
    """Token ceiling for *tier*; *default* when absent or unrecognised."""
    table = table or PlanLimitTable.from_mapping(DEFAULT_PLAN_LIMITS)
    limit = table.match(tier)
    return default if limit is None else limit


def resolve_plan_name(
    tier: str | None,
    names: TierTable[str] | None = None,
    default_absent: str = DEFAULT_PLAN_NAME_ABSENT,
    default_unmatched: str = DEFAULT_PLAN_NAME_UNMATCHED,
) -> str:
    """Human-readable plan label for *tier*."""
    if tier is None:
        return default_absent
    names = names or TierTable.build(DEFAULT_PLAN_NAMES)
    name = names.match(tier)
    return default_unmatched if name is None else name
