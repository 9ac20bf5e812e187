"""
MapPool — immutable mode -> stage-set value.

A pool always carries every catalog mode; a mode with an empty set is
excluded from the pool. Equality is per-mode set equality, so the order in
which stages were added never matters.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple

from app.services.map_catalog import MODE_CODES, STAGE_IDS, ModeShort, mode_by_code, stage_by_id


# =============================================================================
# Errors
# =============================================================================

class MapPoolError(ValueError):
    """Base class for map pool / map list errors."""


class InvalidPoolString(MapPoolError):
    """Serialized pool string is malformed or from another catalog version."""


class InvalidMapPool(MapPoolError):
    """Pool references a mode or stage the catalog does not know."""


class InvalidGenerationRequest(MapPoolError):
    """Caller broke the planner / generator contract."""


class EmptyModePool(InvalidGenerationRequest):
    """A mode with no stages was placed into a mode sequence."""

    def __init__(self, mode: str):
        self.mode = mode
        super().__init__(f"Mode {mode} has no stages in the map pool")


# =============================================================================
# MapPool
# =============================================================================

@dataclass(frozen=True, eq=False)
class MapPool:
    stages: Mapping[ModeShort, FrozenSet[int]]

    def __post_init__(self):
        given = dict(self.stages)
        unknown_modes = sorted(str(m) for m in given if mode_by_code(m) is None)
        if unknown_modes:
            raise InvalidMapPool(f"Unknown mode(s): {', '.join(unknown_modes)}")

        normalized: Dict[ModeShort, FrozenSet[int]] = {}
        for mode in MODE_CODES:
            stage_ids = frozenset(given.get(mode, ()))
            bad = sorted(
                (s for s in stage_ids if not isinstance(s, int) or stage_by_id(s) is None),
                key=str,
            )
            if bad:
                raise InvalidMapPool(f"Unknown stage id(s) for {mode}: {bad}")
            normalized[mode] = stage_ids

        object.__setattr__(self, "stages", MappingProxyType(normalized))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MapPool):
            return NotImplemented
        return all(self.stages[m] == other.stages[m] for m in MODE_CODES)

    def __hash__(self) -> int:
        return hash(tuple(self.stages[m] for m in MODE_CODES))

    def __getitem__(self, mode: ModeShort) -> FrozenSet[int]:
        return self.stages[mode]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, int]]) -> "MapPool":
        """Build a pool from flat (mode, stage_id) pairs, e.g. stored rows."""
        grouped: Dict[str, set] = {}
        for mode, stage_id in pairs:
            grouped.setdefault(mode, set()).add(stage_id)
        return cls(grouped)

    @classmethod
    def empty(cls) -> "MapPool":
        return cls({})

    def non_empty_modes(self) -> List[ModeShort]:
        """Modes with at least one stage, in canonical order."""
        return [m for m in MODE_CODES if self.stages[m]]

    def is_empty(self) -> bool:
        return not self.non_empty_modes()

    def has(self, mode: ModeShort, stage_id: int) -> bool:
        return stage_id in self.stages.get(mode, frozenset())

    def toggle(self, mode: ModeShort, stage_id: int) -> "MapPool":
        """Return a new pool with one (mode, stage) membership flipped."""
        if mode_by_code(mode) is None:
            raise InvalidMapPool(f"Unknown mode: {mode}")
        current = self.stages[mode]
        updated = current - {stage_id} if stage_id in current else current | {stage_id}
        return MapPool({**self.stages, mode: updated})

    def to_pairs(self) -> List[Tuple[ModeShort, int]]:
        """Flat (mode, stage_id) projection in canonical order."""
        return [(m, s) for m in MODE_CODES for s in sorted(self.stages[m])]

    def to_dict(self) -> Dict[str, List[int]]:
        return {m: sorted(self.stages[m]) for m in MODE_CODES}


DEFAULT_MAP_POOL = MapPool({
    "SZ": STAGE_IDS,
    "TC": STAGE_IDS,
    "RM": STAGE_IDS,
    "CB": STAGE_IDS,
})
