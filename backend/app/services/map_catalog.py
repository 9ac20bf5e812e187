"""
Map Catalog — Modes and Stages (Single Source of Truth)

Every other map module reads modes and stages from here. Canonical order is
the catalog index and never changes without bumping CATALOG_VERSION, since
the pool codec derives its bit layout from it.
"""

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple

# =============================================================================
# Catalog Version
# =============================================================================

# Bump whenever a mode or stage is added, removed or reordered.
CATALOG_VERSION = 1


# =============================================================================
# Modes
# =============================================================================

ModeShort = Literal["TW", "SZ", "TC", "RM", "CB"]


@dataclass(frozen=True)
class Mode:
    index: int
    short: ModeShort
    name: str  # English fallback; localized names live in the frontend


@dataclass(frozen=True)
class Stage:
    id: int  # catalog index, also the bit position in serialized pools
    name: str


_MODES: Tuple[Mode, ...] = (
    Mode(index=0, short="TW", name="Turf War"),
    Mode(index=1, short="SZ", name="Splat Zones"),
    Mode(index=2, short="TC", name="Tower Control"),
    Mode(index=3, short="RM", name="Rainmaker"),
    Mode(index=4, short="CB", name="Clam Blitz"),
)


# =============================================================================
# Stages
# =============================================================================

_STAGES: Tuple[Stage, ...] = (
    Stage(id=0, name="Scorch Gorge"),
    Stage(id=1, name="Eeltail Alley"),
    Stage(id=2, name="Hagglefish Market"),
    Stage(id=3, name="Undertow Spillway"),
    Stage(id=4, name="Mincemeat Metalworks"),
    Stage(id=5, name="Hammerhead Bridge"),
    Stage(id=6, name="Museum d'Alfonsino"),
    Stage(id=7, name="Mahi-Mahi Resort"),
    Stage(id=8, name="Inkblot Art Academy"),
    Stage(id=9, name="Sturgeon Shipyard"),
    Stage(id=10, name="MakoMart"),
    Stage(id=11, name="Wahoo World"),
)

_MODE_BY_CODE: Dict[str, Mode] = {m.short: m for m in _MODES}
_STAGE_BY_ID: Dict[int, Stage] = {s.id: s for s in _STAGES}

MODE_CODES: Tuple[ModeShort, ...] = tuple(m.short for m in _MODES)
STAGE_IDS: Tuple[int, ...] = tuple(s.id for s in _STAGES)

SPLAT_ZONES: ModeShort = "SZ"


# =============================================================================
# Lookups
# =============================================================================

def all_modes() -> Tuple[Mode, ...]:
    """All modes in canonical (catalog index) order."""
    return _MODES


def all_stages() -> Tuple[Stage, ...]:
    """All stages in canonical (catalog index) order."""
    return _STAGES


def mode_by_code(code: str) -> Optional[Mode]:
    return _MODE_BY_CODE.get(code)


def stage_by_id(stage_id: int) -> Optional[Stage]:
    return _STAGE_BY_ID.get(stage_id)


def mode_index(code: str) -> int:
    """Canonical sort key for a mode code. Raises KeyError for unknown codes."""
    return _MODE_BY_CODE[code].index


def mode_count() -> int:
    return len(_MODES)


def stage_count() -> int:
    return len(_STAGES)
