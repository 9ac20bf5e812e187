"""
Mode order planner — which mode is played in each slot of a map list.

Policies:
  EQUAL           round-robin over the available modes in canonical order;
                  when slot_count % k != 0 the earliest modes get the extra slot.
  SZ_EVERY_OTHER  Splat Zones on every even slot (0, 2, 4, ...), odd slots
                  round-robin over the other available modes. Without SZ in
                  the pool this is EQUAL.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Literal

from app.services.map_catalog import SPLAT_ZONES, ModeShort, mode_by_code, mode_index
from app.services.map_pool import InvalidGenerationRequest

ModePolicy = Literal["EQUAL", "SZ_EVERY_OTHER"]

MODE_POLICIES: FrozenSet[str] = frozenset({"EQUAL", "SZ_EVERY_OTHER"})


def _canonical_modes(available_modes: Iterable[str]) -> List[ModeShort]:
    seen: Dict[str, None] = {}
    for code in available_modes:
        if mode_by_code(code) is None:
            raise InvalidGenerationRequest(f"Unknown mode: {code}")
        seen.setdefault(code, None)
    return sorted(seen, key=mode_index)  # type: ignore[arg-type]


def _round_robin(modes: List[ModeShort], slot_count: int) -> List[ModeShort]:
    return [modes[i % len(modes)] for i in range(slot_count)]


def plan_mode_sequence(
    policy: str,
    available_modes: Iterable[str],
    slot_count: int,
) -> List[ModeShort]:
    """
    Return one mode per slot.

    available_modes should already be restricted to modes with a non-empty
    stage set (MapPool.non_empty_modes); order and duplicates don't matter.
    """
    if policy not in MODE_POLICIES:
        raise InvalidGenerationRequest(
            f"Unknown mode policy {policy!r}; expected one of {sorted(MODE_POLICIES)}"
        )
    if slot_count < 1:
        raise InvalidGenerationRequest(f"slot_count must be >= 1, got {slot_count}")

    modes = _canonical_modes(available_modes)
    if not modes:
        raise InvalidGenerationRequest("At least one available mode is required")

    if policy == "EQUAL" or SPLAT_ZONES not in modes:
        return _round_robin(modes, slot_count)

    others = [m for m in modes if m != SPLAT_ZONES]
    if not others:
        return [SPLAT_ZONES] * slot_count

    # Odd slots draw from their own counter so every other mode is reached
    odd_slots = _round_robin(others, slot_count // 2)
    return [
        SPLAT_ZONES if i % 2 == 0 else odd_slots[i // 2]
        for i in range(slot_count)
    ]
