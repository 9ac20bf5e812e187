"""
Map List Generator — one stage per slot of a planned mode sequence.

Rules (in priority order):
  1. A slot never repeats the stage of the slot right before it, unless the
     slot's mode has exactly one stage and also played the slot before.
  2. Exhaustion before repeat: each mode draws from a shuffled queue of its
     stages and only reshuffles once every stage of the queue was played.

Draw state is shared by all lists requested in one call, so list #2 picks
up each mode's queue where list #1 stopped. "Previous slot" is per list.

Each list is filled by a bounded depth-first search: a slot takes the first
stage of its mode's queue that keeps rule 1, and backs up to an earlier slot
when a later one has nothing left to play (typically the last stage of a
cycle being the stage another mode just played). Queues and the RNG are
restored on every back-up, so the output only depends on the seed.

If no order satisfies both rules, or the search runs out of budget, the list
is drawn greedily instead. The greedy draw may close a cycle early when its
last stage equals the previous slot's stage; rule 1 wins there.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Sequence, Set, Tuple

from app.services.map_catalog import ModeShort, mode_by_code
from app.services.map_pool import EmptyModePool, InvalidGenerationRequest, MapPool

logger = logging.getLogger(__name__)

# Longer lists skip the search and are drawn greedily
SEARCH_MAX_SLOTS = 200
SEARCH_STEP_BUDGET = 20_000


@dataclass(frozen=True)
class ModeStage:
    mode: ModeShort
    stage_id: int


class _SearchBudgetExceeded(Exception):
    pass


class _ModeQueue:
    """Shuffled per-mode draw queue, refilled when exhausted."""

    def __init__(self, mode: ModeShort, stage_ids: Sequence[int], rng: random.Random):
        self.mode = mode
        self.stage_ids = sorted(stage_ids)
        self.rng = rng
        self.queue: Deque[int] = deque()

    def refill(self) -> None:
        order = list(self.stage_ids)
        self.rng.shuffle(order)
        self.queue = deque(order)

    def candidates(self, previous: Optional[int], same_mode_as_previous: bool) -> List[int]:
        """Stages of the current cycle this slot may play, in queue order."""
        if len(self.stage_ids) == 1:
            only = self.stage_ids[0]
            return [only] if only != previous or same_mode_as_previous else []
        return [s for s in self.queue if s != previous]

    def _rotate_away_from(self, avoid: Set[int]) -> bool:
        # Head to tail until the head is allowed; a full cycle restores the order
        for _ in range(len(self.queue)):
            if self.queue[0] not in avoid:
                return True
            self.queue.rotate(-1)
        return False

    def draw(self, previous: Optional[int], upcoming: Optional[int] = None) -> int:
        """
        Pop the next stage, skipping *previous* (hard) and *upcoming* (soft,
        the stage the next slot is left with).
        """
        if not self.queue:
            self.refill()

        if len(self.stage_ids) > 1:
            if len(self.queue) == 1 and self.queue[0] == previous:
                logger.debug(
                    "Mode %s: last stage %d of cycle matches previous slot; starting new cycle",
                    self.mode,
                    previous,
                )
                self.refill()
            avoid = {s for s in (previous, upcoming) if s is not None}
            if not self._rotate_away_from(avoid) and previous is not None:
                self._rotate_away_from({previous})

        return self.queue.popleft()


def _validate_request(pool: MapPool, sequence: Sequence[str], counts: Sequence[int]) -> None:
    if not counts:
        raise InvalidGenerationRequest("At least one map list length is required")
    bad_counts = [c for c in counts if not isinstance(c, int) or c <= 0]
    if bad_counts:
        raise InvalidGenerationRequest(f"Map list lengths must be positive integers, got {bad_counts}")
    if not sequence:
        raise InvalidGenerationRequest("Mode sequence is empty")

    longest = max(counts)
    if len(sequence) < longest:
        raise InvalidGenerationRequest(
            f"Mode sequence has {len(sequence)} slots but a list of {longest} was requested"
        )

    for mode in sequence[:longest]:
        if mode_by_code(mode) is None:
            raise InvalidGenerationRequest(f"Unknown mode in sequence: {mode}")
        if not pool[mode]:
            raise EmptyModePool(mode)


def _search_list(
    sequence: Sequence[ModeShort],
    count: int,
    queues: Dict[str, _ModeQueue],
    rng: random.Random,
) -> Optional[List[ModeStage]]:
    """
    Depth-first fill of sequence[:count] without breaking either rule.

    Returns None (with queues and RNG untouched) when no such order exists.
    Raises _SearchBudgetExceeded after SEARCH_STEP_BUDGET slot visits.
    """
    picks: List[ModeStage] = []
    steps = 0

    def visit(i: int, previous: Optional[int], previous_mode: Optional[str]) -> bool:
        nonlocal steps
        if i == count:
            return True
        steps += 1
        if steps > SEARCH_STEP_BUDGET:
            raise _SearchBudgetExceeded()

        mode = sequence[i]
        mode_queue = queues[mode]
        rng_state = None
        if not mode_queue.queue:
            rng_state = rng.getstate()
            mode_queue.refill()

        for stage in mode_queue.candidates(previous, mode == previous_mode):
            position = mode_queue.queue.index(stage)
            del mode_queue.queue[position]
            picks.append(ModeStage(mode=mode, stage_id=stage))
            if visit(i + 1, stage, mode):
                return True
            picks.pop()
            mode_queue.queue.insert(position, stage)

        if rng_state is not None:
            mode_queue.queue.clear()
            rng.setstate(rng_state)
        return False

    return picks if visit(0, None, None) else None


def _upcoming_stage(
    pool: MapPool,
    queues: Dict[str, _ModeQueue],
    sequence: Sequence[ModeShort],
    index: int,
    count: int,
) -> Optional[int]:
    """The stage slot *index* is left with: a single-stage mode or a cycle tail."""
    if index >= count:
        return None
    mode = sequence[index]
    stages = pool[mode]
    if len(stages) == 1:
        return next(iter(stages))
    if mode == sequence[index - 1]:
        return None
    remaining = queues[mode].queue
    if len(remaining) == 1:
        return remaining[0]
    return None


def _draw_list(
    pool: MapPool,
    sequence: Sequence[ModeShort],
    count: int,
    queues: Dict[str, _ModeQueue],
) -> List[ModeStage]:
    map_list: List[ModeStage] = []
    previous: Optional[int] = None
    for i, mode in enumerate(sequence[:count]):
        upcoming = _upcoming_stage(pool, queues, sequence, i + 1, count)
        stage_id = queues[mode].draw(previous, upcoming)
        map_list.append(ModeStage(mode=mode, stage_id=stage_id))
        previous = stage_id
    return map_list


def generate_map_lists(
    pool: MapPool,
    sequence: Sequence[ModeShort],
    counts: Sequence[int],
    seed: Optional[int] = None,
) -> List[List[ModeStage]]:
    """
    Generate one map list per entry of *counts*.

    List j covers sequence[:counts[j]]. Pass *seed* for reproducible output;
    None seeds from system entropy.
    """
    _validate_request(pool, sequence, counts)

    rng = random.Random(seed)
    queues: Dict[str, _ModeQueue] = {
        mode: _ModeQueue(mode, pool[mode], rng)
        for mode in dict.fromkeys(sequence[:max(counts)])
    }

    result: List[List[ModeStage]] = []
    for count in counts:
        saved_queues = {mode: deque(q.queue) for mode, q in queues.items()}
        saved_rng = rng.getstate()

        map_list: Optional[List[ModeStage]] = None
        if count <= SEARCH_MAX_SLOTS:
            try:
                map_list = _search_list(sequence, count, queues, rng)
            except _SearchBudgetExceeded:
                map_list = None

        if map_list is None:
            logger.debug("No fully fair order for a list of %d; drawing greedily", count)
            for mode, q in queues.items():
                q.queue = saved_queues[mode]
            rng.setstate(saved_rng)
            map_list = _draw_list(pool, sequence, count, queues)

        result.append(map_list)

    logger.debug(
        "Generated %d map list(s) of lengths %s over modes %s",
        len(result),
        list(counts),
        sorted(queues),
    )
    return result


def map_list_to_pairs(map_list: Sequence[ModeStage]) -> List[Tuple[ModeShort, int]]:
    """Flat (mode, stage_id) projection for persistence sinks."""
    return [(item.mode, item.stage_id) for item in map_list]
