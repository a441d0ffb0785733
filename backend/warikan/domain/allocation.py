# backend/warikan/domain/allocation.py
from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from warikan.domain.models import (
    SUPPORTED_GRANULARITIES,
    AllocationResult,
    Participant,
    RoundingMode,
)
from warikan.domain.weights import effective_weight

logger = logging.getLogger(__name__)

# Upper bound on redistribution passes. Hitting it stops early, it never raises.
MAX_PASSES = 100_000

# Order tried by choose_best_mode(); on equal overshoot the earlier mode wins.
AUTO_MODE_ORDER: Tuple[RoundingMode, ...] = (
    RoundingMode.FLOOR,
    RoundingMode.NEAREST,
    RoundingMode.CEIL,
)


class AllocationError(ValueError):
    """Raised when allocate() is called outside its input contract."""


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def _apply_mode(value: float, mode: RoundingMode) -> int:
    if mode is RoundingMode.NEAREST:
        return _round_half_up(value)
    if mode is RoundingMode.CEIL:
        return math.ceil(value)
    return math.floor(value)


def round_to_granularity(value: float, granularity: int, mode: RoundingMode) -> int:
    """
    Round a real-valued share to a multiple of granularity.

    granularity 1 is the whole-yen case and rounds the value directly;
    larger steps round value / granularity and scale back up.
    """
    if granularity <= 1:
        return _apply_mode(value, mode)
    return _apply_mode(value / granularity, mode) * granularity


def _coerce_mode(mode: Union[RoundingMode, str]) -> RoundingMode:
    if isinstance(mode, RoundingMode):
        return mode
    try:
        return RoundingMode(mode)
    except ValueError as e:
        raise AllocationError(f"unsupported rounding mode: {mode!r}") from e


def _validate(
    participants: Sequence[Participant], total: float, granularity: int
) -> None:
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise AllocationError("total must be a number")
    if not math.isfinite(total) or total < 0:
        raise AllocationError("total must be a finite number >= 0")
    if (
        isinstance(granularity, bool)
        or not isinstance(granularity, int)
        or granularity not in SUPPORTED_GRANULARITIES
    ):
        raise AllocationError(
            f"granularity must be one of {list(SUPPORTED_GRANULARITIES)}"
        )

    seen: set[str] = set()
    for p in participants:
        if not isinstance(p, Participant):
            raise AllocationError("participants must be Participant instances")
        if p.id in seen:
            raise AllocationError(f"duplicate participant id: {p.id}")
        seen.add(p.id)


def _is_steppable(delta: int, step: int) -> bool:
    if step == 1:
        return delta != 0
    return abs(delta) >= step


def _rank_for_increase(
    raw: Sequence[float], amounts: Sequence[int], locked: Sequence[bool]
) -> List[int]:
    """Indices of unlocked participants, most under-rounded first; ties keep list order."""
    candidates = [i for i in range(len(raw)) if not locked[i]]
    return sorted(candidates, key=lambda i: (-(raw[i] - amounts[i]), i))


def _rank_for_decrease(
    raw: Sequence[float], amounts: Sequence[int], locked: Sequence[bool], step: int
) -> List[int]:
    """Indices that can give up one step, most over-rounded first; ties keep list order."""
    candidates = [
        i for i in range(len(raw)) if not locked[i] and amounts[i] - step >= 0
    ]
    return sorted(candidates, key=lambda i: (raw[i] - amounts[i], i))


def _redistribute(
    raw: Sequence[float],
    amounts: List[int],
    locked: Sequence[bool],
    target: int,
    step: int,
) -> None:
    """
    Walk the residual ranking one step per participant per pass until the
    remaining delta is smaller than a step. Mutates amounts in place.
    """
    delta = target - sum(amounts)
    passes = 0
    while _is_steppable(delta, step):
        if passes >= MAX_PASSES:
            logger.debug("redistribution hit pass cap %d with delta=%d", MAX_PASSES, delta)
            return
        passes += 1

        progressed = False
        if delta > 0:
            for idx in _rank_for_increase(raw, amounts, locked):
                amounts[idx] += step
                delta -= step
                progressed = True
                if not _is_steppable(delta, step):
                    break
        else:
            for idx in _rank_for_decrease(raw, amounts, locked, step):
                amounts[idx] -= step
                delta += step
                progressed = True
                if not _is_steppable(delta, step):
                    break

        if not progressed:
            logger.debug("redistribution stalled with delta=%d after %d passes", delta, passes)
            return


def _cover_deficit(
    raw: Sequence[float],
    amounts: List[int],
    locked: Sequence[bool],
    target: int,
    step: int,
) -> None:
    # Overshoot by less than one step is acceptable; a shortfall is not.
    if step <= 1 or target - sum(amounts) <= 0:
        return
    order = _rank_for_increase(raw, amounts, locked)
    if order:
        amounts[order[0]] += step


def allocate(
    participants: Iterable[Participant],
    total: float,
    granularity: int,
    mode: Union[RoundingMode, str],
) -> AllocationResult:
    """
    Split total across participants in proportion to their weights.

    Steps:
    - weight each participant (exempt -> 0)
    - raw share = total * weight / sum(weights), or 0 for everyone when the
      weights sum to 0
    - round each raw share to the granularity with the chosen mode
    - redistribute the rounding delta by residual (raw - amount), one step at
      a time, ties resolved by participant list order
    - if still short of the total, add one more step to the largest residual
      so the result never undershoots

    Raises AllocationError for a negative or non-numeric total, an unsupported
    granularity or mode, or duplicate participant ids.
    """
    people: Tuple[Participant, ...] = tuple(participants)
    _validate(people, total, granularity)
    rounding = _coerce_mode(mode)

    ids = [p.id for p in people]
    weights = [effective_weight(p) for p in people]
    locked = [p.exempt for p in people]

    sum_weight = sum(weights)
    if sum_weight <= 0:
        raw = [0.0 for _ in people]
    else:
        raw = [total * w / sum_weight for w in weights]

    target = _round_half_up(total)
    amounts = [round_to_granularity(r, granularity, rounding) for r in raw]

    _redistribute(raw, amounts, locked, target, granularity)
    _cover_deficit(raw, amounts, locked, target, granularity)

    final = [max(0, int(a)) for a in amounts]

    amounts_by_id: Dict[str, int] = dict(zip(ids, final))
    raw_by_id: Dict[str, float] = dict(zip(ids, raw))
    weights_by_id: Dict[str, float] = dict(zip(ids, weights))

    return AllocationResult(
        amounts_by_id=amounts_by_id,
        raw_by_id=raw_by_id,
        weights_by_id=weights_by_id,
        sum_rounded=sum(final),
        sum_raw=sum(raw),
        total=target,
        granularity=granularity,
        mode=rounding,
    )


def choose_best_mode(
    participants: Iterable[Participant], total: float, granularity: int
) -> AllocationResult:
    """
    Run allocate() under floor, nearest and ceil and keep the result with the
    smallest overshoot over the total. Ties go to the earlier mode.
    """
    people = tuple(participants)
    results = [allocate(people, total, granularity, m) for m in AUTO_MODE_ORDER]
    return min(results, key=lambda r: r.overshoot)
