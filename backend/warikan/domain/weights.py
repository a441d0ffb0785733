# backend/warikan/domain/weights.py
from __future__ import annotations

from typing import Dict, Optional

from warikan.domain.models import Participant, Role, WeightBreakdown

MIN_WEIGHT = 0.1
MAX_CUSTOM_WEIGHT = 2.0
DEFAULT_ROLE = Role.MID

ROLE_WEIGHT: Dict[Role, float] = {
    Role.INTERN: 0.6,
    Role.JUNIOR: 0.8,
    Role.MID: 1.0,
    Role.MANAGER: 1.2,
    Role.DIRECTOR: 1.4,
    Role.EXEC: 1.6,
}


def clamp(x: float, low: float, high: float) -> float:
    return min(high, max(low, x))


def age_adjustment(age: Optional[int] = None) -> float:
    """
    Step adjustment applied on top of the role multiplier.

      unknown -> 0
      <= 24   -> -0.1
      25..29  -> 0
      30..39  -> +0.1
      40..49  -> +0.2
      >= 50   -> +0.3
    """
    if age is None:
        return 0.0
    if age <= 24:
        return -0.1
    if age <= 29:
        return 0.0
    if age <= 39:
        return 0.1
    if age <= 49:
        return 0.2
    return 0.3


def base_weight(role: Optional[Role] = None, age: Optional[int] = None) -> float:
    multiplier = ROLE_WEIGHT.get(role or DEFAULT_ROLE, 1.0)
    adjusted = multiplier * (1 + age_adjustment(age))
    return max(MIN_WEIGHT, round(adjusted, 3))


def weight(
    role: Optional[Role] = None,
    age: Optional[int] = None,
    exempt: bool = False,
    custom_weight: Optional[float] = None,
) -> float:
    """
    Effective weight for one participant.

    Exempt always yields 0. A manual override is clamped into [0.1, 2.0] here,
    whatever the slider showed, so stale or out-of-range values cannot leak
    into an allocation.
    """
    if exempt:
        return 0.0
    if custom_weight is not None:
        return clamp(float(custom_weight), MIN_WEIGHT, MAX_CUSTOM_WEIGHT)
    return base_weight(role, age)


def effective_weight(participant: Participant) -> float:
    return weight(
        role=participant.role,
        age=participant.age,
        exempt=participant.exempt,
        custom_weight=participant.custom_weight,
    )


def describe_weight(participant: Participant) -> WeightBreakdown:
    role = participant.role or DEFAULT_ROLE
    return WeightBreakdown(
        role=role,
        role_multiplier=ROLE_WEIGHT[role],
        age_adjustment=age_adjustment(participant.age),
        base_weight=base_weight(participant.role, participant.age),
        effective_weight=effective_weight(participant),
    )
