# backend/warikan/domain/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ModelValidationError(ValueError):
    """Raised when domain models fail basic validation."""


class Role(str, Enum):
    """Seniority tiers, ordered from lowest to highest multiplier."""
    INTERN = "intern"
    JUNIOR = "junior"
    MID = "mid"
    MANAGER = "manager"
    DIRECTOR = "director"
    EXEC = "exec"


class RoundingMode(str, Enum):
    NEAREST = "nearest"
    CEIL = "ceil"
    FLOOR = "floor"


SUPPORTED_GRANULARITIES: Tuple[int, ...] = (1, 10, 50, 100)


@dataclass(frozen=True)
class Participant:
    """
    A person taking part in the split.

    name is display-only and never used by the math.
    exempt means "this person owes nothing" and wins over every other field.
    """
    id: str
    name: str = ""
    role: Optional[Role] = None
    age: Optional[int] = None
    exempt: bool = False
    custom_weight: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ModelValidationError("Participant.id must be a non-empty string")
        if not isinstance(self.name, str):
            raise ModelValidationError("Participant.name must be a string")
        if self.role is not None and not isinstance(self.role, Role):
            raise ModelValidationError("Participant.role must be a Role or None")
        if self.age is not None:
            if isinstance(self.age, bool) or not isinstance(self.age, int) or self.age < 0:
                raise ModelValidationError("Participant.age must be an int >= 0 or None")
        if not isinstance(self.exempt, bool):
            raise ModelValidationError("Participant.exempt must be a bool")
        if self.custom_weight is not None:
            if isinstance(self.custom_weight, bool) or not isinstance(self.custom_weight, (int, float)):
                raise ModelValidationError("Participant.custom_weight must be a number or None")


@dataclass(frozen=True)
class WeightBreakdown:
    """Intermediate weight values for display next to the slider."""
    role: Role
    role_multiplier: float
    age_adjustment: float
    base_weight: float
    effective_weight: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "role_multiplier": self.role_multiplier,
            "age_adjustment": self.age_adjustment,
            "base_weight": self.base_weight,
            "effective_weight": self.effective_weight,
        }


@dataclass(frozen=True)
class AllocationResult:
    """
    Output of allocate().

    All *_by_id dicts preserve the participant list order.
    amounts_by_id values are integer currency units (yen).
    """
    amounts_by_id: Dict[str, int]
    raw_by_id: Dict[str, float]
    weights_by_id: Dict[str, float]
    sum_rounded: int
    sum_raw: float
    total: int = 0
    granularity: int = 1
    mode: RoundingMode = RoundingMode.NEAREST

    @property
    def overshoot(self) -> int:
        return max(0, self.sum_rounded - self.total)

    @property
    def is_balanced(self) -> bool:
        return self.sum_rounded >= self.total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amounts_by_id": dict(self.amounts_by_id),
            "raw_by_id": dict(self.raw_by_id),
            "weights_by_id": dict(self.weights_by_id),
            "sum_rounded": self.sum_rounded,
            "sum_raw": self.sum_raw,
            "total": self.total,
            "granularity": self.granularity,
            "mode": self.mode.value,
            "overshoot": self.overshoot,
            "is_balanced": self.is_balanced,
        }
