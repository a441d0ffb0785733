from __future__ import annotations

from typing import List, Optional

from warikan.domain.models import (
    SUPPORTED_GRANULARITIES,
    ModelValidationError,
    Participant,
    Role,
    RoundingMode,
)
from warikan.domain.money import MoneyError, parse_total_input


class ApiValidationError(ValueError):
    """Raised when request payload validation fails."""


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_role(raw_role: object, idx: int) -> Optional[Role]:
    if raw_role is None or raw_role == "":
        return None
    if not isinstance(raw_role, str):
        raise ApiValidationError(f"Participant at index {idx} has a non-string 'role'.")
    try:
        return Role(raw_role.strip().lower())
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ApiValidationError(
            f"Participant at index {idx} has unknown role '{raw_role}' (expected one of: {allowed})."
        )


def parse_participants(raw_participants: object, *, max_participants: int) -> List[Participant]:
    if not isinstance(raw_participants, list):
        raise ApiValidationError("'participants' must be a list.")
    if len(raw_participants) > max_participants:
        raise ApiValidationError(f"At most {max_participants} participants are allowed.")

    participants: List[Participant] = []
    seen_ids: set[str] = set()
    for idx, raw in enumerate(raw_participants):
        if not isinstance(raw, dict):
            raise ApiValidationError(f"Participant at index {idx} must be an object.")

        pid = raw.get("id")
        if not isinstance(pid, str) or not pid.strip():
            raise ApiValidationError(f"Participant at index {idx} must include a non-empty 'id'.")
        if pid in seen_ids:
            raise ApiValidationError("Participant ids must be unique.")
        seen_ids.add(pid)

        name = raw.get("name", "")
        if name is None:
            name = ""
        if not isinstance(name, str):
            raise ApiValidationError(f"Participant at index {idx} has a non-string 'name'.")

        age = raw.get("age")
        if age is not None and (isinstance(age, bool) or not isinstance(age, int) or age < 0):
            raise ApiValidationError(f"Participant at index {idx} must have 'age' as int >= 0.")

        exempt = raw.get("exempt", False)
        if not isinstance(exempt, bool):
            raise ApiValidationError(f"Participant at index {idx} must have 'exempt' as a boolean.")

        custom_weight = raw.get("custom_weight")
        if custom_weight is not None and not _is_number(custom_weight):
            raise ApiValidationError(f"Participant at index {idx} must have 'custom_weight' as a number.")

        try:
            participants.append(
                Participant(
                    id=pid,
                    name=name.strip(),
                    role=parse_role(raw.get("role"), idx),
                    age=age,
                    exempt=exempt,
                    custom_weight=float(custom_weight) if custom_weight is not None else None,
                )
            )
        except ModelValidationError as e:
            raise ApiValidationError(str(e)) from e

    return participants


def parse_total(raw_total: object) -> int:
    """Accept an int >= 0, or the raw text of the total field."""
    if isinstance(raw_total, str):
        try:
            return parse_total_input(raw_total)
        except MoneyError as e:
            raise ApiValidationError(f"Invalid 'total': {e}") from e
    if isinstance(raw_total, bool) or not isinstance(raw_total, int) or raw_total < 0:
        raise ApiValidationError("'total' must be an int >= 0 or a numeric string.")
    return raw_total


def parse_granularity(raw_granularity: object, default: int) -> int:
    if raw_granularity is None:
        return default
    if isinstance(raw_granularity, str) and raw_granularity.strip().isdigit():
        raw_granularity = int(raw_granularity.strip())
    if isinstance(raw_granularity, bool) or raw_granularity not in SUPPORTED_GRANULARITIES:
        allowed = ", ".join(str(g) for g in SUPPORTED_GRANULARITIES)
        raise ApiValidationError(f"'granularity' must be one of: {allowed}.")
    return int(raw_granularity)


def parse_mode(raw_mode: object, default: str) -> RoundingMode:
    value = default if raw_mode is None else raw_mode
    if not isinstance(value, str):
        raise ApiValidationError("'mode' must be a string.")
    try:
        return RoundingMode(value.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in RoundingMode)
        raise ApiValidationError(f"'mode' must be one of: {allowed}.")
