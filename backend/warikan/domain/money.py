# backend/warikan/domain/money.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass

# Total field safety bound: 1,000,000,000 yen.
MAX_TOTAL_YEN = 1_000_000_000

_NON_DIGIT_RE = re.compile(r"[^0-9]")


class MoneyError(ValueError):
    """Raised when currency/money parsing or formatting fails."""


@dataclass(frozen=True)
class Money:
    """
    Simple money value object using whole yen.
    Yen has no minor unit, so amount is always an int.
    """
    amount: int
    currency: str = "JPY"

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise MoneyError("Money.amount must be an int")
        if not isinstance(self.currency, str) or not self.currency.strip():
            raise MoneyError("Money.currency must be a non-empty string")

    def format(self, symbol: str = "¥") -> str:
        """
        Format as a string like "¥12,000".
        """
        sign = "-" if self.amount < 0 else ""
        return f"{sign}{symbol}{abs(self.amount):,}"


def format_yen(value: float, *, symbol: str = "¥") -> str:
    """
    Round to whole yen (halves up) and format with thousands separators.

      12000   -> "¥12,000"
      1234.5  -> "¥1,235"
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MoneyError("value must be a number")
    if not math.isfinite(value):
        raise MoneyError("value must be finite")
    return Money(amount=math.floor(value + 0.5)).format(symbol=symbol)


def parse_total_input(text: str, *, max_total: int = MAX_TOTAL_YEN) -> int:
    """
    Sanitise free-text input from the total field into whole yen.

    Every non-digit is dropped, so "¥12,000" and "12 000" both give 12000.
    An empty result means 0.

    Rejects:
      non-strings
      values above max_total
    """
    if not isinstance(text, str):
        raise MoneyError("total input must be a string")

    # Compare lengths first so huge inputs never reach int().
    digits = _NON_DIGIT_RE.sub("", text).lstrip("0")
    if digits == "":
        return 0
    if len(digits) > len(str(max_total)):
        raise MoneyError("amount exceeds safety limit")

    value = int(digits)
    if value > max_total:
        raise MoneyError("amount exceeds safety limit")
    return value
