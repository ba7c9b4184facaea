# backend/tipsplit/domain/money.py
from __future__ import annotations

import math
import re
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Optional


class MoneyError(ValueError):
    """Raised when amount text cannot be parsed."""


TIP_PRESETS = (0, 5, 10, 15, 20, 25, 30, 40)
DEFAULT_TIP_PERCENT = 15

# What a bill/tip text field may hold: digits with at most one decimal point.
# "", "." and "12." are all acceptable while typing.
_AMOUNT_TEXT_RE = re.compile(r"^\d*\.?\d*$")
_NON_AMOUNT_CHARS_RE = re.compile(r"[^0-9.]")
# Enough digits to hold any finite float exactly, so quantize never overflows.
_ROUNDING_CONTEXT = Context(prec=400)


def round_cents(value: float) -> float:
    """
    Round a float amount to cents, half away from zero.

    The rounding happens on the float product value * 100, so 1.575
    (stored as 1.57499999...) rounds to 1.58 because 1.575 * 100 is
    exactly 157.5 in binary floating point.
    Values too large to scale by 100 are returned unchanged.
    """
    scaled = value * 100
    if not math.isfinite(scaled):
        return value
    cents = Decimal(scaled).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP, context=_ROUNDING_CONTEXT
    )
    return int(cents) / 100


def finite_float(value: object) -> Optional[float]:
    """
    Return value as a finite float, or None for non-numbers, bools,
    NaN/infinity and ints too large for a float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        f = float(value)
    except OverflowError:
        return None
    if not math.isfinite(f):
        return None
    return f


def format_currency(amount: float, symbol: str = "$") -> str:
    """
    Format an amount like "$12.34", always showing two decimals.
    """
    return f"{symbol}{amount:.2f}"


def sanitize_amount_input(text: str) -> Optional[str]:
    """
    Clean a keystroke-level amount string.

    Everything but digits and "." is dropped. Returns None when the
    result would hold more than one decimal point or more than two
    decimal digits, meaning the edit should be rejected.
    """
    if not isinstance(text, str):
        raise MoneyError("text must be a string")

    numeric = _NON_AMOUNT_CHARS_RE.sub("", text)
    parts = numeric.split(".")
    if len(parts) > 2:
        return None
    if len(parts) == 2 and len(parts[1]) > 2:
        return None
    return numeric


def _to_float(text: str) -> float:
    if text in ("", "."):
        return 0.0
    value = float(text)
    if not math.isfinite(value):
        return 0.0
    return value


def parse_amount(text: str) -> float:
    """
    Parse a bill amount typed by a user.

      ""     -> 0.0
      "."    -> 0.0
      "12."  -> 12.0
      "12.5" -> 12.5

    Raises MoneyError for text that is not digits with a single
    optional decimal point ("1.2.3", "-5", "abc").
    """
    if not isinstance(text, str):
        raise MoneyError("text must be a string")

    s = text.strip()
    if not _AMOUNT_TEXT_RE.match(s):
        raise MoneyError(f"invalid amount: {text}")
    return _to_float(s)


def parse_tip_percent(text: str) -> float:
    """
    Parse a custom tip percentage; must lie within [0, 100].
    """
    value = parse_amount(text)
    if value > 100:
        raise MoneyError(f"tip percentage out of range: {text}")
    return value
