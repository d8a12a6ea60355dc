from __future__ import annotations

import math
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional


def to_decimal(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None:
        return Decimal(0)
    return Decimal(str(x))


def money(amount: Decimal, symbol: str = "$", places: int = 2) -> str:
    q = Decimal(10) ** -places
    val = amount.quantize(q, rounding=ROUND_HALF_UP)
    parts = f"{val:.{places}f}".split(".")
    whole = parts[0]
    frac = parts[1] if len(parts) > 1 else "00"
    sign = ""
    if whole.startswith("-"):
        sign = "-"
        whole = whole[1:]
    whole_with_commas = "{:,}".format(int(whole))
    return f"{sign}{symbol}{whole_with_commas}.{frac}"


def fmt2(amount) -> str:
    """Two-decimal string used for every displayed cost ('175.50')."""
    return f"{to_decimal(amount).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP):.2f}"


def round2(x: float) -> float:
    return float(to_decimal(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def quantize_money(x) -> Decimal:
    return to_decimal(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def ceil_tenth(x: float) -> float:
    """Round up to the next 0.1; fabric is never under-ordered."""
    d = (to_decimal(x) * 10).to_integral_value(rounding=ROUND_CEILING)
    return float(d / 10)


def round_up_to_multiple(value: float, repeat: float) -> float:
    # repeat of 0 means no pattern to match
    if repeat > 0:
        return math.ceil(round(value / repeat, 9)) * repeat
    return value


def parse_number(x: Any) -> Optional[float]:
    """Parse a form/template value, keeping an explicit 0 distinct from 'absent'.

    Returns None for None, empty strings and unparseable text.
    """
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float, Decimal)):
        val = float(x)
    else:
        s = str(x).strip().replace(",", "")
        if not s:
            return None
        try:
            val = float(Decimal(s))
        except (InvalidOperation, ValueError):
            return None
    if math.isnan(val) or math.isinf(val):
        return None
    return val
