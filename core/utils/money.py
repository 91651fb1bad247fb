# core/utils/money.py

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Optional

Money = Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0")
# anything at or above this is a data defect, not a price
MAX_AMOUNT = Decimal("1e10")


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def to_amount(x) -> Optional[Money]:
    """Like D, but None for anything that isn't a finite amount below MAX_AMOUNT."""
    if isinstance(x, bool):
        return None
    try:
        value = D(x)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not value.is_finite() or abs(value) >= MAX_AMOUNT:
        return None
    return value


def round_money(x) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def clamp(x, low, high) -> Money:
    return max(D(low), min(D(x), D(high)))


def allocate(total, parts: int) -> list[Money]:
    """
    Split `total` into `parts` amounts that add back up to it exactly.
    Leftover cents go to the first shares, so the first one is never smaller.
    """
    if parts <= 0:
        return []
    total = round_money(total)
    share = (total / parts).quantize(CENT, rounding=ROUND_DOWN)
    leftover = int((total - share * parts) / CENT)
    return [share + CENT if i < leftover else share for i in range(parts)]
