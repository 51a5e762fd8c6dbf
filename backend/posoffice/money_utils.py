from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    """
    Normalize a DB or Python numeric to a 2-place Decimal.

    SQLite hands SUM() results back as float or int; str() keeps the
    printed value instead of the binary expansion.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value) -> Optional[str]:
    """Wire format for money: plain decimal string with two places."""
    if value is None:
        return None
    return f"{to_decimal(value):.2f}"


def margin_percent(profit: Decimal, revenue: Decimal) -> float:
    """profit / revenue * 100 rounded to 2 places; 0 when there is no revenue."""
    if revenue <= 0:
        return 0.0
    return float((profit / revenue * 100).quantize(CENT, rounding=ROUND_HALF_UP))
