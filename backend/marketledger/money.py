# Overview: Decimal helpers for PKR amounts stored as NUMERIC(14, 2).

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# NUMERIC(14, 2) holds at most 12 integer digits
MAX_AMOUNT = Decimal(10) ** 12


def to_money(value: Any, *, field: str = "amount") -> Decimal:
    """
    Coerce user/DB input into a 2dp Decimal.

    Raises ValueError for booleans, empty strings, non-numeric input and
    magnitudes the money columns can't store.
    Floats go through str() so 0.1 stays 0.10 rather than 0.1000000000000000055.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError(f"{field} must be a number")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValueError(f"{field} must be a finite number")
    # checked before quantize (context precision) and after (half-cent rounding)
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError(f"{field} is too large")
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if abs(amount) >= MAX_AMOUNT:
        raise ValueError(f"{field} is too large")
    return amount


def money_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def percentage_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """amount * percentage / 100, rounded half-up to the cent."""
    return (Decimal(amount) * Decimal(percentage) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_pkr(amount: Decimal) -> str:
    """Display form used in user-facing messages: 'Rs. 1,000' / 'Rs. 1,250.50'."""
    value = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    if value == value.to_integral_value():
        return f"Rs. {int(value):,}"
    return f"Rs. {value:,.2f}"
