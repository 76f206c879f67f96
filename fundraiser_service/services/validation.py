import math
from decimal import Decimal
from typing import Any

from fundraiser_service.core.exceptions import InvalidAmount


def validate_amount(value: Any, field: str = "amount") -> float:
    """Return ``value`` as a float, or raise InvalidAmount unless it is a finite number > 0"""
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidAmount(f"{field} must be a number")

    amount = float(value)
    if not math.isfinite(amount):
        raise InvalidAmount(f"{field} must be a finite number")
    if amount <= 0:
        raise InvalidAmount(f"{field} must be greater than 0")
    return amount
