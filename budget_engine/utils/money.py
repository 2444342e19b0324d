"""Decimal helpers for monetary amounts (2 decimal places, half-up)."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from budget_engine.exceptions import ValidationError
from budget_engine.utils.constants import BALANCE_EPSILON

ZERO = Decimal("0.00")
_CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Convert *value* to a Decimal rounded to cents; ``None`` becomes zero."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def is_balanced(debit: Any, credit: Any) -> bool:
    """True when |debit − credit| < 0.01."""
    return abs(to_money(debit) - to_money(credit)) < BALANCE_EPSILON


def require_positive(value: Any, field: str) -> Decimal:
    """Return *value* as money, or raise ``ValidationError`` unless it is > 0."""
    if value is None:
        raise ValidationError(f"Le champ '{field}' est obligatoire.")
    amount = to_money(value)
    if amount <= 0:
        raise ValidationError(f"Le champ '{field}' doit être strictement positif.")
    return amount
