"""Exchange-rate application for forecasts: the engine only multiplies by a supplied rate."""

from __future__ import annotations

from decimal import Decimal

from budget_engine.exceptions import ValidationError
from budget_engine.utils.money import to_money


def apply_exchange_rate(amount: Decimal, rate: Decimal) -> Decimal:
    """Convert a foreign-currency *amount* into base currency at *rate*.

    Raises:
        ValidationError: If the rate is not strictly positive.
    """
    if rate is None or rate <= 0:
        raise ValidationError("Le taux de change doit être strictement positif.")
    return to_money(to_money(amount) * Decimal(rate))
