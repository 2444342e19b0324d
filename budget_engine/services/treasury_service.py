"""Monthly treasury forecast.  Pure computation, nothing is stored."""

from __future__ import annotations

import logging

from budget_engine.config import get_settings
from budget_engine.schemas.treasury import ForecastInput, ForecastSnapshot
from budget_engine.utils.fx import apply_exchange_rate
from budget_engine.utils.money import to_money

logger = logging.getLogger(__name__)


def compute_monthly_forecast(cmd: ForecastInput) -> ForecastSnapshot:
    """Convert the foreign-currency flows and compute the net position.

    Raises:
        ValidationError: ``exchange_rate`` is not strictly positive.
    """
    receipts = to_money(cmd.receipts_base) + apply_exchange_rate(cmd.receipts_foreign, cmd.exchange_rate)
    disbursements = to_money(cmd.disbursements_base) + apply_exchange_rate(
        cmd.disbursements_foreign, cmd.exchange_rate
    )
    net = receipts - disbursements
    opening = to_money(cmd.opening_balance)
    logger.debug("compute_monthly_forecast: %s net=%s", cmd.month, net)
    return ForecastSnapshot(
        month=cmd.month,
        currency=get_settings().BASE_CURRENCY,
        total_receipts=receipts,
        total_disbursements=disbursements,
        net_position=net,
        opening_balance=opening,
        closing_balance=opening + net,
    )
