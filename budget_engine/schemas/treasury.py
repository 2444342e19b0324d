"""Pydantic v2 schemas for the monthly treasury forecast."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from budget_engine.schemas.common import Snapshot


class ForecastInput(BaseModel):
    """Monthly receipts and disbursements, split by currency.

    Foreign-currency amounts are converted with ``exchange_rate`` (units of
    base currency per unit of foreign currency).
    """

    month: str = Field(..., min_length=1, max_length=20, description="Mois, ex. '2025-03'.")
    receipts_base: Decimal = Field(default=Decimal("0"), description="Recettes en monnaie locale.")
    receipts_foreign: Decimal = Field(default=Decimal("0"), description="Recettes en devise.")
    disbursements_base: Decimal = Field(default=Decimal("0"), description="Dépenses en monnaie locale.")
    disbursements_foreign: Decimal = Field(default=Decimal("0"), description="Dépenses en devise.")
    exchange_rate: Decimal = Field(..., description="Taux de change devise → monnaie locale.")
    opening_balance: Decimal = Field(default=Decimal("0"), description="Trésorerie d'ouverture.")


class ForecastSnapshot(Snapshot):
    month: str
    currency: str
    total_receipts: Decimal
    total_disbursements: Decimal
    net_position: Decimal
    opening_balance: Decimal
    closing_balance: Decimal
