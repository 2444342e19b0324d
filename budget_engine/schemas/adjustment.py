"""Pydantic v2 schemas for balance-sheet adjustments."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import AdjustmentDirection, AdjustmentType


class AdjustmentCreate(BaseModel):
    reference: str = Field(..., min_length=1, max_length=50, description="Référence de l'ajustement.")
    period_code: str = Field(..., description="Exercice concerné.")
    account_number: str = Field(..., description="Compte ajusté.")
    adjustment_type: AdjustmentType = Field(..., description="ACTIF ou PASSIF.")
    direction: AdjustmentDirection = Field(..., description="Augmentation ou diminution.")
    amount: Decimal = Field(..., description="Montant (strictement positif).")
    justification: str = Field(default="", max_length=1000, description="Justification.")
    author: str = Field(default="", max_length=200, description="Auteur de l'ajustement.")
    adjustment_date: date = Field(..., description="Date de l'ajustement.")


class AdjustmentSnapshot(Snapshot):
    id: int
    reference: str
    period_id: int
    account_number: str
    adjustment_type: AdjustmentType
    direction: AdjustmentDirection
    amount: Decimal
    justification: str
    author: str
    adjustment_date: date


class AdjustmentBalance(Snapshot):
    """Net effect of the period's adjustments on each side of the balance sheet.

    ``imbalance`` = asset_delta − liability_delta; a non-zero value must be
    compensated before the period is closed.
    """

    period_code: str
    asset_delta: Decimal
    liability_delta: Decimal
    imbalance: Decimal
    balanced: bool
    warning: str | None = None


class AdjustmentResult(Snapshot):
    adjustment: AdjustmentSnapshot
    balance: AdjustmentBalance
