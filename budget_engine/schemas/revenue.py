"""Pydantic v2 schemas for the revenue workflow (claims)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import (
    CertaintyLevel,
    PaymentMethod,
    RecoveryRisk,
    RevenuePhase,
    RevenueType,
)


class RecognizeCommand(BaseModel):
    """Recognition of a claim (constatation)."""

    reference: str = Field(..., min_length=1, max_length=50, description="Référence de la créance.")
    line_code: str = Field(..., description="Ligne de recette imputée.")
    revenue_type: RevenueType = Field(..., description="Type de recette.")
    amount: Decimal = Field(..., description="Montant constaté.")
    prudence_coefficient: Decimal = Field(
        default=Decimal("1"), description="Coefficient de prudence (0 à 1)."
    )
    certainty_level: CertaintyLevel = Field(
        default=CertaintyLevel.CERTAIN, description="Niveau de certitude."
    )
    recovery_risk: RecoveryRisk = Field(
        default=RecoveryRisk.LOW, description="Risque de recouvrement."
    )
    debtor: str | None = Field(default=None, max_length=200, description="Débiteur.")
    document_ref: str | None = Field(default=None, max_length=100, description="Titre de recette.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reference": "REC-2025-001",
                "line_code": "70-001",
                "revenue_type": "TAX",
                "amount": "5000000.00",
                "prudence_coefficient": "0.80",
                "certainty_level": "PROBABLE",
                "recovery_risk": "MEDIUM",
            }
        }
    )


class ClaimLiquidateCommand(BaseModel):
    amount: Decimal = Field(..., description="Montant liquidé.")
    document_ref: str | None = Field(default=None, max_length=100, description="Pièce justificative.")


class CollectCommand(BaseModel):
    amount: Decimal = Field(..., description="Montant encaissé.")
    payment_method: PaymentMethod | None = Field(default=None, description="Mode d'encaissement.")
    payment_reference: str | None = Field(
        default=None, max_length=100, description="Référence de l'encaissement."
    )


class ClaimSnapshot(Snapshot):
    """Read-only view of a Claim."""

    id: int
    reference: str
    budget_line_id: int
    revenue_type: RevenueType
    debtor: str | None = None
    phase: RevenuePhase
    recognized_amount: Decimal
    liquidated_amount: Decimal
    collected_amount: Decimal
    prudence_coefficient: Decimal
    provision_for_doubtful_amount: Decimal
    net_prudential_amount: Decimal
    certainty_level: CertaintyLevel
    recovery_risk: RecoveryRisk
    review_required: bool
    recognition_document: str | None = None
    liquidation_document: str | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    recognized_at: datetime | None = None
    liquidated_at: datetime | None = None
    collected_at: datetime | None = None


class RevenueKpis(Snapshot):
    """Revenue figures: prudence impact and advisory-risk counts."""

    claim_count: int
    recognized_total: Decimal
    liquidated_total: Decimal
    collected_total: Decimal
    net_prudential_total: Decimal
    provision_total: Decimal
    collection_rate: Decimal
    uncertain_count: int
    high_risk_count: int
    review_required_count: int
