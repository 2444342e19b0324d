"""Pydantic v2 schemas for the expenditure workflow (commitments)."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import ExpenditurePhase, PaymentMethod


class CommitmentCreate(BaseModel):
    """Command registering a commitment in CREATED phase (no credit consumed)."""

    reference: str = Field(..., min_length=1, max_length=50, description="Référence de l'engagement.")
    line_code: str = Field(..., description="Ligne budgétaire imputée.")
    amount: Decimal = Field(..., description="Montant prévu.")
    supplier: str | None = Field(default=None, max_length=200, description="Fournisseur.")
    purpose: str | None = Field(default=None, max_length=500, description="Objet de la dépense.")


class EngageCommand(BaseModel):
    """Engagement.  Creates the commitment when ``reference`` is unknown."""

    reference: str = Field(..., min_length=1, max_length=50, description="Référence de l'engagement.")
    line_code: str = Field(..., description="Ligne budgétaire imputée.")
    amount: Decimal = Field(..., description="Montant engagé.")
    document_ref: str | None = Field(default=None, max_length=100, description="Bon d'engagement.")
    supplier: str | None = Field(default=None, max_length=200, description="Fournisseur.")
    purpose: str | None = Field(default=None, max_length=500, description="Objet de la dépense.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reference": "ENG-2025-001",
                "line_code": "61-001",
                "amount": "4500000.00",
                "document_ref": "BE-0001",
                "supplier": "SOCIETE ALPHA SARL",
            }
        }
    )


class LiquidateCommand(BaseModel):
    amount: Decimal = Field(..., description="Montant liquidé.")
    document_ref: str | None = Field(
        default=None, max_length=100, description="Facture / PV de réception."
    )


class AuthorizeCommand(BaseModel):
    amount: Decimal = Field(..., description="Montant ordonnancé.")
    document_ref: str | None = Field(default=None, max_length=100, description="Ordre de paiement.")
    payment_method: PaymentMethod | None = Field(default=None, description="Mode de paiement.")


class PayCommand(BaseModel):
    amount: Decimal = Field(..., description="Montant payé.")
    document_ref: str | None = Field(default=None, max_length=100, description="Preuve de paiement.")
    payment_method: PaymentMethod | None = Field(default=None, description="Mode de paiement.")
    payment_reference: str | None = Field(
        default=None, max_length=100, description="Référence du paiement."
    )


class CommitmentSnapshot(Snapshot):
    """Read-only view of a Commitment."""

    id: int
    reference: str
    budget_line_id: int
    phase: ExpenditurePhase
    supplier: str | None = None
    purpose: str | None = None
    requested_amount: Decimal
    engaged_amount: Decimal
    liquidated_amount: Decimal
    authorized_amount: Decimal
    paid_amount: Decimal
    engagement_document: str | None = None
    liquidation_document: str | None = None
    authorization_document: str | None = None
    payment_document: str | None = None
    payment_method: PaymentMethod | None = None
    payment_reference: str | None = None
    engaged_at: datetime | None = None
    liquidated_at: datetime | None = None
    authorized_at: datetime | None = None
    paid_at: datetime | None = None
