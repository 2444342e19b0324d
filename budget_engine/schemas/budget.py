"""
Pydantic v2 schemas for the budget line ledger, transfers and revisions.

Command models carry only semantic fields; business rules (positive
amounts, available credit, phase order) are enforced by the services so
that every failure surfaces as a typed engine error.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import (
    BudgetCategory,
    RevisionStatus,
    RevisionType,
    TransferStatus,
)


# ---------------------------------------------------------------------------
# Budget lines
# ---------------------------------------------------------------------------


class BudgetLineCreate(BaseModel):
    """Command allocating a new budget line."""

    code: str = Field(..., min_length=1, max_length=30, description="Code unique de la ligne.")
    label: str = Field(..., min_length=1, max_length=300, description="Libellé de la ligne.")
    category: BudgetCategory = Field(..., description="Catégorie budgétaire.")
    period_code: str = Field(..., description="Code de l'exercice de rattachement.")
    budget_initial: Decimal = Field(..., description="Budget initial.")
    account_number: str | None = Field(
        default=None, max_length=20, description="Compte comptable imputé (optionnel)."
    )
    entity: str | None = Field(default=None, max_length=200, description="Entité gestionnaire.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "61-001",
                "label": "Fournitures de bureau",
                "category": "OPERATING",
                "period_code": "2025",
                "budget_initial": "5000000.00",
                "account_number": "604",
            }
        }
    )


class BudgetLineSnapshot(Snapshot):
    """Read-only view of a BudgetLine."""

    id: int
    code: str
    label: str
    category: BudgetCategory
    period_id: int
    account_number: str | None = None
    entity: str | None = None
    budget_initial: Decimal
    budget_revised: Decimal
    engaged: Decimal
    liquidated: Decimal
    authorized: Decimal
    paid: Decimal
    available: Decimal
    active: bool


class AmountCommand(BaseModel):
    """Direct ledger movement on one line (engage, liquidate, authorize, pay)."""

    amount: Decimal = Field(..., description="Montant du mouvement.")


class CategoryTotals(Snapshot):
    category: BudgetCategory
    line_count: int
    budget_initial: Decimal
    budget_revised: Decimal
    engaged: Decimal
    liquidated: Decimal
    paid: Decimal
    available: Decimal


class BudgetKpis(Snapshot):
    """Execution figures of one period, overall and per category.

    ``execution_rate`` is liquidated / budget_revised × 100 (0 when nothing
    is budgeted).
    """

    period_code: str
    line_count: int
    budget_initial: Decimal
    budget_revised: Decimal
    engaged: Decimal
    liquidated: Decimal
    paid: Decimal
    available: Decimal
    execution_rate: Decimal
    by_category: list[CategoryTotals]


# ---------------------------------------------------------------------------
# Transfers (virements)
# ---------------------------------------------------------------------------


class TransferCreate(BaseModel):
    """Command requesting a credit movement between two lines."""

    request_id: str = Field(
        ..., min_length=1, max_length=64, description="Clé d'idempotence fournie par l'appelant."
    )
    source_code: str = Field(..., description="Ligne source.")
    destination_code: str = Field(..., description="Ligne destinataire.")
    amount: Decimal = Field(..., description="Montant du virement.")
    justification: str = Field(default="", max_length=1000, description="Justification.")


class TransferDecision(BaseModel):
    note: str | None = Field(default=None, max_length=1000, description="Motif de la décision.")


class TransferSnapshot(Snapshot):
    id: int
    request_id: str
    source_line_id: int
    destination_line_id: int
    amount: Decimal
    justification: str
    status: TransferStatus
    decision_note: str | None = None
    created_at: datetime | None = None
    decided_at: datetime | None = None


# ---------------------------------------------------------------------------
# Revisions
# ---------------------------------------------------------------------------


class RevisionCreate(BaseModel):
    """Command creating a DRAFT revision.

    For REALLOCATION the first line gives the amount and the second
    receives it.
    """

    reference: str = Field(..., min_length=1, max_length=50, description="Référence de la révision.")
    revision_type: RevisionType = Field(..., description="Type de révision.")
    amount: Decimal = Field(..., description="Montant (positif).")
    justification: str = Field(default="", max_length=1000, description="Justification.")
    documents: str | None = Field(default=None, max_length=500, description="Pièces jointes.")
    line_codes: list[str] = Field(default_factory=list, description="Lignes ciblées, dans l'ordre.")


class RevisionLineAdd(BaseModel):
    line_code: str = Field(..., description="Ligne à ajouter à la révision.")


class RevisionSnapshot(Snapshot):
    id: int
    reference: str
    revision_type: RevisionType
    amount: Decimal
    justification: str
    documents: str | None = None
    status: RevisionStatus
    line_codes: list[str]
    submitted_at: datetime | None = None
    decided_at: datetime | None = None
