"""
Pydantic v2 schemas for accounting periods and the closing protocol.

The closing commands mirror the four steps: controls, adjusting entries,
definitive closing (explicit confirmation) and the automatic carry-forward
whose outcome is visible on :class:`PeriodSnapshot`.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import ClosingType, PeriodStatus


class PeriodCreate(BaseModel):
    """Command opening an accounting period."""

    code: str = Field(..., min_length=1, max_length=20, description="Code de l'exercice, ex. '2025'.")
    start_date: date = Field(..., description="Date de début.")
    end_date: date = Field(..., description="Date de fin.")


class PeriodSnapshot(Snapshot):
    """Read-only view of an AccountingPeriod and its closing progress."""

    id: int
    code: str
    start_date: date
    end_date: date
    status: PeriodStatus
    closing_active: bool
    closing_type: ClosingType | None = None
    ctl_entries_balanced: bool
    ctl_trial_balance_coherent: bool
    ctl_reconciliation_complete: bool
    ctl_bank_reconciliation_complete: bool
    adj_depreciation: bool
    adj_provisions: bool
    adj_accrued_expenses: bool
    adj_deferred_revenue: bool
    controls_validated: bool
    adjustments_validated: bool
    definitively_closed: bool
    carried_forward: bool
    closed_by: str | None = None
    closed_at: datetime | None = None
    observations: str | None = None
    result_amount: Decimal | None = None
    carry_forward_ref: str | None = None
    successor_id: int | None = None


# ---------------------------------------------------------------------------
# Closing commands
# ---------------------------------------------------------------------------


class StartClosingCommand(BaseModel):
    closing_type: ClosingType = Field(default=ClosingType.ANNUAL, description="Type de clôture.")


class ControlFlags(BaseModel):
    """Step 1 — the four control checks, all required to be true."""

    entries_balanced: bool = Field(default=False, description="Équilibre des écritures.")
    trial_balance_coherent: bool = Field(default=False, description="Cohérence de la balance.")
    reconciliation_complete: bool = Field(default=False, description="Lettrage des comptes.")
    bank_reconciliation_complete: bool = Field(
        default=False, description="Rapprochements bancaires."
    )

    def all_true(self) -> bool:
        return (
            self.entries_balanced
            and self.trial_balance_coherent
            and self.reconciliation_complete
            and self.bank_reconciliation_complete
        )


class AdjustmentFlags(BaseModel):
    """Step 2 — the four adjusting-entry checks, all required to be true."""

    depreciation: bool = Field(default=False, description="Amortissements.")
    provisions: bool = Field(default=False, description="Provisions.")
    accrued_expenses: bool = Field(default=False, description="Charges à payer.")
    deferred_revenue: bool = Field(default=False, description="Produits constatés d'avance.")

    def all_true(self) -> bool:
        return (
            self.depreciation
            and self.provisions
            and self.accrued_expenses
            and self.deferred_revenue
        )


class ConfirmClosingCommand(BaseModel):
    """Step 3 — definitive closing.

    The service rejects anything but an explicit ``confirmation=True``,
    including a missing value.
    """

    confirmation: bool | None = Field(default=None, description="Confirmation explicite de la clôture.")
    closed_by: str | None = Field(default=None, max_length=200, description="Auteur de la clôture.")
    observations: str | None = Field(default=None, max_length=1000, description="Observations.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "confirmation": True,
                "closed_by": "Chef comptable",
                "observations": "Clôture annuelle 2025",
            }
        }
    )


class ControlEvaluation(Snapshot):
    """Control flags computed from the ledger, as a suggestion for step 1."""

    period_code: str
    flags: ControlFlags
    total_debit: Decimal
    total_credit: Decimal
    unlettered_entries: int
    unbalanced_bank_reconciliations: int
    unsettled_accounts: list[str] = Field(
        default_factory=list, description="Comptes des classes 8 et 9 non soldés."
    )
