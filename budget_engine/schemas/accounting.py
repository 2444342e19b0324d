"""
Pydantic v2 schemas for ledger postings, lettrage and bank reconciliations.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from budget_engine.schemas.common import Snapshot


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


class EntryLineInput(BaseModel):
    """One line of a transaction; exactly one of debit / credit is non-zero."""

    account_number: str = Field(..., min_length=1, max_length=20, description="Compte imputé.")
    debit: Decimal = Field(default=Decimal("0"), description="Montant au débit.")
    credit: Decimal = Field(default=Decimal("0"), description="Montant au crédit.")
    label: str | None = Field(default=None, max_length=300, description="Libellé de la ligne.")


class TransactionCreate(BaseModel):
    """Command posting one balanced transaction."""

    period_code: str = Field(..., description="Exercice de rattachement.")
    entry_date: date = Field(..., description="Date comptable.")
    journal_code: str = Field(..., min_length=1, max_length=5, description="Code journal, ex. 'OD'.")
    label: str = Field(..., min_length=1, max_length=300, description="Libellé de l'écriture.")
    lines: list[EntryLineInput] = Field(..., description="Lignes débit / crédit.")
    document_ref: str | None = Field(default=None, max_length=100, description="Pièce justificative.")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "period_code": "2025",
                "entry_date": "2025-03-31",
                "journal_code": "OD",
                "label": "Facture fournisseur",
                "lines": [
                    {"account_number": "604", "debit": "300000.00"},
                    {"account_number": "401", "credit": "300000.00"},
                ],
            }
        }
    )


class EntrySnapshot(Snapshot):
    """Read-only view of an AccountingEntry."""

    id: int
    period_id: int
    entry_date: date
    journal_code: str
    transaction_ref: str
    label: str
    account_number: str
    debit: Decimal
    credit: Decimal
    document_ref: str | None = None
    reconciliation_letter: str | None = None
    reconciliation_group_id: int | None = None
    lettered_at: datetime | None = None


class TransactionSnapshot(Snapshot):
    transaction_ref: str
    total_debit: Decimal
    total_credit: Decimal
    entries: list[EntrySnapshot]


# ---------------------------------------------------------------------------
# Lettrage
# ---------------------------------------------------------------------------


class LetteringCommand(BaseModel):
    """Letter a set of entries on one account.

    Without ``letter`` the next free token (A … Z, AA, AB …) is assigned.
    """

    account_number: str = Field(..., description="Compte lettré.")
    entry_ids: list[int] = Field(..., description="Écritures à rapprocher (au moins deux).")
    letter: str | None = Field(default=None, max_length=10, description="Lettre imposée.")


class ReconciliationGroupSnapshot(Snapshot):
    id: int
    account_number: str
    letter: str
    total_debit: Decimal
    total_credit: Decimal
    entry_count: int
    active: bool
    entry_ids: list[int]
    created_at: datetime | None = None
    dissolved_at: datetime | None = None


class MatchSuggestion(Snapshot):
    """One debit and one credit of equal amount, both unlettered."""

    debit_entry_id: int
    credit_entry_id: int
    amount: Decimal


# ---------------------------------------------------------------------------
# Bank reconciliation
# ---------------------------------------------------------------------------


class BankReconciliationCreate(BaseModel):
    period_code: str = Field(..., description="Exercice concerné.")
    bank_account_number: str = Field(..., description="Compte de banque (classe 5).")
    statement_date: date = Field(..., description="Date du relevé.")
    statement_balance: Decimal = Field(..., description="Solde du relevé bancaire.")
    observations: str | None = Field(default=None, max_length=1000, description="Observations.")


class BankReconciliationSnapshot(Snapshot):
    id: int
    period_id: int
    bank_account_number: str
    statement_date: date
    statement_balance: Decimal
    book_balance: Decimal
    difference: Decimal
    balanced: bool
    observations: str | None = None
