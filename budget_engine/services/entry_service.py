"""
Accounting entry posting.

Every ledger write in the engine goes through :func:`post_lines`: the
public :func:`post_transaction`, the workflows' automatic postings and the
closing engine's result and carry-forward entries.

Design notes
------------
- A transaction is a list of lines sharing one ``transaction_ref``.  Each
  line carries exactly one non-zero side and Σdebit == Σcredit within 0.01.
- ``post_lines`` neither locks nor commits.  Callers hold the locks of the
  aggregate they mutate and own the unit of work, which lets the closing
  engine post while it holds the period exclusively.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from budget_engine.database import atomic
from budget_engine.exceptions import UnbalancedEntriesError, ValidationError
from budget_engine.locks import registry
from budget_engine.models.accounting_entry import AccountingEntry
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.schemas.accounting import EntrySnapshot, TransactionCreate, TransactionSnapshot
from budget_engine.services import account_service, period_service
from budget_engine.utils.money import ZERO, is_balanced, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Line:
    """One side of a transaction before it is posted."""

    account_number: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    label: str | None = None


def new_transaction_ref(journal_code: str) -> str:
    return f"{journal_code}-{uuid.uuid4().hex[:12].upper()}"


def post_lines(
    db: Session,
    period: AccountingPeriod,
    entry_date: date,
    journal_code: str,
    label: str,
    lines: Sequence[Line],
    document_ref: str | None = None,
) -> list[AccountingEntry]:
    """Validate and add one balanced transaction to the session.

    Args:
        db: Active SQLAlchemy session (the caller commits).
        period: Period receiving the entries.
        entry_date: Accounting date of every line.
        journal_code: Journal, e.g. ``"OD"``.
        label: Default label for lines without their own.
        lines: At least two lines.
        document_ref: Optional supporting document.

    Returns:
        The created ``AccountingEntry`` rows, flushed.

    Raises:
        ValidationError: Fewer than two lines, a line without exactly one
            positive side, or an unknown/archived account.
        UnbalancedEntriesError: Σdebit and Σcredit differ by 0.01 or more.
    """
    if len(lines) < 2:
        raise ValidationError("Une écriture comporte au moins deux lignes.")
    if not label or not label.strip():
        raise ValidationError("Le libellé de l'écriture est obligatoire.")

    total_debit = ZERO
    total_credit = ZERO
    prepared: list[tuple[str, Decimal, Decimal, str]] = []
    for line in lines:
        debit = to_money(line.debit)
        credit = to_money(line.credit)
        if debit < 0 or credit < 0 or (debit > 0) == (credit > 0):
            raise ValidationError(
                f"Ligne sur {line.account_number}: exactement un montant débit ou crédit "
                "strictement positif est requis."
            )
        account_service.require_account(db, line.account_number)
        total_debit += debit
        total_credit += credit
        prepared.append((line.account_number, debit, credit, line.label or label))

    if not is_balanced(total_debit, total_credit):
        raise UnbalancedEntriesError(
            f"Écriture déséquilibrée: débit {total_debit} ≠ crédit {total_credit}."
        )

    ref = new_transaction_ref(journal_code)
    entries = [
        AccountingEntry(
            period_id=period.id,
            entry_date=entry_date,
            journal_code=journal_code,
            transaction_ref=ref,
            label=line_label,
            account_number=number,
            debit=debit,
            credit=credit,
            document_ref=document_ref,
        )
        for number, debit, credit, line_label in prepared
    ]
    db.add_all(entries)
    db.flush()
    logger.info(
        "post_lines: %s %s period=%s lines=%d total=%s",
        journal_code, ref, period.code, len(entries), total_debit,
    )
    return entries


def _transaction_snapshot(entries: list[AccountingEntry]) -> TransactionSnapshot:
    return TransactionSnapshot(
        transaction_ref=entries[0].transaction_ref,
        total_debit=sum((e.debit for e in entries), ZERO),
        total_credit=sum((e.credit for e in entries), ZERO),
        entries=[EntrySnapshot.model_validate(e) for e in entries],
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def post_transaction(
    db: Session, cmd: TransactionCreate, timeout: float | None = None
) -> TransactionSnapshot:
    """Post a manual balanced transaction into an open period.

    Raises:
        NotFoundError: Unknown period.
        PeriodClosedError / ClosingInProgressError: Period not writable.
        ValidationError / UnbalancedEntriesError: See :func:`post_lines`.
    """
    period = period_service.load_period(db, cmd.period_code)
    if not period.start_date <= cmd.entry_date <= period.end_date:
        raise ValidationError(
            f"La date {cmd.entry_date} est hors de l'exercice {period.code}."
        )
    lines = [Line(item.account_number, item.debit, item.credit, item.label) for item in cmd.lines]
    with registry.period_shared(period.code, timeout), atomic(db):
        period = period_service.load_writable_period(db, period.id)
        entries = post_lines(
            db, period, cmd.entry_date, cmd.journal_code.strip().upper(), cmd.label,
            lines, cmd.document_ref,
        )
    return _transaction_snapshot(entries)


def list_entries(
    db: Session,
    account_number: str | None = None,
    period_code: str | None = None,
    lettered: bool | None = None,
    transaction_ref: str | None = None,
) -> list[EntrySnapshot]:
    q = db.query(AccountingEntry)
    if account_number is not None:
        q = q.filter(AccountingEntry.account_number == account_number)
    if period_code is not None:
        period = period_service.load_period(db, period_code)
        q = q.filter(AccountingEntry.period_id == period.id)
    if lettered is True:
        q = q.filter(AccountingEntry.reconciliation_letter.isnot(None))
    elif lettered is False:
        q = q.filter(AccountingEntry.reconciliation_letter.is_(None))
    if transaction_ref is not None:
        q = q.filter(AccountingEntry.transaction_ref == transaction_ref)
    rows = q.order_by(AccountingEntry.entry_date, AccountingEntry.id).all()
    logger.debug("list_entries: account=%s period=%s -> %d rows", account_number, period_code, len(rows))
    return [EntrySnapshot.model_validate(row) for row in rows]


def account_balance(
    db: Session,
    account_number: str,
    period_id: int | None = None,
    up_to: date | None = None,
) -> Decimal:
    """Σdebit − Σcredit on *account_number*, optionally restricted."""
    q = db.query(
        func.coalesce(func.sum(AccountingEntry.debit), 0),
        func.coalesce(func.sum(AccountingEntry.credit), 0),
    ).filter(AccountingEntry.account_number == account_number)
    if period_id is not None:
        q = q.filter(AccountingEntry.period_id == period_id)
    if up_to is not None:
        q = q.filter(AccountingEntry.entry_date <= up_to)
    debit, credit = q.one()
    return to_money(debit) - to_money(credit)
