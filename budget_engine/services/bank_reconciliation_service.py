"""
Bank reconciliation statements (rapprochements bancaires).

The book balance is Σdebit − Σcredit of the bank account over the
period's entries dated on or before the statement date; the difference is
``statement_balance − book_balance``.  The closing engine's control
evaluation reads these records.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from budget_engine.database import atomic
from budget_engine.exceptions import ValidationError
from budget_engine.locks import registry
from budget_engine.models.bank_reconciliation import BankReconciliation
from budget_engine.schemas.accounting import BankReconciliationCreate, BankReconciliationSnapshot
from budget_engine.services import account_service, entry_service, period_service
from budget_engine.utils.money import is_balanced, to_money

logger = logging.getLogger(__name__)

BANK_CLASS = 5


def record_bank_reconciliation(
    db: Session, cmd: BankReconciliationCreate, timeout: float | None = None
) -> BankReconciliationSnapshot:
    """Record a bank statement and compare it with the books.

    Raises:
        ValidationError: Account not a registered class-5 account, or
            statement date outside the period.
    """
    period = period_service.load_period(db, cmd.period_code)
    if not period.start_date <= cmd.statement_date <= period.end_date:
        raise ValidationError(
            f"La date du relevé {cmd.statement_date} est hors de l'exercice {period.code}."
        )
    account = account_service.require_account(db, cmd.bank_account_number)
    if account.account_class != BANK_CLASS:
        raise ValidationError(f"Le compte {account.number} n'est pas un compte de trésorerie.")

    with registry.period_shared(period.code, timeout), atomic(db):
        period = period_service.load_writable_period(db, period.id)
        book = entry_service.account_balance(
            db, account.number, period_id=period.id, up_to=cmd.statement_date
        )
        statement = to_money(cmd.statement_balance)
        record = BankReconciliation(
            period_id=period.id,
            bank_account_number=account.number,
            statement_date=cmd.statement_date,
            statement_balance=statement,
            book_balance=book,
            difference=statement - book,
            balanced=is_balanced(statement, book),
            observations=cmd.observations,
        )
        db.add(record)
    if not record.balanced:
        logger.warning(
            "record_bank_reconciliation: %s on %s differs by %s",
            account.number, cmd.statement_date, record.difference,
        )
    logger.info(
        "record_bank_reconciliation: %s period=%s statement=%s book=%s",
        account.number, period.code, statement, book,
    )
    return BankReconciliationSnapshot.model_validate(record)


def list_bank_reconciliations(
    db: Session, period_code: str, bank_account_number: str | None = None
) -> list[BankReconciliationSnapshot]:
    period = period_service.load_period(db, period_code)
    q = db.query(BankReconciliation).filter(BankReconciliation.period_id == period.id)
    if bank_account_number is not None:
        q = q.filter(BankReconciliation.bank_account_number == bank_account_number)
    rows = q.order_by(BankReconciliation.statement_date, BankReconciliation.id).all()
    return [BankReconciliationSnapshot.model_validate(row) for row in rows]
