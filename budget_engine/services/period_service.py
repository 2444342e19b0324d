"""
Accounting period registry and the writability guard.

Design notes
------------
- ``assert_period_writable`` is the single guard every mutating operation
  calls for the period(s) it touches: CLOSED raises ``PeriodClosedError``,
  CLOSING raises ``ClosingInProgressError``.  Operations are rejected rather
  than queued while a closing runs.
- ``load_period`` with ``for_update=True`` re-reads the row under the
  caller's lock so the status checked is the committed one.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from budget_engine.database import atomic, lock_rows
from budget_engine.exceptions import (
    ClosingInProgressError,
    DuplicateCodeError,
    NotFoundError,
    PeriodClosedError,
    ValidationError,
)
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.schemas.period import PeriodCreate, PeriodSnapshot
from budget_engine.utils.constants import PeriodStatus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Guards and loaders shared by the other services
# ---------------------------------------------------------------------------


def assert_period_writable(period: AccountingPeriod) -> None:
    """Raise unless *period* accepts mutations.

    Raises:
        PeriodClosedError: The period is CLOSED.
        ClosingInProgressError: The period is being closed.
    """
    if period.status == PeriodStatus.CLOSED:
        raise PeriodClosedError(f"L'exercice {period.code} est clôturé.")
    if period.status == PeriodStatus.CLOSING:
        raise ClosingInProgressError(f"La clôture de l'exercice {period.code} est en cours.")


def load_period(db: Session, code: str, *, for_update: bool = False) -> AccountingPeriod:
    q = db.query(AccountingPeriod).filter(AccountingPeriod.code == code)
    if for_update:
        q = lock_rows(q, db)
    period = q.one_or_none()
    if period is None:
        raise NotFoundError(f"Exercice {code} introuvable.")
    return period


def load_writable_period(db: Session, period_id: int) -> AccountingPeriod:
    """Re-read period *period_id* under the caller's lock and assert it is writable."""
    q = lock_rows(db.query(AccountingPeriod).filter(AccountingPeriod.id == period_id), db)
    period = q.one()
    assert_period_writable(period)
    return period


def clamp_to_period(period: AccountingPeriod, day: date) -> date:
    """Return *day* moved inside the period bounds."""
    if day < period.start_date:
        return period.start_date
    if day > period.end_date:
        return period.end_date
    return day


def next_period_code(code: str) -> str:
    """'2025' → '2026'; '007' → '008'; any other code gets an ``-AN`` suffix."""
    if code.isdigit():
        return str(int(code) + 1).zfill(len(code))
    return f"{code}-AN"


def find_or_create_successor(db: Session, period: AccountingPeriod) -> AccountingPeriod:
    """Return the period that follows *period*, creating it when none exists.

    The successor is the earliest period starting after ``period.end_date``.
    A created successor starts the day after and lasts as long.  Does not
    commit.
    """
    successor = (
        db.query(AccountingPeriod)
        .filter(AccountingPeriod.start_date > period.end_date)
        .order_by(AccountingPeriod.start_date)
        .first()
    )
    if successor is not None:
        return successor

    start = period.end_date + timedelta(days=1)
    end = start + (period.end_date - period.start_date)
    code = next_period_code(period.code)
    suffix = 1
    while db.query(AccountingPeriod.id).filter(AccountingPeriod.code == code).first():
        suffix += 1
        code = f"{next_period_code(period.code)}-{suffix}"
    successor = AccountingPeriod(code=code, start_date=start, end_date=end, status=PeriodStatus.OPEN)
    db.add(successor)
    db.flush()
    logger.info("find_or_create_successor: opened %s (%s → %s)", code, start, end)
    return successor


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def open_period(db: Session, cmd: PeriodCreate) -> PeriodSnapshot:
    """Open a new accounting period.

    Raises:
        ValidationError: ``end_date`` precedes ``start_date``.
        DuplicateCodeError: The code is already used.
    """
    if cmd.end_date < cmd.start_date:
        raise ValidationError("La date de fin précède la date de début.")
    code = cmd.code.strip()
    with atomic(db):
        if db.query(AccountingPeriod.id).filter(AccountingPeriod.code == code).first():
            raise DuplicateCodeError(f"L'exercice {code} existe déjà.")
        period = AccountingPeriod(
            code=code,
            start_date=cmd.start_date,
            end_date=cmd.end_date,
            status=PeriodStatus.OPEN,
        )
        db.add(period)
    logger.info("open_period: %s (%s → %s)", code, cmd.start_date, cmd.end_date)
    return PeriodSnapshot.model_validate(period)


def get_period(db: Session, code: str) -> PeriodSnapshot:
    return PeriodSnapshot.model_validate(load_period(db, code))


def list_periods(db: Session, status: PeriodStatus | None = None) -> list[PeriodSnapshot]:
    q = db.query(AccountingPeriod)
    if status is not None:
        q = q.filter(AccountingPeriod.status == status)
    rows = q.order_by(AccountingPeriod.start_date).all()
    logger.debug("list_periods: status=%s -> %d rows", status, len(rows))
    return [PeriodSnapshot.model_validate(row) for row in rows]
