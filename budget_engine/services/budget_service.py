"""
Budget line ledger.

A budget line is the aggregate every expenditure, transfer and revision
mutates.  The ``apply_*`` helpers are the only code that changes its
amounts; each one checks its guard first and then updates every affected
column together, so a failed guard leaves the line untouched.

Design notes
------------
- Invariants kept by the helpers:
  ``available == budget_revised - engaged``, ``available >= 0`` and
  ``paid <= authorized <= liquidated <= engaged <= budget_revised``.
- The helpers neither lock nor commit; the public functions below (and
  the workflow services) wrap them in the line lock, the shared period
  lock and one ``atomic`` unit of work.
- Lines are deactivated, never deleted.  An inactive line rejects new
  engagements and transfers but its existing commitments can still be
  settled.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy.orm import Session

from budget_engine.database import atomic, lock_rows
from budget_engine.exceptions import (
    DuplicateCodeError,
    InsufficientCreditError,
    NotFoundError,
    RevisionViolatesCommitmentsError,
    ValidationError,
)
from budget_engine.locks import registry
from budget_engine.models.budget_line import BudgetLine
from budget_engine.schemas.budget import (
    BudgetKpis,
    BudgetLineCreate,
    BudgetLineSnapshot,
    CategoryTotals,
)
from budget_engine.services import account_service, period_service
from budget_engine.utils.constants import BudgetCategory
from budget_engine.utils.money import ZERO, require_positive, to_money

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Loaders and lock scope
# ---------------------------------------------------------------------------


def load_line(db: Session, code: str, *, for_update: bool = False) -> BudgetLine:
    q = db.query(BudgetLine).filter(BudgetLine.code == code)
    if for_update:
        q = lock_rows(q, db)
    line = q.one_or_none()
    if line is None:
        raise NotFoundError(f"Ligne budgétaire {code} introuvable.")
    return line


@contextmanager
def line_scope(
    db: Session, lines: list[BudgetLine], timeout: float | None = None
) -> Iterator[None]:
    """Hold the period locks (shared) and line locks of *lines*, inside one unit of work.

    Locks are taken periods first, then lines, each in ascending code order.
    """
    period_codes = [line.period.code for line in lines]
    line_codes = [line.code for line in lines]
    with registry.periods_shared(period_codes, timeout), registry.budget_lines(line_codes, timeout):
        with atomic(db):
            yield


def reload_writable(db: Session, code: str) -> BudgetLine:
    """Re-read line *code* under its lock and assert its period is writable."""
    line = load_line(db, code, for_update=True)
    period_service.load_writable_period(db, line.period_id)
    return line


# ---------------------------------------------------------------------------
# Ledger mutations
# ---------------------------------------------------------------------------


def apply_engagement(line: BudgetLine, amount: Decimal) -> None:
    if not line.active:
        raise ValidationError(f"La ligne {line.code} est désactivée.")
    if amount > line.available:
        raise InsufficientCreditError(
            f"Crédit insuffisant sur la ligne {line.code}: "
            f"disponible {to_money(line.available)}, demandé {amount}."
        )
    line.engaged = to_money(line.engaged) + amount
    line.available = to_money(line.budget_revised) - line.engaged


def apply_liquidation(line: BudgetLine, amount: Decimal) -> None:
    if to_money(line.liquidated) + amount > to_money(line.engaged):
        raise InsufficientCreditError(
            f"Liquidation supérieure aux engagements de la ligne {line.code}."
        )
    line.liquidated = to_money(line.liquidated) + amount


def apply_authorization(line: BudgetLine, amount: Decimal) -> None:
    if to_money(line.authorized) + amount > to_money(line.liquidated):
        raise InsufficientCreditError(
            f"Ordonnancement supérieur aux liquidations de la ligne {line.code}."
        )
    line.authorized = to_money(line.authorized) + amount


def apply_payment(line: BudgetLine, amount: Decimal) -> None:
    if to_money(line.paid) + amount > to_money(line.authorized):
        raise InsufficientCreditError(
            f"Paiement supérieur aux ordonnancements de la ligne {line.code}."
        )
    line.paid = to_money(line.paid) + amount


def apply_credit_increase(line: BudgetLine, amount: Decimal) -> None:
    line.budget_revised = to_money(line.budget_revised) + amount
    line.available = to_money(line.available) + amount


def apply_credit_release(line: BudgetLine, amount: Decimal) -> None:
    """Move *amount* of uncommitted credit out of a line (transfer source)."""
    if amount > to_money(line.available):
        raise InsufficientCreditError(
            f"Crédit insuffisant sur la ligne {line.code}: "
            f"disponible {to_money(line.available)}, demandé {amount}."
        )
    line.budget_revised = to_money(line.budget_revised) - amount
    line.available = to_money(line.available) - amount


def apply_revision_decrease(line: BudgetLine, amount: Decimal) -> None:
    """Lower the revised budget, never below what is already engaged."""
    if to_money(line.budget_revised) - amount < to_money(line.engaged):
        raise RevisionViolatesCommitmentsError(
            f"La révision ramènerait la ligne {line.code} sous ses engagements "
            f"({to_money(line.engaged)})."
        )
    line.budget_revised = to_money(line.budget_revised) - amount
    line.available = to_money(line.available) - amount


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def allocate(db: Session, cmd: BudgetLineCreate, timeout: float | None = None) -> BudgetLineSnapshot:
    """Create a budget line with available = budget_revised = budget_initial.

    Raises:
        DuplicateCodeError: The code is already used.
        ValidationError: Negative initial budget or unknown ledger account.
        NotFoundError: Unknown period.
    """
    initial = to_money(cmd.budget_initial)
    if initial < 0:
        raise ValidationError("Le budget initial ne peut pas être négatif.")
    code = cmd.code.strip()
    period = period_service.load_period(db, cmd.period_code)
    with registry.period_shared(period.code, timeout), atomic(db):
        period = period_service.load_writable_period(db, period.id)
        if db.query(BudgetLine.id).filter(BudgetLine.code == code).first():
            raise DuplicateCodeError(f"La ligne budgétaire {code} existe déjà.")
        if cmd.account_number:
            account_service.require_account(db, cmd.account_number)
        line = BudgetLine(
            code=code,
            label=cmd.label.strip(),
            category=cmd.category,
            period_id=period.id,
            account_number=cmd.account_number,
            entity=cmd.entity,
            budget_initial=initial,
            budget_revised=initial,
            engaged=ZERO,
            liquidated=ZERO,
            authorized=ZERO,
            paid=ZERO,
            available=initial,
            active=True,
        )
        db.add(line)
    logger.info("allocate: %s %s initial=%s", code, cmd.category.value, initial)
    return BudgetLineSnapshot.model_validate(line)


def _move(db: Session, code: str, amount: Decimal, apply, label: str, timeout: float | None):
    value = require_positive(amount, "amount")
    line = load_line(db, code)
    with line_scope(db, [line], timeout):
        line = reload_writable(db, code)
        apply(line, value)
    logger.info("%s: %s amount=%s available=%s", label, code, value, line.available)
    return BudgetLineSnapshot.model_validate(line)


def engage(db: Session, code: str, amount: Decimal, timeout: float | None = None) -> BudgetLineSnapshot:
    """Reserve *amount* of credit on a line.

    Raises:
        InsufficientCreditError: ``amount`` exceeds ``available``; the line is unchanged.
    """
    return _move(db, code, amount, apply_engagement, "engage", timeout)


def liquidate(db: Session, code: str, amount: Decimal, timeout: float | None = None) -> BudgetLineSnapshot:
    return _move(db, code, amount, apply_liquidation, "liquidate", timeout)


def authorize(db: Session, code: str, amount: Decimal, timeout: float | None = None) -> BudgetLineSnapshot:
    return _move(db, code, amount, apply_authorization, "authorize", timeout)


def pay(db: Session, code: str, amount: Decimal, timeout: float | None = None) -> BudgetLineSnapshot:
    return _move(db, code, amount, apply_payment, "pay", timeout)


def get_line(db: Session, code: str) -> BudgetLineSnapshot:
    return BudgetLineSnapshot.model_validate(load_line(db, code))


def list_lines(
    db: Session,
    period_code: str | None = None,
    category: BudgetCategory | None = None,
    active: bool | None = None,
) -> list[BudgetLineSnapshot]:
    q = db.query(BudgetLine)
    if period_code is not None:
        period = period_service.load_period(db, period_code)
        q = q.filter(BudgetLine.period_id == period.id)
    if category is not None:
        q = q.filter(BudgetLine.category == category)
    if active is not None:
        q = q.filter(BudgetLine.active == active)
    rows = q.order_by(BudgetLine.code).all()
    logger.debug("list_lines: period=%s category=%s -> %d rows", period_code, category, len(rows))
    return [BudgetLineSnapshot.model_validate(row) for row in rows]


def deactivate_line(db: Session, code: str, timeout: float | None = None) -> BudgetLineSnapshot:
    line = load_line(db, code)
    with line_scope(db, [line], timeout):
        line = reload_writable(db, code)
        line.active = False
    logger.info("deactivate_line: %s", code)
    return BudgetLineSnapshot.model_validate(line)


def _rate(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return ZERO
    return to_money(numerator / denominator * 100)


def get_budget_kpis(db: Session, period_code: str) -> BudgetKpis:
    """Totals of a period's lines, overall and by category.

    ``execution_rate`` = liquidated / budget_revised × 100.
    """
    period = period_service.load_period(db, period_code)
    rows = db.query(BudgetLine).filter(BudgetLine.period_id == period.id).all()

    fields = ("budget_initial", "budget_revised", "engaged", "liquidated", "paid", "available")
    overall = dict.fromkeys(fields, ZERO)
    per_category: dict[BudgetCategory, dict[str, Decimal]] = {}
    counts: dict[BudgetCategory, int] = {}
    for row in rows:
        bucket = per_category.setdefault(row.category, dict.fromkeys(fields, ZERO))
        counts[row.category] = counts.get(row.category, 0) + 1
        for name in fields:
            value = to_money(getattr(row, name))
            bucket[name] += value
            overall[name] += value

    by_category = [
        CategoryTotals(category=category, line_count=counts[category], **per_category[category])
        for category in BudgetCategory
        if category in per_category
    ]
    logger.debug("get_budget_kpis: period=%s lines=%d", period_code, len(rows))
    return BudgetKpis(
        period_code=period.code,
        line_count=len(rows),
        execution_rate=_rate(overall["liquidated"], overall["budget_revised"]),
        by_category=by_category,
        **overall,
    )
