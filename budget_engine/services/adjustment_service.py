"""
Balance adjustment guard.

Manual balance-sheet adjustments are recorded one by one.  The engine does
not generate the offsetting entry: it checks that each adjustment is well
formed and reports the period's net asset-minus-liability imbalance, with
a warning while it is non-zero, so that a compensating adjustment is
recorded before the period is closed.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from budget_engine.database import atomic
from budget_engine.exceptions import DuplicateCodeError, ValidationError
from budget_engine.locks import registry
from budget_engine.models.balance_adjustment import BalanceAdjustment
from budget_engine.schemas.adjustment import (
    AdjustmentBalance,
    AdjustmentCreate,
    AdjustmentResult,
    AdjustmentSnapshot,
)
from budget_engine.services import account_service, period_service
from budget_engine.utils.constants import AccountNature, AdjustmentDirection, AdjustmentType
from budget_engine.utils.money import ZERO, is_balanced, require_positive, to_money

logger = logging.getLogger(__name__)

_NATURE_BY_TYPE = {
    AdjustmentType.ASSET: AccountNature.ASSET,
    AdjustmentType.LIABILITY: AccountNature.LIABILITY,
}


def _signed(adjustment: BalanceAdjustment) -> Decimal:
    amount = to_money(adjustment.amount)
    return amount if adjustment.direction == AdjustmentDirection.INCREASE else -amount


def _balance(db: Session, period_id: int, period_code: str) -> AdjustmentBalance:
    rows = db.query(BalanceAdjustment).filter(BalanceAdjustment.period_id == period_id).all()
    asset_delta = sum((_signed(r) for r in rows if r.adjustment_type == AdjustmentType.ASSET), ZERO)
    liability_delta = sum(
        (_signed(r) for r in rows if r.adjustment_type == AdjustmentType.LIABILITY), ZERO
    )
    imbalance = asset_delta - liability_delta
    balanced = is_balanced(asset_delta, liability_delta)
    warning = None
    if not balanced:
        warning = (
            f"Actif ≠ Passif après ajustements (écart {imbalance}): un ajustement "
            "compensatoire doit être enregistré avant la clôture."
        )
    return AdjustmentBalance(
        period_code=period_code,
        asset_delta=asset_delta,
        liability_delta=liability_delta,
        imbalance=imbalance,
        balanced=balanced,
        warning=warning,
    )


def record_adjustment(
    db: Session, cmd: AdjustmentCreate, timeout: float | None = None
) -> AdjustmentResult:
    """Record one balance-sheet adjustment.

    Raises:
        ValidationError: Non-positive amount, empty justification or author,
            unknown account, or account nature incompatible with the type.
        DuplicateCodeError: ``reference`` already used.
        PeriodClosedError / ClosingInProgressError: Period not writable.
    """
    amount = require_positive(cmd.amount, "amount")
    justification = (cmd.justification or "").strip()
    author = (cmd.author or "").strip()
    if not justification:
        raise ValidationError("La justification de l'ajustement est obligatoire.")
    if not author:
        raise ValidationError("L'auteur de l'ajustement est obligatoire.")

    period = period_service.load_period(db, cmd.period_code)
    with registry.period_shared(period.code, timeout), atomic(db):
        period = period_service.load_writable_period(db, period.id)
        account = account_service.require_account(db, cmd.account_number)
        if account.nature != _NATURE_BY_TYPE[cmd.adjustment_type]:
            raise ValidationError(
                f"Le compte {account.number} ({account.nature.value}) est incompatible "
                f"avec un ajustement {cmd.adjustment_type.value}."
            )
        if db.query(BalanceAdjustment.id).filter(BalanceAdjustment.reference == cmd.reference).first():
            raise DuplicateCodeError(f"L'ajustement {cmd.reference} existe déjà.")
        adjustment = BalanceAdjustment(
            reference=cmd.reference,
            period_id=period.id,
            account_number=account.number,
            adjustment_type=cmd.adjustment_type,
            direction=cmd.direction,
            amount=amount,
            justification=justification,
            author=author,
            adjustment_date=cmd.adjustment_date,
        )
        db.add(adjustment)
        db.flush()
        balance = _balance(db, period.id, period.code)

    logger.info(
        "record_adjustment: %s %s %s %s on %s",
        cmd.reference, cmd.adjustment_type.value, cmd.direction.value, amount, account.number,
    )
    if balance.warning:
        logger.warning("record_adjustment: period %s imbalance=%s", period.code, balance.imbalance)
    return AdjustmentResult(adjustment=AdjustmentSnapshot.model_validate(adjustment), balance=balance)


def get_adjustment_balance(db: Session, period_code: str) -> AdjustmentBalance:
    period = period_service.load_period(db, period_code)
    return _balance(db, period.id, period.code)


def list_adjustments(db: Session, period_code: str | None = None) -> list[AdjustmentSnapshot]:
    q = db.query(BalanceAdjustment)
    if period_code is not None:
        period = period_service.load_period(db, period_code)
        q = q.filter(BalanceAdjustment.period_id == period.id)
    rows = q.order_by(BalanceAdjustment.adjustment_date, BalanceAdjustment.id).all()
    return [AdjustmentSnapshot.model_validate(row) for row in rows]
