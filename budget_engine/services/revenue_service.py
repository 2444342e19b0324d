"""
Revenue workflow service (recognition → liquidation → collection).

Design notes
------------
- Recognition fixes the prudence figures once:
  ``net_prudential_amount = recognized × coefficient`` and
  ``provision_for_doubtful_amount = recognized − net_prudential_amount``.
- ``certainty_level`` and ``recovery_risk`` are advisory.  An UNCERTAIN
  claim above ``UNCERTAIN_REVIEW_THRESHOLD`` is flagged ``review_required``
  and logged as a warning; it is never blocked.
- Claims consume no credit: the budget line is only checked (exists,
  active, writable period) and, when it carries a ledger account, used for
  the automatic postings Dr 411 / Cr line account at liquidation and
  Dr bank / Cr 411 at collection.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from budget_engine.config import get_settings
from budget_engine.database import lock_rows
from budget_engine.exceptions import DuplicateCodeError, NotFoundError, ValidationError
from budget_engine.models.budget_line import BudgetLine
from budget_engine.models.claim import Claim
from budget_engine.schemas.revenue import (
    ClaimLiquidateCommand,
    ClaimSnapshot,
    CollectCommand,
    RecognizeCommand,
    RevenueKpis,
)
from budget_engine.services import budget_service, entry_service, period_service
from budget_engine.services.workflow import REVENUE_WORKFLOW
from budget_engine.utils.constants import (
    CUSTOMER_ACCOUNT,
    JOURNAL_BANK,
    JOURNAL_SALES,
    CertaintyLevel,
    RecoveryRisk,
    RevenuePhase,
)
from budget_engine.utils.money import ZERO, require_positive, to_money

logger = logging.getLogger(__name__)

_ONE = Decimal("1")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load(db: Session, reference: str, *, for_update: bool = False) -> Claim:
    q = db.query(Claim).filter(Claim.reference == reference)
    if for_update:
        q = lock_rows(q, db)
    claim = q.one_or_none()
    if claim is None:
        raise NotFoundError(f"Créance {reference} introuvable.")
    return claim


def compute_prudence(amount: Decimal, coefficient: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(net_prudential_amount, provision_for_doubtful_amount)``.

    Raises:
        ValidationError: coefficient outside [0, 1].
    """
    if coefficient is None or coefficient < 0 or coefficient > _ONE:
        raise ValidationError("Le coefficient de prudence doit être compris entre 0 et 1.")
    net = to_money(amount * coefficient)
    return net, amount - net


def needs_review(certainty: CertaintyLevel, amount: Decimal) -> bool:
    return (
        certainty == CertaintyLevel.UNCERTAIN
        and amount > get_settings().UNCERTAIN_REVIEW_THRESHOLD
    )


def _post(db: Session, line: BudgetLine, journal: str, label: str,
          debit_account: str, credit_account: str, amount: Decimal,
          document_ref: str | None) -> None:
    period = period_service.load_writable_period(db, line.period_id)
    entry_service.post_lines(
        db,
        period,
        period_service.clamp_to_period(period, date.today()),
        journal,
        label,
        [
            entry_service.Line(debit_account, debit=amount),
            entry_service.Line(credit_account, credit=amount),
        ],
        document_ref,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def recognize_claim(db: Session, cmd: RecognizeCommand, timeout: float | None = None) -> ClaimSnapshot:
    """Recognize a claim and compute its prudence provisioning.

    Raises:
        DuplicateCodeError: ``reference`` already used.
        ValidationError: Bad amount or coefficient, inactive line.
    """
    amount = require_positive(cmd.amount, "amount")
    net, provision = compute_prudence(amount, cmd.prudence_coefficient)
    review = needs_review(cmd.certainty_level, amount)

    line = budget_service.load_line(db, cmd.line_code)
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, cmd.line_code)
        if not line.active:
            raise ValidationError(f"La ligne {line.code} est désactivée.")
        if db.query(Claim.id).filter(Claim.reference == cmd.reference).first():
            raise DuplicateCodeError(f"La créance {cmd.reference} existe déjà.")
        claim = Claim(
            reference=cmd.reference,
            budget_line_id=line.id,
            revenue_type=cmd.revenue_type,
            debtor=cmd.debtor,
            phase=RevenuePhase.RECOGNIZED,
            recognized_amount=amount,
            liquidated_amount=ZERO,
            collected_amount=ZERO,
            prudence_coefficient=cmd.prudence_coefficient,
            net_prudential_amount=net,
            provision_for_doubtful_amount=provision,
            certainty_level=cmd.certainty_level,
            recovery_risk=cmd.recovery_risk,
            review_required=review,
            recognition_document=(cmd.document_ref or "").strip() or None,
            recognized_at=datetime.now(),
        )
        db.add(claim)

    if review:
        logger.warning(
            "recognize_claim: %s flagged for review (UNCERTAIN, amount=%s > %s)",
            cmd.reference, amount, get_settings().UNCERTAIN_REVIEW_THRESHOLD,
        )
    logger.info(
        "recognize_claim: %s line=%s amount=%s net=%s provision=%s",
        cmd.reference, line.code, amount, net, provision,
    )
    return ClaimSnapshot.model_validate(claim)


def liquidate_claim(
    db: Session, reference: str, cmd: ClaimLiquidateCommand, timeout: float | None = None
) -> ClaimSnapshot:
    """Liquidate a recognized claim (liquidated ≤ recognized, document required)."""
    claim = _load(db, reference)
    line = claim.budget_line
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, line.code)
        claim = _load(db, reference, for_update=True)
        transition = REVENUE_WORKFLOW.check(
            claim, RevenuePhase.LIQUIDATED, cmd.amount, cmd.document_ref
        )
        if line.account_number:
            _post(
                db, line, JOURNAL_SALES, f"Liquidation {reference}",
                CUSTOMER_ACCOUNT, line.account_number, transition.amount,
                transition.document_ref,
            )
        REVENUE_WORKFLOW.apply(claim, transition)
    return ClaimSnapshot.model_validate(claim)


def collect_claim(
    db: Session, reference: str, cmd: CollectCommand, timeout: float | None = None
) -> ClaimSnapshot:
    """Record the collection (collected ≤ liquidated, payment method and reference required)."""
    claim = _load(db, reference)
    line = claim.budget_line
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, line.code)
        claim = _load(db, reference, for_update=True)
        transition = REVENUE_WORKFLOW.check(
            claim, RevenuePhase.COLLECTED, cmd.amount, None,
            cmd.payment_method, cmd.payment_reference,
        )
        if line.account_number:
            _post(
                db, line, JOURNAL_BANK, f"Encaissement {reference}",
                get_settings().DEFAULT_BANK_ACCOUNT, CUSTOMER_ACCOUNT, transition.amount,
                transition.payment_reference,
            )
        REVENUE_WORKFLOW.apply(claim, transition)
    return ClaimSnapshot.model_validate(claim)


def get_claim(db: Session, reference: str) -> ClaimSnapshot:
    return ClaimSnapshot.model_validate(_load(db, reference))


def list_claims(
    db: Session,
    line_code: str | None = None,
    phase: RevenuePhase | None = None,
    review_required: bool | None = None,
) -> list[ClaimSnapshot]:
    q = db.query(Claim)
    if line_code is not None:
        q = q.join(BudgetLine, Claim.budget_line_id == BudgetLine.id).filter(
            BudgetLine.code == line_code
        )
    if phase is not None:
        q = q.filter(Claim.phase == phase)
    if review_required is not None:
        q = q.filter(Claim.review_required == review_required)
    rows = q.order_by(Claim.id).all()
    logger.debug("list_claims: line=%s phase=%s -> %d rows", line_code, phase, len(rows))
    return [ClaimSnapshot.model_validate(row) for row in rows]


def get_revenue_kpis(db: Session, period_code: str | None = None) -> RevenueKpis:
    """Aggregate revenue figures, optionally restricted to one period's lines."""
    q = db.query(
        func.count(Claim.id),
        func.coalesce(func.sum(Claim.recognized_amount), 0),
        func.coalesce(func.sum(Claim.liquidated_amount), 0),
        func.coalesce(func.sum(Claim.collected_amount), 0),
        func.coalesce(func.sum(Claim.net_prudential_amount), 0),
        func.coalesce(func.sum(Claim.provision_for_doubtful_amount), 0),
    )
    counts = db.query(Claim)
    if period_code is not None:
        period = period_service.load_period(db, period_code)
        q = q.join(BudgetLine, Claim.budget_line_id == BudgetLine.id).filter(
            BudgetLine.period_id == period.id
        )
        counts = counts.join(BudgetLine, Claim.budget_line_id == BudgetLine.id).filter(
            BudgetLine.period_id == period.id
        )
    count, recognized, liquidated, collected, net, provision = q.one()

    uncertain = counts.filter(Claim.certainty_level == CertaintyLevel.UNCERTAIN).count()
    high_risk = counts.filter(Claim.recovery_risk == RecoveryRisk.HIGH).count()
    review = counts.filter(Claim.review_required.is_(True)).count()

    liquidated = to_money(liquidated)
    collected = to_money(collected)
    rate = to_money(collected / liquidated * 100) if liquidated else ZERO
    logger.debug("get_revenue_kpis: period=%s claims=%d", period_code, count)
    return RevenueKpis(
        claim_count=count,
        recognized_total=to_money(recognized),
        liquidated_total=liquidated,
        collected_total=collected,
        net_prudential_total=to_money(net),
        provision_total=to_money(provision),
        collection_rate=rate,
        uncertain_count=uncertain,
        high_risk_count=high_risk,
        review_required_count=review,
    )
