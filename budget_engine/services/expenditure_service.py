"""
Expenditure workflow service (engagement → liquidation → authorization → payment).

Design notes
------------
- Each transition runs under the budget line lock and the shared period
  lock, in one unit of work: the phase guard, the ledger update on the line
  and the automatic ledger posting commit together or not at all.
- When the line carries a ledger account, liquidation posts
  Dr line account / Cr supplier (401) and payment posts Dr 401 / Cr bank
  (``DEFAULT_BANK_ACCOUNT``).  Both accounts must be registered.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from budget_engine.config import get_settings
from budget_engine.database import lock_rows
from budget_engine.exceptions import DuplicateCodeError, NotFoundError, PhaseOrderError
from budget_engine.models.budget_line import BudgetLine
from budget_engine.models.commitment import Commitment
from budget_engine.schemas.expenditure import (
    AuthorizeCommand,
    CommitmentCreate,
    CommitmentSnapshot,
    EngageCommand,
    LiquidateCommand,
    PayCommand,
)
from budget_engine.services import budget_service, entry_service, period_service
from budget_engine.services.workflow import EXPENDITURE_WORKFLOW
from budget_engine.utils.constants import (
    JOURNAL_BANK,
    JOURNAL_PURCHASES,
    SUPPLIER_ACCOUNT,
    ExpenditurePhase,
)
from budget_engine.utils.money import ZERO, require_positive

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find(db: Session, reference: str, *, for_update: bool = False) -> Commitment | None:
    q = db.query(Commitment).filter(Commitment.reference == reference)
    if for_update:
        q = lock_rows(q, db)
    return q.one_or_none()


def _load(db: Session, reference: str, *, for_update: bool = False) -> Commitment:
    commitment = _find(db, reference, for_update=for_update)
    if commitment is None:
        raise NotFoundError(f"Engagement {reference} introuvable.")
    return commitment


def _post(
    db: Session,
    line: BudgetLine,
    journal: str,
    label: str,
    debit_account: str,
    credit_account: str,
    amount: Decimal,
    document_ref: str | None,
) -> None:
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


def _new_commitment(reference: str, line: BudgetLine, amount: Decimal, supplier, purpose) -> Commitment:
    return Commitment(
        reference=reference,
        budget_line_id=line.id,
        phase=ExpenditurePhase.CREATED,
        supplier=supplier,
        purpose=purpose,
        requested_amount=amount,
        engaged_amount=ZERO,
        liquidated_amount=ZERO,
        authorized_amount=ZERO,
        paid_amount=ZERO,
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def create_commitment(
    db: Session, cmd: CommitmentCreate, timeout: float | None = None
) -> CommitmentSnapshot:
    """Register a commitment in CREATED phase.  No credit is reserved yet."""
    amount = require_positive(cmd.amount, "amount")
    line = budget_service.load_line(db, cmd.line_code)
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, cmd.line_code)
        if _find(db, cmd.reference) is not None:
            raise DuplicateCodeError(f"L'engagement {cmd.reference} existe déjà.")
        commitment = _new_commitment(cmd.reference, line, amount, cmd.supplier, cmd.purpose)
        db.add(commitment)
    logger.info("create_commitment: %s line=%s amount=%s", cmd.reference, line.code, amount)
    return CommitmentSnapshot.model_validate(commitment)


def engage_expenditure(
    db: Session, cmd: EngageCommand, timeout: float | None = None
) -> CommitmentSnapshot:
    """Engage a commitment, creating it first when ``reference`` is new.

    Raises:
        PhaseOrderError: The commitment is already past CREATED.
        ValidationError: Missing document, bad amount, inactive line.
        InsufficientCreditError: ``amount`` exceeds the line's available credit.
    """
    line = budget_service.load_line(db, cmd.line_code)
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, cmd.line_code)
        commitment = _find(db, cmd.reference, for_update=True)
        if commitment is None:
            commitment = _new_commitment(
                cmd.reference, line, require_positive(cmd.amount, "amount"),
                cmd.supplier, cmd.purpose,
            )
            db.add(commitment)
        elif commitment.budget_line_id != line.id:
            raise PhaseOrderError(
                f"L'engagement {cmd.reference} est imputé sur une autre ligne."
            )
        transition = EXPENDITURE_WORKFLOW.check(
            commitment, ExpenditurePhase.ENGAGED, cmd.amount, cmd.document_ref
        )
        budget_service.apply_engagement(line, transition.amount)
        EXPENDITURE_WORKFLOW.apply(commitment, transition)
    return CommitmentSnapshot.model_validate(commitment)


def _advance(
    db: Session,
    reference: str,
    target: ExpenditurePhase,
    amount: Decimal,
    document_ref: str | None,
    timeout: float | None,
    payment_method=None,
    payment_reference: str | None = None,
) -> CommitmentSnapshot:
    commitment = _load(db, reference)
    line = commitment.budget_line
    with budget_service.line_scope(db, [line], timeout):
        line = budget_service.reload_writable(db, line.code)
        commitment = _load(db, reference, for_update=True)
        transition = EXPENDITURE_WORKFLOW.check(
            commitment, target, amount, document_ref, payment_method, payment_reference
        )
        if target == ExpenditurePhase.LIQUIDATED:
            budget_service.apply_liquidation(line, transition.amount)
            if line.account_number:
                _post(
                    db, line, JOURNAL_PURCHASES, f"Liquidation {reference}",
                    line.account_number, SUPPLIER_ACCOUNT, transition.amount,
                    transition.document_ref,
                )
        elif target == ExpenditurePhase.AUTHORIZED:
            budget_service.apply_authorization(line, transition.amount)
        elif target == ExpenditurePhase.PAID:
            budget_service.apply_payment(line, transition.amount)
            if line.account_number:
                _post(
                    db, line, JOURNAL_BANK, f"Paiement {reference}",
                    SUPPLIER_ACCOUNT, get_settings().DEFAULT_BANK_ACCOUNT, transition.amount,
                    transition.document_ref,
                )
        EXPENDITURE_WORKFLOW.apply(commitment, transition)
    return CommitmentSnapshot.model_validate(commitment)


def liquidate_expenditure(
    db: Session, reference: str, cmd: LiquidateCommand, timeout: float | None = None
) -> CommitmentSnapshot:
    """Fix the amount owed after service is rendered (liquidated ≤ engaged)."""
    return _advance(db, reference, ExpenditurePhase.LIQUIDATED, cmd.amount, cmd.document_ref, timeout)


def authorize_expenditure(
    db: Session, reference: str, cmd: AuthorizeCommand, timeout: float | None = None
) -> CommitmentSnapshot:
    """Issue the order to pay (ordonnancement); requires a payment method."""
    return _advance(
        db, reference, ExpenditurePhase.AUTHORIZED, cmd.amount, cmd.document_ref, timeout,
        payment_method=cmd.payment_method,
    )


def pay_expenditure(
    db: Session, reference: str, cmd: PayCommand, timeout: float | None = None
) -> CommitmentSnapshot:
    """Settle the commitment; PAID is terminal."""
    return _advance(
        db, reference, ExpenditurePhase.PAID, cmd.amount, cmd.document_ref, timeout,
        payment_method=cmd.payment_method, payment_reference=cmd.payment_reference,
    )


def get_commitment(db: Session, reference: str) -> CommitmentSnapshot:
    return CommitmentSnapshot.model_validate(_load(db, reference))


def list_commitments(
    db: Session,
    line_code: str | None = None,
    phase: ExpenditurePhase | None = None,
) -> list[CommitmentSnapshot]:
    q = db.query(Commitment)
    if line_code is not None:
        q = q.join(BudgetLine, Commitment.budget_line_id == BudgetLine.id).filter(
            BudgetLine.code == line_code
        )
    if phase is not None:
        q = q.filter(Commitment.phase == phase)
    rows = q.order_by(Commitment.id).all()
    logger.debug("list_commitments: line=%s phase=%s -> %d rows", line_code, phase, len(rows))
    return [CommitmentSnapshot.model_validate(row) for row in rows]
