"""
Transfer engine (virements de crédits).

Design notes
------------
- ``request_id`` is the idempotency key: replaying a known request_id with
  the same lines and amount returns the stored transfer and applies
  nothing, whatever its status.  A different payload under a known
  request_id raises ``ValidationError``.
- Approval re-checks ``source.available >= amount`` under both line locks
  (taken in ascending code order) and moves the credit in one unit of
  work: source budget_revised/available go down, destination's go up.
- :func:`transfer` is the one-step form (request + approval).  When the
  credit check fails nothing is stored, not even the request.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from budget_engine.database import lock_rows
from budget_engine.exceptions import NotFoundError, PhaseOrderError, ValidationError
from budget_engine.models.budget_line import BudgetLine
from budget_engine.models.transfer import Transfer
from budget_engine.schemas.budget import TransferCreate, TransferDecision, TransferSnapshot
from budget_engine.services import budget_service
from budget_engine.utils.constants import TransferStatus
from budget_engine.utils.money import require_positive, to_money

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _find_request(db: Session, request_id: str) -> Transfer | None:
    return db.query(Transfer).filter(Transfer.request_id == request_id).one_or_none()


def _load(db: Session, transfer_id: int, *, for_update: bool = False) -> Transfer:
    q = db.query(Transfer).filter(Transfer.id == transfer_id)
    if for_update:
        q = lock_rows(q, db)
    transfer = q.one_or_none()
    if transfer is None:
        raise NotFoundError(f"Virement {transfer_id} introuvable.")
    return transfer


def _validate(cmd: TransferCreate) -> Decimal:
    amount = require_positive(cmd.amount, "amount")
    if cmd.source_code == cmd.destination_code:
        raise ValidationError("Les lignes source et destinataire doivent être différentes.")
    if not (cmd.justification or "").strip():
        raise ValidationError("La justification du virement est obligatoire.")
    return amount


def _replay(existing: Transfer, cmd: TransferCreate) -> TransferSnapshot:
    """Return *existing* when *cmd* repeats it, otherwise refuse the reused key."""
    same = (
        existing.source_line.code == cmd.source_code
        and existing.destination_line.code == cmd.destination_code
        and to_money(existing.amount) == to_money(cmd.amount)
    )
    if not same:
        raise ValidationError(
            f"La demande {cmd.request_id} existe déjà avec d'autres lignes ou un autre montant."
        )
    return TransferSnapshot.model_validate(existing)


def _reload_pair(db: Session, source_code: str, destination_code: str) -> tuple[BudgetLine, BudgetLine]:
    source = budget_service.reload_writable(db, source_code)
    destination = budget_service.reload_writable(db, destination_code)
    for line in (source, destination):
        if not line.active:
            raise ValidationError(f"La ligne {line.code} est désactivée.")
    return source, destination


def _apply(transfer: Transfer, source: BudgetLine, destination: BudgetLine, note: str | None) -> None:
    budget_service.apply_credit_release(source, transfer.amount)
    budget_service.apply_credit_increase(destination, transfer.amount)
    transfer.status = TransferStatus.APPROVED
    transfer.decision_note = note
    transfer.decided_at = datetime.now()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def request_transfer(
    db: Session, cmd: TransferCreate, timeout: float | None = None
) -> TransferSnapshot:
    """Store a PENDING transfer, or return the one already stored under ``request_id``."""
    existing = _find_request(db, cmd.request_id)
    if existing is not None:
        logger.info("request_transfer: duplicate request_id=%s, returning #%d", cmd.request_id, existing.id)
        return _replay(existing, cmd)

    amount = _validate(cmd)
    source = budget_service.load_line(db, cmd.source_code)
    destination = budget_service.load_line(db, cmd.destination_code)
    with budget_service.line_scope(db, [source, destination], timeout):
        existing = _find_request(db, cmd.request_id)
        if existing is not None:
            return _replay(existing, cmd)
        source, destination = _reload_pair(db, cmd.source_code, cmd.destination_code)
        transfer = Transfer(
            request_id=cmd.request_id,
            source_line_id=source.id,
            destination_line_id=destination.id,
            amount=amount,
            justification=cmd.justification.strip(),
            status=TransferStatus.PENDING,
        )
        db.add(transfer)
    logger.info(
        "request_transfer: %s %s → %s amount=%s",
        cmd.request_id, cmd.source_code, cmd.destination_code, amount,
    )
    return TransferSnapshot.model_validate(transfer)


def approve_transfer(
    db: Session,
    transfer_id: int,
    decision: TransferDecision | None = None,
    timeout: float | None = None,
) -> TransferSnapshot:
    """Approve a PENDING transfer and move the credit.

    Raises:
        PhaseOrderError: The transfer is already decided.
        InsufficientCreditError: The source no longer has the credit; the
            transfer stays PENDING and no line changes.
    """
    transfer = _load(db, transfer_id)
    source_code = transfer.source_line.code
    destination_code = transfer.destination_line.code
    with budget_service.line_scope(db, [transfer.source_line, transfer.destination_line], timeout):
        transfer = _load(db, transfer_id, for_update=True)
        if transfer.status != TransferStatus.PENDING:
            raise PhaseOrderError(
                f"Le virement {transfer.request_id} est déjà {transfer.status.value}."
            )
        source, destination = _reload_pair(db, source_code, destination_code)
        _apply(transfer, source, destination, decision.note if decision else None)
    logger.info(
        "approve_transfer: %s %s → %s amount=%s",
        transfer.request_id, source_code, destination_code, transfer.amount,
    )
    return TransferSnapshot.model_validate(transfer)


def reject_transfer(
    db: Session,
    transfer_id: int,
    decision: TransferDecision | None = None,
    timeout: float | None = None,
) -> TransferSnapshot:
    """Reject a PENDING transfer; no line changes, but both must be writable."""
    transfer = _load(db, transfer_id)
    source_code = transfer.source_line.code
    destination_code = transfer.destination_line.code
    with budget_service.line_scope(db, [transfer.source_line, transfer.destination_line], timeout):
        transfer = _load(db, transfer_id, for_update=True)
        if transfer.status != TransferStatus.PENDING:
            raise PhaseOrderError(
                f"Le virement {transfer.request_id} est déjà {transfer.status.value}."
            )
        budget_service.reload_writable(db, source_code)
        budget_service.reload_writable(db, destination_code)
        transfer.status = TransferStatus.REJECTED
        transfer.decision_note = decision.note if decision else None
        transfer.decided_at = datetime.now()
    logger.info("reject_transfer: %s", transfer.request_id)
    return TransferSnapshot.model_validate(transfer)


def transfer(db: Session, cmd: TransferCreate, timeout: float | None = None) -> TransferSnapshot:
    """Request and approve a transfer in one all-or-nothing step.

    A known ``request_id`` returns the stored transfer without re-applying it.

    Raises:
        InsufficientCreditError: ``source.available < amount``; nothing is stored.
        ValidationError: Same line twice, bad amount, missing justification,
            inactive line.
    """
    existing = _find_request(db, cmd.request_id)
    if existing is not None:
        logger.info("transfer: duplicate request_id=%s, not re-applied", cmd.request_id)
        return _replay(existing, cmd)

    amount = _validate(cmd)
    source = budget_service.load_line(db, cmd.source_code)
    destination = budget_service.load_line(db, cmd.destination_code)
    with budget_service.line_scope(db, [source, destination], timeout):
        existing = _find_request(db, cmd.request_id)
        if existing is not None:
            return _replay(existing, cmd)
        source, destination = _reload_pair(db, cmd.source_code, cmd.destination_code)
        record = Transfer(
            request_id=cmd.request_id,
            source_line_id=source.id,
            destination_line_id=destination.id,
            amount=amount,
            justification=cmd.justification.strip(),
            status=TransferStatus.PENDING,
        )
        db.add(record)
        _apply(record, source, destination, None)
    logger.info(
        "transfer: %s %s → %s amount=%s (source available=%s)",
        cmd.request_id, cmd.source_code, cmd.destination_code, amount, source.available,
    )
    return TransferSnapshot.model_validate(record)


def get_transfer(db: Session, transfer_id: int) -> TransferSnapshot:
    return TransferSnapshot.model_validate(_load(db, transfer_id))


def list_transfers(db: Session, status: TransferStatus | None = None) -> list[TransferSnapshot]:
    q = db.query(Transfer)
    if status is not None:
        q = q.filter(Transfer.status == status)
    rows = q.order_by(Transfer.id).all()
    logger.debug("list_transfers: status=%s -> %d rows", status, len(rows))
    return [TransferSnapshot.model_validate(row) for row in rows]
