"""
Revision engine (révisions budgétaires).

Lifecycle: DRAFT → SUBMITTED → APPROVED | REJECTED.  Only approval touches
budget lines; APPROVED and REJECTED revisions are final and any further
command on them raises ``PhaseOrderError``.

Design notes
------------
- INCREASE adds ``amount`` to each target line's revised budget.
- DECREASE subtracts it from each target, refusing to go below what the
  line has engaged (``RevisionViolatesCommitmentsError``).
- REALLOCATION moves ``amount`` from the first target to the second, with
  the same guard on the first.
- Every command checks that the periods of the target lines are still
  writable; a CLOSING or CLOSED period freezes its revisions.
- Approval locks every target line (ascending code order) and applies all
  of them in one unit of work; one failing guard leaves every line as it was.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from budget_engine.database import atomic, lock_rows
from budget_engine.exceptions import (
    DuplicateCodeError,
    NotFoundError,
    PhaseOrderError,
    ValidationError,
)
from budget_engine.models.revision import Revision, RevisionLine
from budget_engine.schemas.budget import RevisionCreate, RevisionLineAdd, RevisionSnapshot
from budget_engine.services import budget_service, period_service
from budget_engine.utils.constants import RevisionStatus, RevisionType
from budget_engine.utils.money import require_positive

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load(db: Session, reference: str, *, for_update: bool = False) -> Revision:
    q = db.query(Revision).filter(Revision.reference == reference)
    if for_update:
        q = lock_rows(q, db)
    revision = q.one_or_none()
    if revision is None:
        raise NotFoundError(f"Révision {reference} introuvable.")
    return revision


def _require_status(revision: Revision, *allowed: RevisionStatus) -> None:
    if revision.status not in allowed:
        raise PhaseOrderError(
            f"La révision {revision.reference} est {revision.status.value}: opération interdite."
        )


def _add_line(db: Session, revision: Revision, line_code: str) -> None:
    line = budget_service.load_line(db, line_code)
    period_service.load_writable_period(db, line.period_id)
    if any(target.budget_line_id == line.id for target in revision.lines):
        raise ValidationError(f"La ligne {line_code} figure déjà dans la révision.")
    revision.lines.append(
        RevisionLine(budget_line_id=line.id, budget_line=line, position=len(revision.lines))
    )


def _assert_targets_writable(db: Session, revision: Revision) -> None:
    for period_id in sorted({target.budget_line.period_id for target in revision.lines}):
        period_service.load_writable_period(db, period_id)


def _check_targets(revision: Revision) -> None:
    if not revision.lines:
        raise ValidationError(f"La révision {revision.reference} ne cible aucune ligne.")
    if revision.revision_type == RevisionType.REALLOCATION and len(revision.lines) != 2:
        raise ValidationError(
            "Une réallocation cible exactement deux lignes (source puis destination)."
        )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def create_revision(db: Session, cmd: RevisionCreate) -> RevisionSnapshot:
    """Create a DRAFT revision with its initial target lines."""
    amount = require_positive(cmd.amount, "amount")
    if not (cmd.justification or "").strip():
        raise ValidationError("La justification de la révision est obligatoire.")
    with atomic(db):
        if db.query(Revision.id).filter(Revision.reference == cmd.reference).first():
            raise DuplicateCodeError(f"La révision {cmd.reference} existe déjà.")
        revision = Revision(
            reference=cmd.reference,
            revision_type=cmd.revision_type,
            amount=amount,
            justification=cmd.justification.strip(),
            documents=cmd.documents,
            status=RevisionStatus.DRAFT,
        )
        db.add(revision)
        for code in cmd.line_codes:
            _add_line(db, revision, code)
    logger.info(
        "create_revision: %s %s amount=%s lines=%s",
        cmd.reference, cmd.revision_type.value, amount, cmd.line_codes,
    )
    return RevisionSnapshot.model_validate(revision)


def add_revision_line(db: Session, reference: str, cmd: RevisionLineAdd) -> RevisionSnapshot:
    with atomic(db):
        revision = _load(db, reference, for_update=True)
        _require_status(revision, RevisionStatus.DRAFT)
        _add_line(db, revision, cmd.line_code)
    logger.info("add_revision_line: %s + %s", reference, cmd.line_code)
    return RevisionSnapshot.model_validate(revision)


def submit_revision(db: Session, reference: str) -> RevisionSnapshot:
    with atomic(db):
        revision = _load(db, reference, for_update=True)
        _require_status(revision, RevisionStatus.DRAFT)
        _check_targets(revision)
        _assert_targets_writable(db, revision)
        revision.status = RevisionStatus.SUBMITTED
        revision.submitted_at = datetime.now()
    logger.info("submit_revision: %s", reference)
    return RevisionSnapshot.model_validate(revision)


def approve_revision(db: Session, reference: str, timeout: float | None = None) -> RevisionSnapshot:
    """Apply a SUBMITTED revision to its target lines.

    Raises:
        PhaseOrderError: Revision not SUBMITTED.
        RevisionViolatesCommitmentsError: A decrease would drop a line's
            revised budget below its engaged amount.
    """
    revision = _load(db, reference)
    lines = [target.budget_line for target in revision.lines]
    with budget_service.line_scope(db, lines, timeout):
        revision = _load(db, reference, for_update=True)
        _require_status(revision, RevisionStatus.SUBMITTED)
        _check_targets(revision)
        targets = [budget_service.reload_writable(db, line.code) for line in lines]
        amount = revision.amount

        if revision.revision_type == RevisionType.INCREASE:
            for line in targets:
                budget_service.apply_credit_increase(line, amount)
        elif revision.revision_type == RevisionType.DECREASE:
            for line in targets:
                budget_service.apply_revision_decrease(line, amount)
        else:
            source, destination = targets
            budget_service.apply_revision_decrease(source, amount)
            budget_service.apply_credit_increase(destination, amount)

        revision.status = RevisionStatus.APPROVED
        revision.decided_at = datetime.now()
    logger.info(
        "approve_revision: %s %s amount=%s on %s",
        reference, revision.revision_type.value, revision.amount, [line.code for line in lines],
    )
    return RevisionSnapshot.model_validate(revision)


def reject_revision(db: Session, reference: str) -> RevisionSnapshot:
    """Discard a DRAFT or SUBMITTED revision without touching any line."""
    with atomic(db):
        revision = _load(db, reference, for_update=True)
        _require_status(revision, RevisionStatus.DRAFT, RevisionStatus.SUBMITTED)
        _assert_targets_writable(db, revision)
        revision.status = RevisionStatus.REJECTED
        revision.decided_at = datetime.now()
    logger.info("reject_revision: %s", reference)
    return RevisionSnapshot.model_validate(revision)


def get_revision(db: Session, reference: str) -> RevisionSnapshot:
    return RevisionSnapshot.model_validate(_load(db, reference))


def list_revisions(db: Session, status: RevisionStatus | None = None) -> list[RevisionSnapshot]:
    q = db.query(Revision)
    if status is not None:
        q = q.filter(Revision.status == status)
    rows = q.order_by(Revision.id).all()
    logger.debug("list_revisions: status=%s -> %d rows", status, len(rows))
    return [RevisionSnapshot.model_validate(row) for row in rows]
