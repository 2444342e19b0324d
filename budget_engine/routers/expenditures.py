"""
Expenditure workflow router.

Mounts under ``/api/depenses`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                              — List commitments (filters: ligne, phase).
POST /                              — Register a commitment (CREATED).
POST /engagements                   — Engagement (creates the commitment if new).
GET  /{reference}                   — One commitment.
POST /{reference}/liquidation       — Liquidation.
POST /{reference}/ordonnancement    — Authorization to pay.
POST /{reference}/paiement          — Payment.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.expenditure import (
    AuthorizeCommand,
    CommitmentCreate,
    CommitmentSnapshot,
    EngageCommand,
    LiquidateCommand,
    PayCommand,
)
from budget_engine.services import expenditure_service
from budget_engine.utils.constants import ExpenditurePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dépenses"])


@router.get("/", response_model=list[CommitmentSnapshot], summary="Liste des engagements")
def list_commitments(
    db: Annotated[Session, Depends(get_db)],
    ligne: Annotated[str | None, Query(description="Code de la ligne budgétaire.")] = None,
    phase: Annotated[ExpenditurePhase | None, Query(description="Phase courante.")] = None,
) -> list[CommitmentSnapshot]:
    return expenditure_service.list_commitments(db, line_code=ligne, phase=phase)


@router.post("/", response_model=CommitmentSnapshot, status_code=201, summary="Créer un engagement")
def create_commitment(
    payload: CommitmentCreate, db: Annotated[Session, Depends(get_db)]
) -> CommitmentSnapshot:
    return expenditure_service.create_commitment(db, payload)


@router.post(
    "/engagements",
    response_model=CommitmentSnapshot,
    summary="Engagement",
    responses={
        409: {"description": "Crédit insuffisant ou phase hors séquence."},
        422: {"description": "Pièce justificative ou montant invalide."},
    },
)
def engage(payload: EngageCommand, db: Annotated[Session, Depends(get_db)]) -> CommitmentSnapshot:
    """Engage an expenditure against its budget line.

    Args:
        payload: Reference, line, amount and engagement document.
        db: Database session injected by ``get_db``.

    Returns:
        The commitment in ENGAGED phase.
    """
    logger.debug("POST /depenses/engagements ref=%s line=%s", payload.reference, payload.line_code)
    return expenditure_service.engage_expenditure(db, payload)


@router.get("/{reference}", response_model=CommitmentSnapshot, summary="Détail d'un engagement")
def get_commitment(reference: str, db: Annotated[Session, Depends(get_db)]) -> CommitmentSnapshot:
    return expenditure_service.get_commitment(db, reference)


@router.post("/{reference}/liquidation", response_model=CommitmentSnapshot, summary="Liquidation")
def liquidate(
    reference: str, payload: LiquidateCommand, db: Annotated[Session, Depends(get_db)]
) -> CommitmentSnapshot:
    return expenditure_service.liquidate_expenditure(db, reference, payload)


@router.post("/{reference}/ordonnancement", response_model=CommitmentSnapshot, summary="Ordonnancement")
def authorize(
    reference: str, payload: AuthorizeCommand, db: Annotated[Session, Depends(get_db)]
) -> CommitmentSnapshot:
    return expenditure_service.authorize_expenditure(db, reference, payload)


@router.post("/{reference}/paiement", response_model=CommitmentSnapshot, summary="Paiement")
def pay(
    reference: str, payload: PayCommand, db: Annotated[Session, Depends(get_db)]
) -> CommitmentSnapshot:
    return expenditure_service.pay_expenditure(db, reference, payload)
