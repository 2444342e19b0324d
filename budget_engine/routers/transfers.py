"""
Transfer (virement) router.

Mounts under ``/api/virements`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                  — List transfers (filter: statut).
POST /                  — One-step transfer (request + approval, all-or-nothing).
POST /demandes          — Request a transfer (PENDING).
GET  /{id}              — One transfer.
POST /{id}/approve      — Approve a pending transfer.
POST /{id}/reject       — Reject a pending transfer.

Resubmitting a known ``request_id`` returns the stored transfer unchanged.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.budget import TransferCreate, TransferDecision, TransferSnapshot
from budget_engine.services import transfer_service
from budget_engine.utils.constants import TransferStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Virements"])


@router.get("/", response_model=list[TransferSnapshot], summary="Liste des virements")
def list_transfers(
    db: Annotated[Session, Depends(get_db)],
    statut: Annotated[TransferStatus | None, Query(description="Filtre par statut.")] = None,
) -> list[TransferSnapshot]:
    return transfer_service.list_transfers(db, status=statut)


@router.post(
    "/",
    response_model=TransferSnapshot,
    summary="Virement immédiat",
    responses={409: {"description": "Crédit disponible insuffisant sur la ligne source."}},
)
def transfer(payload: TransferCreate, db: Annotated[Session, Depends(get_db)]) -> TransferSnapshot:
    logger.debug("POST /virements request_id=%s", payload.request_id)
    return transfer_service.transfer(db, payload)


@router.post("/demandes", response_model=TransferSnapshot, summary="Demande de virement")
def request_transfer(payload: TransferCreate, db: Annotated[Session, Depends(get_db)]) -> TransferSnapshot:
    return transfer_service.request_transfer(db, payload)


@router.get("/{transfer_id}", response_model=TransferSnapshot, summary="Détail d'un virement")
def get_transfer(transfer_id: int, db: Annotated[Session, Depends(get_db)]) -> TransferSnapshot:
    return transfer_service.get_transfer(db, transfer_id)


@router.post("/{transfer_id}/approve", response_model=TransferSnapshot, summary="Approuver un virement")
def approve_transfer(
    transfer_id: int,
    payload: TransferDecision,
    db: Annotated[Session, Depends(get_db)],
) -> TransferSnapshot:
    return transfer_service.approve_transfer(db, transfer_id, payload)


@router.post("/{transfer_id}/reject", response_model=TransferSnapshot, summary="Rejeter un virement")
def reject_transfer(
    transfer_id: int,
    payload: TransferDecision,
    db: Annotated[Session, Depends(get_db)],
) -> TransferSnapshot:
    return transfer_service.reject_transfer(db, transfer_id, payload)
