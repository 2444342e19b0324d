"""
Budget revision router.

Mounts under ``/api/revisions`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                          — List revisions (filter: statut).
POST /                          — Create a DRAFT revision.
GET  /{reference}               — One revision.
POST /{reference}/lignes        — Add a target line (DRAFT only).
POST /{reference}/submit        — DRAFT → SUBMITTED.
POST /{reference}/approve       — SUBMITTED → APPROVED, applied to the lines.
POST /{reference}/reject        — DRAFT | SUBMITTED → REJECTED.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.budget import RevisionCreate, RevisionLineAdd, RevisionSnapshot
from budget_engine.services import revision_service
from budget_engine.utils.constants import RevisionStatus

router = APIRouter(tags=["Révisions"])


@router.get("/", response_model=list[RevisionSnapshot], summary="Liste des révisions")
def list_revisions(
    db: Annotated[Session, Depends(get_db)],
    statut: Annotated[RevisionStatus | None, Query(description="Filtre par statut.")] = None,
) -> list[RevisionSnapshot]:
    return revision_service.list_revisions(db, status=statut)


@router.post("/", response_model=RevisionSnapshot, status_code=201, summary="Créer une révision")
def create_revision(payload: RevisionCreate, db: Annotated[Session, Depends(get_db)]) -> RevisionSnapshot:
    return revision_service.create_revision(db, payload)


@router.get("/{reference}", response_model=RevisionSnapshot, summary="Détail d'une révision")
def get_revision(reference: str, db: Annotated[Session, Depends(get_db)]) -> RevisionSnapshot:
    return revision_service.get_revision(db, reference)


@router.post("/{reference}/lignes", response_model=RevisionSnapshot, summary="Ajouter une ligne ciblée")
def add_line(
    reference: str, payload: RevisionLineAdd, db: Annotated[Session, Depends(get_db)]
) -> RevisionSnapshot:
    return revision_service.add_revision_line(db, reference, payload)


@router.post("/{reference}/submit", response_model=RevisionSnapshot, summary="Soumettre")
def submit(reference: str, db: Annotated[Session, Depends(get_db)]) -> RevisionSnapshot:
    return revision_service.submit_revision(db, reference)


@router.post(
    "/{reference}/approve",
    response_model=RevisionSnapshot,
    summary="Approuver",
    responses={409: {"description": "La diminution passerait sous les engagements."}},
)
def approve(reference: str, db: Annotated[Session, Depends(get_db)]) -> RevisionSnapshot:
    return revision_service.approve_revision(db, reference)


@router.post("/{reference}/reject", response_model=RevisionSnapshot, summary="Rejeter")
def reject(reference: str, db: Annotated[Session, Depends(get_db)]) -> RevisionSnapshot:
    return revision_service.reject_revision(db, reference)
