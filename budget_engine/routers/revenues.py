"""
Revenue workflow router.

Mounts under ``/api/recettes`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                          — List claims (filters: ligne, phase, revue).
POST /                          — Recognize a claim.
GET  /kpis                      — Revenue KPIs (prudence impact, risk counts).
GET  /{reference}               — One claim.
POST /{reference}/liquidation   — Liquidation.
POST /{reference}/encaissement  — Collection.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.revenue import (
    ClaimLiquidateCommand,
    ClaimSnapshot,
    CollectCommand,
    RecognizeCommand,
    RevenueKpis,
)
from budget_engine.services import revenue_service
from budget_engine.utils.constants import RevenuePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Recettes"])


@router.get("/", response_model=list[ClaimSnapshot], summary="Liste des créances")
def list_claims(
    db: Annotated[Session, Depends(get_db)],
    ligne: Annotated[str | None, Query(description="Code de la ligne de recette.")] = None,
    phase: Annotated[RevenuePhase | None, Query(description="Phase courante.")] = None,
    revue: Annotated[bool | None, Query(description="Créances signalées pour revue.")] = None,
) -> list[ClaimSnapshot]:
    return revenue_service.list_claims(db, line_code=ligne, phase=phase, review_required=revue)


@router.post(
    "/",
    response_model=ClaimSnapshot,
    status_code=201,
    summary="Constater une créance",
    description=(
        "Calcule le montant net prudentiel (montant × coefficient) et la provision pour "
        "créances douteuses. Une créance INCERTAINE au-delà du seuil configuré est "
        "signalée pour revue sans être bloquée."
    ),
)
def recognize(payload: RecognizeCommand, db: Annotated[Session, Depends(get_db)]) -> ClaimSnapshot:
    logger.debug("POST /recettes ref=%s amount=%s", payload.reference, payload.amount)
    return revenue_service.recognize_claim(db, payload)


@router.get("/kpis", response_model=RevenueKpis, summary="Indicateurs des recettes")
def get_kpis(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str | None, Query(description="Code de l'exercice.")] = None,
) -> RevenueKpis:
    return revenue_service.get_revenue_kpis(db, exercice)


@router.get("/{reference}", response_model=ClaimSnapshot, summary="Détail d'une créance")
def get_claim(reference: str, db: Annotated[Session, Depends(get_db)]) -> ClaimSnapshot:
    return revenue_service.get_claim(db, reference)


@router.post("/{reference}/liquidation", response_model=ClaimSnapshot, summary="Liquidation")
def liquidate(
    reference: str, payload: ClaimLiquidateCommand, db: Annotated[Session, Depends(get_db)]
) -> ClaimSnapshot:
    return revenue_service.liquidate_claim(db, reference, payload)


@router.post("/{reference}/encaissement", response_model=ClaimSnapshot, summary="Encaissement")
def collect(
    reference: str, payload: CollectCommand, db: Annotated[Session, Depends(get_db)]
) -> ClaimSnapshot:
    return revenue_service.collect_claim(db, reference, payload)
