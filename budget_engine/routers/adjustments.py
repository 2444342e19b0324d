"""
Balance adjustment router.

Mounts under ``/api/ajustements`` (prefix set in ``main.py``).

Endpoints
---------
GET  /          — List adjustments (filter: exercice).
POST /          — Record an adjustment; returns the period's balance check.
GET  /balance   — Net asset/liability imbalance of a period.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.adjustment import (
    AdjustmentBalance,
    AdjustmentCreate,
    AdjustmentResult,
    AdjustmentSnapshot,
)
from budget_engine.services import adjustment_service

router = APIRouter(tags=["Ajustements"])


@router.get("/", response_model=list[AdjustmentSnapshot], summary="Liste des ajustements")
def list_adjustments(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str | None, Query(description="Code de l'exercice.")] = None,
) -> list[AdjustmentSnapshot]:
    return adjustment_service.list_adjustments(db, exercice)


@router.post(
    "/",
    response_model=AdjustmentResult,
    status_code=201,
    summary="Enregistrer un ajustement de bilan",
    description=(
        "Aucune écriture de contrepartie n'est générée. La réponse indique l'écart "
        "Actif − Passif de l'exercice et un avertissement tant qu'il n'est pas nul."
    ),
)
def record_adjustment(payload: AdjustmentCreate, db: Annotated[Session, Depends(get_db)]) -> AdjustmentResult:
    return adjustment_service.record_adjustment(db, payload)


@router.get("/balance", response_model=AdjustmentBalance, summary="Équilibre Actif / Passif")
def get_balance(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str, Query(description="Code de l'exercice.")],
) -> AdjustmentBalance:
    return adjustment_service.get_adjustment_balance(db, exercice)
