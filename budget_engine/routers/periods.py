"""
Accounting periods and closing router.

Mounts under ``/api/exercices`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                                  — List periods.
POST /                                  — Open a period.
GET  /{code}                            — One period with its closing progress.
GET  /{code}/controles                  — Suggested step-1 flags computed from the ledger.
POST /{code}/cloture                    — Start the closing process.
POST /{code}/cloture/controles          — Step 1: validate the four controls.
POST /{code}/cloture/ajustements        — Step 2: validate the four adjusting entries.
POST /{code}/cloture/confirmation       — Step 3 + 4: definitive closing and carry-forward.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.period import (
    AdjustmentFlags,
    ConfirmClosingCommand,
    ControlEvaluation,
    ControlFlags,
    PeriodCreate,
    PeriodSnapshot,
    StartClosingCommand,
)
from budget_engine.services import closing_service, period_service
from budget_engine.utils.constants import PeriodStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Exercices"])


@router.get("/", response_model=list[PeriodSnapshot], summary="Liste des exercices")
def list_periods(
    db: Annotated[Session, Depends(get_db)],
    statut: Annotated[PeriodStatus | None, Query(description="Filtre par statut.")] = None,
) -> list[PeriodSnapshot]:
    return period_service.list_periods(db, status=statut)


@router.post("/", response_model=PeriodSnapshot, status_code=201, summary="Ouvrir un exercice")
def open_period(payload: PeriodCreate, db: Annotated[Session, Depends(get_db)]) -> PeriodSnapshot:
    return period_service.open_period(db, payload)


@router.get("/{code}", response_model=PeriodSnapshot, summary="Détail d'un exercice")
def get_period(code: str, db: Annotated[Session, Depends(get_db)]) -> PeriodSnapshot:
    return period_service.get_period(db, code)


@router.get(
    "/{code}/controles",
    response_model=ControlEvaluation,
    summary="Évaluation automatique des contrôles de clôture",
)
def evaluate_controls(code: str, db: Annotated[Session, Depends(get_db)]) -> ControlEvaluation:
    return closing_service.evaluate_controls(db, code)


@router.post(
    "/{code}/cloture",
    response_model=PeriodSnapshot,
    summary="Démarrer la clôture",
    responses={
        409: {"description": "Clôture déjà en cours ou exercice clôturé."},
    },
)
def start_closing(
    code: str,
    payload: StartClosingCommand,
    db: Annotated[Session, Depends(get_db)],
) -> PeriodSnapshot:
    logger.debug("POST /exercices/%s/cloture type=%s", code, payload.closing_type)
    return closing_service.start_closing(db, code, payload)


@router.post("/{code}/cloture/controles", response_model=PeriodSnapshot, summary="Étape 1 — contrôles")
def validate_controls(
    code: str,
    payload: ControlFlags,
    db: Annotated[Session, Depends(get_db)],
) -> PeriodSnapshot:
    return closing_service.validate_controls(db, code, payload)


@router.post(
    "/{code}/cloture/ajustements",
    response_model=PeriodSnapshot,
    summary="Étape 2 — écritures d'inventaire",
)
def validate_adjustments(
    code: str,
    payload: AdjustmentFlags,
    db: Annotated[Session, Depends(get_db)],
) -> PeriodSnapshot:
    return closing_service.validate_adjustments(db, code, payload)


@router.post(
    "/{code}/cloture/confirmation",
    response_model=PeriodSnapshot,
    summary="Étape 3 — clôture définitive et report à nouveau",
    description=(
        "Clôture irréversible. Exige `confirmation: true` et les étapes 1 et 2 validées. "
        "Génère automatiquement les écritures de résultat et les à-nouveaux dans l'exercice suivant."
    ),
    responses={
        409: {"description": "Exercice déjà clôturé ou étapes préalables incomplètes."},
        422: {"description": "Confirmation absente."},
    },
)
def confirm_closing(
    code: str,
    payload: ConfirmClosingCommand,
    db: Annotated[Session, Depends(get_db)],
) -> PeriodSnapshot:
    """Run the definitive closing of a period.

    Args:
        code: Period code.
        payload: Explicit confirmation, author and observations.
        db: Database session injected by ``get_db``.

    Returns:
        The CLOSED period with its result and carry-forward reference.
    """
    logger.debug("POST /exercices/%s/cloture/confirmation by=%s", code, payload.closed_by)
    return closing_service.confirm_closing(db, code, payload)
