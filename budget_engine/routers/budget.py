"""
Budget line ledger router.

Mounts under ``/api/budget`` (prefix set in ``main.py``).

Endpoints
---------
GET  /lignes                        — List lines (filters: exercice, categorie, active).
POST /lignes                        — Allocate a new line.
GET  /lignes/{code}                 — One line.
POST /lignes/{code}/deactivate      — Deactivate a line.
POST /lignes/{code}/engager         — Direct engagement on the line.
POST /lignes/{code}/liquider        — Direct liquidation on the line.
POST /lignes/{code}/ordonnancer     — Direct authorization on the line.
POST /lignes/{code}/payer           — Direct payment on the line.
GET  /kpis                          — Execution KPIs of a period.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.budget import (
    AmountCommand,
    BudgetKpis,
    BudgetLineCreate,
    BudgetLineSnapshot,
)
from budget_engine.services import budget_service
from budget_engine.utils.constants import BudgetCategory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Budget"])


@router.get("/lignes", response_model=list[BudgetLineSnapshot], summary="Lignes budgétaires")
def list_lines(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str | None, Query(description="Code de l'exercice.")] = None,
    categorie: Annotated[BudgetCategory | None, Query(description="Catégorie.")] = None,
    active: Annotated[bool | None, Query(description="Lignes actives seulement.")] = None,
) -> list[BudgetLineSnapshot]:
    return budget_service.list_lines(db, period_code=exercice, category=categorie, active=active)


@router.post(
    "/lignes",
    response_model=BudgetLineSnapshot,
    status_code=201,
    summary="Allouer une ligne budgétaire",
    responses={409: {"description": "Code de ligne déjà utilisé."}},
)
def allocate(payload: BudgetLineCreate, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    """Create a budget line whose available credit equals its initial budget."""
    logger.debug("POST /budget/lignes code=%s", payload.code)
    return budget_service.allocate(db, payload)


@router.get("/lignes/{code}", response_model=BudgetLineSnapshot, summary="Détail d'une ligne")
def get_line(code: str, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.get_line(db, code)


@router.post("/lignes/{code}/deactivate", response_model=BudgetLineSnapshot, summary="Désactiver une ligne")
def deactivate_line(code: str, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.deactivate_line(db, code)


@router.post(
    "/lignes/{code}/engager",
    response_model=BudgetLineSnapshot,
    summary="Engager un montant",
    responses={409: {"description": "Crédit disponible insuffisant."}},
)
def engage(code: str, payload: AmountCommand, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.engage(db, code, payload.amount)


@router.post("/lignes/{code}/liquider", response_model=BudgetLineSnapshot, summary="Liquider un montant")
def liquidate(code: str, payload: AmountCommand, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.liquidate(db, code, payload.amount)


@router.post("/lignes/{code}/ordonnancer", response_model=BudgetLineSnapshot, summary="Ordonnancer un montant")
def authorize(code: str, payload: AmountCommand, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.authorize(db, code, payload.amount)


@router.post("/lignes/{code}/payer", response_model=BudgetLineSnapshot, summary="Payer un montant")
def pay(code: str, payload: AmountCommand, db: Annotated[Session, Depends(get_db)]) -> BudgetLineSnapshot:
    return budget_service.pay(db, code, payload.amount)


@router.get("/kpis", response_model=BudgetKpis, summary="Indicateurs d'exécution budgétaire")
def get_kpis(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str, Query(description="Code de l'exercice.")],
) -> BudgetKpis:
    return budget_service.get_budget_kpis(db, exercice)
