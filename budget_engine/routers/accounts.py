"""
Account registry router.

Mounts under ``/api/comptes`` (prefix set in ``main.py``).

Endpoints
---------
GET  /                      — List accounts (filters: classe, lettrable).
POST /                      — Register an account.
POST /seed                  — Load the standard SYSCOHADA chart (idempotent).
GET  /{number}              — One account.
POST /{number}/deactivate   — Archive an account.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.account import AccountCreate, AccountSnapshot
from budget_engine.schemas.common import MessageResponse
from budget_engine.services import account_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Comptes"])


@router.get("/", response_model=list[AccountSnapshot], summary="Plan de comptes")
def list_accounts(
    db: Annotated[Session, Depends(get_db)],
    classe: Annotated[int | None, Query(ge=1, le=9, description="Classe 1 à 9.")] = None,
    lettrable: Annotated[bool | None, Query(description="Comptes lettrables seulement.")] = None,
) -> list[AccountSnapshot]:
    return account_service.list_accounts(db, account_class=classe, lettrable=lettrable)


@router.post(
    "/",
    response_model=AccountSnapshot,
    status_code=201,
    summary="Créer un compte",
    responses={
        409: {"description": "Numéro de compte déjà utilisé."},
        422: {"description": "Classe ou nature incohérente."},
    },
)
def register_account(
    payload: AccountCreate,
    db: Annotated[Session, Depends(get_db)],
) -> AccountSnapshot:
    """Register a ledger account after class/nature validation."""
    logger.debug("POST /comptes number=%s", payload.number)
    return account_service.register_account(db, payload)


@router.post("/seed", response_model=MessageResponse, summary="Charger le plan SYSCOHADA standard")
def seed_accounts(db: Annotated[Session, Depends(get_db)]) -> MessageResponse:
    created = account_service.seed_standard_accounts(db)
    return MessageResponse(message=f"{created} compte(s) créé(s).")


@router.get("/{number}", response_model=AccountSnapshot, summary="Détail d'un compte")
def get_account(number: str, db: Annotated[Session, Depends(get_db)]) -> AccountSnapshot:
    return account_service.get_account(db, number)


@router.post("/{number}/deactivate", response_model=AccountSnapshot, summary="Archiver un compte")
def deactivate_account(number: str, db: Annotated[Session, Depends(get_db)]) -> AccountSnapshot:
    return account_service.deactivate_account(db, number)
