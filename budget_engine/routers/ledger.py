"""
Ledger router: postings, lettrage and bank reconciliations.

Mounts under ``/api/comptabilite`` (prefix set in ``main.py``).

Endpoints
---------
GET  /ecritures                         — List entries (filters: compte, exercice, lettre).
POST /ecritures                         — Post a balanced transaction.
POST /lettrage                          — Letter a balanced set of entries.
GET  /lettrage/{account}                — Active groups of an account.
GET  /lettrage/{account}/prochaine      — Next free letter of an account.
GET  /lettrage/{account}/suggestions    — Debit/credit pairs of equal amount.
POST /lettrage/groupes/{id}/dissolve    — Dissolve a group.
GET  /rapprochements                    — Bank reconciliations of a period.
POST /rapprochements                    — Record a bank reconciliation.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from budget_engine.database import get_db
from budget_engine.schemas.accounting import (
    BankReconciliationCreate,
    BankReconciliationSnapshot,
    EntrySnapshot,
    LetteringCommand,
    MatchSuggestion,
    ReconciliationGroupSnapshot,
    TransactionCreate,
    TransactionSnapshot,
)
from budget_engine.schemas.common import MessageResponse
from budget_engine.services import (
    bank_reconciliation_service,
    entry_service,
    reconciliation_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Comptabilité"])


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@router.get("/ecritures", response_model=list[EntrySnapshot], summary="Écritures comptables")
def list_entries(
    db: Annotated[Session, Depends(get_db)],
    compte: Annotated[str | None, Query(description="Numéro de compte.")] = None,
    exercice: Annotated[str | None, Query(description="Code de l'exercice.")] = None,
    lettre: Annotated[bool | None, Query(description="true = lettrées, false = non lettrées.")] = None,
) -> list[EntrySnapshot]:
    return entry_service.list_entries(db, account_number=compte, period_code=exercice, lettered=lettre)


@router.post(
    "/ecritures",
    response_model=TransactionSnapshot,
    status_code=201,
    summary="Passer une écriture",
    responses={
        409: {"description": "Exercice clôturé ou en cours de clôture."},
        422: {"description": "Écriture déséquilibrée ou compte inconnu."},
    },
)
def post_transaction(
    payload: TransactionCreate, db: Annotated[Session, Depends(get_db)]
) -> TransactionSnapshot:
    logger.debug("POST /comptabilite/ecritures journal=%s lines=%d", payload.journal_code, len(payload.lines))
    return entry_service.post_transaction(db, payload)


# ---------------------------------------------------------------------------
# Lettrage
# ---------------------------------------------------------------------------


@router.post(
    "/lettrage",
    response_model=ReconciliationGroupSnapshot,
    status_code=201,
    summary="Lettrer des écritures",
    description=(
        "Rapproche au moins deux écritures d'un même compte lettrable dont le total débit "
        "égale le total crédit (à 0,01 près). Sans lettre imposée, la prochaine lettre libre "
        "(A…Z, AA, AB…) est attribuée."
    ),
)
def letter_entries(
    payload: LetteringCommand, db: Annotated[Session, Depends(get_db)]
) -> ReconciliationGroupSnapshot:
    return reconciliation_service.letter_entries(db, payload)


@router.get(
    "/lettrage/{account_number}",
    response_model=list[ReconciliationGroupSnapshot],
    summary="Groupes de lettrage d'un compte",
)
def list_groups(
    account_number: str,
    db: Annotated[Session, Depends(get_db)],
    actifs: Annotated[bool | None, Query(description="Groupes actifs seulement.")] = True,
) -> list[ReconciliationGroupSnapshot]:
    return reconciliation_service.list_groups(db, account_number, active=actifs)


@router.get("/lettrage/{account_number}/prochaine", response_model=MessageResponse, summary="Prochaine lettre libre")
def next_free_letter(account_number: str, db: Annotated[Session, Depends(get_db)]) -> MessageResponse:
    return MessageResponse(message=reconciliation_service.next_free_letter(db, account_number))


@router.get(
    "/lettrage/{account_number}/suggestions",
    response_model=list[MatchSuggestion],
    summary="Suggestions de lettrage",
)
def suggest_matches(account_number: str, db: Annotated[Session, Depends(get_db)]) -> list[MatchSuggestion]:
    return reconciliation_service.suggest_matches(db, account_number)


@router.post(
    "/lettrage/groupes/{group_id}/dissolve",
    response_model=ReconciliationGroupSnapshot,
    summary="Délettrer un groupe",
)
def dissolve_group(group_id: int, db: Annotated[Session, Depends(get_db)]) -> ReconciliationGroupSnapshot:
    return reconciliation_service.dissolve_group(db, group_id)


# ---------------------------------------------------------------------------
# Bank reconciliations
# ---------------------------------------------------------------------------


@router.get(
    "/rapprochements",
    response_model=list[BankReconciliationSnapshot],
    summary="Rapprochements bancaires",
)
def list_bank_reconciliations(
    db: Annotated[Session, Depends(get_db)],
    exercice: Annotated[str, Query(description="Code de l'exercice.")],
    compte: Annotated[str | None, Query(description="Compte de banque.")] = None,
) -> list[BankReconciliationSnapshot]:
    return bank_reconciliation_service.list_bank_reconciliations(db, exercice, compte)


@router.post(
    "/rapprochements",
    response_model=BankReconciliationSnapshot,
    status_code=201,
    summary="Enregistrer un rapprochement bancaire",
)
def record_bank_reconciliation(
    payload: BankReconciliationCreate, db: Annotated[Session, Depends(get_db)]
) -> BankReconciliationSnapshot:
    return bank_reconciliation_service.record_bank_reconciliation(db, payload)
