"""Pydantic v2 schemas for the account registry."""

from __future__ import annotations

from pydantic import BaseModel, Field

from budget_engine.schemas.common import Snapshot
from budget_engine.utils.constants import AccountNature, AccountType


class AccountCreate(BaseModel):
    """Command registering a ledger account."""

    number: str = Field(..., min_length=1, max_length=20, description="Numéro de compte, ex. '401'.")
    label: str = Field(..., min_length=1, max_length=200, description="Intitulé du compte.")
    account_class: int = Field(..., ge=1, le=9, description="Classe SYSCOHADA (1 à 9).")
    nature: AccountNature = Field(..., description="Nature du compte.")
    account_type: AccountType = Field(default=AccountType.GENERAL, description="Type de compte.")
    lettrable: bool = Field(default=False, description="Le compte accepte le lettrage.")


class AccountSnapshot(Snapshot):
    """Read-only view of an Account."""

    id: int
    number: str
    label: str
    account_class: int
    nature: AccountNature
    account_type: AccountType
    lettrable: bool
    active: bool
