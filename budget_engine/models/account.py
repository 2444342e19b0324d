"""Account model — ledger account of the SYSCOHADA chart (classes 1–9)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import AccountNature, AccountType


class Account(Base):
    """Ledger account referenced by entries, budget lines and adjustments.

    Attributes:
        id: Primary key.
        number: Unique account number, starts with its class digit, e.g. "401".
        label: Account name.
        account_class: Class 1–9 (first digit of ``number``).
        nature: ASSET, LIABILITY, EXPENSE, REVENUE or SPECIAL.
        account_type: GENERAL, AUXILIARY or ANALYTIC.
        lettrable: Whether entries on this account can be lettered.
        active: Archived accounts reject new postings.
    """

    __tablename__ = "account"

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(20), unique=True, nullable=False)
    label = Column(String(200), nullable=False)
    account_class = Column(Integer, nullable=False)
    nature = Column(str_enum(AccountNature), nullable=False)
    account_type = Column(str_enum(AccountType), default=AccountType.GENERAL, nullable=False)
    lettrable = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
