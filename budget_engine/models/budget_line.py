"""BudgetLine model — one line of the budget and its execution totals."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import BudgetCategory


class BudgetLine(Base):
    """Budget line aggregate.

    Tracks the execution chain budget_initial → budget_revised → engaged →
    liquidated → authorized → paid, plus the spendable remainder.

    Invariants (enforced by the services, never by raw setters):
        available == budget_revised - engaged, available >= 0,
        paid <= authorized <= liquidated <= engaged <= budget_revised.

    Attributes:
        id: Primary key.
        code: Unique line code, e.g. "61-001".
        label: Line description.
        category: OPERATING, PERSONNEL, INVESTMENT or TRANSFER.
        period_id: FK to the AccountingPeriod (exercice) the line belongs to.
        account_number: Optional ledger account the workflows post against.
        active: Lines are never deleted, only deactivated.
    """

    __tablename__ = "budget_line"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(30), unique=True, nullable=False)
    label = Column(String(300), nullable=False)
    category = Column(str_enum(BudgetCategory), nullable=False)
    period_id = Column(Integer, ForeignKey("accounting_period.id"), nullable=False)
    account_number = Column(String(20), nullable=True)
    entity = Column(String(200), nullable=True)
    budget_initial = Column(Numeric(15, 2), default=0, nullable=False)
    budget_revised = Column(Numeric(15, 2), default=0, nullable=False)
    engaged = Column(Numeric(15, 2), default=0, nullable=False)
    liquidated = Column(Numeric(15, 2), default=0, nullable=False)
    authorized = Column(Numeric(15, 2), default=0, nullable=False)
    paid = Column(Numeric(15, 2), default=0, nullable=False)
    available = Column(Numeric(15, 2), default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    period = relationship("AccountingPeriod", lazy="select")
