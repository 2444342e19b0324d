"""Commitment model — one expenditure moving engagement → payment."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import ExpenditurePhase, PaymentMethod


class Commitment(Base):
    """Expenditure instance driven by the expenditure workflow.

    Phase amounts never increase downstream:
    paid <= authorized <= liquidated <= engaged.

    Attributes:
        id: Primary key.
        reference: Unique business reference, e.g. "ENG-2025-001".
        budget_line_id: FK to the BudgetLine whose credit is consumed.
        phase: CREATED, ENGAGED, LIQUIDATED, AUTHORIZED or PAID.
        *_amount: Amount fixed at each phase.
        *_document: Supporting-document reference required by each phase.
        payment_method: Named at authorization, confirmed at payment.
        payment_reference: Cheque number, transfer reference, etc.
    """

    __tablename__ = "commitment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(50), unique=True, nullable=False)
    budget_line_id = Column(Integer, ForeignKey("budget_line.id"), nullable=False)
    phase = Column(str_enum(ExpenditurePhase), default=ExpenditurePhase.CREATED, nullable=False)
    supplier = Column(String(200), nullable=True)
    purpose = Column(String(500), nullable=True)

    requested_amount = Column(Numeric(15, 2), default=0, nullable=False)
    engaged_amount = Column(Numeric(15, 2), default=0, nullable=False)
    liquidated_amount = Column(Numeric(15, 2), default=0, nullable=False)
    authorized_amount = Column(Numeric(15, 2), default=0, nullable=False)
    paid_amount = Column(Numeric(15, 2), default=0, nullable=False)

    engagement_document = Column(String(100), nullable=True)
    liquidation_document = Column(String(100), nullable=True)
    authorization_document = Column(String(100), nullable=True)
    payment_document = Column(String(100), nullable=True)
    payment_method = Column(str_enum(PaymentMethod), nullable=True)
    payment_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    engaged_at = Column(DateTime, nullable=True)
    liquidated_at = Column(DateTime, nullable=True)
    authorized_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    budget_line = relationship("BudgetLine", lazy="select")
