"""Claim model — one revenue moving recognition → collection."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import (
    CertaintyLevel,
    PaymentMethod,
    RecoveryRisk,
    RevenuePhase,
    RevenueType,
)


class Claim(Base):
    """Revenue instance (créance) with its prudence provisioning.

    net_prudential_amount = recognized_amount × prudence_coefficient and
    provision_for_doubtful_amount = recognized_amount − net_prudential_amount,
    both fixed at recognition.

    Attributes:
        id: Primary key.
        reference: Unique business reference.
        budget_line_id: FK to the revenue BudgetLine.
        revenue_type: TAX, NON_TAX or EXCEPTIONAL.
        debtor: Who owes the amount.
        phase: RECOGNIZED, LIQUIDATED or COLLECTED.
        prudence_coefficient: Discount factor in [0, 1].
        certainty_level: Advisory, CERTAIN / PROBABLE / UNCERTAIN.
        recovery_risk: Advisory, LOW / MEDIUM / HIGH.
        review_required: Set for large uncertain claims; never blocks.
    """

    __tablename__ = "claim"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(50), unique=True, nullable=False)
    budget_line_id = Column(Integer, ForeignKey("budget_line.id"), nullable=False)
    revenue_type = Column(str_enum(RevenueType), nullable=False)
    debtor = Column(String(200), nullable=True)
    phase = Column(str_enum(RevenuePhase), default=RevenuePhase.RECOGNIZED, nullable=False)

    recognized_amount = Column(Numeric(15, 2), default=0, nullable=False)
    liquidated_amount = Column(Numeric(15, 2), default=0, nullable=False)
    collected_amount = Column(Numeric(15, 2), default=0, nullable=False)

    prudence_coefficient = Column(Numeric(5, 4), default=1, nullable=False)
    provision_for_doubtful_amount = Column(Numeric(15, 2), default=0, nullable=False)
    net_prudential_amount = Column(Numeric(15, 2), default=0, nullable=False)
    certainty_level = Column(str_enum(CertaintyLevel), default=CertaintyLevel.CERTAIN, nullable=False)
    recovery_risk = Column(str_enum(RecoveryRisk), default=RecoveryRisk.LOW, nullable=False)
    review_required = Column(Boolean, default=False, nullable=False)

    recognition_document = Column(String(100), nullable=True)
    liquidation_document = Column(String(100), nullable=True)
    payment_method = Column(str_enum(PaymentMethod), nullable=True)
    payment_reference = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    recognized_at = Column(DateTime, nullable=True)
    liquidated_at = Column(DateTime, nullable=True)
    collected_at = Column(DateTime, nullable=True)

    # Relationships
    budget_line = relationship("BudgetLine", lazy="select")
