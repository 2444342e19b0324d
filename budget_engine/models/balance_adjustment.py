"""BalanceAdjustment model — manual balance-sheet adjustment record."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import AdjustmentDirection, AdjustmentType


class BalanceAdjustment(Base):
    """Ajustement de bilan.  No offsetting entry is generated for it."""

    __tablename__ = "balance_adjustment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(50), unique=True, nullable=False)
    period_id = Column(Integer, ForeignKey("accounting_period.id"), nullable=False)
    account_number = Column(String(20), nullable=False)
    adjustment_type = Column(str_enum(AdjustmentType), nullable=False)
    direction = Column(str_enum(AdjustmentDirection), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    justification = Column(String(1000), nullable=False)
    author = Column(String(200), nullable=False)
    adjustment_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    period = relationship("AccountingPeriod", lazy="select")
