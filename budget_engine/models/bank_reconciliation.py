"""BankReconciliation model — bank statement vs. book balance."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base


class BankReconciliation(Base):
    """Rapprochement bancaire.

    Attributes:
        statement_balance: Balance on the bank statement.
        book_balance: Σdebit − Σcredit of the bank account up to statement_date.
        difference: statement_balance − book_balance.
        balanced: True when |difference| < 0.01.
    """

    __tablename__ = "bank_reconciliation"

    id = Column(Integer, primary_key=True, autoincrement=True)
    period_id = Column(Integer, ForeignKey("accounting_period.id"), nullable=False)
    bank_account_number = Column(String(20), nullable=False)
    statement_date = Column(Date, nullable=False)
    statement_balance = Column(Numeric(15, 2), nullable=False)
    book_balance = Column(Numeric(15, 2), nullable=False)
    difference = Column(Numeric(15, 2), nullable=False)
    balanced = Column(Boolean, default=False, nullable=False)
    observations = Column(String(1000), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    period = relationship("AccountingPeriod", lazy="select")
