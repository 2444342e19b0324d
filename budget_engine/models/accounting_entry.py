"""AccountingEntry model — one debit or credit line of a posted transaction."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base


class AccountingEntry(Base):
    """Ledger line.  Exactly one of ``debit`` / ``credit`` is non-zero.

    Lines posted together share a ``transaction_ref``; the debits and
    credits of one transaction balance within 0.01.

    Attributes:
        id: Primary key.
        period_id: FK to the AccountingPeriod the entry belongs to.
        entry_date: Accounting date.
        journal_code: AC, VE, BQ, OD, CL or AN.
        transaction_ref: Shared by every line of one balanced transaction.
        account_number: Registered ledger account.
        reconciliation_letter: Letter token once the entry is lettered.
        reconciliation_group_id: FK to the active ReconciliationGroup.
    """

    __tablename__ = "accounting_entry"

    id = Column(Integer, primary_key=True, autoincrement=True)
    period_id = Column(Integer, ForeignKey("accounting_period.id"), nullable=False)
    entry_date = Column(Date, nullable=False)
    journal_code = Column(String(5), nullable=False)
    transaction_ref = Column(String(50), nullable=False, index=True)
    label = Column(String(300), nullable=False)
    account_number = Column(String(20), nullable=False, index=True)
    debit = Column(Numeric(15, 2), default=0, nullable=False)
    credit = Column(Numeric(15, 2), default=0, nullable=False)
    document_ref = Column(String(100), nullable=True)
    reconciliation_letter = Column(String(10), nullable=True)
    reconciliation_group_id = Column(
        Integer, ForeignKey("reconciliation_group.id"), nullable=True
    )
    lettered_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    # Relationships
    period = relationship("AccountingPeriod", lazy="select")
    reconciliation_group = relationship(
        "ReconciliationGroup", back_populates="entries", lazy="select"
    )
