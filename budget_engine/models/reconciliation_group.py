"""ReconciliationGroup model — a balanced, lettered set of entries."""

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base


class ReconciliationGroup(Base):
    """Lettrage group on one account.

    While ``active``, the group owns its letter on the account and
    Σdebit == Σcredit within 0.01 over at least two entries.  Dissolving a
    group releases the entries and the letter; the row is kept as history.
    """

    __tablename__ = "reconciliation_group"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_number = Column(String(20), nullable=False, index=True)
    letter = Column(String(10), nullable=False)
    total_debit = Column(Numeric(15, 2), default=0, nullable=False)
    total_credit = Column(Numeric(15, 2), default=0, nullable=False)
    entry_count = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    dissolved_at = Column(DateTime, nullable=True)

    # Relationships
    entries = relationship(
        "AccountingEntry",
        back_populates="reconciliation_group",
        order_by="AccountingEntry.id",
        lazy="select",
    )

    @property
    def entry_ids(self) -> list[int]:
        return [entry.id for entry in self.entries]
