"""Transfer model — credit movement (virement) between two budget lines."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import TransferStatus


class Transfer(Base):
    """Virement request and its decision.

    Attributes:
        id: Primary key.
        request_id: Client idempotency key; a resubmission returns this row.
        source_line_id: Line giving the credit.
        destination_line_id: Line receiving the credit.
        amount: Positive amount moved on approval.
        status: PENDING, APPROVED or REJECTED.
    """

    __tablename__ = "transfer"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String(64), unique=True, nullable=False)
    source_line_id = Column(Integer, ForeignKey("budget_line.id"), nullable=False)
    destination_line_id = Column(Integer, ForeignKey("budget_line.id"), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    justification = Column(String(1000), nullable=False)
    status = Column(str_enum(TransferStatus), default=TransferStatus.PENDING, nullable=False)
    decision_note = Column(String(1000), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    decided_at = Column(DateTime, nullable=True)

    # Relationships
    source_line = relationship("BudgetLine", foreign_keys=[source_line_id], lazy="select")
    destination_line = relationship(
        "BudgetLine", foreign_keys=[destination_line_id], lazy="select"
    )
