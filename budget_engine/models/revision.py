"""Revision models — budget revision and its ordered target lines."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import RevisionStatus, RevisionType


class Revision(Base):
    """Révision budgétaire moving DRAFT → SUBMITTED → APPROVED | REJECTED.

    Attributes:
        id: Primary key.
        reference: Unique business reference.
        revision_type: INCREASE, DECREASE or REALLOCATION.
        amount: Positive amount applied to each target (moved, for REALLOCATION).
        status: Only APPROVED mutates budget lines; APPROVED and REJECTED are final.
    """

    __tablename__ = "revision"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference = Column(String(50), unique=True, nullable=False)
    revision_type = Column(str_enum(RevisionType), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    justification = Column(String(1000), nullable=False)
    documents = Column(String(500), nullable=True)
    status = Column(str_enum(RevisionStatus), default=RevisionStatus.DRAFT, nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    decided_at = Column(DateTime, nullable=True)

    # Relationships
    lines = relationship(
        "RevisionLine",
        back_populates="revision",
        order_by="RevisionLine.position",
        lazy="select",
        cascade="all, delete-orphan",
    )

    @property
    def line_codes(self) -> list[str]:
        return [target.budget_line.code for target in self.lines]


class RevisionLine(Base):
    """Target line of a revision; ``position`` keeps the declared order."""

    __tablename__ = "revision_line"

    id = Column(Integer, primary_key=True, autoincrement=True)
    revision_id = Column(Integer, ForeignKey("revision.id"), nullable=False)
    budget_line_id = Column(Integer, ForeignKey("budget_line.id"), nullable=False)
    position = Column(Integer, nullable=False)

    # Relationships
    revision = relationship("Revision", back_populates="lines", lazy="select")
    budget_line = relationship("BudgetLine", lazy="select")
