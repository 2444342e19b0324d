"""AccountingPeriod model — accounting period and its four-step closing state."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from budget_engine.database import Base, str_enum
from budget_engine.utils.constants import ClosingType, PeriodStatus


class AccountingPeriod(Base):
    """Accounting period (exercice or sub-period) with its closing protocol.

    The period moves OPEN → CLOSING → CLOSED.  ``closing_active`` marks the
    single closing process allowed per period; the step flags record how far
    that process went.

    Attributes:
        id: Primary key.
        code: Unique period code, e.g. "2025".
        start_date: First day of the period.
        end_date: Last day of the period.
        status: OPEN, CLOSING or CLOSED.
        closing_active: True once a closing process has been started.
        closing_type: MONTHLY, QUARTERLY or ANNUAL.
        ctl_*: Step 1 control checks.
        adj_*: Step 2 adjusting-entry checks.
        controls_validated .. carried_forward: The four step flags.
        result_amount: Σclass7 − Σclass6 computed at carry-forward.
        carry_forward_ref: transaction_ref of the opening entries produced.
        successor_id: Period that received the carry-forward entries.
    """

    __tablename__ = "accounting_period"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(20), unique=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(str_enum(PeriodStatus), default=PeriodStatus.OPEN, nullable=False)

    closing_active = Column(Boolean, default=False, nullable=False)
    closing_type = Column(str_enum(ClosingType), nullable=True)
    closing_started_at = Column(DateTime, nullable=True)

    # Step 1: controls
    ctl_entries_balanced = Column(Boolean, default=False, nullable=False)
    ctl_trial_balance_coherent = Column(Boolean, default=False, nullable=False)
    ctl_reconciliation_complete = Column(Boolean, default=False, nullable=False)
    ctl_bank_reconciliation_complete = Column(Boolean, default=False, nullable=False)

    # Step 2: adjusting entries
    adj_depreciation = Column(Boolean, default=False, nullable=False)
    adj_provisions = Column(Boolean, default=False, nullable=False)
    adj_accrued_expenses = Column(Boolean, default=False, nullable=False)
    adj_deferred_revenue = Column(Boolean, default=False, nullable=False)

    # Step flags
    controls_validated = Column(Boolean, default=False, nullable=False)
    adjustments_validated = Column(Boolean, default=False, nullable=False)
    definitively_closed = Column(Boolean, default=False, nullable=False)
    carried_forward = Column(Boolean, default=False, nullable=False)

    closed_by = Column(String(200), nullable=True)
    closed_at = Column(DateTime, nullable=True)
    observations = Column(String(1000), nullable=True)
    result_amount = Column(Numeric(15, 2), nullable=True)
    carry_forward_ref = Column(String(50), nullable=True)
    successor_id = Column(Integer, ForeignKey("accounting_period.id"), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    successor = relationship("AccountingPeriod", remote_side=[id], lazy="select")
