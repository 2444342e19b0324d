"""SQLAlchemy models package for the budget execution engine.

Importing all models here ensures that SQLAlchemy's mapper registry is
populated before ``Base.metadata.create_all()`` or Alembic migrations run.
The import order follows the foreign-key dependency graph so that parent
tables are always registered before their children.

Usage from other modules:
    from budget_engine.models import BudgetLine, Commitment
"""

# Leaf tables
from budget_engine.models.account import Account  # noqa: F401
from budget_engine.models.accounting_period import AccountingPeriod  # noqa: F401

# Budget execution chain
from budget_engine.models.budget_line import BudgetLine  # noqa: F401
from budget_engine.models.commitment import Commitment  # noqa: F401
from budget_engine.models.claim import Claim  # noqa: F401
from budget_engine.models.transfer import Transfer  # noqa: F401
from budget_engine.models.revision import Revision, RevisionLine  # noqa: F401

# Ledger and reconciliation
from budget_engine.models.reconciliation_group import ReconciliationGroup  # noqa: F401
from budget_engine.models.accounting_entry import AccountingEntry  # noqa: F401
from budget_engine.models.bank_reconciliation import BankReconciliation  # noqa: F401

# Closing support
from budget_engine.models.balance_adjustment import BalanceAdjustment  # noqa: F401

__all__ = [
    "Account",
    "AccountingPeriod",
    "BudgetLine",
    "Commitment",
    "Claim",
    "Transfer",
    "Revision",
    "RevisionLine",
    "ReconciliationGroup",
    "AccountingEntry",
    "BankReconciliation",
    "BalanceAdjustment",
]
