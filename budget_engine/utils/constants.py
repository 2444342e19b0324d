"""
Application-wide constants for the budget execution engine.

Defines the closed domain enumerations, business rule thresholds and the
default ledger accounts used by the workflows when they post entries.
"""

from decimal import Decimal
from enum import Enum
from typing import Final

# ---------------------------------------------------------------------------
# Chart of accounts (SYSCOHADA classes 1–9)
# ---------------------------------------------------------------------------


class AccountNature(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EXPENSE = "EXPENSE"
    REVENUE = "REVENUE"
    SPECIAL = "SPECIAL"


class AccountType(str, Enum):
    GENERAL = "GENERAL"
    AUXILIARY = "AUXILIARY"
    ANALYTIC = "ANALYTIC"


# Natures a class may carry; anything else is rejected at registration.
ALLOWED_NATURES_BY_CLASS: Final[dict[int, frozenset[AccountNature]]] = {
    1: frozenset({AccountNature.LIABILITY}),
    2: frozenset({AccountNature.ASSET}),
    3: frozenset({AccountNature.ASSET}),
    4: frozenset({AccountNature.ASSET, AccountNature.LIABILITY}),
    5: frozenset({AccountNature.ASSET, AccountNature.LIABILITY}),
    6: frozenset({AccountNature.EXPENSE}),
    7: frozenset({AccountNature.REVENUE}),
    8: frozenset({AccountNature.EXPENSE, AccountNature.REVENUE, AccountNature.SPECIAL}),
    9: frozenset({AccountNature.SPECIAL}),
}

BALANCE_SHEET_CLASSES: Final[frozenset[int]] = frozenset({1, 2, 3, 4, 5})
EXPENSE_CLASS: Final[int] = 6
REVENUE_CLASS: Final[int] = 7
# Neither settled into the result nor carried forward: they must net to zero
# before a period can close.
UNSETTLED_CLASSES: Final[frozenset[int]] = frozenset({8, 9})

# ---------------------------------------------------------------------------
# Budget
# ---------------------------------------------------------------------------


class BudgetCategory(str, Enum):
    OPERATING = "OPERATING"
    PERSONNEL = "PERSONNEL"
    INVESTMENT = "INVESTMENT"
    TRANSFER = "TRANSFER"


class TransferStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RevisionType(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    REALLOCATION = "REALLOCATION"


class RevisionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ---------------------------------------------------------------------------
# Expenditure and revenue phases
# ---------------------------------------------------------------------------


class ExpenditurePhase(str, Enum):
    CREATED = "CREATED"
    ENGAGED = "ENGAGED"
    LIQUIDATED = "LIQUIDATED"
    AUTHORIZED = "AUTHORIZED"
    PAID = "PAID"


class RevenuePhase(str, Enum):
    RECOGNIZED = "RECOGNIZED"
    LIQUIDATED = "LIQUIDATED"
    COLLECTED = "COLLECTED"


class RevenueType(str, Enum):
    TAX = "TAX"
    NON_TAX = "NON_TAX"
    EXCEPTIONAL = "EXCEPTIONAL"


class CertaintyLevel(str, Enum):
    CERTAIN = "CERTAIN"
    PROBABLE = "PROBABLE"
    UNCERTAIN = "UNCERTAIN"


class RecoveryRisk(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class PaymentMethod(str, Enum):
    TRANSFER = "TRANSFER"
    CHEQUE = "CHEQUE"
    CASH = "CASH"
    CARD = "CARD"


# ---------------------------------------------------------------------------
# Periods, closing and adjustments
# ---------------------------------------------------------------------------


class PeriodStatus(str, Enum):
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


class ClosingType(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class AdjustmentType(str, Enum):
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"


class AdjustmentDirection(str, Enum):
    INCREASE = "INCREASE"
    DECREASE = "DECREASE"


# ---------------------------------------------------------------------------
# Journals and default accounts
# ---------------------------------------------------------------------------

JOURNAL_PURCHASES: Final[str] = "AC"
JOURNAL_SALES: Final[str] = "VE"
JOURNAL_BANK: Final[str] = "BQ"
JOURNAL_MISC: Final[str] = "OD"
JOURNAL_CLOSING: Final[str] = "CL"
JOURNAL_OPENING: Final[str] = "AN"

SUPPLIER_ACCOUNT: Final[str] = "401"
CUSTOMER_ACCOUNT: Final[str] = "411"
RESULT_PROFIT_ACCOUNT: Final[str] = "131"
RESULT_LOSS_ACCOUNT: Final[str] = "139"

# ---------------------------------------------------------------------------
# Business rule thresholds
# ---------------------------------------------------------------------------

# Two totals are equal when they differ by strictly less than one cent.
BALANCE_EPSILON: Final[Decimal] = Decimal("0.01")

LETTER_ALPHABET: Final[str] = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
MIN_ENTRIES_PER_GROUP: Final[int] = 2
