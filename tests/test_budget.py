"""
Budget line ledger tests.

Checks the credit arithmetic (available = revised - engaged), the phase
ceilings and that a failed guard leaves the line unchanged.
"""

from decimal import Decimal

import pytest

from budget_engine.exceptions import (
    DuplicateCodeError,
    InsufficientCreditError,
    NotFoundError,
    ValidationError,
)
from budget_engine.schemas.budget import BudgetLineCreate
from budget_engine.services import budget_service
from budget_engine.utils.constants import BudgetCategory


class TestAllocate:
    """allocate() tests"""

    def test_available_equals_initial(self, make_line):
        line = make_line("61-001", "5000000")

        assert line.budget_initial == line.budget_revised == line.available == Decimal("5000000")
        assert line.engaged == Decimal("0")

    def test_rejects_duplicate_code(self, make_line):
        make_line("61-001")

        with pytest.raises(DuplicateCodeError):
            make_line("61-001")

    def test_rejects_negative_budget(self, make_line):
        with pytest.raises(ValidationError):
            make_line("61-002", "-1")

    def test_rejects_unknown_account(self, make_line):
        with pytest.raises(ValidationError):
            make_line("61-003", account_number="6999")

    def test_unknown_period(self, db):
        with pytest.raises(NotFoundError):
            budget_service.allocate(
                db,
                BudgetLineCreate(
                    code="X", label="X", category=BudgetCategory.OPERATING,
                    period_code="1990", budget_initial=Decimal("1"),
                ),
            )


class TestEngage:
    """engage() tests"""

    def test_engagement_beyond_available_leaves_line_unchanged(self, db, make_line):
        """5,000,000 budget, 4,500,000 engaged, a further 600,000 is refused"""
        make_line("61-001", "5000000")

        after_first = budget_service.engage(db, "61-001", Decimal("4500000"))
        assert after_first.available == Decimal("500000")

        with pytest.raises(InsufficientCreditError):
            budget_service.engage(db, "61-001", Decimal("600000"))

        line = budget_service.get_line(db, "61-001")
        assert line.engaged == Decimal("4500000")
        assert line.available == Decimal("500000")

    def test_engage_exact_available(self, db, make_line):
        make_line("61-001", "1000")

        line = budget_service.engage(db, "61-001", Decimal("1000"))

        assert line.available == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_rejects_non_positive_amount(self, db, make_line, amount):
        make_line("61-001", "1000")

        with pytest.raises(ValidationError):
            budget_service.engage(db, "61-001", amount)

    def test_inactive_line_rejects_engagement(self, db, make_line):
        make_line("61-001", "1000")
        budget_service.deactivate_line(db, "61-001")

        with pytest.raises(ValidationError):
            budget_service.engage(db, "61-001", Decimal("10"))


class TestPhaseCeilings:
    """liquidate ≤ engaged, authorize ≤ liquidated, pay ≤ authorized"""

    def test_full_chain(self, db, make_line):
        make_line("61-001", "1000")
        budget_service.engage(db, "61-001", Decimal("800"))
        budget_service.liquidate(db, "61-001", Decimal("700"))
        budget_service.authorize(db, "61-001", Decimal("700"))
        line = budget_service.pay(db, "61-001", Decimal("600"))

        assert (line.engaged, line.liquidated, line.authorized, line.paid) == (
            Decimal("800"), Decimal("700"), Decimal("700"), Decimal("600"),
        )
        assert line.available == Decimal("200")

    def test_liquidation_above_engaged(self, db, make_line):
        make_line("61-001", "1000")
        budget_service.engage(db, "61-001", Decimal("100"))

        with pytest.raises(InsufficientCreditError):
            budget_service.liquidate(db, "61-001", Decimal("100.01"))

    def test_payment_above_authorized(self, db, make_line):
        make_line("61-001", "1000")
        budget_service.engage(db, "61-001", Decimal("100"))
        budget_service.liquidate(db, "61-001", Decimal("100"))
        budget_service.authorize(db, "61-001", Decimal("50"))

        with pytest.raises(InsufficientCreditError):
            budget_service.pay(db, "61-001", Decimal("60"))


class TestKpis:
    """get_budget_kpis() tests"""

    def test_execution_rate_and_categories(self, db, make_line):
        make_line("61-001", "1000", BudgetCategory.OPERATING)
        make_line("66-001", "3000", BudgetCategory.PERSONNEL)
        budget_service.engage(db, "61-001", Decimal("1000"))
        budget_service.liquidate(db, "61-001", Decimal("1000"))

        kpis = budget_service.get_budget_kpis(db, "2025")

        assert kpis.line_count == 2
        assert kpis.budget_revised == Decimal("4000")
        assert kpis.execution_rate == Decimal("25.00")
        assert [c.category for c in kpis.by_category] == [
            BudgetCategory.OPERATING, BudgetCategory.PERSONNEL,
        ]

    def test_empty_period_rate_is_zero(self, db, period):
        assert budget_service.get_budget_kpis(db, "2025").execution_rate == Decimal("0")
