"""Accounting period registry tests."""

from datetime import date

import pytest

from budget_engine.exceptions import DuplicateCodeError, NotFoundError, ValidationError
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.schemas.period import PeriodCreate
from budget_engine.services import period_service
from budget_engine.utils.constants import PeriodStatus


class TestOpenPeriod:
    """open_period() tests"""

    def test_opens_period(self, db):
        snapshot = period_service.open_period(
            db, PeriodCreate(code="2030", start_date=date(2030, 1, 1), end_date=date(2030, 12, 31))
        )

        assert snapshot.status == PeriodStatus.OPEN
        assert snapshot.closing_active is False
        assert snapshot.controls_validated is False

    def test_rejects_inverted_dates(self, db):
        with pytest.raises(ValidationError):
            period_service.open_period(
                db, PeriodCreate(code="X", start_date=date(2030, 2, 1), end_date=date(2030, 1, 1))
            )

    def test_rejects_duplicate_code(self, db, period):
        with pytest.raises(DuplicateCodeError):
            period_service.open_period(
                db, PeriodCreate(code="2025", start_date=date(2025, 1, 1), end_date=date(2025, 6, 30))
            )

    def test_get_unknown_period(self, db):
        with pytest.raises(NotFoundError):
            period_service.get_period(db, "1999")


class TestPeriodHelpers:
    """next_period_code(), clamp_to_period() and successor lookup"""

    @pytest.mark.parametrize(
        ("code", "expected"),
        [("2025", "2026"), ("007", "008"), ("EX-A", "EX-A-AN")],
    )
    def test_next_period_code(self, code, expected):
        assert period_service.next_period_code(code) == expected

    def test_clamp_to_period(self, db, period):
        row = period_service.load_period(db, period.code)

        assert period_service.clamp_to_period(row, date(2024, 6, 1)) == date(2025, 1, 1)
        assert period_service.clamp_to_period(row, date(2026, 6, 1)) == date(2025, 12, 31)
        assert period_service.clamp_to_period(row, date(2025, 6, 1)) == date(2025, 6, 1)

    def test_successor_created_with_same_length(self, db, period):
        row = period_service.load_period(db, period.code)

        successor = period_service.find_or_create_successor(db, row)
        db.commit()

        assert successor.code == "2026"
        assert successor.start_date == date(2026, 1, 1)
        assert successor.end_date == date(2026, 12, 31)

    def test_existing_successor_is_reused(self, db, period):
        period_service.open_period(
            db, PeriodCreate(code="FY26", start_date=date(2026, 1, 1), end_date=date(2026, 12, 31))
        )
        row = period_service.load_period(db, period.code)

        successor = period_service.find_or_create_successor(db, row)

        assert successor.code == "FY26"
        assert db.query(AccountingPeriod).count() == 2

    def test_list_periods_by_status(self, db, period):
        assert [p.code for p in period_service.list_periods(db, PeriodStatus.OPEN)] == ["2025"]
        assert period_service.list_periods(db, PeriodStatus.CLOSED) == []
