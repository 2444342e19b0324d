"""Ledger posting tests: balance, one-sided lines, accounts and dates."""

from datetime import date
from decimal import Decimal

import pytest

from budget_engine.exceptions import UnbalancedEntriesError, ValidationError
from budget_engine.models.accounting_entry import AccountingEntry
from budget_engine.schemas.accounting import EntryLineInput, TransactionCreate
from budget_engine.services import entry_service


def _transaction(lines, entry_date=date(2025, 3, 31)):
    return TransactionCreate(
        period_code="2025",
        entry_date=entry_date,
        journal_code="od",
        label="Facture fournisseur",
        lines=lines,
    )


class TestPostTransaction:
    """post_transaction() tests"""

    def test_posts_balanced_transaction(self, db, period):
        snapshot = entry_service.post_transaction(
            db,
            _transaction([
                EntryLineInput(account_number="604", debit=Decimal("300000")),
                EntryLineInput(account_number="401", credit=Decimal("300000")),
            ]),
        )

        assert snapshot.total_debit == snapshot.total_credit == Decimal("300000")
        assert len(snapshot.entries) == 2
        assert {e.transaction_ref for e in snapshot.entries} == {snapshot.transaction_ref}
        assert all(e.journal_code == "OD" for e in snapshot.entries)

    def test_tolerates_sub_cent_rounding(self, db, period):
        """Amounts are rounded to cents before the balance check"""
        snapshot = entry_service.post_transaction(
            db,
            _transaction([
                EntryLineInput(account_number="604", debit=Decimal("100.004")),
                EntryLineInput(account_number="401", credit=Decimal("100.00")),
            ]),
        )

        assert snapshot.total_debit == Decimal("100.00")

    def test_rejects_unbalanced_transaction(self, db, period):
        with pytest.raises(UnbalancedEntriesError):
            entry_service.post_transaction(
                db,
                _transaction([
                    EntryLineInput(account_number="604", debit=Decimal("300000")),
                    EntryLineInput(account_number="401", credit=Decimal("299999.99")),
                ]),
            )
        assert db.query(AccountingEntry).count() == 0

    def test_rejects_line_with_both_sides(self, db, period):
        with pytest.raises(ValidationError):
            entry_service.post_transaction(
                db,
                _transaction([
                    EntryLineInput(account_number="604", debit=Decimal("10"), credit=Decimal("10")),
                    EntryLineInput(account_number="401", credit=Decimal("0")),
                ]),
            )

    def test_rejects_single_line(self, db, period):
        with pytest.raises(ValidationError):
            entry_service.post_transaction(
                db, _transaction([EntryLineInput(account_number="604", debit=Decimal("10"))])
            )

    def test_rejects_unknown_account(self, db, period):
        with pytest.raises(ValidationError):
            entry_service.post_transaction(
                db,
                _transaction([
                    EntryLineInput(account_number="609999", debit=Decimal("10")),
                    EntryLineInput(account_number="401", credit=Decimal("10")),
                ]),
            )

    def test_rejects_date_outside_period(self, db, period):
        with pytest.raises(ValidationError):
            entry_service.post_transaction(
                db,
                _transaction(
                    [
                        EntryLineInput(account_number="604", debit=Decimal("10")),
                        EntryLineInput(account_number="401", credit=Decimal("10")),
                    ],
                    entry_date=date(2026, 1, 1),
                ),
            )


class TestQueries:
    """list_entries() and account_balance()"""

    def test_account_balance_and_filters(self, db, period):
        entry_service.post_transaction(
            db,
            _transaction([
                EntryLineInput(account_number="521", debit=Decimal("1000")),
                EntryLineInput(account_number="706", credit=Decimal("1000")),
            ]),
        )
        entry_service.post_transaction(
            db,
            _transaction(
                [
                    EntryLineInput(account_number="604", debit=Decimal("400")),
                    EntryLineInput(account_number="521", credit=Decimal("400")),
                ],
                entry_date=date(2025, 6, 30),
            ),
        )

        assert entry_service.account_balance(db, "521") == Decimal("600.00")
        assert entry_service.account_balance(db, "521", up_to=date(2025, 4, 1)) == Decimal("1000.00")
        assert len(entry_service.list_entries(db, account_number="521")) == 2
        assert len(entry_service.list_entries(db, period_code="2025", lettered=False)) == 4
