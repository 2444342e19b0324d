"""
Account registry tests.

Covers classification rules, duplicates, archiving and the idempotent
standard chart.
"""

import pytest

from budget_engine.exceptions import DuplicateCodeError, NotFoundError, ValidationError
from budget_engine.schemas.account import AccountCreate
from budget_engine.services import account_service
from budget_engine.utils.constants import AccountNature


class TestRegisterAccount:
    """register_account() tests"""

    def test_registers_valid_account(self, db):
        """A class-4 lettrable account is registered as given"""
        snapshot = account_service.register_account(
            db,
            AccountCreate(
                number="4011", label="Fournisseurs locaux", account_class=4,
                nature=AccountNature.LIABILITY, lettrable=True,
            ),
        )

        assert snapshot.number == "4011"
        assert snapshot.lettrable is True
        assert snapshot.active is True

    def test_rejects_duplicate_number(self, db):
        """The standard chart already holds 401"""
        with pytest.raises(DuplicateCodeError):
            account_service.register_account(
                db,
                AccountCreate(
                    number="401", label="Doublon", account_class=4,
                    nature=AccountNature.LIABILITY,
                ),
            )

    def test_rejects_number_not_starting_with_class(self, db):
        with pytest.raises(ValidationError):
            account_service.register_account(
                db,
                AccountCreate(
                    number="601", label="Mauvaise classe", account_class=7,
                    nature=AccountNature.REVENUE,
                ),
            )

    def test_rejects_nature_not_allowed_for_class(self, db):
        """Class 6 only carries expenses"""
        with pytest.raises(ValidationError):
            account_service.register_account(
                db,
                AccountCreate(
                    number="6099", label="Nature invalide", account_class=6,
                    nature=AccountNature.REVENUE,
                ),
            )

    def test_rejects_non_numeric_number(self, db):
        with pytest.raises(ValidationError):
            account_service.register_account(
                db,
                AccountCreate(
                    number="4A1", label="Lettres", account_class=4,
                    nature=AccountNature.ASSET,
                ),
            )


class TestAccountLookup:
    """require_account(), list and archive tests"""

    def test_require_unknown_account(self, db):
        with pytest.raises(ValidationError):
            account_service.require_account(db, "999999")

    def test_require_lettrable_rejects_plain_account(self, db):
        with pytest.raises(ValidationError):
            account_service.require_account(db, "604", lettrable=True)

    def test_archived_account_is_rejected(self, db):
        account_service.deactivate_account(db, "571")

        with pytest.raises(ValidationError):
            account_service.require_account(db, "571")
        assert account_service.get_account(db, "571").active is False

    def test_get_unknown_account(self, db):
        with pytest.raises(NotFoundError):
            account_service.get_account(db, "000")

    def test_list_filters_by_class_and_lettrable(self, db):
        class_four = account_service.list_accounts(db, account_class=4)
        lettrable = account_service.list_accounts(db, lettrable=True)

        assert {a.number for a in class_four} >= {"401", "411"}
        assert all(a.account_class == 4 for a in class_four)
        assert {"401", "411", "521"} <= {a.number for a in lettrable}

    def test_seed_is_idempotent(self, db):
        """The db fixture already seeded the chart"""
        assert account_service.seed_standard_accounts(db) == 0
        assert len(account_service.list_accounts(db)) == len(account_service.STANDARD_ACCOUNTS)
