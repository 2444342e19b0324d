"""
Lettrage tests.

Supplier account 401 receives two invoices (180,000 and 120,000) and one
payment of 300,000; the three entries letter together.
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_engine.exceptions import NotFoundError, UnbalancedEntriesError, ValidationError
from budget_engine.schemas.accounting import EntryLineInput, LetteringCommand, TransactionCreate
from budget_engine.services import entry_service, reconciliation_service


def _post(db, debit_account, credit_account, amount, day=15):
    return entry_service.post_transaction(
        db,
        TransactionCreate(
            period_code="2025",
            entry_date=date(2025, 3, day),
            journal_code="OD",
            label=f"{debit_account}/{credit_account}",
            lines=[
                EntryLineInput(account_number=debit_account, debit=Decimal(amount)),
                EntryLineInput(account_number=credit_account, credit=Decimal(amount)),
            ],
        ),
    )


def _entry_on(transaction, account_number):
    return next(e.id for e in transaction.entries if e.account_number == account_number)


@pytest.fixture
def supplier_entries(db, period):
    """Return (payment debit, invoice credit 180k, invoice credit 120k) ids on 401."""
    invoice_a = _post(db, "604", "401", "180000", day=1)
    invoice_b = _post(db, "604", "401", "120000", day=2)
    payment = _post(db, "401", "521", "300000", day=20)
    return _entry_on(payment, "401"), _entry_on(invoice_a, "401"), _entry_on(invoice_b, "401")


class TestLetterTokens:
    @pytest.mark.parametrize(
        ("index", "token"),
        [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_letter_token_sequence(self, index, token):
        assert reconciliation_service.letter_token(index) == token


class TestLetterEntries:
    """letter_entries() tests"""

    def test_three_entries_balance_and_get_letter_a(self, db, supplier_entries):
        group = reconciliation_service.letter_entries(
            db, LetteringCommand(account_number="401", entry_ids=list(supplier_entries))
        )

        assert group.letter == "A"
        assert group.total_debit == group.total_credit == Decimal("300000")
        assert group.entry_count == 3
        assert sorted(group.entry_ids) == sorted(supplier_entries)
        lettered = entry_service.list_entries(db, account_number="401", lettered=True)
        assert {e.reconciliation_letter for e in lettered} == {"A"}

    def test_unbalanced_selection_letters_nothing(self, db, supplier_entries):
        payment, invoice_a, _ = supplier_entries

        with pytest.raises(UnbalancedEntriesError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="401", entry_ids=[payment, invoice_a])
            )
        assert entry_service.list_entries(db, account_number="401", lettered=True) == []

    def test_single_entry_is_refused(self, db, supplier_entries):
        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="401", entry_ids=[supplier_entries[0]])
            )

    def test_duplicate_ids_are_refused(self, db, supplier_entries):
        payment = supplier_entries[0]

        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="401", entry_ids=[payment, payment])
            )

    def test_entry_of_another_account_is_refused(self, db, period):
        transaction = _post(db, "411", "706", "100")
        other = _post(db, "706", "411", "100")

        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db,
                LetteringCommand(
                    account_number="411",
                    entry_ids=[_entry_on(transaction, "411"), _entry_on(other, "706")],
                ),
            )

    def test_non_lettrable_account_is_refused(self, db, supplier_entries):
        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="604", entry_ids=list(supplier_entries))
            )

    def test_unknown_entry(self, db, supplier_entries):
        with pytest.raises(NotFoundError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="401", entry_ids=[supplier_entries[0], 9999])
            )

    def test_already_lettered_entry_is_refused(self, db, supplier_entries):
        reconciliation_service.letter_entries(
            db, LetteringCommand(account_number="401", entry_ids=list(supplier_entries))
        )

        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db, LetteringCommand(account_number="401", entry_ids=list(supplier_entries))
            )

    @pytest.mark.parametrize("letter", ["a", "A1", ""])
    def test_invalid_letter(self, db, supplier_entries, letter):
        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db,
                LetteringCommand(account_number="401", entry_ids=list(supplier_entries), letter=letter),
            )


class TestLetterAllocation:
    """Deterministic next-free allocation and dissolution"""

    def test_letters_follow_the_sequence_and_wrap_to_aa(self, db, period):
        letters = []
        for index in range(27):
            invoice = _post(db, "604", "401", str(100 + index))
            payment = _post(db, "401", "521", str(100 + index))
            group = reconciliation_service.letter_entries(
                db,
                LetteringCommand(
                    account_number="401",
                    entry_ids=[_entry_on(invoice, "401"), _entry_on(payment, "401")],
                ),
            )
            letters.append(group.letter)

        assert letters[0] == "A"
        assert letters[25] == "Z"
        assert letters[26] == "AA"
        assert len(set(letters)) == 27

    def test_imposed_letter_already_in_use(self, db, supplier_entries):
        reconciliation_service.letter_entries(
            db, LetteringCommand(account_number="401", entry_ids=list(supplier_entries), letter="K")
        )
        invoice = _post(db, "604", "401", "50")
        payment = _post(db, "401", "521", "50")

        with pytest.raises(ValidationError):
            reconciliation_service.letter_entries(
                db,
                LetteringCommand(
                    account_number="401",
                    entry_ids=[_entry_on(invoice, "401"), _entry_on(payment, "401")],
                    letter="K",
                ),
            )

    def test_dissolve_releases_entries_and_letter(self, db, supplier_entries):
        group = reconciliation_service.letter_entries(
            db, LetteringCommand(account_number="401", entry_ids=list(supplier_entries))
        )

        dissolved = reconciliation_service.dissolve_group(db, group.id)

        assert dissolved.active is False
        assert entry_service.list_entries(db, account_number="401", lettered=True) == []
        assert reconciliation_service.next_free_letter(db, "401") == "A"
        assert reconciliation_service.list_groups(db, "401") == []
        with pytest.raises(ValidationError):
            reconciliation_service.dissolve_group(db, group.id)

    def test_suggest_matches_pairs_equal_amounts(self, db, period):
        invoice = _post(db, "604", "401", "750")
        payment = _post(db, "401", "521", "750")
        _post(db, "604", "401", "10")

        suggestions = reconciliation_service.suggest_matches(db, "401")

        assert len(suggestions) == 1
        assert suggestions[0].debit_entry_id == _entry_on(payment, "401")
        assert suggestions[0].credit_entry_id == _entry_on(invoice, "401")
        assert suggestions[0].amount == Decimal("750")
