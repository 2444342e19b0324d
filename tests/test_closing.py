"""
Period closing tests.

The four steps are gated in order; the definitive closing produces the
result entries (journal CL) and the opening entries of the next period
(journal AN), after which the period refuses every mutation.
"""

from datetime import date
from decimal import Decimal

import pytest

from budget_engine.exceptions import (
    ClosingInProgressError,
    ClosingPreconditionError,
    PeriodClosedError,
    ValidationError,
)
from budget_engine.schemas.account import AccountCreate
from budget_engine.schemas.accounting import EntryLineInput, TransactionCreate
from budget_engine.schemas.period import (
    AdjustmentFlags,
    ConfirmClosingCommand,
    ControlFlags,
    StartClosingCommand,
)
from budget_engine.services import account_service, closing_service, entry_service, period_service
from budget_engine.utils.constants import (
    JOURNAL_CLOSING,
    JOURNAL_OPENING,
    AccountNature,
    ClosingType,
    PeriodStatus,
)

ALL_CONTROLS = ControlFlags(
    entries_balanced=True,
    trial_balance_coherent=True,
    reconciliation_complete=True,
    bank_reconciliation_complete=True,
)
ALL_ADJUSTMENTS = AdjustmentFlags(
    depreciation=True, provisions=True, accrued_expenses=True, deferred_revenue=True
)
CONFIRM = ConfirmClosingCommand(confirmation=True, closed_by="Chef comptable")


def _post(db, debit_account, credit_account, amount, period_code="2025", day=date(2025, 6, 30)):
    return entry_service.post_transaction(
        db,
        TransactionCreate(
            period_code=period_code,
            entry_date=day,
            journal_code="OD",
            label="Opération",
            lines=[
                EntryLineInput(account_number=debit_account, debit=Decimal(amount)),
                EntryLineInput(account_number=credit_account, credit=Decimal(amount)),
            ],
        ),
    )


def _run_steps_one_and_two(db):
    closing_service.start_closing(db, "2025", StartClosingCommand(closing_type=ClosingType.ANNUAL))
    closing_service.validate_controls(db, "2025", ALL_CONTROLS)
    closing_service.validate_adjustments(db, "2025", ALL_ADJUSTMENTS)


class TestStepGuards:
    """Steps must run in order, each with all its flags"""

    def test_confirm_without_controls_keeps_period_open(self, db, period):
        closing_service.start_closing(db, "2025", StartClosingCommand())

        with pytest.raises(ClosingPreconditionError):
            closing_service.validate_controls(
                db, "2025", ControlFlags(entries_balanced=True, trial_balance_coherent=True)
            )
        with pytest.raises(ClosingPreconditionError):
            closing_service.confirm_closing(db, "2025", CONFIRM)

        snapshot = period_service.get_period(db, "2025")
        assert snapshot.status == PeriodStatus.OPEN
        assert snapshot.controls_validated is False
        assert snapshot.definitively_closed is False

    def test_steps_require_an_active_closing(self, db, period):
        with pytest.raises(ClosingPreconditionError):
            closing_service.validate_controls(db, "2025", ALL_CONTROLS)

    def test_adjustments_require_controls(self, db, period):
        closing_service.start_closing(db, "2025", StartClosingCommand())

        with pytest.raises(ClosingPreconditionError):
            closing_service.validate_adjustments(db, "2025", ALL_ADJUSTMENTS)

    def test_second_start_is_refused(self, db, period):
        closing_service.start_closing(db, "2025", StartClosingCommand())

        with pytest.raises(ClosingInProgressError):
            closing_service.start_closing(db, "2025", StartClosingCommand())

    @pytest.mark.parametrize("confirmation", [None, False])
    def test_confirmation_must_be_explicit(self, db, period, confirmation):
        _run_steps_one_and_two(db)

        with pytest.raises(ValidationError):
            closing_service.confirm_closing(
                db, "2025", ConfirmClosingCommand(confirmation=confirmation)
            )
        assert period_service.get_period(db, "2025").status == PeriodStatus.OPEN

    def test_operations_continue_during_steps_one_and_two(self, db, period):
        _run_steps_one_and_two(db)

        _post(db, "604", "401", "10")

        assert len(entry_service.list_entries(db, period_code="2025")) == 2


class TestCarryForward:
    """Definitive closing and step 4"""

    def test_profit_is_carried_to_successor(self, db, period):
        _post(db, "521", "706", "1000")
        _post(db, "604", "521", "400")
        _run_steps_one_and_two(db)

        closed = closing_service.confirm_closing(db, "2025", CONFIRM)

        assert closed.status == PeriodStatus.CLOSED
        assert closed.definitively_closed is True
        assert closed.carried_forward is True
        assert closed.closing_active is False
        assert closed.result_amount == Decimal("600")
        assert closed.closed_by == "Chef comptable"

        period_id = period_service.load_period(db, "2025").id
        assert entry_service.account_balance(db, "604", period_id=period_id) == Decimal("0")
        assert entry_service.account_balance(db, "706", period_id=period_id) == Decimal("0")
        assert entry_service.account_balance(db, "131", period_id=period_id) == Decimal("-600")
        closing_entries = [
            e for e in entry_service.list_entries(db, period_code="2025")
            if e.journal_code == JOURNAL_CLOSING
        ]
        assert {e.entry_date for e in closing_entries} == {date(2025, 12, 31)}

        successor = period_service.get_period(db, "2026")
        assert closed.successor_id == successor.id
        opening = entry_service.list_entries(db, transaction_ref=closed.carry_forward_ref)
        assert {e.journal_code for e in opening} == {JOURNAL_OPENING}
        assert {e.entry_date for e in opening} == {date(2026, 1, 1)}
        assert entry_service.account_balance(db, "521", period_id=successor.id) == Decimal("600")
        assert entry_service.account_balance(db, "131", period_id=successor.id) == Decimal("-600")

    def test_loss_goes_to_account_139(self, db, period):
        _post(db, "604", "521", "250")
        _run_steps_one_and_two(db)

        closed = closing_service.confirm_closing(db, "2025", CONFIRM)

        period_id = period_service.load_period(db, "2025").id
        assert closed.result_amount == Decimal("-250")
        assert entry_service.account_balance(db, "139", period_id=period_id) == Decimal("250")

    def test_empty_period_closes_without_entries(self, db, period):
        _run_steps_one_and_two(db)

        closed = closing_service.confirm_closing(db, "2025", CONFIRM)

        assert closed.status == PeriodStatus.CLOSED
        assert closed.result_amount == Decimal("0")
        assert closed.carry_forward_ref is None

    def test_closed_period_refuses_everything(self, db, period):
        _run_steps_one_and_two(db)
        closing_service.confirm_closing(db, "2025", CONFIRM)

        with pytest.raises(PeriodClosedError):
            _post(db, "604", "401", "10")
        with pytest.raises(PeriodClosedError):
            closing_service.start_closing(db, "2025", StartClosingCommand())
        with pytest.raises(PeriodClosedError):
            closing_service.confirm_closing(db, "2025", CONFIRM)

    def test_interrupted_closing_blocks_writes_and_resumes(self, db, period):
        _post(db, "521", "706", "900")
        _run_steps_one_and_two(db)
        row = period_service.load_period(db, "2025")
        row.status = PeriodStatus.CLOSING
        row.definitively_closed = True
        db.commit()

        with pytest.raises(ClosingInProgressError):
            _post(db, "604", "401", "10")

        closed = closing_service.confirm_closing(db, "2025", CONFIRM)

        assert closed.status == PeriodStatus.CLOSED
        assert closed.result_amount == Decimal("900")


class TestEvaluateControls:
    def test_suggested_flags_from_ledger(self, db, period):
        _post(db, "521", "706", "1000")

        evaluation = closing_service.evaluate_controls(db, "2025")

        assert evaluation.flags.entries_balanced is True
        assert evaluation.flags.trial_balance_coherent is True
        # 521 is lettrable and unlettered, and has no bank statement
        assert evaluation.flags.reconciliation_complete is False
        assert evaluation.flags.bank_reconciliation_complete is False
        assert evaluation.total_debit == evaluation.total_credit == Decimal("1000")
        assert evaluation.unlettered_entries == 1


class TestUnsettledClasses:
    """Class 8/9 balances and unpostable carry-forwards stop the closing early"""

    @pytest.fixture
    def hao_account(self, db, period):
        account_service.register_account(
            db,
            AccountCreate(
                number="821",
                label="Produits des cessions d'immobilisations",
                account_class=8,
                nature=AccountNature.REVENUE,
            ),
        )

    def test_evaluation_reports_class_8_balance(self, db, hao_account):
        _post(db, "521", "821", "1000")

        evaluation = closing_service.evaluate_controls(db, "2025")

        assert evaluation.flags.trial_balance_coherent is False
        assert evaluation.unsettled_accounts == ["821"]

    def test_step_one_refuses_class_8_balance(self, db, hao_account):
        _post(db, "521", "821", "1000")
        closing_service.start_closing(db, "2025", StartClosingCommand())

        with pytest.raises(ClosingPreconditionError):
            closing_service.validate_controls(db, "2025", ALL_CONTROLS)

        assert period_service.get_period(db, "2025").controls_validated is False

    def test_balance_posted_after_step_two_keeps_period_open(self, db, hao_account):
        _run_steps_one_and_two(db)
        _post(db, "521", "821", "1000")

        with pytest.raises(ClosingPreconditionError):
            closing_service.confirm_closing(db, "2025", CONFIRM)

        snapshot = period_service.get_period(db, "2025")
        assert snapshot.status == PeriodStatus.OPEN
        assert snapshot.definitively_closed is False
        assert [e for e in entry_service.list_entries(db, period_code="2025")
                if e.journal_code == JOURNAL_CLOSING] == []

        _post(db, "821", "706", "1000")
        closed = closing_service.confirm_closing(db, "2025", CONFIRM)

        assert closed.status == PeriodStatus.CLOSED
        assert closed.result_amount == Decimal("1000")
        successor = period_service.get_period(db, "2026")
        assert entry_service.account_balance(db, "521", period_id=successor.id) == Decimal("1000")
        assert entry_service.account_balance(db, "131", period_id=successor.id) == Decimal("-1000")

    def test_archived_account_with_balance_keeps_period_open(self, db, period):
        _post(db, "521", "706", "500")
        _run_steps_one_and_two(db)
        account_service.deactivate_account(db, "521")

        with pytest.raises(ClosingPreconditionError):
            closing_service.confirm_closing(db, "2025", CONFIRM)

        assert period_service.get_period(db, "2025").status == PeriodStatus.OPEN
        _post(db, "604", "401", "10")
