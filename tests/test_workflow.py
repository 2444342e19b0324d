"""Generic phase workflow tests, run on plain objects without a database."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from budget_engine.exceptions import PhaseOrderError, ValidationError
from budget_engine.services.workflow import EXPENDITURE_WORKFLOW, REVENUE_WORKFLOW
from budget_engine.utils.constants import ExpenditurePhase, PaymentMethod, RevenuePhase


def _commitment(**overrides):
    values = dict(
        reference="ENG-1",
        phase=ExpenditurePhase.CREATED,
        requested_amount=Decimal("1000"),
        engaged_amount=Decimal("0"),
        liquidated_amount=Decimal("0"),
        authorized_amount=Decimal("0"),
        paid_amount=Decimal("0"),
        engagement_document=None,
        liquidation_document=None,
        authorization_document=None,
        payment_document=None,
        payment_method=None,
        payment_reference=None,
        engaged_at=None,
        liquidated_at=None,
        authorized_at=None,
        paid_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _claim(**overrides):
    values = dict(
        reference="REC-1",
        phase=RevenuePhase.RECOGNIZED,
        recognized_amount=Decimal("500"),
        liquidated_amount=Decimal("0"),
        collected_amount=Decimal("0"),
        liquidation_document=None,
        payment_method=None,
        payment_reference=None,
        liquidated_at=None,
        collected_at=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestExpenditureWorkflow:
    def test_phases_in_order(self):
        assert EXPENDITURE_WORKFLOW.phases == [
            ExpenditurePhase.CREATED,
            ExpenditurePhase.ENGAGED,
            ExpenditurePhase.LIQUIDATED,
            ExpenditurePhase.AUTHORIZED,
            ExpenditurePhase.PAID,
        ]
        assert EXPENDITURE_WORKFLOW.terminal == ExpenditurePhase.PAID

    def test_skipping_a_phase_is_rejected(self):
        commitment = _commitment()

        with pytest.raises(PhaseOrderError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.LIQUIDATED, Decimal("10"), "F-1")

    def test_no_transition_after_paid(self):
        commitment = _commitment(phase=ExpenditurePhase.PAID)

        with pytest.raises(PhaseOrderError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.PAID, Decimal("1"), "P-1")

    def test_amount_above_previous_phase(self):
        commitment = _commitment(phase=ExpenditurePhase.ENGAGED, engaged_amount=Decimal("100"))

        with pytest.raises(ValidationError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.LIQUIDATED, Decimal("101"), "F-1")

    def test_document_required(self):
        commitment = _commitment()

        with pytest.raises(ValidationError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.ENGAGED, Decimal("10"), "  ")

    def test_authorization_requires_payment_method(self):
        commitment = _commitment(
            phase=ExpenditurePhase.LIQUIDATED,
            engaged_amount=Decimal("100"),
            liquidated_amount=Decimal("100"),
        )

        with pytest.raises(ValidationError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.AUTHORIZED, Decimal("100"), "OP-1")

    def test_failed_check_leaves_instance_untouched(self):
        commitment = _commitment()

        with pytest.raises(ValidationError):
            EXPENDITURE_WORKFLOW.check(commitment, ExpenditurePhase.ENGAGED, Decimal("2000"), "BE-1")

        assert commitment.phase == ExpenditurePhase.CREATED
        assert commitment.engaged_amount == Decimal("0")

    def test_apply_records_amount_document_and_timestamp(self):
        commitment = _commitment()

        transition = EXPENDITURE_WORKFLOW.check(
            commitment, ExpenditurePhase.ENGAGED, Decimal("400"), "BE-1"
        )
        EXPENDITURE_WORKFLOW.apply(commitment, transition)

        assert commitment.phase == ExpenditurePhase.ENGAGED
        assert commitment.engaged_amount == Decimal("400")
        assert commitment.engagement_document == "BE-1"
        assert commitment.engaged_at is not None


class TestRevenueWorkflow:
    def test_collection_requires_method_and_reference(self):
        claim = _claim(phase=RevenuePhase.LIQUIDATED, liquidated_amount=Decimal("500"))

        with pytest.raises(ValidationError):
            REVENUE_WORKFLOW.check(
                claim, RevenuePhase.COLLECTED, Decimal("500"), None, PaymentMethod.TRANSFER, None
            )
        with pytest.raises(ValidationError):
            REVENUE_WORKFLOW.check(claim, RevenuePhase.COLLECTED, Decimal("500"), None, None, "VIR-1")

    def test_collect_before_liquidation_is_rejected(self):
        with pytest.raises(PhaseOrderError):
            REVENUE_WORKFLOW.check(
                _claim(), RevenuePhase.COLLECTED, Decimal("10"), None, PaymentMethod.CASH, "R-1"
            )

    def test_full_chain(self):
        claim = _claim()

        step = REVENUE_WORKFLOW.check(claim, RevenuePhase.LIQUIDATED, Decimal("450"), "TR-1")
        REVENUE_WORKFLOW.apply(claim, step)
        step = REVENUE_WORKFLOW.check(
            claim, RevenuePhase.COLLECTED, Decimal("450"), None, PaymentMethod.TRANSFER, "VIR-9"
        )
        REVENUE_WORKFLOW.apply(claim, step)

        assert claim.phase == RevenuePhase.COLLECTED
        assert claim.payment_reference == "VIR-9"
        assert REVENUE_WORKFLOW.next_step(claim.phase) is None
