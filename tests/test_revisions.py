"""Revision engine tests: lifecycle and the commitments guard."""

from decimal import Decimal

import pytest

from budget_engine.exceptions import (
    DuplicateCodeError,
    PeriodClosedError,
    PhaseOrderError,
    RevisionViolatesCommitmentsError,
    ValidationError,
)
from budget_engine.schemas.budget import RevisionCreate, RevisionLineAdd
from budget_engine.services import budget_service, revision_service
from budget_engine.utils.constants import RevisionStatus, RevisionType


def _create(db, reference="REV-1", revision_type=RevisionType.INCREASE, amount="1000", lines=("L1",)):
    return revision_service.create_revision(
        db,
        RevisionCreate(
            reference=reference,
            revision_type=revision_type,
            amount=Decimal(amount),
            justification="Loi de finances rectificative",
            line_codes=list(lines),
        ),
    )


@pytest.fixture
def two_lines(db, make_line):
    make_line("L1", "10000")
    make_line("L2", "5000")
    budget_service.engage(db, "L1", Decimal("8000"))


class TestLifecycle:
    def test_increase_applied_on_approval(self, db, two_lines):
        _create(db)
        assert budget_service.get_line(db, "L1").budget_revised == Decimal("10000")

        revision_service.submit_revision(db, "REV-1")
        approved = revision_service.approve_revision(db, "REV-1")

        assert approved.status == RevisionStatus.APPROVED
        line = budget_service.get_line(db, "L1")
        assert line.budget_revised == Decimal("11000")
        assert line.available == Decimal("3000")
        assert line.budget_initial == Decimal("10000")

    def test_approve_requires_submission(self, db, two_lines):
        _create(db)

        with pytest.raises(PhaseOrderError):
            revision_service.approve_revision(db, "REV-1")

    def test_final_revision_rejects_commands(self, db, two_lines):
        _create(db)
        revision_service.reject_revision(db, "REV-1")

        with pytest.raises(PhaseOrderError):
            revision_service.submit_revision(db, "REV-1")
        with pytest.raises(PhaseOrderError):
            revision_service.add_revision_line(db, "REV-1", RevisionLineAdd(line_code="L2"))

    def test_submit_without_lines(self, db, two_lines):
        _create(db, lines=())

        with pytest.raises(ValidationError):
            revision_service.submit_revision(db, "REV-1")

    def test_add_line_then_submit(self, db, two_lines):
        _create(db, lines=())
        snapshot = revision_service.add_revision_line(db, "REV-1", RevisionLineAdd(line_code="L2"))

        assert snapshot.line_codes == ["L2"]
        with pytest.raises(ValidationError):
            revision_service.add_revision_line(db, "REV-1", RevisionLineAdd(line_code="L2"))

    def test_duplicate_reference(self, db, two_lines):
        _create(db)

        with pytest.raises(DuplicateCodeError):
            _create(db)

    def test_justification_required(self, db, two_lines):
        with pytest.raises(ValidationError):
            revision_service.create_revision(
                db,
                RevisionCreate(
                    reference="REV-X", revision_type=RevisionType.INCREASE,
                    amount=Decimal("1"), line_codes=["L1"],
                ),
            )


class TestClosedPeriod:
    """Revisions on lines of a closed period are frozen"""

    def test_every_command_refuses_a_closed_period(self, db, two_lines, close_period):
        _create(db)
        close_period()

        with pytest.raises(PeriodClosedError):
            revision_service.add_revision_line(db, "REV-1", RevisionLineAdd(line_code="L2"))
        with pytest.raises(PeriodClosedError):
            revision_service.submit_revision(db, "REV-1")
        with pytest.raises(PeriodClosedError):
            revision_service.reject_revision(db, "REV-1")
        with pytest.raises(PeriodClosedError):
            _create(db, reference="REV-2", lines=("L2",))

        revision = revision_service.get_revision(db, "REV-1")
        assert revision.status == RevisionStatus.DRAFT
        assert revision.line_codes == ["L1"]
        assert [r.reference for r in revision_service.list_revisions(db)] == ["REV-1"]

    def test_submitted_revision_cannot_be_approved(self, db, two_lines, close_period):
        _create(db)
        revision_service.submit_revision(db, "REV-1")
        close_period()

        with pytest.raises(PeriodClosedError):
            revision_service.approve_revision(db, "REV-1")

        assert budget_service.get_line(db, "L1").budget_revised == Decimal("10000")


class TestCommitmentsGuard:
    def test_decrease_below_engaged_is_refused(self, db, two_lines):
        """L1 has 8,000 engaged out of 10,000"""
        _create(db, revision_type=RevisionType.DECREASE, amount="2500")
        revision_service.submit_revision(db, "REV-1")

        with pytest.raises(RevisionViolatesCommitmentsError):
            revision_service.approve_revision(db, "REV-1")

        assert budget_service.get_line(db, "L1").budget_revised == Decimal("10000")
        assert revision_service.get_revision(db, "REV-1").status == RevisionStatus.SUBMITTED

    def test_decrease_down_to_engaged(self, db, two_lines):
        _create(db, revision_type=RevisionType.DECREASE, amount="2000")
        revision_service.submit_revision(db, "REV-1")
        revision_service.approve_revision(db, "REV-1")

        line = budget_service.get_line(db, "L1")
        assert line.budget_revised == Decimal("8000")
        assert line.available == Decimal("0")

    def test_reallocation_moves_from_first_to_second(self, db, two_lines):
        _create(db, revision_type=RevisionType.REALLOCATION, amount="1500", lines=("L1", "L2"))
        revision_service.submit_revision(db, "REV-1")
        revision_service.approve_revision(db, "REV-1")

        assert budget_service.get_line(db, "L1").budget_revised == Decimal("8500")
        assert budget_service.get_line(db, "L2").budget_revised == Decimal("6500")

    def test_reallocation_needs_two_lines(self, db, two_lines):
        _create(db, revision_type=RevisionType.REALLOCATION, lines=("L1",))

        with pytest.raises(ValidationError):
            revision_service.submit_revision(db, "REV-1")

    def test_failed_multi_line_decrease_changes_nothing(self, db, two_lines):
        """L2 could absorb the decrease but L1 cannot: neither line moves"""
        _create(db, revision_type=RevisionType.DECREASE, amount="2500", lines=("L2", "L1"))
        revision_service.submit_revision(db, "REV-1")

        with pytest.raises(RevisionViolatesCommitmentsError):
            revision_service.approve_revision(db, "REV-1")

        assert budget_service.get_line(db, "L2").budget_revised == Decimal("5000")
