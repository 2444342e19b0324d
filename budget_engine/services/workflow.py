"""
Generic phase workflow shared by expenditures and revenues.

A :class:`PhaseWorkflow` is a linear state machine described by a list of
:class:`PhaseStep`.  Both the expenditure chain (engagement → liquidation →
authorization → payment) and the revenue chain (recognition → liquidation →
collection) are instances of it; only the step table differs.

Design notes
------------
- ``check`` evaluates every guard before anything is written, so a failed
  transition leaves the commitment or claim exactly as it was.
- The guards are, in order: the target phase is the single next phase
  (``PhaseOrderError``), the amount is positive and at most the amount of
  the previous phase (``ValidationError``), and the step's required
  document and payment fields are present (``ValidationError``).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from budget_engine.exceptions import PhaseOrderError, ValidationError
from budget_engine.utils.constants import ExpenditurePhase, RevenuePhase
from budget_engine.utils.money import require_positive, to_money

logger = logging.getLogger(__name__)


class WorkflowKind(str, Enum):
    EXPENDITURE = "EXPENDITURE"
    REVENUE = "REVENUE"


@dataclass(frozen=True)
class PhaseStep:
    """One transition of a workflow.

    Attributes:
        phase: Phase reached by the transition.
        amount_attr: Attribute receiving the phase amount.
        timestamp_attr: Attribute receiving the transition time.
        document_attr: Attribute receiving the supporting document, if any.
        document_required: Reject the transition without a document.
        payment_method_required: Reject the transition without a payment method.
        payment_reference_required: Reject the transition without a payment reference.
    """

    phase: Enum
    amount_attr: str
    timestamp_attr: str
    document_attr: str | None = None
    document_required: bool = False
    payment_method_required: bool = False
    payment_reference_required: bool = False


@dataclass(frozen=True)
class Transition:
    """Validated inputs of a transition, ready to be applied."""

    step: PhaseStep
    amount: Decimal
    document_ref: str | None
    payment_method: Any = None
    payment_reference: str | None = None


class PhaseWorkflow:
    """Linear phase machine parameterized by its step table."""

    def __init__(
        self,
        kind: WorkflowKind,
        initial: Enum,
        initial_amount_attr: str,
        steps: Sequence[PhaseStep],
    ) -> None:
        self.kind = kind
        self.initial = initial
        self._initial_amount_attr = initial_amount_attr
        self._steps = list(steps)
        self._order = [initial] + [step.phase for step in self._steps]

    @property
    def phases(self) -> list[Enum]:
        return list(self._order)

    @property
    def terminal(self) -> Enum:
        return self._order[-1]

    def next_step(self, current: Enum) -> PhaseStep | None:
        index = self._order.index(current)
        if index >= len(self._steps):
            return None
        return self._steps[index]

    def _previous_amount_attr(self, step: PhaseStep) -> str:
        index = self._steps.index(step)
        if index == 0:
            return self._initial_amount_attr
        return self._steps[index - 1].amount_attr

    def check(
        self,
        instance: Any,
        target: Enum,
        amount: Any,
        document_ref: str | None = None,
        payment_method: Any = None,
        payment_reference: str | None = None,
    ) -> Transition:
        """Validate moving *instance* to *target* without touching it.

        Raises:
            PhaseOrderError: *target* is not the phase right after the current one.
            ValidationError: Bad amount or a missing required field.
        """
        current = instance.phase
        step = self.next_step(current)
        if step is None or step.phase != target:
            raise PhaseOrderError(
                f"Transition {current.value} → {target.value} interdite "
                f"({self.kind.value.lower()} {instance.reference})."
            )

        value = require_positive(amount, "amount")
        ceiling = to_money(getattr(instance, self._previous_amount_attr(step)))
        if value > ceiling:
            raise ValidationError(
                f"Le montant {target.value.lower()} ({value}) dépasse le montant "
                f"de la phase {current.value.lower()} ({ceiling})."
            )

        document = (document_ref or "").strip() or None
        if step.document_required and document is None:
            raise ValidationError(
                f"Une pièce justificative est requise pour la phase {target.value.lower()}."
            )
        if step.payment_method_required and payment_method is None:
            raise ValidationError(
                f"Le mode de paiement est requis pour la phase {target.value.lower()}."
            )
        reference = (payment_reference or "").strip() or None
        if step.payment_reference_required and reference is None:
            raise ValidationError(
                f"La référence de paiement est requise pour la phase {target.value.lower()}."
            )
        return Transition(step, value, document, payment_method, reference)

    def apply(self, instance: Any, transition: Transition, now: datetime | None = None) -> None:
        """Write a transition returned by :meth:`check` onto *instance*."""
        step = transition.step
        setattr(instance, step.amount_attr, transition.amount)
        setattr(instance, step.timestamp_attr, now or datetime.now())
        if step.document_attr is not None and transition.document_ref is not None:
            setattr(instance, step.document_attr, transition.document_ref)
        if transition.payment_method is not None:
            instance.payment_method = transition.payment_method
        if transition.payment_reference is not None:
            instance.payment_reference = transition.payment_reference
        previous = instance.phase
        instance.phase = step.phase
        logger.info(
            "%s %s: %s → %s amount=%s",
            self.kind.value, instance.reference, previous.value, step.phase.value, transition.amount,
        )


EXPENDITURE_WORKFLOW = PhaseWorkflow(
    WorkflowKind.EXPENDITURE,
    initial=ExpenditurePhase.CREATED,
    initial_amount_attr="requested_amount",
    steps=[
        PhaseStep(
            ExpenditurePhase.ENGAGED, "engaged_amount", "engaged_at",
            document_attr="engagement_document", document_required=True,
        ),
        PhaseStep(
            ExpenditurePhase.LIQUIDATED, "liquidated_amount", "liquidated_at",
            document_attr="liquidation_document", document_required=True,
        ),
        PhaseStep(
            ExpenditurePhase.AUTHORIZED, "authorized_amount", "authorized_at",
            document_attr="authorization_document", document_required=True,
            payment_method_required=True,
        ),
        PhaseStep(
            ExpenditurePhase.PAID, "paid_amount", "paid_at",
            document_attr="payment_document", document_required=True,
            payment_method_required=True,
        ),
    ],
)

REVENUE_WORKFLOW = PhaseWorkflow(
    WorkflowKind.REVENUE,
    initial=RevenuePhase.RECOGNIZED,
    initial_amount_attr="recognized_amount",
    steps=[
        PhaseStep(
            RevenuePhase.LIQUIDATED, "liquidated_amount", "liquidated_at",
            document_attr="liquidation_document", document_required=True,
        ),
        PhaseStep(
            RevenuePhase.COLLECTED, "collected_amount", "collected_at",
            payment_method_required=True, payment_reference_required=True,
        ),
    ],
)
