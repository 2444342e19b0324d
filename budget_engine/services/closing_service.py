"""
Period closing engine.

Four ordered steps, each gated:

1. Controls: entry balance, trial-balance coherence, lettrage
   completeness, bank-reconciliation completeness.  All four must be true.
2. Adjusting entries: depreciation, provisions, accrued expenses,
   deferred revenue.  Requires step 1; all four must be true.
3. Definitive closing: requires an explicit ``confirmation=True`` and
   steps 1–2.  The step-4 entries are computed and checked first; if any
   could not be posted the period stays OPEN.  Otherwise the period
   becomes CLOSING under the exclusive period lock, which is committed
   before step 4 starts.  Irreversible.
4. Carry-forward, automatic: result entries zero classes 6–7 into the
   result account (131 profit / 139 loss), result = Σclass7 − Σclass6;
   opening entries (journal AN) carry the class 1–5 balances into the
   successor period.  The period then becomes CLOSED.  Classes 8 and 9 are
   neither settled nor carried: their accounts must be at zero, which step 1
   also enforces.

Design notes
------------
- The period stays OPEN during steps 1–2; ordinary operations keep
  working until the definitive closing.
- A second ``start_closing`` on a period with an active closing raises
  ``ClosingInProgressError``; any start on a CLOSED period raises
  ``PeriodClosedError``.
- Calling ``confirm_closing`` again on a CLOSING period (e.g. after a
  crash during step 4) resumes the carry-forward; there is no way back to
  OPEN.
- Postings of step 4 go through ``entry_service.post_lines`` directly: the
  exclusive period lock is already held.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from budget_engine.database import atomic
from budget_engine.exceptions import (
    ClosingInProgressError,
    ClosingPreconditionError,
    PeriodClosedError,
    ValidationError,
)
from budget_engine.locks import registry
from budget_engine.models.account import Account
from budget_engine.models.accounting_entry import AccountingEntry
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.models.bank_reconciliation import BankReconciliation
from budget_engine.schemas.period import (
    AdjustmentFlags,
    ConfirmClosingCommand,
    ControlEvaluation,
    ControlFlags,
    PeriodSnapshot,
    StartClosingCommand,
)
from budget_engine.services import account_service, entry_service, period_service
from budget_engine.utils.constants import (
    BALANCE_SHEET_CLASSES,
    EXPENSE_CLASS,
    JOURNAL_CLOSING,
    JOURNAL_OPENING,
    RESULT_LOSS_ACCOUNT,
    RESULT_PROFIT_ACCOUNT,
    REVENUE_CLASS,
    UNSETTLED_CLASSES,
    AccountNature,
    PeriodStatus,
)
from budget_engine.utils.money import ZERO, is_balanced, to_money

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@dataclass
class _CarryForwardPlan:
    """Step 4 postings, computed and checked before anything is written."""

    successor: AccountingPeriod
    result: Decimal
    result_lines: list[entry_service.Line] = field(default_factory=list)
    opening_lines: list[entry_service.Line] = field(default_factory=list)


def _require_active_closing(period: AccountingPeriod) -> None:
    period_service.assert_period_writable(period)
    if not period.closing_active:
        raise ClosingPreconditionError(
            f"Aucune clôture n'est en cours pour l'exercice {period.code}."
        )


def _balances_by_account(db: Session, period_id: int) -> list[tuple[str, int, Decimal]]:
    """Return ``(account_number, account_class, debit − credit)`` for every account used."""
    rows = (
        db.query(
            AccountingEntry.account_number,
            Account.account_class,
            func.coalesce(func.sum(AccountingEntry.debit), 0),
            func.coalesce(func.sum(AccountingEntry.credit), 0),
        )
        .join(Account, Account.number == AccountingEntry.account_number)
        .filter(AccountingEntry.period_id == period_id)
        .group_by(AccountingEntry.account_number, Account.account_class)
        .order_by(AccountingEntry.account_number)
        .all()
    )
    return [(number, cls, to_money(debit) - to_money(credit)) for number, cls, debit, credit in rows]


def _unsettled_accounts(balances: list[tuple[str, int, Decimal]]) -> list[str]:
    """Class 8/9 accounts whose balance is not zero."""
    return [
        number for number, cls, net in balances
        if cls in UNSETTLED_CLASSES and not is_balanced(net, ZERO)
    ]


def _check_postable(db: Session, lines: list[entry_service.Line], what: str) -> None:
    if not lines:
        return
    total_debit = sum((line.debit for line in lines), ZERO)
    total_credit = sum((line.credit for line in lines), ZERO)
    if len(lines) < 2 or not is_balanced(total_debit, total_credit):
        raise ClosingPreconditionError(
            f"{what}: écriture impossible (débit {total_debit}, crédit {total_credit})."
        )
    for line in lines:
        try:
            account_service.require_account(db, line.account_number)
        except ValidationError as exc:
            raise ClosingPreconditionError(f"{what}: {exc.message}") from exc


def _plan_carry_forward(db: Session, period: AccountingPeriod) -> _CarryForwardPlan:
    """Compute the result and opening entries of *period* and check they can be posted.

    Raises:
        ClosingPreconditionError: A class 8/9 account is not settled, the
            successor is not open, or an entry would be rejected.
    """
    balances = _balances_by_account(db, period.id)
    unsettled = _unsettled_accounts(balances)
    if unsettled:
        raise ClosingPreconditionError(
            "Comptes des classes 8 et 9 non soldés: " + ", ".join(unsettled) + "."
        )

    successor = period_service.find_or_create_successor(db, period)
    if successor.status != PeriodStatus.OPEN:
        raise ClosingPreconditionError(
            f"L'exercice suivant {successor.code} n'est pas ouvert."
        )

    result_lines: list[entry_service.Line] = []
    carried: dict[str, Decimal] = {}
    total_expense = ZERO
    total_revenue = ZERO
    for number, cls, net in balances:
        if cls in BALANCE_SHEET_CLASSES:
            carried[number] = net
            continue
        if cls not in (EXPENSE_CLASS, REVENUE_CLASS) or net == 0:
            continue
        if cls == EXPENSE_CLASS:
            total_expense += net
        else:
            total_revenue -= net
        if net > 0:
            result_lines.append(entry_service.Line(number, credit=net))
        else:
            result_lines.append(entry_service.Line(number, debit=-net))

    result = total_revenue - total_expense
    result_account = None
    if result > 0:
        result_account = RESULT_PROFIT_ACCOUNT
        account_service.ensure_account(
            db, result_account, "Résultat net : bénéfice", AccountNature.LIABILITY
        )
        result_lines.append(entry_service.Line(result_account, credit=result))
    elif result < 0:
        result_account = RESULT_LOSS_ACCOUNT
        account_service.ensure_account(
            db, result_account, "Résultat net : perte", AccountNature.LIABILITY
        )
        result_lines.append(entry_service.Line(result_account, debit=-result))
    if result_account is not None:
        carried[result_account] = carried.get(result_account, ZERO) - result

    opening_lines: list[entry_service.Line] = []
    for number in sorted(carried):
        net = carried[number]
        if is_balanced(net, ZERO):
            continue
        if net > 0:
            opening_lines.append(entry_service.Line(number, debit=net, label=f"À nouveau {number}"))
        else:
            opening_lines.append(entry_service.Line(number, credit=-net, label=f"À nouveau {number}"))

    _check_postable(db, result_lines, f"Détermination du résultat {period.code}")
    _check_postable(db, opening_lines, f"Report à nouveau {period.code}")
    logger.info(
        "closing %s: expenses=%s revenues=%s result=%s",
        period.code, total_expense, total_revenue, result,
    )
    return _CarryForwardPlan(
        successor=successor,
        result=result,
        result_lines=result_lines,
        opening_lines=opening_lines,
    )


def _carry_forward(db: Session, period: AccountingPeriod) -> None:
    plan = _plan_carry_forward(db, period)
    if plan.result_lines:
        entry_service.post_lines(
            db, period, period.end_date, JOURNAL_CLOSING,
            f"Détermination du résultat {period.code}", plan.result_lines,
        )
    carry_forward_ref = None
    if plan.opening_lines:
        entries = entry_service.post_lines(
            db, plan.successor, plan.successor.start_date, JOURNAL_OPENING,
            f"Report à nouveau {period.code}", plan.opening_lines,
        )
        carry_forward_ref = entries[0].transaction_ref
    period.result_amount = plan.result
    period.carry_forward_ref = carry_forward_ref
    period.successor_id = plan.successor.id
    period.carried_forward = True
    period.status = PeriodStatus.CLOSED
    period.closing_active = False


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def start_closing(
    db: Session, period_code: str, cmd: StartClosingCommand, timeout: float | None = None
) -> PeriodSnapshot:
    """Open the single closing process of a period.

    Raises:
        PeriodClosedError: The period is already closed.
        ClosingInProgressError: A closing is already active.
    """
    with registry.period_exclusive(period_code, timeout), atomic(db):
        period = period_service.load_period(db, period_code, for_update=True)
        period_service.assert_period_writable(period)
        if period.closing_active:
            raise ClosingInProgressError(
                f"Une clôture est déjà en cours pour l'exercice {period_code}."
            )
        period.closing_active = True
        period.closing_type = cmd.closing_type
        period.closing_started_at = datetime.now()
    logger.info("start_closing: %s (%s)", period_code, cmd.closing_type.value)
    return PeriodSnapshot.model_validate(period)


def validate_controls(
    db: Session, period_code: str, flags: ControlFlags, timeout: float | None = None
) -> PeriodSnapshot:
    """Step 1.  Records the four control flags; all must be true.

    Also refuses the step while a class 8/9 account carries a balance.
    """
    with registry.period_shared(period_code, timeout), atomic(db):
        period = period_service.load_period(db, period_code, for_update=True)
        _require_active_closing(period)
        if not flags.all_true():
            raise ClosingPreconditionError(
                "Étape 1: les quatre contrôles doivent être validés avant de poursuivre."
            )
        unsettled = _unsettled_accounts(_balances_by_account(db, period.id))
        if unsettled:
            raise ClosingPreconditionError(
                "Étape 1: comptes des classes 8 et 9 non soldés: " + ", ".join(unsettled) + "."
            )
        period.ctl_entries_balanced = True
        period.ctl_trial_balance_coherent = True
        period.ctl_reconciliation_complete = True
        period.ctl_bank_reconciliation_complete = True
        period.controls_validated = True
    logger.info("validate_controls: %s step 1 complete", period_code)
    return PeriodSnapshot.model_validate(period)


def validate_adjustments(
    db: Session, period_code: str, flags: AdjustmentFlags, timeout: float | None = None
) -> PeriodSnapshot:
    """Step 2.  Requires step 1; the four adjusting-entry flags must be true."""
    with registry.period_shared(period_code, timeout), atomic(db):
        period = period_service.load_period(db, period_code, for_update=True)
        _require_active_closing(period)
        if not period.controls_validated:
            raise ClosingPreconditionError("Étape 2: les contrôles (étape 1) ne sont pas validés.")
        if not flags.all_true():
            raise ClosingPreconditionError(
                "Étape 2: les quatre écritures d'inventaire doivent être validées."
            )
        period.adj_depreciation = True
        period.adj_provisions = True
        period.adj_accrued_expenses = True
        period.adj_deferred_revenue = True
        period.adjustments_validated = True
    logger.info("validate_adjustments: %s step 2 complete", period_code)
    return PeriodSnapshot.model_validate(period)


def confirm_closing(
    db: Session, period_code: str, cmd: ConfirmClosingCommand, timeout: float | None = None
) -> PeriodSnapshot:
    """Step 3 (definitive closing) followed by step 4 (carry-forward).

    Raises:
        ValidationError: ``confirmation`` is not explicitly True.
        ClosingPreconditionError: No active closing, steps 1–2 incomplete, or
            the carry-forward entries could not be posted; the period stays OPEN.
        PeriodClosedError: Already closed.
    """
    if cmd.confirmation is not True:
        raise ValidationError("La clôture définitive exige une confirmation explicite.")

    with registry.period_exclusive(period_code, timeout):
        with atomic(db):
            period = period_service.load_period(db, period_code, for_update=True)
            if period.status == PeriodStatus.CLOSED:
                raise PeriodClosedError(f"L'exercice {period_code} est déjà clôturé.")
            if period.status == PeriodStatus.OPEN:
                if not period.closing_active:
                    raise ClosingPreconditionError(
                        f"Aucune clôture n'est en cours pour l'exercice {period_code}."
                    )
                if not period.controls_validated:
                    raise ClosingPreconditionError(
                        "Étape 3: les contrôles (étape 1) ne sont pas validés."
                    )
                if not period.adjustments_validated:
                    raise ClosingPreconditionError(
                        "Étape 3: les écritures d'inventaire (étape 2) ne sont pas validées."
                    )
                _plan_carry_forward(db, period)
                period.status = PeriodStatus.CLOSING
                period.definitively_closed = True
                period.closed_by = cmd.closed_by
                period.closed_at = datetime.now()
                period.observations = cmd.observations
                logger.info("confirm_closing: %s is now CLOSING", period_code)
            else:
                logger.info("confirm_closing: resuming carry-forward of %s", period_code)

        with atomic(db):
            period = period_service.load_period(db, period_code, for_update=True)
            _carry_forward(db, period)
    logger.info(
        "confirm_closing: %s CLOSED result=%s carry_forward=%s",
        period_code, period.result_amount, period.carry_forward_ref,
    )
    return PeriodSnapshot.model_validate(period)


def evaluate_controls(db: Session, period_code: str) -> ControlEvaluation:
    """Compute suggested step-1 flags from the ledger.  Changes nothing.

    - entries_balanced: every transaction of the period balances.
    - trial_balance_coherent: total debits equal total credits, every
      entry's account is registered and no class 8/9 account has a balance.
    - reconciliation_complete: no unlettered entry on a lettrable account.
    - bank_reconciliation_complete: every class-5 account used has a
      reconciliation, and none recorded is unbalanced.
    """
    period = period_service.load_period(db, period_code)
    per_transaction = (
        db.query(
            AccountingEntry.transaction_ref,
            func.coalesce(func.sum(AccountingEntry.debit), 0),
            func.coalesce(func.sum(AccountingEntry.credit), 0),
        )
        .filter(AccountingEntry.period_id == period.id)
        .group_by(AccountingEntry.transaction_ref)
        .all()
    )
    entries_balanced = all(is_balanced(debit, credit) for _, debit, credit in per_transaction)
    total_debit = sum((to_money(debit) for _, debit, _ in per_transaction), ZERO)
    total_credit = sum((to_money(credit) for _, _, credit in per_transaction), ZERO)

    unregistered = (
        db.query(AccountingEntry.id)
        .outerjoin(Account, Account.number == AccountingEntry.account_number)
        .filter(AccountingEntry.period_id == period.id, Account.id.is_(None))
        .count()
    )
    unsettled = _unsettled_accounts(_balances_by_account(db, period.id))
    coherent = is_balanced(total_debit, total_credit) and unregistered == 0 and not unsettled

    unlettered = (
        db.query(AccountingEntry.id)
        .join(Account, Account.number == AccountingEntry.account_number)
        .filter(
            AccountingEntry.period_id == period.id,
            Account.lettrable.is_(True),
            AccountingEntry.reconciliation_letter.is_(None),
        )
        .count()
    )

    bank_accounts = {
        number
        for (number,) in db.query(AccountingEntry.account_number)
        .join(Account, Account.number == AccountingEntry.account_number)
        .filter(AccountingEntry.period_id == period.id, Account.account_class == 5)
        .distinct()
        .all()
    }
    reconciliations = (
        db.query(BankReconciliation).filter(BankReconciliation.period_id == period.id).all()
    )
    reconciled = {rec.bank_account_number for rec in reconciliations}
    unbalanced = sum(1 for rec in reconciliations if not rec.balanced)
    bank_complete = bank_accounts <= reconciled and unbalanced == 0

    flags = ControlFlags(
        entries_balanced=entries_balanced,
        trial_balance_coherent=coherent,
        reconciliation_complete=unlettered == 0,
        bank_reconciliation_complete=bank_complete,
    )
    logger.debug("evaluate_controls: %s -> %s", period_code, flags.model_dump())
    return ControlEvaluation(
        period_code=period.code,
        flags=flags,
        total_debit=total_debit,
        total_credit=total_credit,
        unlettered_entries=unlettered,
        unbalanced_bank_reconciliations=unbalanced,
        unsettled_accounts=unsettled,
    )
