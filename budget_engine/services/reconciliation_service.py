"""
Reconciliation engine (lettrage).

Matches debit and credit entries of one account into balanced groups
identified by a letter token.

Design notes
------------
- A group needs at least two distinct entries, all on the same
  registered lettrable account, none already lettered, with
  |Σdebit − Σcredit| < 0.01.  Any failure letters nothing.
- Letters are scoped per account.  Without a caller-supplied letter the
  lowest free token of the sequence A … Z, AA, AB … ZZ, AAA … is used, so
  allocation is deterministic and collision-free.  A dissolved group
  releases its letter for reuse.
- Group formation holds the account mutex plus the shared lock of every
  period the entries belong to; entries of a closed period cannot be
  lettered or un-lettered.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from budget_engine.database import atomic, lock_rows
from budget_engine.exceptions import (
    NotFoundError,
    UnbalancedEntriesError,
    ValidationError,
)
from budget_engine.locks import registry
from budget_engine.models.accounting_entry import AccountingEntry
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.models.reconciliation_group import ReconciliationGroup
from budget_engine.schemas.accounting import (
    LetteringCommand,
    MatchSuggestion,
    ReconciliationGroupSnapshot,
)
from budget_engine.services import account_service, period_service
from budget_engine.utils.constants import LETTER_ALPHABET, MIN_ENTRIES_PER_GROUP
from budget_engine.utils.money import ZERO, is_balanced, to_money

logger = logging.getLogger(__name__)

_LETTER_RE = re.compile(r"^[A-Z]+$")


# ---------------------------------------------------------------------------
# Letter tokens
# ---------------------------------------------------------------------------


def letter_token(index: int) -> str:
    """Return the *index*-th token (0 → "A", 25 → "Z", 26 → "AA", 27 → "AB")."""
    base = len(LETTER_ALPHABET)
    token = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, base)
        token = LETTER_ALPHABET[remainder] + token
    return token


def _letters_in_use(db: Session, account_number: str) -> set[str]:
    rows = (
        db.query(ReconciliationGroup.letter)
        .filter(
            ReconciliationGroup.account_number == account_number,
            ReconciliationGroup.active.is_(True),
        )
        .all()
    )
    return {letter for (letter,) in rows}


def _next_free(used: set[str]) -> str:
    index = 0
    while letter_token(index) in used:
        index += 1
    return letter_token(index)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _period_codes(db: Session, period_ids: set[int]) -> list[str]:
    if not period_ids:
        return []
    rows = db.query(AccountingPeriod.code).filter(AccountingPeriod.id.in_(period_ids)).all()
    return [code for (code,) in rows]


def _load_group(db: Session, group_id: int, *, for_update: bool = False) -> ReconciliationGroup:
    q = db.query(ReconciliationGroup).filter(ReconciliationGroup.id == group_id)
    if for_update:
        q = lock_rows(q, db)
    group = q.one_or_none()
    if group is None:
        raise NotFoundError(f"Groupe de lettrage {group_id} introuvable.")
    return group


def _snapshot(group: ReconciliationGroup) -> ReconciliationGroupSnapshot:
    return ReconciliationGroupSnapshot.model_validate(group)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def next_free_letter(db: Session, account_number: str) -> str:
    return _next_free(_letters_in_use(db, account_number))


def letter_entries(
    db: Session, cmd: LetteringCommand, timeout: float | None = None
) -> ReconciliationGroupSnapshot:
    """Letter a balanced set of entries of one account.

    Args:
        db: Active SQLAlchemy session.
        cmd: Account, entry ids and optional letter.
        timeout: Lock wait in seconds (``LOCK_TIMEOUT_SECONDS`` when None).

    Returns:
        Snapshot of the new active group.

    Raises:
        ValidationError: Fewer than two entries, entry on another account,
            entry already lettered, account not lettrable, bad or used letter.
        UnbalancedEntriesError: |Σdebit − Σcredit| ≥ 0.01.
        NotFoundError: Unknown entry id.
        PeriodClosedError: An entry belongs to a closed period.
    """
    entry_ids = list(cmd.entry_ids)
    if len(set(entry_ids)) != len(entry_ids):
        raise ValidationError("Une écriture figure plusieurs fois dans la sélection.")
    if len(entry_ids) < MIN_ENTRIES_PER_GROUP:
        raise ValidationError(
            f"Le lettrage requiert au moins {MIN_ENTRIES_PER_GROUP} écritures."
        )
    letter = None
    if cmd.letter is not None:
        letter = cmd.letter.strip()
        if not _LETTER_RE.match(letter):
            raise ValidationError(f"Lettre '{cmd.letter}' invalide: lettres majuscules A-Z uniquement.")

    account_number = cmd.account_number
    account_service.require_account(db, account_number, lettrable=True)

    period_ids = {
        period_id
        for (period_id,) in db.query(AccountingEntry.period_id)
        .filter(AccountingEntry.id.in_(entry_ids))
        .distinct()
        .all()
    }
    with registry.periods_shared(_period_codes(db, period_ids), timeout), registry.account(
        account_number, timeout
    ), atomic(db):
        entries = (
            lock_rows(db.query(AccountingEntry).filter(AccountingEntry.id.in_(entry_ids)), db)
            .order_by(AccountingEntry.id)
            .all()
        )
        found = {entry.id for entry in entries}
        missing = [entry_id for entry_id in entry_ids if entry_id not in found]
        if missing:
            raise NotFoundError(f"Écritures introuvables: {missing}.")
        for entry in entries:
            if entry.account_number != account_number:
                raise ValidationError(
                    f"L'écriture {entry.id} est sur le compte {entry.account_number}, "
                    f"pas sur {account_number}."
                )
            if entry.reconciliation_letter is not None:
                raise ValidationError(
                    f"L'écriture {entry.id} est déjà lettrée ({entry.reconciliation_letter}); "
                    "dissoudre le groupe d'abord."
                )
        for period_id in period_ids:
            period_service.load_writable_period(db, period_id)

        total_debit = sum((to_money(entry.debit) for entry in entries), ZERO)
        total_credit = sum((to_money(entry.credit) for entry in entries), ZERO)
        if not is_balanced(total_debit, total_credit):
            raise UnbalancedEntriesError(
                f"Lettrage impossible sur {account_number}: débit {total_debit} ≠ crédit {total_credit}."
            )

        used = _letters_in_use(db, account_number)
        if letter is None:
            letter = _next_free(used)
        elif letter in used:
            raise ValidationError(f"La lettre {letter} est déjà utilisée sur le compte {account_number}.")

        now = datetime.now()
        group = ReconciliationGroup(
            account_number=account_number,
            letter=letter,
            total_debit=total_debit,
            total_credit=total_credit,
            entry_count=len(entries),
            active=True,
            created_at=now,
        )
        db.add(group)
        for entry in entries:
            entry.reconciliation_group = group
            entry.reconciliation_letter = letter
            entry.lettered_at = now
        db.flush()
    logger.info(
        "letter_entries: account=%s letter=%s entries=%s total=%s",
        account_number, letter, sorted(found), total_debit,
    )
    return _snapshot(group)


def dissolve_group(db: Session, group_id: int, timeout: float | None = None) -> ReconciliationGroupSnapshot:
    """Un-letter the entries of an active group and release its letter."""
    group = _load_group(db, group_id)
    if not group.active:
        raise ValidationError(f"Le groupe {group.letter} ({group.account_number}) est déjà dissous.")
    period_ids = {entry.period_id for entry in group.entries}
    with registry.periods_shared(_period_codes(db, period_ids), timeout), registry.account(
        group.account_number, timeout
    ), atomic(db):
        group = _load_group(db, group_id, for_update=True)
        if not group.active:
            raise ValidationError(f"Le groupe {group.letter} ({group.account_number}) est déjà dissous.")
        for period_id in period_ids:
            period_service.load_writable_period(db, period_id)
        for entry in list(group.entries):
            entry.reconciliation_letter = None
            entry.reconciliation_group = None
            entry.lettered_at = None
        group.active = False
        group.dissolved_at = datetime.now()
    logger.info("dissolve_group: account=%s letter=%s", group.account_number, group.letter)
    return _snapshot(group)


def get_group(db: Session, group_id: int) -> ReconciliationGroupSnapshot:
    return _snapshot(_load_group(db, group_id))


def list_groups(
    db: Session, account_number: str, active: bool | None = True
) -> list[ReconciliationGroupSnapshot]:
    q = db.query(ReconciliationGroup).filter(ReconciliationGroup.account_number == account_number)
    if active is not None:
        q = q.filter(ReconciliationGroup.active.is_(active))
    rows = q.order_by(ReconciliationGroup.id).all()
    logger.debug("list_groups: account=%s -> %d rows", account_number, len(rows))
    return [_snapshot(row) for row in rows]


def suggest_matches(db: Session, account_number: str) -> list[MatchSuggestion]:
    """Pair unlettered debits and credits of equal amount, oldest first.

    Each entry appears in at most one suggestion.
    """
    entries = (
        db.query(AccountingEntry)
        .filter(
            AccountingEntry.account_number == account_number,
            AccountingEntry.reconciliation_letter.is_(None),
        )
        .order_by(AccountingEntry.entry_date, AccountingEntry.id)
        .all()
    )
    credits: dict[Decimal, list[AccountingEntry]] = {}
    for entry in entries:
        if entry.credit and to_money(entry.credit) > 0:
            credits.setdefault(to_money(entry.credit), []).append(entry)

    suggestions: list[MatchSuggestion] = []
    for entry in entries:
        amount = to_money(entry.debit)
        if amount <= 0:
            continue
        candidates = credits.get(amount)
        if candidates:
            match = candidates.pop(0)
            suggestions.append(
                MatchSuggestion(debit_entry_id=entry.id, credit_entry_id=match.id, amount=amount)
            )
    logger.debug("suggest_matches: account=%s -> %d pairs", account_number, len(suggestions))
    return suggestions
