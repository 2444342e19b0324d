"""
Account registry service.

Every posting, lettering and adjustment resolves its account through this
module, so an unknown, archived or mis-classified account can never reach
the ledger.

Design notes
------------
- The account number must be all digits and start with its class digit;
  the nature must be one the class allows (``ALLOWED_NATURES_BY_CLASS``).
- Accounts are archived (``active=False``), never deleted: entries keep
  pointing at them.
- ``seed_standard_accounts`` is idempotent; it only inserts missing numbers.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from budget_engine.database import atomic
from budget_engine.exceptions import DuplicateCodeError, NotFoundError, ValidationError
from budget_engine.models.account import Account
from budget_engine.schemas.account import AccountCreate, AccountSnapshot
from budget_engine.utils.constants import (
    ALLOWED_NATURES_BY_CLASS,
    AccountNature,
    AccountType,
)

logger = logging.getLogger(__name__)

# Minimal SYSCOHADA chart: (number, label, nature, lettrable)
STANDARD_ACCOUNTS: list[tuple[str, str, AccountNature, bool]] = [
    ("101", "Capital social", AccountNature.LIABILITY, False),
    ("111", "Réserves légales", AccountNature.LIABILITY, False),
    ("121", "Report à nouveau créditeur", AccountNature.LIABILITY, False),
    ("131", "Résultat net : bénéfice", AccountNature.LIABILITY, False),
    ("139", "Résultat net : perte", AccountNature.LIABILITY, False),
    ("162", "Emprunts auprès des établissements de crédit", AccountNature.LIABILITY, False),
    ("231", "Bâtiments", AccountNature.ASSET, False),
    ("244", "Matériel et mobilier de bureau", AccountNature.ASSET, False),
    ("245", "Matériel de transport", AccountNature.ASSET, False),
    ("311", "Marchandises", AccountNature.ASSET, False),
    ("401", "Fournisseurs", AccountNature.LIABILITY, True),
    ("411", "Clients et redevables", AccountNature.ASSET, True),
    ("421", "Personnel, rémunérations dues", AccountNature.LIABILITY, True),
    ("441", "État, impôt sur les bénéfices", AccountNature.LIABILITY, False),
    ("471", "Débiteurs divers", AccountNature.ASSET, True),
    ("521", "Banques locales", AccountNature.ASSET, True),
    ("571", "Caisse", AccountNature.ASSET, False),
    ("601", "Achats de marchandises", AccountNature.EXPENSE, False),
    ("604", "Achats stockés de matières et fournitures", AccountNature.EXPENSE, False),
    ("605", "Autres achats", AccountNature.EXPENSE, False),
    ("622", "Locations et charges locatives", AccountNature.EXPENSE, False),
    ("624", "Entretien, réparations et maintenance", AccountNature.EXPENSE, False),
    ("661", "Rémunérations directes versées au personnel", AccountNature.EXPENSE, False),
    ("681", "Dotations aux amortissements", AccountNature.EXPENSE, False),
    ("701", "Ventes de marchandises", AccountNature.REVENUE, False),
    ("706", "Services vendus", AccountNature.REVENUE, False),
    ("711", "Subventions d'exploitation", AccountNature.REVENUE, False),
    ("758", "Produits divers", AccountNature.REVENUE, False),
]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _validate_classification(number: str, account_class: int, nature: AccountNature) -> None:
    if not number.isdigit():
        raise ValidationError(f"Le numéro de compte '{number}' doit être numérique.")
    if not number.startswith(str(account_class)):
        raise ValidationError(
            f"Le numéro de compte '{number}' doit commencer par sa classe ({account_class})."
        )
    allowed = ALLOWED_NATURES_BY_CLASS.get(account_class)
    if allowed is None or nature not in allowed:
        raise ValidationError(
            f"La nature {nature.value} n'est pas admise pour la classe {account_class}."
        )


def _find(db: Session, number: str) -> Account | None:
    return db.query(Account).filter(Account.number == number).one_or_none()


def require_account(db: Session, number: str, *, lettrable: bool = False) -> Account:
    """Return the active account *number* or raise ``ValidationError``.

    Used by every component that writes against an account.

    Args:
        db: Active SQLAlchemy session.
        number: Account number to resolve.
        lettrable: Also require the account to accept lettrage.

    Raises:
        ValidationError: Unknown, archived, or (when asked) non-lettrable account.
    """
    account = _find(db, number)
    if account is None:
        raise ValidationError(f"Compte {number} non enregistré.")
    if not account.active:
        raise ValidationError(f"Compte {number} archivé.")
    if lettrable and not account.lettrable:
        raise ValidationError(f"Le compte {number} n'est pas lettrable.")
    return account


def ensure_account(db: Session, number: str, label: str, nature: AccountNature) -> Account:
    """Return account *number*, registering it first when missing.  Does not commit."""
    account = _find(db, number)
    if account is None:
        account_class = int(number[0])
        _validate_classification(number, account_class, nature)
        account = Account(
            number=number,
            label=label,
            account_class=account_class,
            nature=nature,
            account_type=AccountType.GENERAL,
            lettrable=False,
            active=True,
        )
        db.add(account)
        db.flush()
        logger.info("ensure_account: registered %s (%s)", number, label)
    return account


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------


def register_account(db: Session, cmd: AccountCreate) -> AccountSnapshot:
    """Register a new ledger account.

    Raises:
        DuplicateCodeError: The number is already registered.
        ValidationError: Number/class/nature combination is inconsistent.
    """
    number = cmd.number.strip()
    _validate_classification(number, cmd.account_class, cmd.nature)
    with atomic(db):
        if _find(db, number) is not None:
            raise DuplicateCodeError(f"Le compte {number} existe déjà.")
        account = Account(
            number=number,
            label=cmd.label.strip(),
            account_class=cmd.account_class,
            nature=cmd.nature,
            account_type=cmd.account_type,
            lettrable=cmd.lettrable,
            active=True,
        )
        db.add(account)
    logger.info("register_account: %s %s (%s)", number, account.label, cmd.nature.value)
    return AccountSnapshot.model_validate(account)


def get_account(db: Session, number: str) -> AccountSnapshot:
    account = _find(db, number)
    if account is None:
        raise NotFoundError(f"Compte {number} introuvable.")
    return AccountSnapshot.model_validate(account)


def list_accounts(
    db: Session,
    account_class: int | None = None,
    lettrable: bool | None = None,
) -> list[AccountSnapshot]:
    """List registered accounts ordered by number, optionally filtered."""
    q = db.query(Account)
    if account_class is not None:
        q = q.filter(Account.account_class == account_class)
    if lettrable is not None:
        q = q.filter(Account.lettrable == lettrable)
    rows = q.order_by(Account.number).all()
    logger.debug("list_accounts: class=%s lettrable=%s -> %d rows", account_class, lettrable, len(rows))
    return [AccountSnapshot.model_validate(row) for row in rows]


def deactivate_account(db: Session, number: str) -> AccountSnapshot:
    """Archive an account; it keeps its entries but rejects new postings."""
    with atomic(db):
        account = _find(db, number)
        if account is None:
            raise NotFoundError(f"Compte {number} introuvable.")
        account.active = False
    logger.info("deactivate_account: %s", number)
    return AccountSnapshot.model_validate(account)


def seed_standard_accounts(db: Session) -> int:
    """Insert the missing accounts of the standard chart.

    Returns:
        Number of accounts created (0 when the chart is already complete).
    """
    created = 0
    with atomic(db):
        existing = {number for (number,) in db.query(Account.number).all()}
        for number, label, nature, lettrable in STANDARD_ACCOUNTS:
            if number in existing:
                continue
            db.add(
                Account(
                    number=number,
                    label=label,
                    account_class=int(number[0]),
                    nature=nature,
                    account_type=AccountType.GENERAL,
                    lettrable=lettrable,
                    active=True,
                )
            )
            created += 1
    logger.info("seed_standard_accounts: %d account(s) created", created)
    return created
