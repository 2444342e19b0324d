"""Seed data script for the budget execution engine database.

Populates the database with a demo fiscal year through the engine services
(chart of accounts, period, budget lines, commitments, claims, a transfer
and a lettered supplier account).  The script is idempotent: each step
checks for existing records before inserting.

Usage (from the repository root, after ``alembic upgrade head``):
    python seed_data.py
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from budget_engine.database import SessionLocal
from budget_engine.models import BudgetLine, Claim, Commitment, Transfer
from budget_engine.models.accounting_period import AccountingPeriod
from budget_engine.schemas.accounting import LetteringCommand
from budget_engine.schemas.budget import BudgetLineCreate, TransferCreate
from budget_engine.schemas.expenditure import (
    AuthorizeCommand,
    EngageCommand,
    LiquidateCommand,
    PayCommand,
)
from budget_engine.schemas.period import PeriodCreate
from budget_engine.schemas.revenue import ClaimLiquidateCommand, RecognizeCommand
from budget_engine.services import (
    account_service,
    budget_service,
    entry_service,
    expenditure_service,
    period_service,
    reconciliation_service,
    revenue_service,
    transfer_service,
)
from budget_engine.utils.constants import (
    BudgetCategory,
    CertaintyLevel,
    PaymentMethod,
    RecoveryRisk,
    RevenueType,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

EXERCICE = "2025"


def _d(year: int, month: int, day: int) -> date:
    """Shorthand date constructor."""
    return date(year, month, day)


def _dec(value: float) -> Decimal:
    """Convert float to Decimal for Numeric columns."""
    return Decimal(str(round(value, 2)))


# ---------------------------------------------------------------------------
# Seed functions
# ---------------------------------------------------------------------------


def seed_accounts(session) -> None:
    """Load the standard SYSCOHADA chart."""
    created = account_service.seed_standard_accounts(session)
    print(f"  [OK] Account — {created} comptes insérés.")


def seed_period(session) -> None:
    if session.query(AccountingPeriod).filter(AccountingPeriod.code == EXERCICE).count() > 0:
        print(f"  [SKIP] AccountingPeriod — exercice {EXERCICE} déjà ouvert.")
        return
    period_service.open_period(
        session,
        PeriodCreate(code=EXERCICE, start_date=_d(2025, 1, 1), end_date=_d(2025, 12, 31)),
    )
    print(f"  [OK] AccountingPeriod — exercice {EXERCICE} ouvert.")


def seed_budget_lines(session) -> None:
    """Insert one line per category plus a revenue line."""
    if session.query(BudgetLine).count() > 0:
        print("  [SKIP] BudgetLine — table already has data.")
        return

    lignes = [
        ("61-001", "Fournitures de bureau", BudgetCategory.OPERATING, 5_000_000, "604"),
        ("62-001", "Entretien des véhicules", BudgetCategory.OPERATING, 1_200_000, "624"),
        ("66-001", "Salaires du personnel", BudgetCategory.PERSONNEL, 48_000_000, "661"),
        ("24-001", "Matériel informatique", BudgetCategory.INVESTMENT, 15_000_000, None),
        ("70-001", "Recettes de services", BudgetCategory.TRANSFER, 0, "706"),
    ]
    for code, label, category, amount, account in lignes:
        budget_service.allocate(
            session,
            BudgetLineCreate(
                code=code,
                label=label,
                category=category,
                period_code=EXERCICE,
                budget_initial=_dec(amount),
                account_number=account,
                entity="Direction administrative et financière",
            ),
        )
    print(f"  [OK] BudgetLine — {len(lignes)} lignes allouées.")


def seed_commitments(session) -> None:
    """One commitment carried to payment, one left at engagement."""
    if session.query(Commitment).count() > 0:
        print("  [SKIP] Commitment — table already has data.")
        return

    expenditure_service.engage_expenditure(
        session,
        EngageCommand(
            reference="ENG-2025-001", line_code="61-001", amount=_dec(4_500_000),
            document_ref="BE-0001", supplier="SOCIETE ALPHA SARL", purpose="Papeterie annuelle",
        ),
    )
    expenditure_service.liquidate_expenditure(
        session, "ENG-2025-001", LiquidateCommand(amount=_dec(4_000_000), document_ref="FAC-1187")
    )
    expenditure_service.authorize_expenditure(
        session, "ENG-2025-001",
        AuthorizeCommand(
            amount=_dec(4_000_000), document_ref="OP-0042", payment_method=PaymentMethod.TRANSFER
        ),
    )
    expenditure_service.pay_expenditure(
        session, "ENG-2025-001",
        PayCommand(
            amount=_dec(4_000_000), document_ref="AVIS-0042",
            payment_method=PaymentMethod.TRANSFER, payment_reference="VIR-2025-0042",
        ),
    )

    expenditure_service.engage_expenditure(
        session,
        EngageCommand(
            reference="ENG-2025-002", line_code="62-001", amount=_dec(350_000),
            document_ref="BE-0002", supplier="GARAGE CENTRAL",
        ),
    )
    print("  [OK] Commitment — 2 engagements (1 payé).")


def seed_claims(session) -> None:
    if session.query(Claim).count() > 0:
        print("  [SKIP] Claim — table already has data.")
        return

    revenue_service.recognize_claim(
        session,
        RecognizeCommand(
            reference="REC-2025-001", line_code="70-001", revenue_type=RevenueType.NON_TAX,
            amount=_dec(5_000_000), prudence_coefficient=Decimal("0.80"),
            certainty_level=CertaintyLevel.PROBABLE, recovery_risk=RecoveryRisk.MEDIUM,
            debtor="Ministère du Plan",
        ),
    )
    revenue_service.liquidate_claim(
        session, "REC-2025-001", ClaimLiquidateCommand(amount=_dec(4_000_000), document_ref="TR-0001")
    )
    revenue_service.recognize_claim(
        session,
        RecognizeCommand(
            reference="REC-2025-002", line_code="70-001", revenue_type=RevenueType.EXCEPTIONAL,
            amount=_dec(12_500_000), prudence_coefficient=Decimal("0.50"),
            certainty_level=CertaintyLevel.UNCERTAIN, recovery_risk=RecoveryRisk.HIGH,
            debtor="Contentieux fiscal",
        ),
    )
    print("  [OK] Claim — 2 créances (1 à revoir).")


def seed_transfers(session) -> None:
    if session.query(Transfer).count() > 0:
        print("  [SKIP] Transfer — table already has data.")
        return
    transfer_service.transfer(
        session,
        TransferCreate(
            request_id="VIR-CRED-2025-001",
            source_code="24-001",
            destination_code="62-001",
            amount=_dec(500_000),
            justification="Renforcement du poste entretien",
        ),
    )
    print("  [OK] Transfer — 1 virement approuvé.")


def seed_lettering(session) -> None:
    """Letter the supplier entries of the paid commitment."""
    entries = entry_service.list_entries(session, account_number="401", lettered=False)
    if len(entries) < 2:
        print("  [SKIP] Lettrage — rien à lettrer sur 401.")
        return
    group = reconciliation_service.letter_entries(
        session,
        LetteringCommand(account_number="401", entry_ids=[entry.id for entry in entries]),
    )
    print(f"  [OK] Lettrage — groupe {group.letter} sur 401 ({group.entry_count} écritures).")


def main() -> None:
    print("=" * 60)
    print("  Budget Execution Engine — Seed Data Script")
    print(f"  Exercice: {EXERCICE}")
    print("=" * 60)

    session = SessionLocal()
    try:
        print("\n[1/7] Plan de comptes...")
        seed_accounts(session)

        print("\n[2/7] Exercice...")
        seed_period(session)

        print("\n[3/7] Lignes budgétaires...")
        seed_budget_lines(session)

        print("\n[4/7] Engagements...")
        seed_commitments(session)

        print("\n[5/7] Créances...")
        seed_claims(session)

        print("\n[6/7] Virements...")
        seed_transfers(session)

        print("\n[7/7] Lettrage...")
        seed_lettering(session)

        print("\n" + "=" * 60)
        print("  Seed terminé avec succès.")
        print("=" * 60)

    except Exception as exc:
        session.rollback()
        print("\n[ERROR] Seed interrompu.")
        print(f"  Détail: {exc}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    main()
