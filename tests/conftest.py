"""
pytest shared fixtures.

Every test gets a fresh in-memory SQLite database with the full schema and
the standard chart of accounts.  The environment is set before the engine
package is imported so that ``get_settings`` never points at PostgreSQL.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_ACCOUNTS_ON_STARTUP", "false")
os.environ.setdefault("LOCK_TIMEOUT_SECONDS", "2")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import budget_engine.models  # noqa: E402,F401
from budget_engine.database import Base, get_db  # noqa: E402
from budget_engine.schemas.budget import BudgetLineCreate  # noqa: E402
from budget_engine.schemas.period import (  # noqa: E402
    AdjustmentFlags,
    ConfirmClosingCommand,
    ControlFlags,
    PeriodCreate,
    StartClosingCommand,
)
from budget_engine.services import (  # noqa: E402
    account_service,
    budget_service,
    closing_service,
    period_service,
)
from budget_engine.utils.constants import BudgetCategory  # noqa: E402


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    """Session with the standard chart of accounts loaded."""
    session = session_factory()
    account_service.seed_standard_accounts(session)
    yield session
    session.close()


@pytest.fixture
def period(db):
    """Open period 2025 covering the calendar year."""
    return period_service.open_period(
        db, PeriodCreate(code="2025", start_date=date(2025, 1, 1), end_date=date(2025, 12, 31))
    )


@pytest.fixture
def make_line(db, period):
    """Factory allocating a budget line in the 2025 period."""

    def _make(
        code: str,
        amount: str = "5000000",
        category: BudgetCategory = BudgetCategory.OPERATING,
        account_number: str | None = None,
    ):
        return budget_service.allocate(
            db,
            BudgetLineCreate(
                code=code,
                label=f"Ligne {code}",
                category=category,
                period_code=period.code,
                budget_initial=Decimal(amount),
                account_number=account_number,
            ),
        )

    return _make


@pytest.fixture
def close_period(db):
    """Run the four closing steps on a period, flags all true."""

    def _close(code: str = "2025"):
        closing_service.start_closing(db, code, StartClosingCommand())
        closing_service.validate_controls(
            db,
            code,
            ControlFlags(
                entries_balanced=True,
                trial_balance_coherent=True,
                reconciliation_complete=True,
                bank_reconciliation_complete=True,
            ),
        )
        closing_service.validate_adjustments(
            db,
            code,
            AdjustmentFlags(
                depreciation=True, provisions=True, accrued_expenses=True, deferred_revenue=True
            ),
        )
        return closing_service.confirm_closing(db, code, ConfirmClosingCommand(confirmation=True))

    return _close


@pytest.fixture
def client(session_factory, db):
    """TestClient bound to the test database (the lifespan seeding is not run)."""
    from budget_engine.main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
