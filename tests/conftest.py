"""Pytest configuration for tests - in-memory database and plan factories."""

import os

# Set test database URL BEFORE any imports from src
# This ensures the process-wide engine uses an in-memory database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("LOG_FILE", "logs/test_ledger.log")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.models import Base  # noqa: E402
from src.schemas.installment_plan import Installment, InstallmentPlan  # noqa: E402
from src.services.config import reset_ledger_config  # noqa: E402
from src.services.schedule_service import add_months  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_config():
    """Re-read configuration from the environment for every test."""
    reset_ledger_config()
    yield
    reset_ledger_config()


@pytest.fixture
def engine():
    """Create in-memory engine with all tables."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create test database session."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def make_plan():
    """Factory for monthly plans: make_plan([100, 100, 100]).

    Installment i (1-based) is due start + (i - 1) months. total defaults to
    the sum of the amounts.
    """

    def _make(amounts, total=None, start=date(2024, 1, 1), enabled=True, down_payment=None):
        amounts = [Decimal(str(a)) for a in amounts]
        installments = tuple(
            Installment(number=i + 1, amount=amount, due_date=add_months(start, i))
            for i, amount in enumerate(amounts)
        )
        return InstallmentPlan(
            enabled=enabled,
            total_amount=Decimal(str(total)) if total is not None else sum(amounts, Decimal(0)),
            num_installments=len(installments),
            down_payment=down_payment,
            installments=installments,
        )

    return _make
