"""Pytest configuration shared by unit and integration tests."""

import os

# Set test settings BEFORE any imports from payledger
# so the engine and locale constants pick them up
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOCALE"] = "en_US"
os.environ["LOG_FILE"] = "logs/test_payledger.log"

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from payledger.models import Base, Client, Unit  # noqa: E402
from payledger.schemas.fiscal import FiscalConfig, Module, PenaltyPolicy, PeriodKey  # noqa: E402
from payledger.schemas.obligation import Obligation  # noqa: E402


@pytest.fixture
def db_session():
    """Create test database session on a fresh in-memory database."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def client(db_session):
    """Client with a July fiscal year, penalty-free dues and 10% water penalties."""
    client = Client(
        name="Torres del Parque",
        fiscal_year_start_month=7,
        dues_frequency="monthly",
        water_frequency="quarterly",
        penalty_rate=Decimal("0.10"),
        penalty_grace_days=10,
        compound_penalty=True,
        module_penalties={"dues": {"rate": "0", "grace_days": 0, "compound": True}},
    )
    db_session.add(client)
    db_session.commit()
    return client


@pytest.fixture
def unit(db_session, client):
    """Unit 1A with an empty credit ledger."""
    unit = Unit(client_id=client.id, unit_code="1A")
    db_session.add(unit)
    db_session.commit()
    return unit


@pytest.fixture
def fiscal_config():
    """Fiscal configuration matching the client fixture."""
    return FiscalConfig(
        fiscal_year_start_month=7,
        penalty_rate=Decimal("0.10"),
        penalty_grace_days=10,
        module_penalties={Module.DUES: PenaltyPolicy(rate=Decimal("0"))},
    )


def make_obligation(
    module: Module = Module.DUES,
    index: int = 0,
    base_charge: int = 44_000,
    due_date: date = date(2026, 7, 1),
    unit_id: str = "1A",
    fiscal_year: int = 2026,
    **amounts,
) -> Obligation:
    """Build an obligation for tests; extra keyword args set paid/penalty amounts."""
    return Obligation(
        unit_id=unit_id,
        module=module,
        period=PeriodKey(fiscal_year=fiscal_year, index=index),
        due_date=due_date,
        base_charge=base_charge,
        **amounts,
    )


@pytest.fixture
def obligation_factory():
    return make_obligation
