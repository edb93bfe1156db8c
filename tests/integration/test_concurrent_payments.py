"""Integration tests for optimistic-concurrency retries on unit writes."""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from payledger.core.errors import ConcurrentModificationError, InvalidArgumentError
from payledger.models import Base, Client, PaymentRecord, Unit
from payledger.schemas.fiscal import Module, PeriodKey
from payledger.services.obligation_service import ObligationService
from payledger.services.payment_service import PaymentService
from payledger.services.unit_store import get_unit

pytestmark = pytest.mark.integration

PAYMENT_DATE = date(2026, 8, 5)


@pytest.fixture
def session_factory(tmp_path):
    """Sessions on a file database so two sessions hold separate connections."""
    engine = create_engine(f"sqlite:///{tmp_path / 'payledger.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine)
    engine.dispose()


@pytest.fixture
def sessions(session_factory):
    first, second = session_factory(), session_factory()
    yield first, second
    first.close()
    second.close()


@pytest.fixture
def billed_unit(sessions):
    db, _ = sessions
    client = Client(name="Torres del Parque", fiscal_year_start_month=7, penalty_rate=Decimal("0"))
    db.add(client)
    db.commit()
    unit = Unit(client_id=client.id, unit_code="1A")
    db.add(unit)
    db.commit()
    ObligationService(db=db).bill_period("1A", Module.DUES, PeriodKey(fiscal_year=2026, index=0), 44_000)
    return unit


class TestConcurrentWrites:
    """Two writers racing on one unit."""

    def test_stale_cycle_is_retried(self, sessions, billed_unit, caplog):
        slow, fast = sessions
        # slow session has read the unit before the other writer commits
        get_unit(slow, "1A")

        PaymentService(db=fast).record_payment("1A", 50_000, PAYMENT_DATE, transaction_id="txn-fast")

        with caplog.at_level(logging.WARNING, logger="payledger.services.payment_service"):
            result = PaymentService(db=slow).record_payment(
                "1A", 10_000, PAYMENT_DATE, transaction_id="txn-slow"
            )

        assert "Concurrent modification of unit 1A" in caplog.text
        # the retry saw the dues already paid by the other writer
        assert result.lines == ()
        assert result.credit_balance_before == 6_000
        assert PaymentService(db=slow).get_credit_balance("1A") == 16_000
        assert len(PaymentService(db=slow).get_credit_history("1A")) == 2

    def test_gives_up_after_max_attempts(self, sessions, billed_unit):
        slow, fast = sessions
        get_unit(slow, "1A")

        PaymentService(db=fast).record_payment("1A", 50_000, PAYMENT_DATE, transaction_id="txn-fast")

        with pytest.raises(ConcurrentModificationError):
            PaymentService(db=slow, max_attempts=1).record_payment(
                "1A", 10_000, PAYMENT_DATE, transaction_id="txn-slow"
            )

        assert slow.query(PaymentRecord).filter_by(transaction_id="txn-slow").count() == 0
        assert PaymentService(db=slow).get_credit_balance("1A") == 6_000

    def test_commit_between_ledger_read_and_write_is_retried(self, sessions, billed_unit, caplog):
        slow, fast = sessions
        competing = []

        def clock_with_competing_writer() -> datetime:
            # the other writer commits after slow has read the ledger, before it writes
            if not competing:
                competing.append(
                    PaymentService(db=fast).record_payment(
                        "1A", 46_000, PAYMENT_DATE, transaction_id="txn-fast"
                    )
                )
            return datetime.now(timezone.utc)

        with caplog.at_level(logging.WARNING, logger="payledger.services.payment_service"):
            result = PaymentService(db=slow, clock=clock_with_competing_writer).record_payment(
                "1A", 50_000, PAYMENT_DATE, transaction_id="txn-slow"
            )

        assert "Concurrent modification of unit 1A" in caplog.text
        assert competing[0].credit_added == 2_000
        # the retry found the dues paid and the other writer's ledger entry
        assert result.lines == ()
        assert result.credit_balance_before == 2_000
        history = PaymentService(db=slow).get_credit_history("1A")
        assert [e.source_transaction_id for e in history] == ["txn-slow", "txn-fast"]
        assert history[0].balance_after == 52_000
        assert PaymentService(db=slow).get_credit_balance("1A") == 52_000

    def test_manual_entry_race_is_retried(self, sessions, billed_unit):
        slow, fast = sessions
        competing = []

        def clock_with_competing_writer() -> datetime:
            if not competing:
                competing.append(PaymentService(db=fast).adjust_credit("1A", 1_000, notes="Deposit"))
            return datetime.now(timezone.utc)

        PaymentService(db=slow, clock=clock_with_competing_writer).adjust_credit(
            "1A", 2_000, notes="Deposit"
        )

        assert PaymentService(db=slow).get_credit_balance("1A") == 3_000
        assert len(PaymentService(db=slow).get_credit_history("1A")) == 2


class TestRetryLoop:
    """Bounded retries with a session that always conflicts."""

    def test_bounded_attempts(self, db_session, unit, monkeypatch):
        attempts = []

        def conflicting_commit():
            attempts.append(1)
            raise StaleDataError("UPDATE statement on table 'units' expected to update 1 row(s)")

        monkeypatch.setattr(db_session, "commit", conflicting_commit)

        with pytest.raises(ConcurrentModificationError, match="3 attempts"):
            PaymentService(db=db_session, max_attempts=3).adjust_credit("1A", 1_000, notes="Deposit")

        assert len(attempts) == 3

    def test_other_errors_are_not_retried(self, db_session, unit, monkeypatch):
        attempts = []
        original_commit = db_session.commit

        def counting_commit():
            attempts.append(1)
            original_commit()

        monkeypatch.setattr(db_session, "commit", counting_commit)

        with pytest.raises(ValueError):
            PaymentService(db=db_session).adjust_credit("9Z", 1_000, notes="Deposit")

        assert attempts == []

    @pytest.mark.parametrize("max_attempts", [0, -1])
    def test_attempt_limit_must_be_positive(self, db_session, max_attempts):
        with pytest.raises(InvalidArgumentError, match="max_attempts"):
            PaymentService(db=db_session, max_attempts=max_attempts)

    def test_default_attempt_limit_from_settings(self, db_session):
        assert PaymentService(db=db_session).max_attempts == 3
