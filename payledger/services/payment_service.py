"""Payment service for recording and deleting unit payments.

Provides methods for:
- Recording a payment (allocation across dues/water obligations and credit)
- Previewing an allocation without writing
- Deleting a payment (exact reversal of its allocation)
- Manual credit adjustments and starting balances
- Credit balance and history reads

Each write is one read-compute-write cycle scoped to a unit. The unit row
carries an optimistic-concurrency version; when another writer got there
first the whole cycle is discarded and re-run from a fresh read, up to
``max_write_attempts`` times.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from payledger.core.allocation import AllocationService
from payledger.core.credit_ledger import CreditLedger
from payledger.core.errors import (
    AlreadyReversedError,
    ConcurrentModificationError,
    InvalidArgumentError,
    InvalidStateError,
)
from payledger.core.reversal import ReversalService
from payledger.models.credit_entry import CreditEntryRecord
from payledger.models.obligation import ObligationRecord
from payledger.models.payment import PaymentRecord
from payledger.models.unit import Unit
from payledger.schemas.allocation import (
    AllocationRequest,
    AllocationResult,
    ReversalRequest,
    ReversalResult,
)
from payledger.schemas.ledger import CreditEntryType, CreditLedgerEntry, LedgerDelta
from payledger.schemas.obligation import ObligationRef
from payledger.services.config import get_settings
from payledger.services.unit_store import (
    get_unit,
    load_ledger,
    obligation_records,
    records_by_ref,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentService:
    """Payment recording and deletion with optimistic-concurrency retries."""

    def __init__(
        self,
        db: Session,
        max_attempts: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
            max_attempts: Read-compute-write attempts (default: settings MAX_WRITE_ATTEMPTS)
            clock: Source of timestamps for ledger entries
        """
        if max_attempts is None:
            max_attempts = get_settings().max_write_attempts
        if max_attempts < 1:
            raise InvalidArgumentError(f"max_attempts must be at least 1, got {max_attempts}")
        self.db = db
        self.max_attempts = max_attempts
        self.clock = clock
        self.reversal_service = ReversalService()

    # ------------------------------------------------------------------
    # Cycle plumbing
    # ------------------------------------------------------------------

    def _run_unit_cycle(self, subject: str, operation: str, cycle: Callable[[], T]) -> T:
        """Run a read-compute-write cycle, retrying from scratch on version conflicts."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = cycle()
                self.db.commit()
                return result
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    "Concurrent modification of %s during %s (attempt %d/%d)",
                    subject,
                    operation,
                    attempt,
                    self.max_attempts,
                )
            except Exception:
                self.db.rollback()
                raise

        logger.error(f"Giving up {operation} for {subject} after {self.max_attempts} attempts")
        raise ConcurrentModificationError(
            f"{subject} was modified concurrently; {operation} failed after "
            f"{self.max_attempts} attempts"
        )

    def _load_ledger(self, unit: Unit) -> CreditLedger:
        return load_ledger(self.db, unit, clock=self.clock)

    def _claim(self, unit: Unit) -> None:
        """Bump the unit version and flush it before any other row is written.

        If another writer committed since this cycle read the unit, the
        UPDATE matches no row and SQLAlchemy raises StaleDataError before
        any ledger entry is inserted.
        """
        unit.version = unit.version + 1
        self.db.flush()

    def _store_entry(
        self, unit: Unit, ledger: CreditLedger, entry: Optional[CreditLedgerEntry]
    ) -> None:
        """Persist the entry last applied to ``ledger`` and refresh the cached balance."""
        if entry is not None:
            self.db.add(CreditEntryRecord.from_entry(entry, unit.id, sequence=len(ledger) - 1))
        unit.credit_balance = ledger.current_balance

    def _find_payment(self, transaction_id: str) -> Optional[PaymentRecord]:
        stmt = select(PaymentRecord).where(PaymentRecord.transaction_id == transaction_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _build_request(
        self,
        unit: Unit,
        amount: int,
        payment_date: date,
        transaction_id: Optional[str],
    ) -> tuple[AllocationRequest, CreditLedger, dict[ObligationRef, ObligationRecord]]:
        ledger = self._load_ledger(unit)
        records = records_by_ref(obligation_records(self.db, unit, open_only=True), unit)
        obligations = tuple(record.to_domain(unit.unit_code) for record in records.values())
        request = AllocationRequest(
            unit_id=unit.unit_code,
            payment_amount=amount,
            as_of_date=payment_date,
            obligations=obligations,
            credit_balance=ledger.current_balance,
            transaction_id=transaction_id,
        )
        return request, ledger, records

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def preview_payment(self, unit_code: str, amount: int, payment_date: date) -> AllocationResult:
        """Compute how a payment would be allocated, without writing anything."""
        unit = get_unit(self.db, unit_code)
        request, _, _ = self._build_request(unit, amount, payment_date, transaction_id=None)
        return AllocationService(unit.client.to_fiscal_config()).allocate(request)

    def record_payment(
        self,
        unit_code: str,
        amount: int,
        payment_date: date,
        transaction_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> AllocationResult:
        """Record a payment and apply it to the unit's obligations and credit.

        Args:
            unit_code: Unit paying
            amount: Payment amount in centavos
            payment_date: Date the payment was received (penalties evaluated as of it)
            transaction_id: Identifier from the transaction layer (generated if omitted)
            notes: Optional notes stored with the payment

        Returns:
            AllocationResult as persisted with the payment

        Raises:
            InvalidArgumentError: Unknown unit or negative amount
            InvalidStateError: Duplicate transaction id or inconsistent stored ledger
            ConcurrentModificationError: Conflicts on every attempt
        """
        transaction_id = transaction_id or f"txn_{uuid.uuid4().hex}"

        def cycle() -> AllocationResult:
            unit = get_unit(self.db, unit_code)
            if self._find_payment(transaction_id) is not None:
                raise InvalidStateError(f"Payment {transaction_id} is already recorded")

            request, ledger, records = self._build_request(unit, amount, payment_date, transaction_id)
            result = AllocationService(unit.client.to_fiscal_config()).allocate(request)
            entry = ledger.apply(result.ledger_delta) if result.ledger_delta is not None else None

            self._claim(unit)
            for obligation in result.obligations:
                records[obligation.ref].apply(obligation)
            self._store_entry(unit, ledger, entry)
            self.db.add(
                PaymentRecord(
                    transaction_id=transaction_id,
                    unit_id=unit.id,
                    amount=amount,
                    payment_date=payment_date,
                    notes=notes,
                    allocation=result.model_dump(mode="json"),
                )
            )
            return result

        result = self._run_unit_cycle(f"unit {unit_code}", "record_payment", cycle)
        logger.info(
            f"Recorded payment {transaction_id} for unit {unit_code}: amount={amount}, "
            f"credit_delta={result.credit_delta:+d}"
        )
        return result

    def delete_payment(self, transaction_id: str) -> Optional[ReversalResult]:
        """Reverse a recorded payment's allocation.

        Deleting an already-reversed payment is a no-op and returns None.

        Raises:
            InvalidArgumentError: Unknown transaction
            InvalidStateError: Obligations or credit no longer allow the reversal
            ConcurrentModificationError: Conflicts on every attempt
        """

        def cycle() -> Optional[ReversalResult]:
            payment = self._find_payment(transaction_id)
            if payment is None:
                raise InvalidArgumentError(f"Payment {transaction_id} not found")

            unit = self.db.get(Unit, payment.unit_id)
            allocation = payment.allocation_result()
            records = records_by_ref(obligation_records(self.db, unit), unit)
            ledger = self._load_ledger(unit)

            request = ReversalRequest(
                allocation=allocation,
                current_obligations=tuple(r.to_domain(unit.unit_code) for r in records.values()),
                ledger_entries=ledger.entries,
            )
            try:
                reversal = self.reversal_service.reverse(request)
            except AlreadyReversedError:
                logger.info(f"Payment {transaction_id} already reversed; nothing to do")
                return None

            entry = ledger.apply(reversal.ledger_delta)

            self._claim(unit)
            for obligation in reversal.obligations:
                records[obligation.ref].apply(obligation)
            self._store_entry(unit, ledger, entry)
            payment.reversed_at = self.clock()
            return reversal

        return self._run_unit_cycle(f"payment {transaction_id}", "delete_payment", cycle)

    # ------------------------------------------------------------------
    # Credit
    # ------------------------------------------------------------------

    def _append_manual_entry(
        self,
        unit_code: str,
        entry_type: CreditEntryType,
        amount: int,
        notes: str,
        source_transaction_id: Optional[str],
    ) -> CreditLedgerEntry:
        def cycle() -> CreditLedgerEntry:
            unit = get_unit(self.db, unit_code)
            ledger = self._load_ledger(unit)
            entry = ledger.apply(
                LedgerDelta(
                    entry_type=entry_type,
                    amount=amount,
                    source_transaction_id=source_transaction_id,
                    notes=notes,
                )
            )
            self._claim(unit)
            self._store_entry(unit, ledger, entry)
            return entry

        return self._run_unit_cycle(f"unit {unit_code}", entry_type.value, cycle)

    def set_starting_balance(self, unit_code: str, amount: int, notes: str = "Starting balance") -> CreditLedgerEntry:
        """Open an empty credit ledger with a carried-over balance."""
        return self._append_manual_entry(
            unit_code, CreditEntryType.STARTING_BALANCE, amount, notes, source_transaction_id=None
        )

    def adjust_credit(
        self,
        unit_code: str,
        amount: int,
        notes: str,
        source_transaction_id: Optional[str] = None,
    ) -> CreditLedgerEntry:
        """Record a manual reconciliation (positive or negative) on the credit ledger."""
        return self._append_manual_entry(
            unit_code, CreditEntryType.RECONCILIATION, amount, notes, source_transaction_id
        )

    def get_credit_balance(self, unit_code: str) -> int:
        """Current credit balance, derived from the ledger.

        The cached balance on the unit row is checked against the ledger and
        a mismatch is logged; the ledger value is returned.
        """
        unit = get_unit(self.db, unit_code)
        balance = self._load_ledger(unit).current_balance
        if unit.credit_balance != balance:
            logger.warning(
                "Cached credit balance for unit %s is %d but ledger says %d",
                unit_code,
                unit.credit_balance,
                balance,
            )
        return balance

    def get_credit_history(self, unit_code: str, limit: int = 50) -> list[CreditLedgerEntry]:
        """Credit ledger entries newest first."""
        unit = get_unit(self.db, unit_code)
        return self._load_ledger(unit).history(limit)

    def get_payment(self, transaction_id: str) -> Optional[PaymentRecord]:
        return self._find_payment(transaction_id)


__all__ = ["PaymentService"]
