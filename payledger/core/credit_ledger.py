"""Append-only credit ledger for one unit.

The entry sequence is the single source of truth for a unit's credit
balance. ``current_balance`` is a cached scalar derived from the last
entry and is kept in step with every append.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, Optional

from payledger.core.errors import InvalidArgumentError, InvalidStateError
from payledger.schemas.ledger import CreditEntryType, CreditLedgerEntry, LedgerDelta

logger = logging.getLogger(__name__)

REVERSAL_SUFFIX = "_reversal"


def reversal_transaction_id(transaction_id: str) -> str:
    return f"{transaction_id}{REVERSAL_SUFFIX}"


def _generate_entry_id() -> str:
    return f"credit_{uuid.uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CreditLedger:
    """Ordered credit entries of a single unit.

    Entries are never mutated or removed; corrections are new entries.
    """

    def __init__(
        self,
        unit_id: str,
        entries: Iterable[CreditLedgerEntry] = (),
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _generate_entry_id,
    ):
        """Load a ledger from stored entries.

        Args:
            unit_id: Unit the ledger belongs to
            entries: Existing entries in ledger order
            clock: Source of timestamps for new entries
            id_factory: Source of ids for new entries

        Raises:
            InvalidStateError: If stored entries break the running-balance chain
        """
        self.unit_id = unit_id
        self._clock = clock
        self._id_factory = id_factory
        self._entries: list[CreditLedgerEntry] = list(entries)
        self._balance = 0
        self.verify()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CreditLedgerEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> tuple[CreditLedgerEntry, ...]:
        return tuple(self._entries)

    @property
    def current_balance(self) -> int:
        return self._balance

    @property
    def last_entry(self) -> Optional[CreditLedgerEntry]:
        return self._entries[-1] if self._entries else None

    def verify(self) -> None:
        """Re-check the running-balance chain and refresh the cached balance.

        Raises:
            InvalidStateError: On a foreign entry, broken chain or out-of-order timestamp
        """
        balance = 0
        previous: Optional[CreditLedgerEntry] = None
        for position, entry in enumerate(self._entries):
            if entry.unit_id != self.unit_id:
                raise InvalidStateError(
                    f"Entry {entry.id} belongs to unit {entry.unit_id}, not {self.unit_id}"
                )
            if entry.balance_after != balance + entry.amount:
                raise InvalidStateError(
                    f"Credit ledger for unit {self.unit_id} broken at entry {position} ({entry.id}): "
                    f"expected balance {balance + entry.amount}, found {entry.balance_after}"
                )
            if previous is not None and entry.timestamp < previous.timestamp:
                raise InvalidStateError(
                    f"Credit ledger for unit {self.unit_id} out of order at entry {position} ({entry.id})"
                )
            balance = entry.balance_after
            previous = entry
        self._balance = balance

    def _check_amount(self, entry_type: CreditEntryType, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidArgumentError(f"Credit amount must be an int in minor units, got {amount!r}")
        if entry_type == CreditEntryType.CREDIT_ADDED and amount <= 0:
            raise InvalidArgumentError(f"credit_added amount must be positive, got {amount}")
        if entry_type == CreditEntryType.CREDIT_USED and amount >= 0:
            raise InvalidArgumentError(f"credit_used amount must be negative, got {amount}")
        if entry_type == CreditEntryType.STARTING_BALANCE:
            if amount < 0:
                raise InvalidArgumentError(f"starting_balance amount must not be negative, got {amount}")
            if self._entries:
                raise InvalidStateError(
                    f"Unit {self.unit_id} already has credit history; use a reconciliation entry"
                )

    def append_entry(
        self,
        entry_type: CreditEntryType,
        amount: int,
        source_transaction_id: Optional[str] = None,
        notes: str = "",
        timestamp: Optional[datetime] = None,
    ) -> CreditLedgerEntry:
        """Append a signed entry and return it.

        Args:
            entry_type: Kind of entry
            amount: Signed amount in minor units (positive adds credit)
            source_transaction_id: Transaction that caused the entry
            notes: Human-readable description
            timestamp: Entry time (default: now, UTC)

        Returns:
            The appended entry with balance_after filled in

        Raises:
            InvalidArgumentError: Wrong sign for the entry type or backdated timestamp
            InvalidStateError: Resulting balance would be negative
        """
        self._check_amount(entry_type, amount)

        timestamp = timestamp or self._clock()
        last = self.last_entry
        if last is not None and timestamp < last.timestamp:
            raise InvalidArgumentError(
                f"Entry timestamp {timestamp.isoformat()} precedes last entry {last.timestamp.isoformat()}"
            )

        new_balance = self._balance + amount
        if new_balance < 0:
            raise InvalidStateError(
                f"Credit balance for unit {self.unit_id} would go negative: "
                f"{self._balance} + ({amount}) = {new_balance}"
            )

        entry = CreditLedgerEntry(
            id=self._id_factory(),
            unit_id=self.unit_id,
            timestamp=timestamp,
            entry_type=entry_type,
            amount=amount,
            balance_after=new_balance,
            source_transaction_id=source_transaction_id,
            notes=notes,
        )
        self._entries.append(entry)
        self._balance = new_balance

        logger.info(
            "Credit %s for unit %s: %+d -> balance %d (source=%s)",
            entry_type.value,
            self.unit_id,
            amount,
            new_balance,
            source_transaction_id,
        )
        return entry

    def apply(self, delta: LedgerDelta, timestamp: Optional[datetime] = None) -> CreditLedgerEntry:
        """Append the entry proposed by an allocation or reversal."""
        return self.append_entry(
            delta.entry_type,
            delta.amount,
            source_transaction_id=delta.source_transaction_id,
            notes=delta.notes,
            timestamp=timestamp,
        )

    def history(self, limit: Optional[int] = None) -> list[CreditLedgerEntry]:
        """Entries newest first, optionally limited."""
        newest_first = list(reversed(self._entries))
        if limit is not None:
            return newest_first[:limit]
        return newest_first

    def entries_for_source(self, source_transaction_id: str) -> list[CreditLedgerEntry]:
        return [e for e in self._entries if e.source_transaction_id == source_transaction_id]

    def has_reversal_for(self, transaction_id: str) -> bool:
        return bool(self.entries_for_source(reversal_transaction_id(transaction_id)))


__all__ = ["CreditLedger", "REVERSAL_SUFFIX", "reversal_transaction_id"]
