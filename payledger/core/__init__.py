"""Pure allocation engine: calendar, penalties, credit ledger, allocation and reversal.

Nothing in this package performs I/O; callers gather state, invoke the
engine and persist the returned changes.
"""

from payledger.core.allocation import AllocationService, allocate
from payledger.core.credit_ledger import CreditLedger, reversal_transaction_id
from payledger.core.errors import (
    AlreadyReversedError,
    ConcurrentModificationError,
    InvalidArgumentError,
    InvalidStateError,
    LedgerError,
)
from payledger.core.reversal import ReversalService, reverse

__all__ = [
    "AllocationService",
    "AlreadyReversedError",
    "ConcurrentModificationError",
    "CreditLedger",
    "InvalidArgumentError",
    "InvalidStateError",
    "LedgerError",
    "ReversalService",
    "allocate",
    "reversal_transaction_id",
    "reverse",
]
