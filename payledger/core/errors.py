"""Exception classes for the allocation and credit ledger engine.

Provides domain-specific exceptions for clear error handling and reporting.
"""


class LedgerError(Exception):
    """Base exception for allocation and ledger errors."""

    pass


class InvalidArgumentError(LedgerError, ValueError):
    """Malformed input (bad period index, negative payment, wrong unit, etc.).

    Always fatal to the call, never retried automatically.
    """

    pass


class InvalidStateError(LedgerError):
    """Stored data is inconsistent (ledger would go negative, missing obligation, etc.).

    Signals a data-integrity problem upstream that must be surfaced.
    """

    pass


class AlreadyReversedError(LedgerError):
    """A reversal entry for the transaction already exists."""

    pass


class ConcurrentModificationError(LedgerError):
    """Unit state changed under a read-compute-write cycle on every attempt."""

    pass
