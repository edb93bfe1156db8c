"""Value types exchanged with the allocation engine."""

from payledger.schemas.allocation import (
    AllocationLine,
    AllocationRequest,
    AllocationResult,
    ComponentSplit,
    ReversalRequest,
    ReversalResult,
)
from payledger.schemas.fiscal import BillingFrequency, FiscalConfig, Module, PenaltyPolicy, PeriodKey
from payledger.schemas.ledger import CreditEntryType, CreditLedgerEntry, LedgerDelta
from payledger.schemas.obligation import Obligation, ObligationRef, ObligationStatus

__all__ = [
    "AllocationLine",
    "AllocationRequest",
    "AllocationResult",
    "BillingFrequency",
    "ComponentSplit",
    "CreditEntryType",
    "CreditLedgerEntry",
    "FiscalConfig",
    "LedgerDelta",
    "Module",
    "Obligation",
    "ObligationRef",
    "ObligationStatus",
    "PenaltyPolicy",
    "PeriodKey",
    "ReversalRequest",
    "ReversalResult",
]
