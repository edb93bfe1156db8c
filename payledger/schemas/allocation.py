"""Allocation and reversal request/result schemas.

Results are JSON round-trippable so the transaction layer can persist an
allocation next to its payment and feed it back for reversal later.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from payledger.schemas.ledger import CreditEntryType, CreditLedgerEntry, LedgerDelta
from payledger.schemas.obligation import Obligation, ObligationRef, ObligationStatus


class ComponentSplit(BaseModel):
    """Amount applied to an obligation, split into base and penalty parts."""

    model_config = ConfigDict(frozen=True)

    base: int = Field(default=0, ge=0)
    penalty: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.base + self.penalty


class AllocationLine(BaseModel):
    """What one payment contributed to one obligation."""

    model_config = ConfigDict(frozen=True)

    obligation_ref: ObligationRef
    from_payment: ComponentSplit = ComponentSplit()
    from_credit: ComponentSplit = ComponentSplit()
    resulting_status: ObligationStatus

    @property
    def base_total(self) -> int:
        return self.from_payment.base + self.from_credit.base

    @property
    def penalty_total(self) -> int:
        return self.from_payment.penalty + self.from_credit.penalty

    @property
    def total(self) -> int:
        return self.from_payment.total + self.from_credit.total


class AllocationRequest(BaseModel):
    """Inputs gathered by the caller before allocating a payment."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    payment_amount: int
    as_of_date: date
    obligations: tuple[Obligation, ...] = ()
    credit_balance: int = 0
    transaction_id: Optional[str] = None


class AllocationResult(BaseModel):
    """Outcome of allocating one payment across obligations and credit."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    transaction_id: Optional[str] = None
    payment_amount: int
    as_of_date: date
    credit_balance_before: int
    lines: tuple[AllocationLine, ...] = ()
    credit_delta: int = 0
    unallocated_remainder: int = 0
    obligations: tuple[Obligation, ...] = ()
    """Proposed new state of every obligation that was refreshed or paid."""
    ledger_delta: Optional[LedgerDelta] = None

    @property
    def total_from_payment(self) -> int:
        return sum(line.from_payment.total for line in self.lines)

    @property
    def total_from_credit(self) -> int:
        return sum(line.from_credit.total for line in self.lines)

    @property
    def credit_used(self) -> int:
        return max(0, -self.credit_delta)

    @property
    def credit_added(self) -> int:
        return max(0, self.credit_delta)

    @property
    def credit_balance_after(self) -> int:
        return self.credit_balance_before + self.credit_delta

    def line_for(self, ref: ObligationRef) -> Optional[AllocationLine]:
        for line in self.lines:
            if line.obligation_ref == ref:
                return line
        return None


class ReversalRequest(BaseModel):
    """Inputs for undoing a previously recorded allocation."""

    model_config = ConfigDict(frozen=True)

    allocation: AllocationResult
    current_obligations: tuple[Obligation, ...] = ()
    ledger_entries: tuple[CreditLedgerEntry, ...] = ()


class ReversalResult(BaseModel):
    """Inverse obligation and ledger changes for one allocation."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    reversal_transaction_id: str
    obligations: tuple[Obligation, ...] = ()
    ledger_delta: LedgerDelta
    credit_balance_after: int

    @property
    def credit_restored(self) -> int:
        if self.ledger_delta.entry_type == CreditEntryType.CREDIT_ADDED:
            return self.ledger_delta.amount
        return 0


__all__ = [
    "AllocationLine",
    "AllocationRequest",
    "AllocationResult",
    "ComponentSplit",
    "ReversalRequest",
    "ReversalResult",
]
