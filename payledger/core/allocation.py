"""Allocation engine for distributing one payment across a unit's obligations.

Core algorithm:
1. Keep obligations that are not yet paid (and, for postpaid modules, already due)
2. Refresh each obligation's penalty as of the payment date
3. Sort oldest first by due date, tie-broken by module priority
4. Walk the queue with payment + credit; per obligation pay penalty first, then base.
   The payment is consumed before any credit is touched.
5. Leftover payment becomes one credit_added entry; drawn credit becomes one
   credit_used entry (net amount, never both)

Ensures: everything taken from payment and credit lands on an obligation or
back in the credit ledger (zero money loss/creation). All amounts are integer
minor units.
"""

import logging
from typing import Optional

from payledger.core.errors import InvalidArgumentError, InvalidStateError
from payledger.core.penalty import refresh_obligation
from payledger.schemas.allocation import (
    AllocationLine,
    AllocationRequest,
    AllocationResult,
    ComponentSplit,
)
from payledger.schemas.fiscal import FiscalConfig
from payledger.schemas.ledger import CreditEntryType, LedgerDelta
from payledger.schemas.obligation import Obligation, ObligationStatus

logger = logging.getLogger(__name__)


class _Funds:
    """Remaining payment and credit during one allocation walk."""

    def __init__(self, payment: int, credit: int):
        self.payment = payment
        self.credit = credit

    @property
    def total(self) -> int:
        return self.payment + self.credit

    def take(self, needed: int) -> tuple[int, int]:
        """Draw up to ``needed``, payment first. Returns (from_payment, from_credit)."""
        from_payment = min(self.payment, needed)
        self.payment -= from_payment
        from_credit = min(self.credit, needed - from_payment)
        self.credit -= from_credit
        return from_payment, from_credit


class AllocationService:
    """Payment allocation across dues and water obligations."""

    def __init__(self, config: FiscalConfig):
        """Initialize allocation service.

        Args:
            config: Client fiscal configuration used for penalties and ordering
        """
        self.config = config

    def _validate(self, request: AllocationRequest) -> None:
        if request.payment_amount < 0:
            raise InvalidArgumentError(
                f"payment_amount must be non-negative, got {request.payment_amount}"
            )
        if request.credit_balance < 0:
            raise InvalidArgumentError(
                f"credit_balance must be non-negative, got {request.credit_balance}"
            )
        seen = set()
        for obligation in request.obligations:
            if obligation.unit_id != request.unit_id:
                raise InvalidArgumentError(
                    f"Obligation {obligation.ref} does not belong to unit {request.unit_id}"
                )
            if obligation.ref in seen:
                raise InvalidArgumentError(f"Duplicate obligation {obligation.ref}")
            seen.add(obligation.ref)

    def is_payable(self, obligation: Obligation, request: AllocationRequest) -> bool:
        """Whether an obligation may receive funds on the request's date.

        Postpaid bills become payable in the month they fall due, even
        before their due day.
        """
        if obligation.status == ObligationStatus.PAID:
            return False
        if obligation.module in self.config.prepaid_modules:
            return True
        due, as_of = obligation.due_date, request.as_of_date
        return due <= as_of or (due.year, due.month) == (as_of.year, as_of.month)

    def sort_key(self, obligation: Obligation) -> tuple:
        return (
            obligation.due_date,
            self.config.module_rank(obligation.module),
            obligation.period.fiscal_year,
            obligation.period.index,
        )

    def payment_queue(self, request: AllocationRequest) -> list[Obligation]:
        """Payable obligations with refreshed penalties, oldest first."""
        refreshed = [
            refresh_obligation(obligation, request.as_of_date, self.config)
            for obligation in request.obligations
            if self.is_payable(obligation, request)
        ]
        return sorted(refreshed, key=self.sort_key)

    def _pay_obligation(self, obligation: Obligation, funds: _Funds) -> tuple[Obligation, AllocationLine]:
        penalty_payment, penalty_credit = funds.take(obligation.penalty_due)
        base_payment, base_credit = funds.take(obligation.base_due)

        updated = obligation.model_copy(
            update={
                "penalty_paid": obligation.penalty_paid + penalty_payment + penalty_credit,
                "base_paid": obligation.base_paid + base_payment + base_credit,
            }
        )
        line = AllocationLine(
            obligation_ref=obligation.ref,
            from_payment=ComponentSplit(base=base_payment, penalty=penalty_payment),
            from_credit=ComponentSplit(base=base_credit, penalty=penalty_credit),
            resulting_status=updated.status,
        )
        return updated, line

    def _ledger_delta(
        self, credit_delta: int, transaction_id: Optional[str], applied: int
    ) -> Optional[LedgerDelta]:
        if credit_delta > 0:
            return LedgerDelta(
                entry_type=CreditEntryType.CREDIT_ADDED,
                amount=credit_delta,
                source_transaction_id=transaction_id,
                notes=f"Overpayment after {applied} applied to obligations",
            )
        if credit_delta < 0:
            return LedgerDelta(
                entry_type=CreditEntryType.CREDIT_USED,
                amount=credit_delta,
                source_transaction_id=transaction_id,
                notes=f"Credit applied to obligations ({-credit_delta})",
            )
        return None

    def allocate(self, request: AllocationRequest) -> AllocationResult:
        """Allocate a payment across obligations and credit.

        Pure: reads only the request and configuration, writes nothing.

        Args:
            request: Unit, payment amount, date, open obligations and credit balance

        Returns:
            AllocationResult with per-obligation lines, proposed obligation states
            and at most one ledger delta

        Raises:
            InvalidArgumentError: Negative amounts or obligations of another unit
            InvalidStateError: Funds left unaccounted for after the walk
        """
        self._validate(request)

        queue = self.payment_queue(request)
        funds = _Funds(request.payment_amount, request.credit_balance)

        updated_by_ref = {obligation.ref: obligation for obligation in queue}
        lines: list[AllocationLine] = []

        for obligation in queue:
            if funds.total <= 0:
                break
            if obligation.amount_due <= 0:
                continue
            updated, line = self._pay_obligation(obligation, funds)
            updated_by_ref[obligation.ref] = updated
            lines.append(line)
            logger.debug(
                "Allocated to %s: payment base=%d penalty=%d, credit base=%d penalty=%d -> %s",
                obligation.ref,
                line.from_payment.base,
                line.from_payment.penalty,
                line.from_credit.base,
                line.from_credit.penalty,
                line.resulting_status.value,
            )

        from_payment = sum(line.from_payment.total for line in lines)
        from_credit = sum(line.from_credit.total for line in lines)
        credit_used = request.credit_balance - funds.credit
        overpayment = funds.payment
        credit_delta = overpayment - credit_used

        unallocated = request.payment_amount - from_payment - overpayment
        if unallocated != 0 or from_credit != credit_used:
            raise InvalidStateError(
                f"Allocation for unit {request.unit_id} left {unallocated} unallocated "
                f"(credit drawn {credit_used}, credit applied {from_credit})"
            )
        if overpayment > 0 and credit_used > 0:
            raise InvalidStateError(
                f"Allocation for unit {request.unit_id} both drew and added credit"
            )

        result = AllocationResult(
            unit_id=request.unit_id,
            transaction_id=request.transaction_id,
            payment_amount=request.payment_amount,
            as_of_date=request.as_of_date,
            credit_balance_before=request.credit_balance,
            lines=tuple(lines),
            credit_delta=credit_delta,
            unallocated_remainder=unallocated,
            obligations=tuple(updated_by_ref[obligation.ref] for obligation in queue),
            ledger_delta=self._ledger_delta(credit_delta, request.transaction_id, from_payment + from_credit),
        )

        logger.info(
            "Allocated payment %d for unit %s: %d obligation(s), from payment %d, "
            "from credit %d, credit delta %+d",
            request.payment_amount,
            request.unit_id,
            len(lines),
            from_payment,
            from_credit,
            credit_delta,
        )
        return result


def allocate(request: AllocationRequest, config: FiscalConfig) -> AllocationResult:
    """Allocate a payment with a one-off AllocationService."""
    return AllocationService(config).allocate(request)


__all__ = ["AllocationService", "allocate"]
