"""Reversal engine: undo one recorded allocation against current state.

The reversal subtracts only this allocation's contributions from the
obligations it touched and re-derives their status from current totals.
Payments recorded after the original may have moved things forward; they
are left alone. The ledger receives the negation of the original credit
delta, tagged ``<transaction_id>_reversal``, which also marks the
transaction as reversed.
"""

import logging

from payledger.core.credit_ledger import CreditLedger, reversal_transaction_id
from payledger.core.errors import AlreadyReversedError, InvalidArgumentError, InvalidStateError
from payledger.schemas.allocation import ReversalRequest, ReversalResult
from payledger.schemas.ledger import CreditEntryType, LedgerDelta
from payledger.schemas.obligation import Obligation, ObligationRef

logger = logging.getLogger(__name__)


class ReversalService:
    """Computes inverse obligation and ledger changes for an allocation."""

    def _reverse_lines(self, request: ReversalRequest) -> dict[ObligationRef, Obligation]:
        current = {obligation.ref: obligation for obligation in request.current_obligations}
        touched: dict[ObligationRef, Obligation] = {}

        for line in request.allocation.lines:
            obligation = touched.get(line.obligation_ref) or current.get(line.obligation_ref)
            if obligation is None:
                raise InvalidStateError(f"Obligation {line.obligation_ref} not found for reversal")

            base_paid = obligation.base_paid - line.base_total
            penalty_paid = obligation.penalty_paid - line.penalty_total
            if base_paid < 0 or penalty_paid < 0:
                raise InvalidStateError(
                    f"Obligation {line.obligation_ref} has less paid "
                    f"(base {obligation.base_paid}, penalty {obligation.penalty_paid}) "
                    f"than the allocation being reversed "
                    f"(base {line.base_total}, penalty {line.penalty_total})"
                )

            touched[line.obligation_ref] = obligation.model_copy(
                update={"base_paid": base_paid, "penalty_paid": penalty_paid}
            )
        return touched

    def _ledger_delta(self, request: ReversalRequest, ledger: CreditLedger) -> LedgerDelta:
        allocation = request.allocation
        transaction_id = allocation.transaction_id
        amount = -allocation.credit_delta

        if amount < 0 and ledger.current_balance + amount < 0:
            raise InvalidStateError(
                f"Cannot reverse {transaction_id}: credit of {-amount} it added has since been "
                f"used (current balance {ledger.current_balance})"
            )

        if amount > 0:
            entry_type = CreditEntryType.CREDIT_ADDED
        elif amount < 0:
            entry_type = CreditEntryType.CREDIT_USED
        else:
            entry_type = CreditEntryType.RECONCILIATION

        originals = ledger.entries_for_source(transaction_id)
        if originals:
            notes = f"Reversal of entry {originals[-1].id} (payment {transaction_id})"
        else:
            notes = f"Reversal of payment {transaction_id} (no credit movement)"

        return LedgerDelta(
            entry_type=entry_type,
            amount=amount,
            source_transaction_id=reversal_transaction_id(transaction_id),
            notes=notes,
        )

    def reverse(self, request: ReversalRequest) -> ReversalResult:
        """Reverse a previously recorded allocation.

        Args:
            request: Original allocation, current obligations and current ledger entries

        Returns:
            ReversalResult with restored obligation states and one ledger delta

        Raises:
            InvalidArgumentError: Allocation carries no transaction id
            AlreadyReversedError: A reversal entry for the transaction already exists
            InvalidStateError: Missing obligation, over-reversal, or ledger would go negative
        """
        allocation = request.allocation
        transaction_id = allocation.transaction_id
        if not transaction_id:
            raise InvalidArgumentError("Allocation has no transaction_id; cannot tag its reversal")

        ledger = CreditLedger(allocation.unit_id, request.ledger_entries)
        if ledger.has_reversal_for(transaction_id):
            raise AlreadyReversedError(f"Transaction {transaction_id} has already been reversed")

        obligations = self._reverse_lines(request)
        delta = self._ledger_delta(request, ledger)

        logger.info(
            "Reversed payment %s for unit %s: %d obligation(s) restored, credit %+d",
            transaction_id,
            allocation.unit_id,
            len(obligations),
            delta.amount,
        )

        return ReversalResult(
            transaction_id=transaction_id,
            reversal_transaction_id=reversal_transaction_id(transaction_id),
            obligations=tuple(obligations.values()),
            ledger_delta=delta,
            credit_balance_after=ledger.current_balance + delta.amount,
        )


def reverse(request: ReversalRequest) -> ReversalResult:
    return ReversalService().reverse(request)


__all__ = ["ReversalService", "reverse"]
