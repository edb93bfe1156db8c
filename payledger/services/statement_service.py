"""Human-readable breakdowns of allocations and credit history for statements."""

from payledger.schemas.allocation import AllocationLine, AllocationResult, ReversalResult
from payledger.schemas.ledger import CreditLedgerEntry
from payledger.services.locale_service import format_amount, format_local_date, format_signed_amount

MODULE_LABELS = {
    "dues": "HOA Dues",
    "water": "Water",
}


def describe_line(line: AllocationLine) -> str:
    """One statement row for an allocation line.

    Example: 'Water 2026-00: base $110.00, penalty $50.00 (paid from credit $10.00) - partial'
    """
    ref = line.obligation_ref
    label = MODULE_LABELS.get(ref.module.value, ref.module.value)
    text = (
        f"{label} {ref.period}: base {format_amount(line.base_total)}, "
        f"penalty {format_amount(line.penalty_total)}"
    )
    if line.from_credit.total:
        text += f" (paid from credit {format_amount(line.from_credit.total)})"
    return f"{text} - {line.resulting_status.value}"


def describe_allocation(result: AllocationResult) -> list[str]:
    """Split breakdown of a payment, one line per obligation plus the credit movement."""
    lines = [
        f"Payment {format_amount(result.payment_amount)} on {format_local_date(result.as_of_date)}"
        + (f" ({result.transaction_id})" if result.transaction_id else "")
    ]
    lines.extend(describe_line(line) for line in result.lines)
    if result.credit_added:
        lines.append(f"Added to credit balance: {format_amount(result.credit_added)}")
    if result.credit_used:
        lines.append(f"Used from credit balance: {format_amount(result.credit_used)}")
    lines.append(f"Credit balance: {format_amount(result.credit_balance_after)}")
    return lines


def describe_reversal(result: ReversalResult) -> list[str]:
    lines = [f"Reversed payment {result.transaction_id}"]
    lines.extend(
        f"{MODULE_LABELS.get(o.module.value, o.module.value)} {o.period}: now {o.status.value}"
        for o in result.obligations
    )
    lines.append(f"Credit balance: {format_amount(result.credit_balance_after)}")
    return lines


def describe_credit_history(entries: list[CreditLedgerEntry]) -> list[str]:
    return [
        f"{format_local_date(entry.timestamp.date())} {entry.entry_type.value} "
        f"{format_signed_amount(entry.amount)} -> {format_amount(entry.balance_after)}"
        + (f" ({entry.notes})" if entry.notes else "")
        for entry in entries
    ]


__all__ = ["describe_allocation", "describe_credit_history", "describe_line", "describe_reversal"]
