"""Credit ledger schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CreditEntryType(str, Enum):
    """Kinds of credit ledger entries."""

    STARTING_BALANCE = "starting_balance"
    """Opening balance carried over from a previous system"""

    CREDIT_ADDED = "credit_added"
    """Overpayment held for future use (positive amount)"""

    CREDIT_USED = "credit_used"
    """Credit applied to obligations (negative amount)"""

    RECONCILIATION = "reconciliation"
    """Manual correction, any sign"""


class CreditLedgerEntry(BaseModel):
    """One immutable entry in a unit's credit ledger."""

    model_config = ConfigDict(frozen=True)

    id: str
    unit_id: str
    timestamp: datetime
    entry_type: CreditEntryType
    amount: int
    balance_after: int
    source_transaction_id: Optional[str] = None
    notes: str = ""


class LedgerDelta(BaseModel):
    """Ledger entry proposed by an allocation or reversal, not yet appended."""

    model_config = ConfigDict(frozen=True)

    entry_type: CreditEntryType
    amount: int
    source_transaction_id: Optional[str] = None
    notes: str = ""


__all__ = ["CreditEntryType", "CreditLedgerEntry", "LedgerDelta"]
