"""Credit ledger entry ORM model (append-only)."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payledger.models import Base, BaseModel
from payledger.schemas.ledger import CreditEntryType, CreditLedgerEntry


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes even for timezone=True columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CreditEntryRecord(Base, BaseModel):
    """Stored credit ledger entry.

    Rows are inserted only; corrections are new rows. ``sequence`` preserves
    insertion order for entries sharing a timestamp.
    """

    __tablename__ = "credit_ledger_entries"

    entry_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    entry_type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Signed centavos")
    balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    source_transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    notes: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("unit_id", "sequence", name="uq_credit_entry_sequence"),
        Index("idx_credit_entry_unit_order", "unit_id", "timestamp", "sequence"),
    )

    @classmethod
    def from_entry(cls, entry: CreditLedgerEntry, unit_pk: int, sequence: int) -> "CreditEntryRecord":
        return cls(
            entry_id=entry.id,
            unit_id=unit_pk,
            sequence=sequence,
            timestamp=entry.timestamp,
            entry_type=entry.entry_type.value,
            amount=entry.amount,
            balance_after=entry.balance_after,
            source_transaction_id=entry.source_transaction_id,
            notes=entry.notes,
        )

    def to_domain(self, unit_code: str) -> CreditLedgerEntry:
        return CreditLedgerEntry(
            id=self.entry_id,
            unit_id=unit_code,
            timestamp=_as_utc(self.timestamp),
            entry_type=CreditEntryType(self.entry_type),
            amount=self.amount,
            balance_after=self.balance_after,
            source_transaction_id=self.source_transaction_id,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<CreditEntryRecord(entry_id={self.entry_id!r}, unit_id={self.unit_id}, "
            f"type={self.entry_type}, amount={self.amount}, balance_after={self.balance_after})>"
        )


__all__ = ["CreditEntryRecord"]
