"""Payment ORM model: a recorded payment and its allocation breakdown."""

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Date, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from payledger.models import Base, BaseModel
from payledger.schemas.allocation import AllocationResult


class PaymentRecord(Base, BaseModel):
    """A payment received for a unit.

    ``allocation`` holds the JSON form of the AllocationResult produced when
    the payment was recorded; it is the audit trail for statements and the
    input for reversal when the payment is deleted. Deleted payments are
    kept with ``reversed_at`` set.
    """

    __tablename__ = "payments"

    transaction_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Centavos")
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    allocation: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    reversed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None

    def allocation_result(self) -> AllocationResult:
        return AllocationResult.model_validate(self.allocation)

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord(id={self.id}, transaction_id={self.transaction_id!r}, "
            f"unit_id={self.unit_id}, amount={self.amount}, date={self.payment_date}, "
            f"reversed={self.is_reversed})>"
        )


__all__ = ["PaymentRecord"]
