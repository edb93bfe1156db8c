"""Unit ORM model: the concurrency scope for payments and credit."""

from sqlalchemy import BigInteger, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payledger.models import Base, BaseModel


class Unit(Base, BaseModel):
    """A unit (apartment/lot) of a client.

    ``version`` is SQLAlchemy's optimistic-concurrency counter: every
    allocation, reversal or credit adjustment touches this row, so two
    overlapping writes for one unit cannot both commit.
    ``credit_balance`` is a cache of the credit ledger tail.
    """

    __tablename__ = "units"

    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id"),
        nullable=False,
        index=True,
    )
    unit_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Unit identifier used by the engine (e.g., '1A', 'PH4D')",
    )
    credit_balance: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        comment="Cached credit balance in centavos; derived from credit_ledger_entries",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    client: Mapped["Client"] = relationship(  # noqa: F821
        "Client",
        back_populates="units",
    )

    # Bumped explicitly by every write cycle; the UPDATE matches on the old value
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self) -> str:
        return (
            f"<Unit(id={self.id}, unit_code={self.unit_code!r}, "
            f"credit_balance={self.credit_balance}, version={self.version})>"
        )


__all__ = ["Unit"]
