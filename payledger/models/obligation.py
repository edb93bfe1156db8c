"""Obligation ORM model: stored state of dues and water bills."""

from datetime import date

from sqlalchemy import BigInteger, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payledger.models import Base, BaseModel
from payledger.schemas.fiscal import Module, PeriodKey
from payledger.schemas.obligation import Obligation


class ObligationRecord(Base, BaseModel):
    """One billed period for one unit in one billing module.

    Rows are created when a period is billed and are never deleted; they
    only move between unpaid, partial and paid through allocation and
    reversal. Status is not stored: it is derived from the amounts.
    """

    __tablename__ = "obligations"

    unit_id: Mapped[int] = mapped_column(
        ForeignKey("units.id"),
        nullable=False,
        index=True,
    )
    module: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Billing module: dues or water",
    )
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Fiscal month (0-11) for monthly billing, quarter (0-3) for quarterly",
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Amounts in centavos
    base_charge: Mapped[int] = mapped_column(BigInteger, nullable=False)
    penalty_accrued: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    base_paid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    penalty_paid: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("unit_id", "module", "fiscal_year", "period_index", name="uq_obligation_period"),
        Index("idx_obligation_unit_due", "unit_id", "due_date"),
    )

    @property
    def period(self) -> PeriodKey:
        return PeriodKey(fiscal_year=self.fiscal_year, index=self.period_index)

    def to_domain(self, unit_code: str) -> Obligation:
        return Obligation(
            unit_id=unit_code,
            module=Module(self.module),
            period=self.period,
            due_date=self.due_date,
            base_charge=self.base_charge,
            penalty_accrued=self.penalty_accrued,
            base_paid=self.base_paid,
            penalty_paid=self.penalty_paid,
        )

    def apply(self, obligation: Obligation) -> None:
        """Copy the mutable amounts of a proposed obligation state onto this row."""
        self.penalty_accrued = obligation.penalty_accrued
        self.base_paid = obligation.base_paid
        self.penalty_paid = obligation.penalty_paid

    def __repr__(self) -> str:
        return (
            f"<ObligationRecord(id={self.id}, unit_id={self.unit_id}, module={self.module}, "
            f"period={self.fiscal_year}-{self.period_index:02d}, base={self.base_charge}, "
            f"penalty={self.penalty_accrued}, paid={self.base_paid}+{self.penalty_paid})>"
        )


__all__ = ["ObligationRecord"]
