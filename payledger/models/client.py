"""Client ORM model holding the per-client fiscal configuration."""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payledger.models import Base, BaseModel
from payledger.schemas.fiscal import BillingFrequency, FiscalConfig, Module, PenaltyPolicy


class Client(Base, BaseModel):
    """A property-management client (one HOA) and its fiscal settings.

    The stored settings are turned into an immutable FiscalConfig that is
    passed explicitly into every allocation.
    """

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    fiscal_year_start_month: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Calendar month (1-12) the fiscal year starts in",
    )
    dues_frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillingFrequency.MONTHLY.value,
        comment="HOA dues billing frequency: monthly or quarterly",
    )
    water_frequency: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BillingFrequency.QUARTERLY.value,
        comment="Water billing frequency",
    )
    penalty_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
        default=Decimal("0"),
        comment="Penalty rate per period as a fraction (0.10 = 10%)",
    )
    penalty_grace_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    compound_penalty: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    module_penalties: Mapped[dict[str, Any] | None] = mapped_column(
        JSON,
        nullable=True,
        comment='Per-module overrides: {"water": {"rate": "0.05", "grace_days": 10, "compound": true}}',
    )

    units: Mapped[list["Unit"]] = relationship(  # noqa: F821
        "Unit",
        back_populates="client",
    )

    def to_fiscal_config(self) -> FiscalConfig:
        """Build the immutable configuration used by the allocation engine."""
        overrides = {
            Module(module): PenaltyPolicy.model_validate(policy)
            for module, policy in (self.module_penalties or {}).items()
        }
        return FiscalConfig(
            fiscal_year_start_month=self.fiscal_year_start_month,
            dues_frequency=BillingFrequency(self.dues_frequency),
            water_frequency=BillingFrequency(self.water_frequency),
            penalty_rate=Decimal(str(self.penalty_rate)),
            penalty_grace_days=self.penalty_grace_days,
            compound_penalty=self.compound_penalty,
            module_penalties=overrides,
        )

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name!r}, fy_start={self.fiscal_year_start_month})>"


__all__ = ["Client"]
