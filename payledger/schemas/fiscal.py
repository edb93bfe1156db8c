"""Fiscal configuration schemas shared by the calendar, penalty and allocation code."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Module(str, Enum):
    """Billing modules that produce obligations."""

    DUES = "dues"
    """HOA maintenance dues (monthly or quarterly)"""

    WATER = "water"
    """Water consumption bills (quarterly)"""


class BillingFrequency(str, Enum):
    """How often a module bills a unit."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class PeriodKey(BaseModel):
    """Fiscal year plus period index within it.

    The index is a fiscal month (0-11) for monthly modules and a
    quarter (0-3) for quarterly modules. The range depends on the module's
    billing frequency and is checked by the fiscal calendar.
    """

    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    index: int

    def __str__(self) -> str:
        return f"{self.fiscal_year}-{self.index:02d}"


class PenaltyPolicy(BaseModel):
    """Late-payment penalty rules for one billing module."""

    model_config = ConfigDict(frozen=True)

    rate: Decimal = Field(default=Decimal("0"), ge=0, description="Fraction per penalty period")
    grace_days: int = Field(default=0, ge=0, description="Days after due date before penalties")
    compound: bool = Field(default=True, description="Compound on base + accrued penalty")


class FiscalConfig(BaseModel):
    """Per-client fiscal calendar and penalty configuration.

    Immutable and passed explicitly into every calendar, penalty and
    allocation call; nothing reads it from ambient state.
    """

    model_config = ConfigDict(frozen=True)

    fiscal_year_start_month: int = Field(default=1, ge=1, le=12)
    dues_frequency: BillingFrequency = BillingFrequency.MONTHLY
    water_frequency: BillingFrequency = BillingFrequency.QUARTERLY

    penalty_rate: Decimal = Field(default=Decimal("0"), ge=0)
    penalty_grace_days: int = Field(default=0, ge=0)
    compound_penalty: bool = True

    module_penalties: dict[Module, PenaltyPolicy] = Field(default_factory=dict)
    """Per-module overrides of the client-wide penalty settings."""

    module_priority: tuple[Module, ...] = (Module.DUES, Module.WATER)
    """Tie-break order for obligations sharing a due date."""

    prepaid_modules: frozenset[Module] = frozenset({Module.DUES})
    """Modules whose obligations may be paid before their due date."""

    @field_validator("module_priority")
    @classmethod
    def _priority_covers_all_modules(cls, value: tuple[Module, ...]) -> tuple[Module, ...]:
        if set(value) != set(Module) or len(value) != len(Module):
            raise ValueError("module_priority must list every module exactly once")
        return value

    def frequency_for(self, module: Module) -> BillingFrequency:
        """Billing frequency of a module."""
        if module == Module.DUES:
            return self.dues_frequency
        return self.water_frequency

    def penalty_policy(self, module: Module) -> PenaltyPolicy:
        """Penalty rules for a module, falling back to the client-wide settings."""
        override = self.module_penalties.get(module)
        if override is not None:
            return override
        return PenaltyPolicy(
            rate=self.penalty_rate,
            grace_days=self.penalty_grace_days,
            compound=self.compound_penalty,
        )

    def module_rank(self, module: Module) -> int:
        return self.module_priority.index(module)


__all__ = ["BillingFrequency", "FiscalConfig", "Module", "PenaltyPolicy", "PeriodKey"]
