"""Obligation (bill) schema: one unit's charge for one period in one module."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from payledger.schemas.fiscal import Module, PeriodKey


class ObligationStatus(str, Enum):
    """Payment state derived from paid vs owed totals."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class ObligationRef(BaseModel):
    """Identity of an obligation across both billing modules."""

    model_config = ConfigDict(frozen=True)

    unit_id: str
    module: Module
    period: PeriodKey

    def __str__(self) -> str:
        return f"{self.unit_id}/{self.module.value}/{self.period}"


class Obligation(BaseModel):
    """Read-only view of an outstanding charge.

    Status is always derived from the amounts, never stored alongside them.
    Transitions produce new instances via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    unit_id: str
    module: Module
    period: PeriodKey
    due_date: date
    base_charge: int = Field(ge=0)
    penalty_accrued: int = Field(default=0, ge=0)
    base_paid: int = Field(default=0, ge=0)
    penalty_paid: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _paid_within_charges(self) -> "Obligation":
        if self.base_paid > self.base_charge:
            raise ValueError(
                f"base_paid {self.base_paid} exceeds base_charge {self.base_charge}"
            )
        if self.penalty_paid > self.penalty_accrued:
            raise ValueError(
                f"penalty_paid {self.penalty_paid} exceeds penalty_accrued {self.penalty_accrued}"
            )
        return self

    @property
    def ref(self) -> ObligationRef:
        return ObligationRef(unit_id=self.unit_id, module=self.module, period=self.period)

    @property
    def total_owed(self) -> int:
        return self.base_charge + self.penalty_accrued

    @property
    def total_paid(self) -> int:
        return self.base_paid + self.penalty_paid

    @property
    def base_due(self) -> int:
        return self.base_charge - self.base_paid

    @property
    def penalty_due(self) -> int:
        return self.penalty_accrued - self.penalty_paid

    @property
    def amount_due(self) -> int:
        return max(0, self.total_owed - self.total_paid)

    @property
    def status(self) -> ObligationStatus:
        paid = self.total_paid
        if paid >= self.total_owed:
            return ObligationStatus.PAID
        if paid > 0:
            return ObligationStatus.PARTIAL
        return ObligationStatus.UNPAID


__all__ = ["Obligation", "ObligationRef", "ObligationStatus"]
