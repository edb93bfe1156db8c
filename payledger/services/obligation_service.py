"""Billing service: creates dues and water obligations for fiscal periods."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from payledger.core.errors import InvalidArgumentError, InvalidStateError
from payledger.core.fiscal_calendar import period_due_date, period_for_fiscal_month
from payledger.models.obligation import ObligationRecord
from payledger.schemas.fiscal import Module, PeriodKey
from payledger.schemas.obligation import Obligation
from payledger.services.unit_store import get_unit, obligation_records

logger = logging.getLogger(__name__)


class ObligationService:
    """Creates and reads obligations on behalf of the billing modules.

    Obligations are never deleted here; payment state changes only through
    PaymentService.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def bill_period(
        self,
        unit_code: str,
        module: Module,
        period: PeriodKey,
        base_charge: int,
        due_date: Optional[date] = None,
    ) -> Obligation:
        """Create the obligation for one billing period.

        Args:
            unit_code: Unit being billed
            module: Billing module (dues or water)
            period: Fiscal period being billed
            base_charge: Charge in centavos
            due_date: Explicit due date (default: from the client's fiscal calendar)

        Returns:
            The created obligation

        Raises:
            InvalidArgumentError: Unknown unit, invalid period or negative charge
            InvalidStateError: The period is already billed for this module
        """
        if base_charge < 0:
            raise InvalidArgumentError(f"base_charge must be non-negative, got {base_charge}")

        unit = get_unit(self.db, unit_code)
        config = unit.client.to_fiscal_config()
        computed_due = period_due_date(period, config, module)

        existing = (
            self.db.query(ObligationRecord)
            .filter_by(
                unit_id=unit.id,
                module=module.value,
                fiscal_year=period.fiscal_year,
                period_index=period.index,
            )
            .first()
        )
        if existing:
            logger.error(f"Period {period} already billed for unit {unit_code} ({module.value})")
            raise InvalidStateError(
                f"{module.value} period {period} already billed for unit {unit_code}"
            )

        record = ObligationRecord(
            unit_id=unit.id,
            module=module.value,
            fiscal_year=period.fiscal_year,
            period_index=period.index,
            due_date=due_date or computed_due,
            base_charge=base_charge,
            penalty_accrued=0,
            base_paid=0,
            penalty_paid=0,
        )
        self.db.add(record)
        self.db.commit()

        logger.info(
            "Billed %s period %s for unit %s: %d due %s",
            module.value,
            period,
            unit_code,
            base_charge,
            record.due_date,
        )
        return record.to_domain(unit_code)

    def bill_fiscal_month(
        self,
        unit_code: str,
        module: Module,
        fiscal_year: int,
        fiscal_month_index: int,
        base_charge: int,
    ) -> Obligation:
        """Bill the period that contains a fiscal month (a quarter for quarterly modules)."""
        unit = get_unit(self.db, unit_code)
        config = unit.client.to_fiscal_config()
        period = period_for_fiscal_month(fiscal_year, fiscal_month_index, config, module)
        return self.bill_period(unit_code, module, period, base_charge)

    def get_obligations(self, unit_code: str, open_only: bool = False) -> list[Obligation]:
        """Obligations of a unit ordered by due date."""
        unit = get_unit(self.db, unit_code)
        return [
            record.to_domain(unit_code)
            for record in obligation_records(self.db, unit, open_only=open_only)
        ]


__all__ = ["ObligationService"]
