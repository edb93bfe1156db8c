"""Reads of a unit's obligations and credit ledger from the database.

Shared by the billing and payment services; everything the engine needs
for one unit is gathered here before any calculation runs.
"""

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from payledger.core.credit_ledger import CreditLedger
from payledger.core.errors import InvalidArgumentError
from payledger.models.credit_entry import CreditEntryRecord
from payledger.models.obligation import ObligationRecord
from payledger.models.unit import Unit
from payledger.schemas.ledger import CreditLedgerEntry
from payledger.schemas.obligation import ObligationRef


def get_unit(db: Session, unit_code: str) -> Unit:
    """Load a unit by code.

    Raises:
        InvalidArgumentError: If no unit has that code
    """
    unit = db.execute(select(Unit).where(Unit.unit_code == unit_code)).scalar_one_or_none()
    if unit is None:
        raise InvalidArgumentError(f"Unit {unit_code!r} not found")
    return unit


def obligation_records(db: Session, unit: Unit, open_only: bool = False) -> list[ObligationRecord]:
    """Obligation rows of a unit ordered by due date.

    Args:
        db: Database session
        unit: Unit to read
        open_only: Only rows where paid < owed
    """
    stmt = select(ObligationRecord).where(ObligationRecord.unit_id == unit.id)
    if open_only:
        stmt = stmt.where(
            ObligationRecord.base_paid + ObligationRecord.penalty_paid
            < ObligationRecord.base_charge + ObligationRecord.penalty_accrued
        )
    stmt = stmt.order_by(ObligationRecord.due_date, ObligationRecord.id)
    return list(db.execute(stmt).scalars().all())


def records_by_ref(records: list[ObligationRecord], unit: Unit) -> dict[ObligationRef, ObligationRecord]:
    return {record.to_domain(unit.unit_code).ref: record for record in records}


def ledger_entries(db: Session, unit: Unit) -> list[CreditLedgerEntry]:
    stmt = (
        select(CreditEntryRecord)
        .where(CreditEntryRecord.unit_id == unit.id)
        .order_by(CreditEntryRecord.timestamp, CreditEntryRecord.sequence)
    )
    return [record.to_domain(unit.unit_code) for record in db.execute(stmt).scalars().all()]


def load_ledger(
    db: Session, unit: Unit, clock: Optional[Callable[[], datetime]] = None
) -> CreditLedger:
    """Credit ledger of a unit, validated against the running-balance chain."""
    entries = ledger_entries(db, unit)
    if clock is None:
        return CreditLedger(unit.unit_code, entries)
    return CreditLedger(unit.unit_code, entries, clock=clock)


__all__ = ["get_unit", "ledger_entries", "load_ledger", "obligation_records", "records_by_ref"]
