"""Fiscal calendar: map calendar dates to fiscal periods and back.

A fiscal year starts on the 1st of ``fiscal_year_start_month`` and is
labelled by the calendar year in which it starts. Fiscal month 0 is the
start month; quarters group fiscal months 0-2, 3-5, 6-8 and 9-11.

Every period is due on the 1st of its first calendar month. Monthly
modules have one period per fiscal month; quarterly modules share the
quarter's first-month due date across all three months.
"""

import calendar
from datetime import date, timedelta

from payledger.core.errors import InvalidArgumentError
from payledger.schemas.fiscal import BillingFrequency, FiscalConfig, Module, PeriodKey

MONTHS_PER_QUARTER = 3

PERIODS_PER_YEAR = {
    BillingFrequency.MONTHLY: 12,
    BillingFrequency.QUARTERLY: 4,
}


def _validate_fiscal_month_index(fiscal_month_index: int) -> None:
    if isinstance(fiscal_month_index, bool) or not isinstance(fiscal_month_index, int):
        raise InvalidArgumentError(f"fiscal month index must be an int, got {fiscal_month_index!r}")
    if not 0 <= fiscal_month_index <= 11:
        raise InvalidArgumentError(f"fiscal month index must be 0-11, got {fiscal_month_index}")


def _validate_calendar_month(month: int, name: str) -> None:
    if not 1 <= month <= 12:
        raise InvalidArgumentError(f"{name} must be between 1 and 12, got {month}")


def calendar_to_fiscal_month(calendar_month: int, fiscal_year_start_month: int) -> int:
    """Convert a calendar month (1-12) to a 0-based fiscal month index."""
    _validate_calendar_month(calendar_month, "calendar_month")
    _validate_calendar_month(fiscal_year_start_month, "fiscal_year_start_month")
    return (calendar_month - fiscal_year_start_month) % 12


def fiscal_to_calendar_month(fiscal_month_index: int, fiscal_year_start_month: int) -> int:
    """Convert a 0-based fiscal month index to a calendar month (1-12)."""
    _validate_fiscal_month_index(fiscal_month_index)
    _validate_calendar_month(fiscal_year_start_month, "fiscal_year_start_month")
    return (fiscal_year_start_month - 1 + fiscal_month_index) % 12 + 1


def quarter_index(fiscal_month_index: int) -> int:
    _validate_fiscal_month_index(fiscal_month_index)
    return fiscal_month_index // MONTHS_PER_QUARTER


def fiscal_year_of(calendar_date: date, config: FiscalConfig) -> int:
    """Fiscal year containing a date, labelled by its starting calendar year."""
    if calendar_date.month >= config.fiscal_year_start_month:
        return calendar_date.year
    return calendar_date.year - 1


def fiscal_month_of(calendar_date: date, config: FiscalConfig) -> int:
    return calendar_to_fiscal_month(calendar_date.month, config.fiscal_year_start_month)


def fiscal_month_start(fiscal_year: int, fiscal_month_index: int, config: FiscalConfig) -> date:
    """First calendar day of a fiscal month, rolling over December into the next year."""
    _validate_fiscal_month_index(fiscal_month_index)
    months_from_january = config.fiscal_year_start_month - 1 + fiscal_month_index
    return date(fiscal_year + months_from_january // 12, months_from_january % 12 + 1, 1)


def fiscal_year_bounds(fiscal_year: int, config: FiscalConfig) -> tuple[date, date]:
    """First and last calendar day of a fiscal year."""
    start = fiscal_month_start(fiscal_year, 0, config)
    end = fiscal_month_start(fiscal_year + 1, 0, config) - timedelta(days=1)
    return start, end


def _validate_period(period: PeriodKey, frequency: BillingFrequency) -> None:
    limit = PERIODS_PER_YEAR[frequency]
    if not 0 <= period.index < limit:
        raise InvalidArgumentError(
            f"period index for {frequency.value} billing must be 0-{limit - 1}, got {period.index}"
        )


def resolve_period(calendar_date: date, config: FiscalConfig, module: Module) -> PeriodKey:
    """Fiscal period of a module that a calendar date falls in."""
    fiscal_year = fiscal_year_of(calendar_date, config)
    fiscal_month = fiscal_month_of(calendar_date, config)
    if config.frequency_for(module) == BillingFrequency.QUARTERLY:
        return PeriodKey(fiscal_year=fiscal_year, index=quarter_index(fiscal_month))
    return PeriodKey(fiscal_year=fiscal_year, index=fiscal_month)


def period_due_date(period: PeriodKey, config: FiscalConfig, module: Module) -> date:
    """Due date of a module's billing period."""
    frequency = config.frequency_for(module)
    _validate_period(period, frequency)
    if frequency == BillingFrequency.QUARTERLY:
        return fiscal_month_start(period.fiscal_year, period.index * MONTHS_PER_QUARTER, config)
    return fiscal_month_start(period.fiscal_year, period.index, config)


def period_for_fiscal_month(
    fiscal_year: int, fiscal_month_index: int, config: FiscalConfig, module: Module
) -> PeriodKey:
    """Billing period that a fiscal month belongs to for a module."""
    _validate_fiscal_month_index(fiscal_month_index)
    if config.frequency_for(module) == BillingFrequency.QUARTERLY:
        return PeriodKey(fiscal_year=fiscal_year, index=quarter_index(fiscal_month_index))
    return PeriodKey(fiscal_year=fiscal_year, index=fiscal_month_index)


def fiscal_month_due_date(
    fiscal_year: int, fiscal_month_index: int, config: FiscalConfig, module: Module
) -> date:
    """Due date that applies to a fiscal month.

    Months of one quarter share a due date under quarterly billing.
    """
    return period_due_date(
        period_for_fiscal_month(fiscal_year, fiscal_month_index, config, module), config, module
    )


def billing_periods(fiscal_year: int, config: FiscalConfig, module: Module) -> list[PeriodKey]:
    """All billing periods of a fiscal year for a module, in order."""
    count = PERIODS_PER_YEAR[config.frequency_for(module)]
    return [PeriodKey(fiscal_year=fiscal_year, index=i) for i in range(count)]


def add_months(start: date, months: int) -> date:
    """Shift a date by whole calendar months, clamping to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def whole_months_between(start: date, end: date) -> int:
    """Number of complete calendar months from start to end (0 if end <= start)."""
    if end <= start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) > end:
        months -= 1
    return months


__all__ = [
    "add_months",
    "billing_periods",
    "calendar_to_fiscal_month",
    "fiscal_month_due_date",
    "fiscal_month_of",
    "fiscal_month_start",
    "fiscal_to_calendar_month",
    "fiscal_year_bounds",
    "fiscal_year_of",
    "period_due_date",
    "period_for_fiscal_month",
    "quarter_index",
    "resolve_period",
    "whole_months_between",
]
