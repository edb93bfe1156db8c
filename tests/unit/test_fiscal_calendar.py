"""Unit tests for the fiscal calendar."""

from datetime import date

import pytest

from payledger.core.errors import InvalidArgumentError
from payledger.core.fiscal_calendar import (
    add_months,
    billing_periods,
    calendar_to_fiscal_month,
    fiscal_month_due_date,
    fiscal_to_calendar_month,
    fiscal_year_bounds,
    fiscal_year_of,
    period_due_date,
    period_for_fiscal_month,
    resolve_period,
    whole_months_between,
)
from payledger.schemas.fiscal import BillingFrequency, FiscalConfig, Module, PeriodKey

pytestmark = pytest.mark.unit


@pytest.fixture
def july_config():
    return FiscalConfig(fiscal_year_start_month=7)


class TestMonthMapping:
    """Calendar month <-> fiscal month index."""

    def test_start_month_is_index_zero(self):
        assert calendar_to_fiscal_month(7, 7) == 0
        assert calendar_to_fiscal_month(6, 7) == 11
        assert calendar_to_fiscal_month(1, 7) == 6

    def test_fiscal_to_calendar_wraps_december(self):
        assert fiscal_to_calendar_month(5, 7) == 12
        assert fiscal_to_calendar_month(6, 7) == 1

    def test_round_trip_every_month(self):
        for start in range(1, 13):
            for month in range(1, 13):
                index = calendar_to_fiscal_month(month, start)
                assert fiscal_to_calendar_month(index, start) == month

    @pytest.mark.parametrize("bad_index", [-1, 12, 13])
    def test_out_of_range_index_rejected(self, bad_index):
        with pytest.raises(InvalidArgumentError):
            fiscal_to_calendar_month(bad_index, 7)

    def test_invalid_calendar_month_rejected(self):
        with pytest.raises(InvalidArgumentError):
            calendar_to_fiscal_month(13, 7)


class TestFiscalYear:
    """Fiscal year labelling and bounds."""

    def test_year_labelled_by_start(self, july_config):
        assert fiscal_year_of(date(2026, 7, 1), july_config) == 2026
        assert fiscal_year_of(date(2027, 6, 30), july_config) == 2026
        assert fiscal_year_of(date(2026, 6, 30), july_config) == 2025

    def test_january_start_matches_calendar_year(self):
        config = FiscalConfig(fiscal_year_start_month=1)
        assert fiscal_year_of(date(2026, 12, 31), config) == 2026

    def test_bounds(self, july_config):
        start, end = fiscal_year_bounds(2026, july_config)
        assert start == date(2026, 7, 1)
        assert end == date(2027, 6, 30)


class TestMonthlyPeriods:
    """Monthly dues periods."""

    def test_month_six_wraps_into_next_calendar_year(self, july_config):
        period = period_for_fiscal_month(2026, 6, july_config, Module.DUES)
        assert period == PeriodKey(fiscal_year=2026, index=6)
        assert period_due_date(period, july_config, Module.DUES) == date(2027, 1, 1)

    def test_resolve_period(self, july_config):
        assert resolve_period(date(2027, 1, 15), july_config, Module.DUES) == PeriodKey(
            fiscal_year=2026, index=6
        )

    def test_index_twelve_rejected(self, july_config):
        with pytest.raises(InvalidArgumentError):
            period_due_date(PeriodKey(fiscal_year=2026, index=12), july_config, Module.DUES)

    def test_negative_index_rejected(self, july_config):
        with pytest.raises(InvalidArgumentError):
            period_due_date(PeriodKey(fiscal_year=2026, index=-1), july_config, Module.DUES)

    def test_negative_fiscal_month_rejected(self, july_config):
        with pytest.raises(InvalidArgumentError):
            period_for_fiscal_month(2026, -1, july_config, Module.WATER)

    def test_round_trip_all_periods(self, july_config):
        for period in billing_periods(2026, july_config, Module.DUES):
            due = period_due_date(period, july_config, Module.DUES)
            assert resolve_period(due, july_config, Module.DUES) == period


class TestQuarterlyPeriods:
    """Quarterly water periods."""

    def test_months_of_a_quarter_share_due_date(self, july_config):
        due_dates = {
            fiscal_month_due_date(2026, month, july_config, Module.WATER) for month in (0, 1, 2)
        }
        assert due_dates == {date(2026, 7, 1)}

    def test_next_quarter_has_different_due_date(self, july_config):
        first = fiscal_month_due_date(2026, 2, july_config, Module.WATER)
        second = fiscal_month_due_date(2026, 3, july_config, Module.WATER)
        assert first != second
        assert second == date(2026, 10, 1)

    def test_four_periods_per_year(self, july_config):
        periods = billing_periods(2026, july_config, Module.WATER)
        assert [p.index for p in periods] == [0, 1, 2, 3]
        assert period_due_date(periods[3], july_config, Module.WATER) == date(2027, 4, 1)

    @pytest.mark.parametrize("bad_index", [-1, 4])
    def test_quarter_index_out_of_range_rejected(self, july_config, bad_index):
        with pytest.raises(InvalidArgumentError):
            period_due_date(PeriodKey(fiscal_year=2026, index=bad_index), july_config, Module.WATER)

    def test_quarterly_dues(self):
        config = FiscalConfig(fiscal_year_start_month=1, dues_frequency=BillingFrequency.QUARTERLY)
        assert resolve_period(date(2026, 5, 20), config, Module.DUES) == PeriodKey(
            fiscal_year=2026, index=1
        )

    def test_round_trip_all_quarters(self, july_config):
        for period in billing_periods(2026, july_config, Module.WATER):
            due = period_due_date(period, july_config, Module.WATER)
            assert resolve_period(due, july_config, Module.WATER) == period


class TestMonthArithmetic:
    """Calendar month helpers used by penalties."""

    def test_add_months_clamps_day(self):
        assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
        assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)

    def test_whole_months_between(self):
        assert whole_months_between(date(2026, 7, 11), date(2026, 8, 10)) == 0
        assert whole_months_between(date(2026, 7, 11), date(2026, 8, 11)) == 1
        assert whole_months_between(date(2026, 7, 11), date(2026, 10, 20)) == 3
        assert whole_months_between(date(2026, 8, 1), date(2026, 7, 1)) == 0
