"""Unit tests for penalty calculation."""

from datetime import date
from decimal import Decimal

import pytest

from payledger.core.penalty import (
    accrue_penalty,
    compound_penalty,
    penalty_periods_elapsed,
    refresh_obligation,
    simple_penalty,
)
from payledger.schemas.fiscal import FiscalConfig, Module, PenaltyPolicy

pytestmark = pytest.mark.unit


@pytest.fixture
def config():
    return FiscalConfig(
        fiscal_year_start_month=7,
        penalty_rate=Decimal("0.10"),
        penalty_grace_days=10,
    )


class TestPenaltyPeriods:
    """Grace period and elapsed periods."""

    def test_no_penalty_within_grace(self):
        policy = PenaltyPolicy(rate=Decimal("0.10"), grace_days=10)
        assert penalty_periods_elapsed(date(2026, 7, 1), date(2026, 7, 11), policy) == 0

    def test_first_day_after_grace_is_one_period(self):
        policy = PenaltyPolicy(rate=Decimal("0.10"), grace_days=10)
        assert penalty_periods_elapsed(date(2026, 7, 1), date(2026, 7, 12), policy) == 1

    def test_whole_months_after_grace(self):
        policy = PenaltyPolicy(rate=Decimal("0.10"), grace_days=10)
        assert penalty_periods_elapsed(date(2026, 7, 1), date(2026, 10, 11), policy) == 3


class TestPenaltyFormulas:
    """Compound vs simple."""

    def test_compound_three_periods(self):
        # 1000.00 -> 1100.00 -> 1210.00 -> 1331.00
        assert compound_penalty(100_000, Decimal("0.10"), 3) == 33_100

    def test_simple_three_periods(self):
        assert simple_penalty(100_000, Decimal("0.10"), 3) == 30_000

    def test_rounds_half_up_once(self):
        # 1.5% of 333 = 4.995 -> 5
        assert simple_penalty(333, Decimal("0.015"), 1) == 5

    def test_zero_periods_or_base(self):
        assert compound_penalty(100_000, Decimal("0.10"), 0) == 0
        assert simple_penalty(0, Decimal("0.10"), 4) == 0


class TestAccruePenalty:
    """Penalty accrual on obligations."""

    def test_accrues_on_overdue_water(self, config, obligation_factory):
        water = obligation_factory(module=Module.WATER, base_charge=50_000)
        assert accrue_penalty(water, date(2026, 8, 5), config) == 5_000

    def test_idempotent(self, config, obligation_factory):
        water = obligation_factory(module=Module.WATER, base_charge=50_000)
        once = refresh_obligation(water, date(2026, 9, 20), config)
        twice = refresh_obligation(once, date(2026, 9, 20), config)
        assert once == twice
        assert twice.penalty_accrued == 10_500

    def test_module_override(self, obligation_factory):
        config = FiscalConfig(
            penalty_rate=Decimal("0.10"),
            module_penalties={Module.DUES: PenaltyPolicy(rate=Decimal("0"))},
        )
        dues = obligation_factory(module=Module.DUES, base_charge=44_000)
        assert accrue_penalty(dues, date(2026, 12, 1), config) == 0

    def test_simple_policy(self, obligation_factory):
        config = FiscalConfig(penalty_rate=Decimal("0.10"), compound_penalty=False)
        water = obligation_factory(module=Module.WATER, base_charge=50_000)
        # due 2026-07-01, no grace; 3 whole months by 2026-10-01
        assert accrue_penalty(water, date(2026, 10, 1), config) == 15_000

    def test_frozen_once_base_paid(self, config, obligation_factory):
        water = obligation_factory(
            module=Module.WATER,
            base_charge=50_000,
            base_paid=50_000,
            penalty_accrued=5_000,
        )
        assert accrue_penalty(water, date(2027, 6, 1), config) == 5_000

    def test_never_below_penalty_paid(self, obligation_factory):
        config = FiscalConfig(penalty_rate=Decimal("0.05"))
        water = obligation_factory(
            module=Module.WATER,
            base_charge=50_000,
            penalty_accrued=5_000,
            penalty_paid=5_000,
        )
        assert accrue_penalty(water, date(2026, 8, 5), config) == 5_000

    def test_refresh_returns_same_instance_when_unchanged(self, config, obligation_factory):
        water = obligation_factory(module=Module.WATER, base_charge=50_000)
        assert refresh_obligation(water, date(2026, 7, 5), config) is water
