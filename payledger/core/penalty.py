"""Late-payment penalty calculation.

Penalty rules:
- No penalty until the grace period after the due date has ended
- Past grace: one penalty period per whole calendar month elapsed, minimum 1
- Compound: each period applies the rate to base + penalty accrued so far
- Simple: each period applies the rate to the base charge only

Compounding example (10% rate, base 1000.00):
- Period 1: 1000.00 * 10% = 100.00 (total 100.00)
- Period 2: 1100.00 * 10% = 110.00 (total 210.00)
- Period 3: 1210.00 * 10% = 121.00 (total 331.00)

The penalty is recomputed from the stored base charge and the elapsed time
on every call, so repeated refreshes with the same date never drift. All
arithmetic runs in Decimal and is rounded half-up to a whole minor unit once.
"""

import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from payledger.core.fiscal_calendar import whole_months_between
from payledger.schemas.fiscal import FiscalConfig, PenaltyPolicy
from payledger.schemas.obligation import Obligation

logger = logging.getLogger(__name__)


def grace_period_end(due_date: date, policy: PenaltyPolicy) -> date:
    return due_date + timedelta(days=policy.grace_days)


def penalty_periods_elapsed(due_date: date, as_of_date: date, policy: PenaltyPolicy) -> int:
    """Number of penalty periods owed as of a date.

    Args:
        due_date: Obligation due date
        as_of_date: Date the penalty is evaluated at (usually the payment date)
        policy: Penalty rules for the obligation's module

    Returns:
        0 within the grace period, otherwise whole months since grace end (minimum 1)
    """
    grace_end = grace_period_end(due_date, policy)
    if as_of_date <= grace_end:
        return 0
    return max(1, whole_months_between(grace_end, as_of_date))


def _round_to_unit(amount: Decimal) -> int:
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compound_penalty(base_charge: int, rate: Decimal, periods: int) -> int:
    """Penalty after compounding base + penalty for a number of periods."""
    if periods <= 0 or base_charge <= 0:
        return 0
    owed = Decimal(base_charge)
    multiplier = Decimal(1) + Decimal(rate)
    for _ in range(periods):
        owed = owed * multiplier
    return _round_to_unit(owed - Decimal(base_charge))


def simple_penalty(base_charge: int, rate: Decimal, periods: int) -> int:
    """Penalty charged on the base only, once per period."""
    if periods <= 0 or base_charge <= 0:
        return 0
    return _round_to_unit(Decimal(base_charge) * Decimal(rate) * periods)


def accrue_penalty(obligation: Obligation, as_of_date: date, config: FiscalConfig) -> int:
    """Total penalty accrued on an obligation as of a date.

    Once the base charge is fully paid the stored penalty is kept as is;
    penalties only grow on an overdue base. The result never drops below
    what has already been paid toward the penalty.

    Args:
        obligation: Obligation to evaluate
        as_of_date: Evaluation date
        config: Client fiscal configuration

    Returns:
        Updated penalty_accrued in minor units
    """
    if obligation.base_due <= 0:
        return obligation.penalty_accrued

    policy = config.penalty_policy(obligation.module)
    periods = penalty_periods_elapsed(obligation.due_date, as_of_date, policy)
    if policy.compound:
        penalty = compound_penalty(obligation.base_charge, policy.rate, periods)
    else:
        penalty = simple_penalty(obligation.base_charge, policy.rate, periods)

    logger.debug(
        "Penalty for %s as of %s: periods=%d rate=%s compound=%s -> %d",
        obligation.ref,
        as_of_date,
        periods,
        policy.rate,
        policy.compound,
        penalty,
    )
    return max(penalty, obligation.penalty_paid)


def refresh_obligation(obligation: Obligation, as_of_date: date, config: FiscalConfig) -> Obligation:
    """Copy of an obligation with its penalty recalculated as of a date."""
    penalty = accrue_penalty(obligation, as_of_date, config)
    if penalty == obligation.penalty_accrued:
        return obligation
    return obligation.model_copy(update={"penalty_accrued": penalty})


__all__ = [
    "accrue_penalty",
    "compound_penalty",
    "grace_period_end",
    "penalty_periods_elapsed",
    "refresh_obligation",
    "simple_penalty",
]
