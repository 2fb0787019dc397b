"""
Projection Engine

Pure functions over (principal, start, now). Nothing here reads the
clock or persists a value: screens recompute on every render from the
stored start date, amount and plan.

Elapsed time is measured in whole days (floor). Two evaluations on the
same day after start return identical values.
"""

import math
from datetime import datetime, timedelta
from typing import Mapping, Optional

from compound_ledger.catalog.plans import FIXED_RATE_OVERRIDE_DAYS
from compound_ledger.clock import ensure_utc
from compound_ledger.engine.rates import FIXED_DAILY_RATE, daily_rate
from compound_ledger.models.projection import (
    FixedReturnProjection,
    ReturnProjection,
    ROIBreakdown,
)


ONE_DAY = timedelta(days=1)

BOND_SHARE = 0.6
PLATFORM_SHARE = 0.4


def days_elapsed(start: datetime, now: datetime) -> int:
    """Whole days between start and now. Negative if now is before start."""
    return math.floor((ensure_utc(now) - ensure_utc(start)) / ONE_DAY)


def compound_value(principal: float, rate: float, days: int) -> float:
    """principal * (1 + rate) ** days"""
    return principal * (1 + rate) ** days


def current_value(principal: float, rate: float, start: datetime, now: datetime) -> float:
    """Value of principal after compounding for every full day since start."""
    elapsed = days_elapsed(start, now)
    if elapsed <= 0:
        return principal
    return compound_value(principal, rate, elapsed)


def progress_percent(start: datetime, duration_days: int, now: datetime) -> float:
    """Share of the plan duration elapsed, clamped to [0, 100]."""
    progress = days_elapsed(start, now) / duration_days * 100
    return min(100.0, max(0.0, progress))


def days_remaining(start: datetime, duration_days: int, now: datetime) -> int:
    """Days until maturity, 0 once matured."""
    return max(0, duration_days - days_elapsed(start, now))


def expected_return(principal: float, annual_percent: float, duration_days: int) -> ReturnProjection:
    """
    Forward-looking preview over the plan's full duration.
    
    Used before an investment exists ("what if I invest X?"), so it does
    not depend on elapsed time.
    """
    rate = daily_rate(annual_percent)
    total = compound_value(principal, rate, duration_days)
    return ReturnProjection(
        principal=principal,
        profit=total - principal,
        total=total,
        daily_rate=rate,
        daily_earnings=principal * rate,
    )


def fixed_daily_returns(
    principal: float,
    plan_id: str,
    fallback_days: int,
    overrides: Optional[Mapping[str, int]] = None,
    rate: float = FIXED_DAILY_RATE,
) -> Optional[FixedReturnProjection]:
    """
    Preview using the constant legacy daily rate.
    
    The day count comes from the override table (FIXED_RATE_OVERRIDE_DAYS
    unless another mapping is given) when the plan id is listed there,
    otherwise fallback_days (normally the plan duration).
    
    Returns None when principal is not a positive finite number or the
    resulting day count is not positive.
    """
    if not math.isfinite(principal) or principal <= 0:
        return None
    
    if overrides is None:
        overrides = FIXED_RATE_OVERRIDE_DAYS
    days_used = overrides.get(plan_id, fallback_days)
    if days_used <= 0:
        return None
    
    final_value = compound_value(principal, rate, days_used)
    return FixedReturnProjection(
        daily_rate=rate,
        daily_rate_percent=rate * 100,
        days_used=days_used,
        daily_earnings=principal * rate,
        total_growth=final_value - principal,
        final_value=final_value,
    )


def roi_breakdown(total_percent: float) -> ROIBreakdown:
    """Split a total return into bond (60%) and platform (40%) portions."""
    return ROIBreakdown(
        bond_percent=total_percent * BOND_SHARE,
        platform_percent=total_percent * PLATFORM_SHARE,
        total_percent=total_percent,
    )
