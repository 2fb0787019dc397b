"""
Pure calculation engine.

Rate model, projections and the lock/maturity state machine.
Nothing in this package holds state or reads the clock.
"""

from compound_ledger.engine.lifecycle import (
    LOCK_PERIOD_DAYS,
    format_lock_expiry,
    investment_state,
    is_locked,
    is_matured,
    lock_expiry,
    maturity_date,
    refresh_lock_flags,
    withdrawal_gate,
)
from compound_ledger.engine.projection import (
    compound_value,
    current_value,
    days_elapsed,
    days_remaining,
    expected_return,
    fixed_daily_returns,
    progress_percent,
    roi_breakdown,
)
from compound_ledger.engine.rates import (
    FIXED_DAILY_RATE,
    FIXED_DAILY_RATE_PERCENT,
    daily_rate,
    format_daily_rate,
)

__all__ = [
    # Rates
    "FIXED_DAILY_RATE",
    "FIXED_DAILY_RATE_PERCENT",
    "daily_rate",
    "format_daily_rate",
    # Projections
    "compound_value",
    "current_value",
    "days_elapsed",
    "days_remaining",
    "expected_return",
    "fixed_daily_returns",
    "progress_percent",
    "roi_breakdown",
    # Lifecycle
    "LOCK_PERIOD_DAYS",
    "format_lock_expiry",
    "investment_state",
    "is_locked",
    "is_matured",
    "lock_expiry",
    "maturity_date",
    "refresh_lock_flags",
    "withdrawal_gate",
]
