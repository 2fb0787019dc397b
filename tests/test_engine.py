"""
Tests for the pure calculation engine (rates, projections, lock state).
"""

import pytest
from datetime import datetime, timedelta, timezone

from compound_ledger.engine.lifecycle import (
    format_lock_expiry,
    investment_state,
    is_locked,
    lock_expiry,
    maturity_date,
    refresh_lock_flags,
    withdrawal_gate,
)
from compound_ledger.engine.projection import (
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
    daily_rate,
    format_daily_rate,
)
from compound_ledger.models.ledger import Investment, InvestmentState, InvestmentStatus


T0 = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_investment(start: datetime = T0, duration_days: int = 30, **overrides) -> Investment:
    fields = dict(
        plan_id="p2",
        plan_name="1 Month Plan",
        amount=1000.0,
        start_date=start,
        expected_end_date=maturity_date(start, duration_days),
        locked_until=lock_expiry(start),
    )
    fields.update(overrides)
    return Investment(**fields)


class TestRateModel:
    """Tests for the annual -> daily rate conversion."""

    def test_zero_rate(self):
        assert daily_rate(0) == 0

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            daily_rate(-1)

    @pytest.mark.parametrize("annual", [2, 10, 40, 90])
    def test_compounds_back_to_annual_rate(self, annual):
        """Test that 365 days of the daily rate reproduce the annual return."""
        rate = daily_rate(annual)
        assert rate > 0
        assert (1 + rate) ** 365 == pytest.approx(1 + annual / 100)

    def test_format_fixed_rate(self):
        assert format_daily_rate(FIXED_DAILY_RATE) == "0.05479%"


class TestProjection:
    """Tests for current value, progress and previews."""

    def test_days_elapsed_truncates(self):
        assert days_elapsed(T0, T0 + timedelta(days=1, hours=23)) == 1
        assert days_elapsed(T0, T0 + timedelta(hours=23, minutes=59)) == 0

    def test_days_elapsed_before_start(self):
        assert days_elapsed(T0, T0 - timedelta(hours=1)) == -1

    def test_zero_elapsed_returns_principal(self):
        rate = daily_rate(10)
        assert current_value(1000, rate, T0, T0) == 1000
        assert current_value(1000, rate, T0, T0 + timedelta(hours=20)) == 1000

    def test_value_before_start_is_principal(self):
        assert current_value(1000, daily_rate(10), T0, T0 - timedelta(days=3)) == 1000

    def test_value_is_non_decreasing(self):
        rate = daily_rate(40)
        values = [current_value(1000, rate, T0, T0 + timedelta(days=d)) for d in range(0, 200, 7)]
        assert values == sorted(values)

    def test_value_compounds_whole_days(self):
        rate = daily_rate(10)
        value = current_value(500, rate, T0, T0 + timedelta(days=10, hours=5))
        assert value == pytest.approx(500 * (1 + rate) ** 10)

    def test_value_is_not_capped_at_maturity(self):
        rate = daily_rate(10)
        at_maturity = current_value(500, rate, T0, T0 + timedelta(days=30))
        later = current_value(500, rate, T0, T0 + timedelta(days=40))
        assert later > at_maturity

    def test_progress_is_clamped(self):
        assert progress_percent(T0, 30, T0 - timedelta(days=2)) == 0
        assert progress_percent(T0, 30, T0 + timedelta(days=15)) == pytest.approx(50.0)
        assert progress_percent(T0, 30, T0 + timedelta(days=90)) == 100

    def test_progress_is_stable_for_same_instant(self):
        now = T0 + timedelta(days=12, hours=3)
        assert progress_percent(T0, 30, now) == progress_percent(T0, 30, now)

    def test_days_remaining(self):
        assert days_remaining(T0, 30, T0) == 30
        assert days_remaining(T0, 30, T0 + timedelta(days=29, hours=23)) == 1
        assert days_remaining(T0, 30, T0 + timedelta(days=30)) == 0
        assert days_remaining(T0, 30, T0 + timedelta(days=45)) == 0

    def test_expected_return(self):
        projection = expected_return(1000, 10, 365)
        assert projection.total == pytest.approx(1100)
        assert projection.profit == pytest.approx(100)
        assert projection.daily_earnings == pytest.approx(1000 * daily_rate(10))

    def test_fixed_rate_scenario(self):
        """$500 on legacy plan p1 runs for the 90-day override."""
        projection = fixed_daily_returns(500, "p1", fallback_days=7)
        assert projection.days_used == 90
        assert projection.daily_earnings == pytest.approx(0.27, abs=0.01)
        assert projection.total_growth == pytest.approx(25.27, abs=0.01)
        assert projection.final_value == pytest.approx(525.27, abs=0.01)

    def test_fixed_rate_uses_fallback_duration(self):
        projection = fixed_daily_returns(1000, "p4", fallback_days=365)
        assert projection.days_used == 365

    def test_fixed_rate_invalid_inputs(self):
        assert fixed_daily_returns(0, "p1", 7) is None
        assert fixed_daily_returns(float("nan"), "p1", 7) is None
        assert fixed_daily_returns(100, "unknown", 0) is None

    def test_roi_breakdown(self):
        breakdown = roi_breakdown(10)
        assert breakdown.bond_percent == pytest.approx(6)
        assert breakdown.platform_percent == pytest.approx(4)
        assert breakdown.total_percent == 10


class TestLifecycle:
    """Tests for the lock/maturity state machine."""

    def test_lock_runs_thirty_days_regardless_of_plan(self):
        assert lock_expiry(T0) == T0 + timedelta(days=30)
        week_plan = make_investment(duration_days=7, plan_id="p1", plan_name="1 Week Plan")
        assert week_plan.locked_until == T0 + timedelta(days=30)
        assert week_plan.expected_end_date == T0 + timedelta(days=7)

    def test_lock_boundary(self):
        locked_until = T0 + timedelta(days=30)
        assert is_locked(locked_until, locked_until - timedelta(seconds=1)) is True
        assert is_locked(locked_until, locked_until) is False

    def test_state_transitions(self):
        investment = make_investment(duration_days=60)
        assert investment_state(investment, 60, T0 + timedelta(days=1)) == InvestmentState.ACTIVE_LOCKED
        assert investment_state(investment, 60, T0 + timedelta(days=31)) == InvestmentState.ACTIVE_UNLOCKED
        assert investment_state(investment, 60, T0 + timedelta(days=60)) == InvestmentState.MATURED

        investment.status = InvestmentStatus.COMPLETED
        assert investment_state(investment, 60, T0 + timedelta(days=60)) == InvestmentState.COMPLETED

    def test_short_plan_matures_while_locked(self):
        investment = make_investment(duration_days=7)
        assert investment_state(investment, 7, T0 + timedelta(days=8)) == InvestmentState.MATURED

    def test_refresh_lock_flags_ignores_stored_value(self):
        investment = make_investment(is_locked=False)
        refresh_lock_flags([investment], T0 + timedelta(days=1))
        assert investment.is_locked is True
        refresh_lock_flags([investment], T0 + timedelta(days=31))
        assert investment.is_locked is False

    def test_gate_blocks_any_withdrawal_while_one_is_locked(self):
        now = T0 + timedelta(days=45)
        unlocked = make_investment(start=T0)
        locked = make_investment(start=T0 + timedelta(days=40))
        later_locked = make_investment(start=T0 + timedelta(days=44))

        gate = withdrawal_gate([unlocked, later_locked, locked], now)
        assert gate.blocked is True
        assert gate.locked_count == 2
        assert gate.earliest_unlock == locked.locked_until

    def test_gate_ignores_completed_investments(self):
        completed = make_investment(status=InvestmentStatus.COMPLETED)
        gate = withdrawal_gate([completed], T0 + timedelta(days=1))
        assert gate.blocked is False
        assert gate.earliest_unlock is None

    def test_format_lock_expiry(self):
        assert format_lock_expiry(datetime(2025, 3, 14, 8, 0, tzinfo=timezone.utc)) == "Mar 14, 2025"
