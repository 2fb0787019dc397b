"""
Lock/Maturity State Machine

States per investment, derived from stored dates and "now":

    ACTIVE_LOCKED   --(now reaches locked_until)------------> ACTIVE_UNLOCKED
    ACTIVE_*        --(days_remaining hits 0)---------------> MATURED
    MATURED         --(reconciliation posts the payout)-----> COMPLETED

The lock always runs LOCK_PERIOD_DAYS from the start date, independent
of the plan duration: a 7-day plan still carries a 30-day withdrawal
lock. Maturity and withdrawability are separate questions.

Locking is enforced globally at withdrawal time (withdrawal_gate), not
per investment.
"""

from datetime import datetime, timedelta
from typing import Iterable

from compound_ledger.clock import ensure_utc
from compound_ledger.engine.projection import days_remaining
from compound_ledger.models.ledger import Investment, InvestmentState, InvestmentStatus
from compound_ledger.models.projection import WithdrawalGate


LOCK_PERIOD_DAYS = 30


def lock_expiry(start: datetime, lock_days: int = LOCK_PERIOD_DAYS) -> datetime:
    return ensure_utc(start) + timedelta(days=lock_days)


def maturity_date(start: datetime, duration_days: int) -> datetime:
    return ensure_utc(start) + timedelta(days=duration_days)


def is_locked(locked_until: datetime, now: datetime) -> bool:
    return ensure_utc(now) < ensure_utc(locked_until)


def is_matured(investment: Investment, duration_days: int, now: datetime) -> bool:
    """True once the full plan duration has elapsed (regardless of status)."""
    return days_remaining(investment.start_date, duration_days, now) == 0


def investment_state(investment: Investment, duration_days: int, now: datetime) -> InvestmentState:
    """Derive the current lifecycle state of an investment."""
    if investment.status == InvestmentStatus.COMPLETED:
        return InvestmentState.COMPLETED
    if investment.status == InvestmentStatus.CANCELLED:
        return InvestmentState.CANCELLED
    if is_matured(investment, duration_days, now):
        return InvestmentState.MATURED
    if is_locked(investment.locked_until, now):
        return InvestmentState.ACTIVE_LOCKED
    return InvestmentState.ACTIVE_UNLOCKED


def refresh_lock_flags(investments: Iterable[Investment], now: datetime) -> None:
    """Recompute the cached is_locked flag from locked_until."""
    for investment in investments:
        investment.is_locked = investment.is_active and is_locked(investment.locked_until, now)


def withdrawal_gate(investments: Iterable[Investment], now: datetime) -> WithdrawalGate:
    """
    Decide whether any withdrawal may proceed.
    
    Blocked if ANY Active investment is still inside its lock period.
    The earliest lock expiry is reported as the unblock hint.
    """
    locked = [
        inv for inv in investments
        if inv.is_active and is_locked(inv.locked_until, now)
    ]
    if not locked:
        return WithdrawalGate(blocked=False)
    
    return WithdrawalGate(
        blocked=True,
        locked_count=len(locked),
        earliest_unlock=min(inv.locked_until for inv in locked),
    )


def format_lock_expiry(locked_until: datetime) -> str:
    """Display form of a lock expiry, e.g. "Mar 14, 2025"."""
    value = ensure_utc(locked_until)
    return f"{value:%b} {value.day}, {value.year}"
