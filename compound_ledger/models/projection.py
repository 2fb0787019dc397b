"""
Read-side value objects.

These are computed on demand from stored records and a supplied "now".
None of them is ever persisted.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from compound_ledger.models.ledger import InvestmentState, Transaction


class ROIBreakdown(BaseModel):
    """Split of a plan's total return into bond and platform portions (60/40)."""
    
    bond_percent: float
    platform_percent: float
    total_percent: float


class ReturnProjection(BaseModel):
    """What-if preview of a percent-rate plan over its full duration."""
    
    principal: float
    profit: float
    total: float
    daily_rate: float
    daily_earnings: float


class FixedReturnProjection(BaseModel):
    """What-if preview using the constant legacy daily rate."""
    
    daily_rate: float
    daily_rate_percent: float
    days_used: int = Field(gt=0)
    daily_earnings: float
    total_growth: float
    final_value: float


class WithdrawalGate(BaseModel):
    """
    Whether withdrawals are currently allowed.
    
    The gate is global: a single locked Active investment blocks
    withdrawing any amount.
    """
    
    blocked: bool
    locked_count: int = Field(default=0, ge=0)
    earliest_unlock: Optional[dt.datetime] = None


class InvestmentView(BaseModel):
    """Everything a screen shows for one investment at one instant."""
    
    investment_id: str
    plan_name: str
    principal: float
    current_value: float
    profit: float
    progress_percent: float
    days_remaining: int
    state: InvestmentState
    is_locked: bool
    locked_until: dt.datetime
    roi_breakdown: Optional[ROIBreakdown] = None


class PortfolioSummary(BaseModel):
    """Aggregate over all Active investments."""
    
    active_count: int = 0
    locked_count: int = 0
    total_principal: float = 0.0
    total_current_value: float = 0.0
    unrealized_profit: float = 0.0


class ReconciliationReport(BaseModel):
    """Outcome of one growth reconciliation sweep."""
    
    ran_at: dt.datetime
    matured_ids: list[str] = Field(default_factory=list)
    skipped_ids: list[str] = Field(default_factory=list)
    payouts: list[Transaction] = Field(default_factory=list)
    unrealized_earnings: float = 0.0
    credited_amount: float = 0.0
    aborted: bool = False
    error: Optional[str] = None
    
    @property
    def posted_count(self) -> int:
        return len(self.payouts)
