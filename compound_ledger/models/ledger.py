"""
Core Data Models for Compound Ledger

These models define the schemas for everything the ledger owns:
plans, investments, transactions and the account balance, plus the
auxiliary notification and payment method lists.

Amounts are USD floats. Display currency is a view concern and never
appears in these records except as the account's display preference.

Stored enum values keep the capitalized spelling and investments and the
account serialize with camelCase keys ("planId", "lockedUntil"), matching
the persisted state of the mobile app so existing stores load unchanged.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from compound_ledger.clock import ensure_utc


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kinds of ledger entries. Investment and Withdrawal are debits."""
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    INVESTMENT = "Investment"
    PAYOUT = "Payout"


class TransactionStatus(str, Enum):
    """
    Settlement status of a transaction.
    
    The engine only ever produces COMPLETED; the other values exist
    because stored histories may carry them.
    """
    COMPLETED = "Completed"
    PENDING = "Pending"
    FAILED = "Failed"


class InvestmentStatus(str, Enum):
    """Persisted lifecycle status of an investment."""
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class InvestmentState(str, Enum):
    """
    Derived lifecycle state (never persisted).
    
    MATURED means the plan duration has fully elapsed but the
    reconciliation sweep has not yet moved the investment to COMPLETED.
    """
    ACTIVE_LOCKED = "active_locked"
    ACTIVE_UNLOCKED = "active_unlocked"
    MATURED = "matured"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethodType(str, Enum):
    CARD = "Card"
    BANK = "Bank"


# =============================================================================
# PLAN CATALOG ENTRY
# =============================================================================

class Plan(BaseModel):
    """
    A statically configured investment plan.
    
    Negative or zero rates are rejected here, at configuration time,
    so the rate model never sees them.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)
    
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    duration_days: int = Field(..., gt=0, description="Days until maturity")
    annual_roi_percent: float = Field(..., gt=0, description="Nominal annual return, e.g. 10.0 for 10%")
    min_deposit: float = Field(..., gt=0, description="Minimum principal in USD")
    
    @property
    def bond_percent(self) -> float:
        return self.annual_roi_percent * 0.6
    
    @property
    def platform_percent(self) -> float:
        return self.annual_roi_percent * 0.4


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Investment(BaseModel):
    """
    Principal placed into a plan.
    
    plan_name is a snapshot taken at creation time. It is kept even if
    the catalog entry is later renamed or removed.
    
    is_locked is a cache. It is recomputed from locked_until on every
    read and the stored value is never trusted.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
    
    id: str = Field(default_factory=lambda: _new_id("inv"))
    plan_id: str = Field(..., min_length=1)
    plan_name: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Principal in USD")
    currency: str = Field(default="USD")
    start_date: dt.datetime
    expected_end_date: dt.datetime
    locked_until: dt.datetime
    status: InvestmentStatus = Field(default=InvestmentStatus.ACTIVE)
    is_locked: bool = Field(default=True)
    
    @field_validator('start_date', 'expected_end_date', 'locked_until')
    @classmethod
    def normalize_timestamps(cls, v: dt.datetime) -> dt.datetime:
        return ensure_utc(v)
    
    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Investments are always recorded in USD."""
        if v.upper() != "USD":
            raise ValueError(f"Investments must be USD-denominated, got {v}")
        return "USD"
    
    @model_validator(mode='after')
    def validate_dates(self) -> 'Investment':
        """Validate date relationships."""
        if self.expected_end_date < self.start_date:
            raise ValueError("Expected end date cannot be before start date")
        if self.locked_until < self.start_date:
            raise ValueError("Lock expiry cannot be before start date")
        return self
    
    @property
    def is_active(self) -> bool:
        return self.status == InvestmentStatus.ACTIVE


class Transaction(BaseModel):
    """
    A single append-only ledger entry.
    
    amount is signed: Investment and Withdrawal are negative,
    Deposit and Payout positive.
    """
    
    id: str = Field(default_factory=lambda: _new_id("txn"))
    type: TransactionType
    status: TransactionStatus = Field(default=TransactionStatus.COMPLETED)
    amount: float = Field(..., allow_inf_nan=False)
    date: dt.date
    description: str = Field(default="", max_length=200)
    
    @model_validator(mode='after')
    def validate_sign(self) -> 'Transaction':
        """Debit types may not carry a positive amount and vice versa."""
        if self.type in (TransactionType.INVESTMENT, TransactionType.WITHDRAWAL):
            if self.amount > 0:
                raise ValueError(f"{self.type.value} transactions must have a negative amount")
        elif self.amount < 0:
            raise ValueError(f"{self.type.value} transactions must have a positive amount")
        return self


class UserAccount(BaseModel):
    """
    The single account balance.
    
    opening_balance is the part of balance that no posted transaction
    explains (the seed). balance == opening_balance + sum of amounts.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
    
    
    name: str = Field(default="")
    balance: float = Field(default=0.0)
    currency: str = Field(default="USD")
    display_currency: str = Field(default="USD")
    opening_balance: float = Field(default=0.0)


class Notification(BaseModel):
    """An in-app notification."""
    
    id: str = Field(default_factory=lambda: _new_id("n"))
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date: dt.date
    read: bool = Field(default=False)


class PaymentMethod(BaseModel):
    """A saved funding source."""
    model_config = ConfigDict(str_strip_whitespace=True)
    
    id: str = Field(default_factory=lambda: _new_id("pm"))
    type: PaymentMethodType
    provider: str = Field(..., min_length=1, max_length=100, description="e.g. Visa, Chase Bank")
    last4: str = Field(..., pattern=r"^\d{4}$")
    expiry: Optional[str] = Field(
        default=None,
        pattern=r"^(0[1-9]|1[0-2])/\d{2}$",
        description="MM/YY, cards only"
    )
