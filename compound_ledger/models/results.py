"""
Operation results.

Ledger operations never raise for business rule failures. They return
either Ok (carrying the produced records) or Err (carrying a kind and a
user-facing message). Callers branch on ``result.ok``:

    result = ledger.process_investment("p2", 500.0)
    if result.ok:
        receipt = result.value
    else:
        show(result.message)
"""

import datetime as dt
from enum import Enum
from typing import Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field

from compound_ledger.models.ledger import Investment, Transaction


T = TypeVar("T")


class LedgerErrorKind(str, Enum):
    """Every way a public ledger operation can be refused."""
    PLAN_NOT_FOUND = "plan_not_found"
    INVALID_AMOUNT = "invalid_amount"
    BELOW_MINIMUM_DEPOSIT = "below_minimum_deposit"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    WITHDRAWAL_LOCKED = "withdrawal_locked"


class Ok(BaseModel, Generic[T]):
    """Successful outcome."""
    
    ok: Literal[True] = True
    value: T


class Err(BaseModel):
    """
    Refused outcome. No state was changed.
    
    unlock_at is set for WITHDRAWAL_LOCKED (earliest lock expiry);
    minimum is set for BELOW_MINIMUM_DEPOSIT.
    """
    
    ok: Literal[False] = False
    kind: LedgerErrorKind
    message: str
    unlock_at: Optional[dt.datetime] = None
    minimum: Optional[float] = None
    locked_count: int = Field(default=0, ge=0)


# Any operation outcome; annotate specific operations as Union[Ok[X], Err].
Result = Union[Ok, Err]


class InvestmentReceipt(BaseModel):
    """The two records created together by a successful investment."""
    
    investment: Investment
    transaction: Transaction
