"""
Ledger Request Validation

Checks run before any mutation. A request that fails any check produces
an Err and the ledger changes nothing.

Checks run in a fixed order and stop at the first failure:

INVESTMENT:
1. Plan exists                  -> PLAN_NOT_FOUND
2. Amount finite and positive   -> INVALID_AMOUNT
3. Amount >= plan minimum       -> BELOW_MINIMUM_DEPOSIT
4. Amount <= balance            -> INSUFFICIENT_BALANCE

WITHDRAWAL:
1. Amount finite and positive   -> INVALID_AMOUNT
2. No Active investment locked  -> WITHDRAWAL_LOCKED
3. Amount <= balance            -> INSUFFICIENT_BALANCE

The lock check comes before the balance check: while anything is locked,
every withdrawal is refused with the unlock date, whatever the amount.
"""

import math
from typing import Optional

from compound_ledger.catalog import PlanCatalog
from compound_ledger.engine.lifecycle import format_lock_expiry
from compound_ledger.models.ledger import Plan
from compound_ledger.models.projection import WithdrawalGate
from compound_ledger.models.results import Err, LedgerErrorKind


def _money(amount: float) -> str:
    return f"${amount:,.2f}"


class LedgerValidator:
    """Business-rule checks for ledger operations."""
    
    def __init__(self, catalog: PlanCatalog):
        self._catalog = catalog
    
    def check_amount(self, amount: float) -> Optional[Err]:
        """Amounts must be finite and strictly positive."""
        valid_number = isinstance(amount, (int, float)) and not isinstance(amount, bool)
        if not valid_number or not math.isfinite(amount) or amount <= 0:
            return Err(
                kind=LedgerErrorKind.INVALID_AMOUNT,
                message="Please enter a valid positive amount.",
            )
        return None
    
    def check_investment(
        self,
        plan_id: str,
        amount: float,
        balance: float,
    ) -> tuple[Optional[Plan], Optional[Err]]:
        """
        Validate an investment request.
        
        Returns: (plan, error) - exactly one of them is None
        """
        plan = self._catalog.get(plan_id)
        if plan is None:
            return None, Err(
                kind=LedgerErrorKind.PLAN_NOT_FOUND,
                message=f"Investment plan not found: {plan_id}",
            )
        
        error = self.check_amount(amount)
        if error:
            return None, error
        
        if amount < plan.min_deposit:
            return None, Err(
                kind=LedgerErrorKind.BELOW_MINIMUM_DEPOSIT,
                message=f"Minimum deposit for {plan.name} is {_money(plan.min_deposit)}.",
                minimum=plan.min_deposit,
            )
        
        if amount > balance:
            return None, Err(
                kind=LedgerErrorKind.INSUFFICIENT_BALANCE,
                message=f"Insufficient balance. Available: {_money(balance)}",
            )
        
        return plan, None
    
    def check_withdrawal(
        self,
        amount: float,
        balance: float,
        gate: WithdrawalGate,
    ) -> Optional[Err]:
        """Validate a withdrawal request against the global lock gate."""
        error = self.check_amount(amount)
        if error:
            return error
        
        if gate.blocked:
            unlock = format_lock_expiry(gate.earliest_unlock) if gate.earliest_unlock else "unknown"
            return Err(
                kind=LedgerErrorKind.WITHDRAWAL_LOCKED,
                message=(
                    f"You have {gate.locked_count} locked investment(s). Withdrawals are not "
                    f"allowed until all investments unlock. Earliest unlock: {unlock}"
                ),
                unlock_at=gate.earliest_unlock,
                locked_count=gate.locked_count,
            )
        
        if amount > balance:
            return Err(
                kind=LedgerErrorKind.INSUFFICIENT_BALANCE,
                message="You don't have enough balance for this withdrawal.",
            )
        
        return None
