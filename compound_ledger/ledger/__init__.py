"""Stateful ledger package."""

from compound_ledger.ledger.ledger import (
    INVESTMENTS_KEY,
    LAST_OPEN_KEY,
    NOTIFICATIONS_KEY,
    PAYMENT_METHODS_KEY,
    STATE_KEYS,
    TRANSACTIONS_KEY,
    USER_KEY,
    Ledger,
)
from compound_ledger.ledger.seed import initial_state

__all__ = [
    "INVESTMENTS_KEY",
    "LAST_OPEN_KEY",
    "NOTIFICATIONS_KEY",
    "PAYMENT_METHODS_KEY",
    "STATE_KEYS",
    "TRANSACTIONS_KEY",
    "USER_KEY",
    "Ledger",
    "initial_state",
]
