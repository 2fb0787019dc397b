"""
Initial account state.

Used for brand new accounts and after logout. With demo data enabled the
account starts with the sample history; the opening balance is whatever
part of the configured initial balance that history does not explain.
"""

from datetime import date

from compound_ledger.config import LedgerSettings
from compound_ledger.models.ledger import (
    Notification,
    PaymentMethod,
    PaymentMethodType,
    Transaction,
    TransactionType,
    UserAccount,
)


def demo_transactions() -> list[Transaction]:
    return [
        Transaction(id="txn5", type=TransactionType.DEPOSIT, amount=8000, date=date(2025, 9, 12), description="Initial Deposit"),
        Transaction(id="txn4", type=TransactionType.PAYOUT, amount=1000, date=date(2025, 9, 13), description="Plan Payout"),
        Transaction(id="txn3", type=TransactionType.PAYOUT, amount=500, date=date(2025, 9, 14), description="Plan Payout"),
        Transaction(id="txn2", type=TransactionType.DEPOSIT, amount=2000, date=date(2025, 9, 15), description="Bank Transfer"),
        Transaction(id="txn1", type=TransactionType.PAYOUT, amount=1200, date=date(2025, 9, 16), description="Plan Payout"),
    ]


def demo_notifications() -> list[Notification]:
    return [
        Notification(id="n4", title="New Plan Available", description='Check out the new "Gold Tier" investment plan for premium members.', date=date(2025, 9, 11), read=True),
        Notification(id="n1", title="Investment Successful", description="Your $1000 investment in the New 1 Month Plan was successful.", date=date(2025, 9, 14), read=False),
        Notification(id="n2", title="Payout Received", description="You received a payout of $1200.00 from your 6 Month Plan.", date=date(2025, 9, 14), read=True),
        Notification(id="n3", title="Deposit Confirmed", description="Your deposit of $2000 has been confirmed.", date=date(2025, 9, 15), read=True),
    ]


def demo_payment_methods() -> list[PaymentMethod]:
    return [
        PaymentMethod(id="pm1", type=PaymentMethodType.CARD, provider="Visa", last4="4242", expiry="08/28"),
        PaymentMethod(id="pm2", type=PaymentMethodType.BANK, provider="Chase Bank", last4="9876"),
    ]


def initial_state(settings: LedgerSettings) -> dict:
    """
    Fresh ledger contents as keyword arguments for Ledger().
    """
    transactions = demo_transactions() if settings.seed_demo_data else []
    history_total = sum(t.amount for t in transactions)
    user = UserAccount(
        name=settings.account_name,
        balance=settings.initial_balance,
        currency=settings.base_currency,
        display_currency=settings.base_currency,
        opening_balance=settings.initial_balance - history_total,
    )
    return {
        "user": user,
        "transactions": transactions,
        "notifications": demo_notifications() if settings.seed_demo_data else [],
        "payment_methods": demo_payment_methods() if settings.seed_demo_data else [],
        "investments": [],
    }
