"""
Ledger

The only stateful component of the engine. It owns the balance, the
transaction history and the investments, and exposes the only operations
that change them.

GUARANTEES:
- A balance change and the record that explains it are applied together.
  Every mutating method builds (and validates) all new records first and
  only then appends them and adjusts the balance, so a failure leaves
  nothing half-applied.
- Business rule failures come back as Err; nothing is raised for them.
- Mutations are synchronous with no suspension point, so two of them can
  never interleave.
- Investments are never deleted. Stored records that fail to parse are
  kept verbatim and written back untouched.

Persistence is not handled here: to_state()/from_state() convert to and
from the key-value representation and the session decides when to write.
"""

from datetime import date
from typing import Any, Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from compound_ledger.audit import AuditLogger
from compound_ledger.catalog import PlanCatalog
from compound_ledger.clock import Clock, SystemClock
from compound_ledger.config import LedgerSettings
from compound_ledger.engine.lifecycle import (
    investment_state,
    is_locked,
    lock_expiry,
    maturity_date,
    refresh_lock_flags,
    withdrawal_gate,
)
from compound_ledger.engine.projection import (
    current_value,
    days_remaining,
    expected_return,
    fixed_daily_returns,
    progress_percent,
    roi_breakdown,
)
from compound_ledger.engine.rates import daily_rate
from compound_ledger.ledger.seed import initial_state
from compound_ledger.models.audit import AuditEventBuilder
from compound_ledger.models.ledger import (
    Investment,
    InvestmentStatus,
    Notification,
    PaymentMethod,
    PaymentMethodType,
    Plan,
    Transaction,
    TransactionType,
    UserAccount,
)
from compound_ledger.models.projection import (
    FixedReturnProjection,
    InvestmentView,
    PortfolioSummary,
    ReturnProjection,
    WithdrawalGate,
)
from compound_ledger.models.results import Err, InvestmentReceipt, LedgerErrorKind, Ok
from compound_ledger.services.currency import is_supported
from compound_ledger.validation import LedgerValidator


logger = structlog.get_logger(__name__)


# Key-value store keys
USER_KEY = "app_user"
TRANSACTIONS_KEY = "app_transactions"
NOTIFICATIONS_KEY = "app_notifications"
PAYMENT_METHODS_KEY = "app_payment_methods"
INVESTMENTS_KEY = "app_investments"
LAST_OPEN_KEY = "app_last_open"

STATE_KEYS = (
    USER_KEY,
    TRANSACTIONS_KEY,
    NOTIFICATIONS_KEY,
    PAYMENT_METHODS_KEY,
    INVESTMENTS_KEY,
)

# Balance comparisons tolerate float accumulation error.
BALANCE_TOLERANCE = 1e-6


class Ledger:
    """
    Balance, transactions and investments for one account.

    Dependencies (catalog, clock, settings, audit logger) are passed in;
    there is no global instance.
    """

    def __init__(
        self,
        catalog: Optional[PlanCatalog] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        user: Optional[UserAccount] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        investments: Optional[Iterable[Investment]] = None,
        notifications: Optional[Iterable[Notification]] = None,
        payment_methods: Optional[Iterable[PaymentMethod]] = None,
        quarantined: Optional[dict[str, list[Any]]] = None,
    ):
        self._catalog = catalog or PlanCatalog()
        self._clock = clock or SystemClock()
        self._settings = settings or LedgerSettings()
        self._audit = audit_logger or AuditLogger()
        self._validator = LedgerValidator(self._catalog)

        self._user = user or UserAccount(currency=self._settings.base_currency)
        self._transactions: list[Transaction] = list(transactions or [])
        self._investments: list[Investment] = list(investments or [])
        self._notifications: list[Notification] = list(notifications or [])
        self._payment_methods: list[PaymentMethod] = list(payment_methods or [])
        # Raw stored records that failed to parse, by storage key.
        self._quarantined: dict[str, list[Any]] = {
            key: list(records) for key, records in (quarantined or {}).items()
        }

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    @classmethod
    def fresh(
        cls,
        catalog: Optional[PlanCatalog] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "Ledger":
        """A brand new account (seed balance and demo history)."""
        settings = settings or LedgerSettings()
        return cls(
            catalog=catalog,
            clock=clock,
            settings=settings,
            audit_logger=audit_logger,
            **initial_state(settings),
        )

    @classmethod
    def from_state(
        cls,
        state: dict[str, Any],
        catalog: Optional[PlanCatalog] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "Ledger":
        """
        Rebuild a ledger from key-value store contents.

        Missing keys fall back to the initial state. Records that fail
        to parse are skipped, logged and kept aside so they are written
        back unchanged.
        """
        settings = settings or LedgerSettings()
        audit = audit_logger or AuditLogger()
        defaults = initial_state(settings)
        quarantined: dict[str, list[Any]] = {}

        transactions = cls._parse_records(
            state.get(TRANSACTIONS_KEY), Transaction, TRANSACTIONS_KEY,
            defaults["transactions"], quarantined, audit,
        )
        investments = cls._parse_records(
            state.get(INVESTMENTS_KEY), Investment, INVESTMENTS_KEY,
            defaults["investments"], quarantined, audit,
        )
        notifications = cls._parse_records(
            state.get(NOTIFICATIONS_KEY), Notification, NOTIFICATIONS_KEY,
            defaults["notifications"], None, audit,
        )
        payment_methods = cls._parse_records(
            state.get(PAYMENT_METHODS_KEY), PaymentMethod, PAYMENT_METHODS_KEY,
            defaults["payment_methods"], None, audit,
        )
        user = cls._parse_user(state.get(USER_KEY), defaults["user"], transactions, audit)

        audit.log(AuditEventBuilder.state_loaded(
            investments=len(investments),
            transactions=len(transactions),
            quarantined=sum(len(v) for v in quarantined.values()),
        ))

        return cls(
            catalog=catalog,
            clock=clock,
            settings=settings,
            audit_logger=audit,
            user=user,
            transactions=transactions,
            investments=investments,
            notifications=notifications,
            payment_methods=payment_methods,
            quarantined=quarantined,
        )

    @staticmethod
    def _parse_records(
        raw: Any,
        model: type,
        key: str,
        default: list,
        quarantined: Optional[dict[str, list[Any]]],
        audit: AuditLogger,
    ) -> list:
        if raw is None:
            return list(default)
        if not isinstance(raw, list):
            audit.log_record_skipped(key, None, f"expected a list, got {type(raw).__name__}")
            return list(default)

        parsed = []
        for record in raw:
            try:
                parsed.append(model.model_validate(record))
            except ValidationError as e:
                record_id = record.get("id") if isinstance(record, dict) else None
                audit.log_record_skipped(
                    key, record_id, f"malformed record ({e.error_count()} error(s))",
                )
                if quarantined is not None:
                    quarantined.setdefault(key, []).append(record)
        return parsed

    @staticmethod
    def _parse_user(
        raw: Any,
        default: UserAccount,
        transactions: list[Transaction],
        audit: AuditLogger,
    ) -> UserAccount:
        if raw is None:
            return default
        try:
            user = UserAccount.model_validate(raw)
        except ValidationError as e:
            audit.log_record_skipped(USER_KEY, None, f"malformed account ({e.error_count()} error(s))")
            return default

        if "openingBalance" not in raw and "opening_balance" not in raw:
            # Older stores did not track the opening balance.
            user.opening_balance = user.balance - sum(t.amount for t in transactions)
        return user

    def to_state(self) -> dict[str, Any]:
        """Serialize to key-value store contents (JSON-compatible)."""
        def dump(records: Iterable, key: str) -> list:
            out = [r.model_dump(mode="json", by_alias=True) for r in records]
            out.extend(self._quarantined.get(key, []))
            return out

        return {
            USER_KEY: self._user.model_dump(mode="json", by_alias=True),
            TRANSACTIONS_KEY: dump(self._transactions, TRANSACTIONS_KEY),
            NOTIFICATIONS_KEY: dump(self._notifications, NOTIFICATIONS_KEY),
            PAYMENT_METHODS_KEY: dump(self._payment_methods, PAYMENT_METHODS_KEY),
            INVESTMENTS_KEY: dump(self._investments, INVESTMENTS_KEY),
        }

    # =========================================================================
    # READ SIDE (snapshots; callers cannot mutate ledger state through them)
    # =========================================================================

    @property
    def catalog(self) -> PlanCatalog:
        return self._catalog

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def balance(self) -> float:
        return self._user.balance

    @property
    def user(self) -> UserAccount:
        return self._user.model_copy()

    @property
    def transactions(self) -> list[Transaction]:
        """All transactions, newest first."""
        return [t.model_copy() for t in reversed(self._transactions)]

    @property
    def investments(self) -> list[Investment]:
        """All investments with is_locked recomputed for now."""
        refresh_lock_flags(self._investments, self._clock.now())
        return [inv.model_copy() for inv in self._investments]

    @property
    def notifications(self) -> list[Notification]:
        return [n.model_copy() for n in self._notifications]

    @property
    def payment_methods(self) -> list[PaymentMethod]:
        return [pm.model_copy() for pm in self._payment_methods]

    @property
    def quarantined_count(self) -> int:
        return sum(len(records) for records in self._quarantined.values())

    @property
    def unread_notifications(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def get_investment(self, investment_id: str) -> Optional[Investment]:
        for inv in self._investments:
            if inv.id == investment_id:
                copy = inv.model_copy()
                copy.is_locked = copy.is_active and is_locked(copy.locked_until, self._clock.now())
                return copy
        return None

    def active_investments(self) -> list[Investment]:
        return [inv for inv in self.investments if inv.is_active]

    def transactions_by_type(self, transaction_type: TransactionType) -> list[Transaction]:
        return [t for t in self.transactions if t.type == transaction_type]

    def withdrawal_gate(self) -> WithdrawalGate:
        return withdrawal_gate(self._investments, self._clock.now())

    def plan_for(self, investment: Investment) -> Optional[Plan]:
        return self._catalog.get(investment.plan_id)

    def investment_view(self, investment_id: str) -> Optional[InvestmentView]:
        """
        Current value, progress and lock state of one investment.

        Orphaned investments (plan no longer in the catalog) are shown at
        principal, using the stored end date for their duration.
        """
        investment = self.get_investment(investment_id)
        if investment is None:
            return None

        now = self._clock.now()
        plan = self.plan_for(investment)
        if plan is not None:
            duration = plan.duration_days
            value = current_value(
                investment.amount, daily_rate(plan.annual_roi_percent), investment.start_date, now,
            )
            breakdown = roi_breakdown(plan.annual_roi_percent)
        else:
            duration = max(1, (investment.expected_end_date - investment.start_date).days)
            value = investment.amount
            breakdown = None

        return InvestmentView(
            investment_id=investment.id,
            plan_name=investment.plan_name,
            principal=investment.amount,
            current_value=value,
            profit=value - investment.amount,
            progress_percent=progress_percent(investment.start_date, duration, now),
            days_remaining=days_remaining(investment.start_date, duration, now),
            state=investment_state(investment, duration, now),
            is_locked=investment.is_locked,
            locked_until=investment.locked_until,
            roi_breakdown=breakdown,
        )

    def portfolio_summary(self) -> PortfolioSummary:
        """Totals across Active investments at the current instant."""
        summary = PortfolioSummary()
        for investment in self.active_investments():
            view = self.investment_view(investment.id)
            summary.active_count += 1
            summary.locked_count += int(view.is_locked)
            summary.total_principal += view.principal
            summary.total_current_value += view.current_value
        summary.unrealized_profit = summary.total_current_value - summary.total_principal
        return summary

    def preview_investment(self, plan_id: str, amount_usd: float) -> Optional[ReturnProjection]:
        """What-if projection over the plan's full duration."""
        plan = self._catalog.get(plan_id)
        if plan is None or self._validator.check_amount(amount_usd):
            return None
        return expected_return(amount_usd, plan.annual_roi_percent, plan.duration_days)

    def preview_fixed_returns(self, plan_id: str, amount_usd: float) -> Optional[FixedReturnProjection]:
        """What-if projection using the legacy fixed daily rate."""
        plan = self._catalog.get(plan_id)
        fallback_days = plan.duration_days if plan else 0
        return fixed_daily_returns(
            amount_usd,
            plan_id,
            fallback_days,
            rate=self._settings.fixed_daily_rate_percent / 100,
        )

    def verify_integrity(self) -> bool:
        """balance == opening_balance + sum of all transaction amounts"""
        expected = self._user.opening_balance + sum(t.amount for t in self._transactions)
        return abs(self._user.balance - expected) <= BALANCE_TOLERANCE * max(1.0, abs(expected))

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def _today(self) -> date:
        return self._clock.now().date()

    def _apply(self, transaction: Transaction, correlation_id: Optional[UUID] = None) -> None:
        """Append a built transaction and move the balance by its amount."""
        self._transactions.append(transaction)
        self._user.balance += transaction.amount
        self._audit.log(AuditEventBuilder.transaction_posted(
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            balance_after=self._user.balance,
            correlation_id=correlation_id,
        ))

    def _notification(self, title: str, description: str) -> Notification:
        return Notification(title=title, description=description, date=self._today())

    def _notify(self, title: str, description: str) -> None:
        self._notifications.insert(0, self._notification(title, description))

    def _reject(self, operation: str, error: Err, details: Optional[dict] = None) -> Err:
        self._audit.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            kind=error.kind.value,
            message=error.message,
            details=details,
        ))
        return error

    def add_transaction(
        self,
        transaction_type: TransactionType,
        amount: float,
        description: str,
    ) -> Transaction:
        """
        Post a Completed transaction dated today and adjust the balance.

        This is the raw apply step: the caller supplies the sign and is
        responsible for business checks (lock gate, sufficient balance).
        Use deposit()/withdraw() for validated movements.

        Raises:
            ValueError: if the amount's sign does not match the type
        """
        transaction = Transaction(
            type=transaction_type,
            amount=amount,
            date=self._today(),
            description=description,
        )
        self._apply(transaction)
        return transaction

    def process_investment(self, plan_id: str, amount_usd: float) -> Union[Ok[InvestmentReceipt], Err]:
        """
        Move amount_usd from the balance into a new Active investment.

        On success the investment, its negative Investment transaction
        and the balance decrement are applied together.
        """
        plan, error = self._validator.check_investment(plan_id, amount_usd, self._user.balance)
        if error:
            return self._reject("invest", error, {"plan_id": plan_id, "amount": amount_usd})

        now = self._clock.now()
        investment = Investment(
            plan_id=plan.id,
            plan_name=plan.name,
            amount=amount_usd,
            currency=self._settings.base_currency,
            start_date=now,
            expected_end_date=maturity_date(now, plan.duration_days),
            locked_until=lock_expiry(now),
            status=InvestmentStatus.ACTIVE,
            is_locked=True,
        )
        transaction = Transaction(
            type=TransactionType.INVESTMENT,
            amount=-amount_usd,
            date=now.date(),
            description=f"Investment in {plan.name}",
        )

        self._investments.append(investment)
        self._apply(transaction)
        self._notify(
            "Investment Successful",
            f"Your ${amount_usd:,.2f} investment in the {plan.name} was successful.",
        )
        self._audit.log(AuditEventBuilder.investment_created(
            investment_id=investment.id,
            plan_id=plan.id,
            amount=amount_usd,
            locked_until=investment.locked_until,
        ))

        return Ok(value=InvestmentReceipt(
            investment=investment.model_copy(),
            transaction=transaction.model_copy(),
        ))

    def deposit(self, amount_usd: float, description: str = "Bank Transfer") -> Union[Ok[Transaction], Err]:
        """Credit the balance from an external source."""
        error = self._validator.check_amount(amount_usd)
        if error:
            return self._reject("deposit", error, {"amount": amount_usd})

        transaction = self.add_transaction(TransactionType.DEPOSIT, amount_usd, description)
        self._notify("Deposit Confirmed", f"Your deposit of ${amount_usd:,.2f} has been confirmed.")
        return Ok(value=transaction.model_copy())

    def withdraw(self, amount_usd: float, description: str = "To Bank Account") -> Union[Ok[Transaction], Err]:
        """
        Debit the balance to an external account.

        Refused with WITHDRAWAL_LOCKED while any Active investment is
        inside its lock period, whatever the amount.
        """
        gate = self.withdrawal_gate()
        error = self._validator.check_withdrawal(amount_usd, self._user.balance, gate)
        if error:
            if error.kind == LedgerErrorKind.WITHDRAWAL_LOCKED:
                self._audit.log(AuditEventBuilder.withdrawal_blocked(
                    amount=amount_usd,
                    locked_count=gate.locked_count,
                    earliest_unlock=gate.earliest_unlock,
                ))
                return error
            return self._reject("withdraw", error, {"amount": amount_usd})

        transaction = self.add_transaction(TransactionType.WITHDRAWAL, -amount_usd, description)
        self._notify("Withdrawal Processed", f"Your withdrawal of ${amount_usd:,.2f} is on its way.")
        return Ok(value=transaction.model_copy())

    def complete_investment(
        self,
        investment_id: str,
        payout: float,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """
        Active -> Completed, posting the accumulated profit as a Payout.

        Returns the payout transaction, or None when the investment is
        unknown or no longer Active (so repeated calls never double-pay).

        Raises:
            ValueError: the payout or its notification cannot be built;
                nothing has been changed
        """
        investment = next((inv for inv in self._investments if inv.id == investment_id), None)
        if investment is None or not investment.is_active:
            return None

        transaction = Transaction(
            type=TransactionType.PAYOUT,
            amount=max(0.0, payout),
            date=self._today(),
            description=f"Plan Payout: {investment.plan_name}",
        )
        notification = self._notification(
            "Payout Received",
            f"You received a payout of ${transaction.amount:,.2f} from your {investment.plan_name}.",
        )

        investment.status = InvestmentStatus.COMPLETED
        investment.is_locked = False
        self._apply(transaction, correlation_id)
        self._notifications.insert(0, notification)
        self._audit.log(AuditEventBuilder.investment_matured(
            investment_id=investment.id,
            payout=transaction.amount,
            correlation_id=correlation_id,
        ))
        return transaction.model_copy()

    def credit_growth(
        self,
        amount: float,
        investment_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Post one consolidated Payout for growth across active investments."""
        transaction = Transaction(
            type=TransactionType.PAYOUT,
            amount=amount,
            date=self._today(),
            description="Investment Growth",
        )
        self._apply(transaction, correlation_id)
        self._audit.log(AuditEventBuilder.growth_credited(
            amount=amount,
            investment_count=investment_count,
            correlation_id=correlation_id,
        ))
        return transaction.model_copy()

    # =========================================================================
    # AUXILIARY LISTS
    # =========================================================================

    def add_notification(self, title: str, description: str) -> Notification:
        self._notify(title, description)
        return self._notifications[0].model_copy()

    def mark_notifications_as_read(self) -> int:
        """Mark everything read. Returns how many were unread."""
        count = 0
        for notification in self._notifications:
            if not notification.read:
                notification.read = True
                count += 1
        return count

    def add_payment_method(
        self,
        method_type: PaymentMethodType,
        provider: str,
        last4: str,
        expiry: Optional[str] = None,
    ) -> PaymentMethod:
        """
        Raises:
            ValueError: if last4 or expiry are malformed
        """
        method = PaymentMethod(type=method_type, provider=provider, last4=last4, expiry=expiry)
        self._payment_methods.append(method)
        return method.model_copy()

    def delete_payment_method(self, method_id: str) -> bool:
        before = len(self._payment_methods)
        self._payment_methods = [pm for pm in self._payment_methods if pm.id != method_id]
        return len(self._payment_methods) < before

    def set_display_currency(self, currency_code: str) -> bool:
        """Change the presentation currency. Accounting stays in USD."""
        if not is_supported(currency_code):
            logger.warning("display_currency_rejected", currency=currency_code)
            return False
        self._user.display_currency = currency_code
        return True

    def reset(self) -> None:
        """Return to the initial account state (logout)."""
        state = initial_state(self._settings)
        self._user = state["user"]
        self._transactions = state["transactions"]
        self._investments = state["investments"]
        self._notifications = state["notifications"]
        self._payment_methods = state["payment_methods"]
        self._quarantined = {}
        self._audit.log(AuditEventBuilder.ledger_reset(balance=self._user.balance))
