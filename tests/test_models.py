"""
Tests for Compound Ledger models

Test strategy:
1. Unit tests for individual components (models, catalog, settings)
2. Integration tests for flows (in-memory storage, fixed clock)
3. No wall-clock time in tests (use FixedClock)
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from compound_ledger.catalog import CatalogError, PlanCatalog
from compound_ledger.config import AppSettings, LedgerSettings
from compound_ledger.models.ledger import (
    Investment,
    InvestmentStatus,
    PaymentMethod,
    PaymentMethodType,
    Plan,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserAccount,
)
from compound_ledger.models.results import Err, LedgerErrorKind, Ok
from compound_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


START = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_investment(**overrides) -> Investment:
    fields = dict(
        plan_id="p2",
        plan_name="1 Month Plan",
        amount=500.0,
        start_date=START,
        expected_end_date=START + timedelta(days=30),
        locked_until=START + timedelta(days=30),
    )
    fields.update(overrides)
    return Investment(**fields)


class TestLedgerModels:
    """Tests for ledger record models."""

    def test_plan_rejects_non_positive_rate(self):
        """Test that plans cannot be configured with a zero or negative rate."""
        with pytest.raises(ValueError):
            Plan(id="px", name="Bad", duration_days=30, annual_roi_percent=-5, min_deposit=100)
        with pytest.raises(ValueError):
            Plan(id="px", name="Bad", duration_days=30, annual_roi_percent=0, min_deposit=100)

    def test_plan_roi_split(self):
        """Test the 60/40 bond/platform split on a plan."""
        plan = Plan(id="p2", name="1 Month Plan", duration_days=30, annual_roi_percent=10, min_deposit=500)
        assert plan.bond_percent == pytest.approx(6.0)
        assert plan.platform_percent == pytest.approx(4.0)

    def test_investment_defaults(self):
        """Test Investment model creation."""
        investment = make_investment()
        assert investment.id.startswith("inv_")
        assert investment.status == InvestmentStatus.ACTIVE
        assert investment.currency == "USD"
        assert investment.is_active is True

    def test_investment_loads_camel_case_keys(self):
        """Test that stored app records with camelCase keys parse."""
        investment = Investment.model_validate({
            "id": "inv1",
            "planId": "p2",
            "planName": "1 Month Plan",
            "amount": 500,
            "currency": "USD",
            "startDate": "2025-01-10T12:00:00.000Z",
            "expectedEndDate": "2025-02-09T12:00:00.000Z",
            "lockedUntil": "2025-02-09T12:00:00.000Z",
            "status": "Active",
            "isLocked": True,
        })
        assert investment.plan_id == "p2"
        assert investment.start_date == START

    def test_investment_dumps_camel_case_keys(self):
        """Test serialization uses the stored key spelling."""
        data = make_investment().model_dump(mode="json", by_alias=True)
        assert "planId" in data
        assert "lockedUntil" in data
        assert data["status"] == "Active"

    def test_investment_naive_timestamps_become_utc(self):
        """Test that naive datetimes are read as UTC."""
        investment = make_investment(
            start_date=datetime(2025, 1, 10, 12, 0),
            expected_end_date=datetime(2025, 2, 9, 12, 0),
            locked_until=datetime(2025, 2, 9, 12, 0),
        )
        assert investment.start_date.tzinfo is not None
        assert investment.start_date == START

    def test_investment_rejects_non_usd(self):
        """Test that investments are USD-only."""
        with pytest.raises(ValueError, match="USD"):
            make_investment(currency="EUR")

    def test_investment_rejects_non_positive_amount(self):
        """Test that principal must be positive."""
        with pytest.raises(ValueError):
            make_investment(amount=0)

    def test_amounts_must_be_finite(self):
        """Test that stored Infinity/NaN amounts never load as records."""
        with pytest.raises(ValueError):
            make_investment(amount=float("inf"))
        with pytest.raises(ValueError):
            Transaction(type=TransactionType.PAYOUT, amount=float("nan"), date=date(2025, 1, 1))
        with pytest.raises(ValueError):
            Transaction(type=TransactionType.PAYOUT, amount=float("inf"), date=date(2025, 1, 1))

    def test_investment_date_validation(self):
        """Test that the end date cannot be before the start date."""
        with pytest.raises(ValueError, match="Expected end date cannot be before start date"):
            make_investment(expected_end_date=START - timedelta(days=1))

    def test_transaction_sign_validation(self):
        """Test that debit types must be negative and credit types positive."""
        with pytest.raises(ValueError):
            Transaction(type=TransactionType.WITHDRAWAL, amount=100, date=date(2025, 1, 1))
        with pytest.raises(ValueError):
            Transaction(type=TransactionType.DEPOSIT, amount=-100, date=date(2025, 1, 1))

        txn = Transaction(type=TransactionType.INVESTMENT, amount=-500, date=date(2025, 1, 1))
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.id.startswith("txn_")

    def test_payment_method_validation(self):
        """Test last4 and expiry formats."""
        card = PaymentMethod(type=PaymentMethodType.CARD, provider="Visa", last4="4242", expiry="08/28")
        assert card.provider == "Visa"
        with pytest.raises(ValueError):
            PaymentMethod(type=PaymentMethodType.CARD, provider="Visa", last4="42a2")
        with pytest.raises(ValueError):
            PaymentMethod(type=PaymentMethodType.CARD, provider="Visa", last4="4242", expiry="13/28")

    def test_user_account_aliases(self):
        """Test that the account accepts both key spellings."""
        user = UserAccount.model_validate({"name": "Alex", "balance": 10, "displayCurrency": "EUR"})
        assert user.display_currency == "EUR"
        assert UserAccount(display_currency="GBP").display_currency == "GBP"


class TestResults:
    """Tests for the Ok/Err result types."""

    def test_ok_carries_value(self):
        result = Ok(value=42)
        assert result.ok is True
        assert result.value == 42

    def test_err_carries_kind_and_hints(self):
        unlock = START + timedelta(days=30)
        result = Err(
            kind=LedgerErrorKind.WITHDRAWAL_LOCKED,
            message="locked",
            unlock_at=unlock,
            locked_count=1,
        )
        assert result.ok is False
        assert result.kind == LedgerErrorKind.WITHDRAWAL_LOCKED
        assert result.unlock_at == unlock


class TestPlanCatalog:
    """Tests for the static plan catalog."""

    def test_default_plans(self):
        catalog = PlanCatalog()
        assert len(catalog) == 4
        assert "p2" in catalog
        assert catalog.get("p2").min_deposit == 500
        assert catalog.get("p2").duration_days == 30
        assert catalog.get("missing") is None

    def test_duplicate_ids_rejected(self):
        plan = Plan(id="p1", name="A", duration_days=7, annual_roi_percent=2, min_deposit=100)
        with pytest.raises(CatalogError, match="Duplicate"):
            PlanCatalog([plan, plan])

    def test_require_unknown_plan(self):
        with pytest.raises(CatalogError):
            PlanCatalog().require("p99")

    def test_from_records_rejects_negative_rate(self):
        with pytest.raises(CatalogError, match="p9"):
            PlanCatalog.from_records([
                {"id": "p9", "name": "Bad", "duration_days": 10, "annual_roi_percent": -1, "min_deposit": 1},
            ])


class TestSettings:
    """Tests for configuration validation."""

    def test_ledger_defaults(self):
        settings = LedgerSettings()
        assert settings.growth_credit_interval_hours == 1.0
        assert settings.payout_dust_threshold == 0.01

    def test_base_currency_must_be_usd(self):
        with pytest.raises(ValueError, match="USD-only"):
            LedgerSettings(base_currency="EUR")

    def test_log_level_validation(self):
        assert AppSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            AppSettings(log_level="LOUD")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            description="Deposit posted",
        )
        assert event.event_type == AuditEventType.TRANSACTION_POSTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.GROWTH_CREDITED,
            description="Growth credited",
            details={"amount": 12.5},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "growth_credited"
        assert log_dict["details"]["amount"] == 12.5

    def test_audit_event_builder_investment_created(self):
        """Test AuditEventBuilder.investment_created."""
        event = AuditEventBuilder.investment_created(
            investment_id="inv_1",
            plan_id="p2",
            amount=500.0,
            locked_until=START,
        )
        assert event.event_type == AuditEventType.INVESTMENT_CREATED
        assert event.entity_id == "inv_1"
        assert event.is_user_action is True

    def test_audit_event_builder_rejected_investment(self):
        """Test that rejected investments get their own event type."""
        event = AuditEventBuilder.operation_rejected(
            operation="invest",
            kind="below_minimum_deposit",
            message="Minimum deposit is $500.00.",
        )
        assert event.event_type == AuditEventType.INVESTMENT_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "below_minimum_deposit"

    def test_audit_event_builder_record_skipped(self):
        """Test AuditEventBuilder.record_skipped."""
        correlation_id = uuid4()
        event = AuditEventBuilder.record_skipped(
            entity_type="investment",
            entity_id="inv_9",
            reason="plan p9 is not in the catalog",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.RECORD_SKIPPED
        assert event.correlation_id == correlation_id
        assert "inv_9" in event.description


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
