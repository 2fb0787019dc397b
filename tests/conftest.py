"""
Shared fixtures.

Every test runs against a FixedClock so results never depend on the
wall clock.
"""

from datetime import datetime, timezone

import pytest

from compound_ledger.audit import AuditLogger
from compound_ledger.catalog import PlanCatalog
from compound_ledger.clock import FixedClock
from compound_ledger.config import LedgerSettings
from compound_ledger.ledger import Ledger


T0 = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def catalog() -> PlanCatalog:
    return PlanCatalog()


@pytest.fixture
def settings() -> LedgerSettings:
    """An empty account holding $5,000 and no demo history."""
    return LedgerSettings(initial_balance=5000.0, seed_demo_data=False)


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def ledger(catalog, clock, settings, audit_logger) -> Ledger:
    return Ledger.fresh(
        catalog=catalog,
        clock=clock,
        settings=settings,
        audit_logger=audit_logger,
    )
