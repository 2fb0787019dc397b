"""
Tests for the session flow (integration: in-memory store, fixed clock).
"""

import asyncio
from datetime import datetime

import pytest

from compound_ledger.audit import AuditLogger
from compound_ledger.config import LedgerSettings
from compound_ledger.ledger import INVESTMENTS_KEY, LAST_OPEN_KEY, USER_KEY
from compound_ledger.models.ledger import InvestmentStatus, PaymentMethodType, TransactionType
from compound_ledger.models.projection import ReconciliationReport
from compound_ledger.models.results import LedgerErrorKind
from compound_ledger.orchestrator import LedgerSession, SessionNotStartedError, create_session
from compound_ledger.reconciliation import GrowthReconciliationJob
from compound_ledger.services.storage import (
    AUDIT_LOG_KEY,
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    StorageWriteError,
)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_session(store, catalog, clock, settings):
    def factory(**overrides) -> LedgerSession:
        kwargs = dict(store=store, catalog=catalog, clock=clock, settings=settings)
        kwargs.update(overrides)
        return LedgerSession(**kwargs)
    return factory


class TestStartup:
    """Tests for the cold-start flow."""

    @pytest.mark.asyncio
    async def test_first_start_seeds_and_persists(self, make_session, store, t0):
        session = make_session()

        report = await session.start()

        assert report.aborted is False
        assert session.ledger.balance == 5000
        assert (await store.get(USER_KEY))["balance"] == 5000
        assert await store.get(LAST_OPEN_KEY) == t0.isoformat()

    @pytest.mark.asyncio
    async def test_ledger_unavailable_before_start(self, make_session):
        with pytest.raises(SessionNotStartedError):
            make_session().ledger

    @pytest.mark.asyncio
    async def test_start_runs_once(self, make_session):
        session = make_session()
        first, second = await asyncio.gather(session.start(), session.start())
        assert first is second
        assert await session.start() is first

    @pytest.mark.asyncio
    async def test_malformed_store_falls_back(self, catalog, clock, settings):
        store = InMemoryKeyValueStore({INVESTMENTS_KEY: "[{broken", USER_KEY: "null"})
        session = LedgerSession(store=store, catalog=catalog, clock=clock, settings=settings)

        report = await session.start()

        assert report.aborted is False
        assert session.ledger.investments == []

    @pytest.mark.asyncio
    async def test_unreadable_last_open_treated_as_missing(self, make_session, store, clock):
        await store.set(LAST_OPEN_KEY, "yesterday-ish")
        session = make_session()
        await session.start()
        assert await store.get(LAST_OPEN_KEY) == clock.now().isoformat()


class TestSessionFlow:
    """Tests for mutations across restarts."""

    @pytest.mark.asyncio
    async def test_investment_survives_restart(self, make_session):
        session = make_session()
        result = await session.invest("p2", 500)
        assert result.ok is True

        restarted = make_session()
        await restarted.start()

        assert restarted.ledger.balance == 4500
        assert restarted.ledger.get_investment(result.value.investment.id) is not None
        assert restarted.ledger.verify_integrity()

    @pytest.mark.asyncio
    async def test_maturity_on_later_cold_start(self, make_session, clock):
        session = make_session()
        investment = (await session.invest("p1", 1000)).value.investment

        clock.advance(days=8)
        later = make_session()
        report = await later.start()

        assert report.matured_ids == [investment.id]
        assert later.ledger.get_investment(investment.id).status == InvestmentStatus.COMPLETED

        again = make_session()
        second_report = await again.start()

        assert second_report.matured_ids == []
        assert len(again.ledger.transactions_by_type(TransactionType.PAYOUT)) == 1

    @pytest.mark.asyncio
    async def test_reopen_within_hour_posts_no_growth(self, make_session, clock):
        session = make_session()
        await session.invest("p4", 2500)

        clock.advance(days=5)
        first = await make_session().start()
        assert first.credited_amount > 0

        clock.advance(minutes=20)
        second = await make_session().start()
        assert second.unrealized_earnings > 0
        assert second.credited_amount == 0

    @pytest.mark.asyncio
    async def test_concurrent_mutations_do_not_interleave(self, catalog, clock):
        session = LedgerSession(
            store=InMemoryKeyValueStore(),
            catalog=catalog,
            clock=clock,
            settings=LedgerSettings(initial_balance=1000.0, seed_demo_data=False),
        )

        results = await asyncio.gather(*(session.invest("p2", 500) for _ in range(3)))

        assert sum(1 for r in results if r.ok) == 2
        assert [r.kind for r in results if not r.ok] == [LedgerErrorKind.INSUFFICIENT_BALANCE]
        assert session.ledger.balance == 0
        assert session.ledger.verify_integrity()

    @pytest.mark.asyncio
    async def test_withdrawal_locked(self, make_session):
        session = make_session()
        await session.invest("p2", 500)
        result = await session.withdraw(10)
        assert result.kind == LedgerErrorKind.WITHDRAWAL_LOCKED

    @pytest.mark.asyncio
    async def test_auxiliary_mutations_persist(self, make_session, store):
        session = make_session()
        method = await session.add_payment_method(PaymentMethodType.BANK, "Chase Bank", "9876")
        await session.set_display_currency("MXN")

        restarted = make_session()
        await restarted.start()

        assert [pm.id for pm in restarted.ledger.payment_methods] == [method.id]
        assert restarted.ledger.user.display_currency == "MXN"
        assert await restarted.delete_payment_method(method.id) is True

    @pytest.mark.asyncio
    async def test_logout_resets_everything(self, make_session, store):
        session = make_session()
        await session.invest("p2", 500)

        await session.logout()

        assert session.ledger.balance == 5000
        assert session.ledger.investments == []
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_logout_keeps_audit_trail(self, make_session, store):
        session = make_session(audit_logger=AuditLogger(KeyValueAuditStorage(store)))
        await session.invest("p2", 500)

        await session.logout()

        assert store.keys() == [AUDIT_LOG_KEY]
        event_types = {e["event_type"] for e in await store.get(AUDIT_LOG_KEY)}
        assert {"investment_created", "ledger_reset"} <= event_types


class TestFailureHandling:
    """Tests for aborted sweeps and storage failures."""

    @pytest.mark.asyncio
    async def test_aborted_sweep_keeps_last_open(self, make_session, store, clock, monkeypatch):
        await make_session().start()
        stored_last_open = await store.get(LAST_OPEN_KEY)

        def aborted_run(self, last_open=None):
            return ReconciliationReport(ran_at=self._clock.now(), aborted=True, error="boom")

        monkeypatch.setattr(GrowthReconciliationJob, "run", aborted_run)
        clock.advance(days=1)
        report = await make_session().start()

        assert report.aborted is True
        assert await store.get(LAST_OPEN_KEY) == stored_last_open

    @pytest.mark.asyncio
    async def test_write_failure_is_logged_not_raised(self, catalog, clock, settings):
        class ReadOnlyStore(InMemoryKeyValueStore):
            async def set_raw(self, key, raw):
                raise StorageWriteError("read-only")

        audit_logger = AuditLogger()
        session = LedgerSession(
            store=ReadOnlyStore(),
            catalog=catalog,
            clock=clock,
            settings=settings,
            audit_logger=audit_logger,
        )

        result = await session.deposit(100)

        assert result.ok is True
        assert session.ledger.balance == 5100
        assert await session.persist() is False
        assert any(e.event_type.value == "storage_error" for e in audit_logger.recent_events)

    @pytest.mark.asyncio
    async def test_audit_trail_persisted_with_state(self, make_session, store):
        session = make_session(audit_logger=AuditLogger(KeyValueAuditStorage(store)))
        await session.invest("p2", 500)

        trail = await store.get(AUDIT_LOG_KEY)
        assert any(e["event_type"] == "investment_created" for e in trail)


class TestFactory:
    """Tests for create_session()."""

    @pytest.mark.asyncio
    async def test_create_session_with_explicit_store(self, clock, settings):
        store = InMemoryKeyValueStore()
        session = create_session(settings=settings, clock=clock, store=store)

        await session.start()

        assert session.ledger.balance == 5000
        assert AUDIT_LOG_KEY in store.keys()
        assert datetime.fromisoformat(await store.get(LAST_OPEN_KEY)) == clock.now()
