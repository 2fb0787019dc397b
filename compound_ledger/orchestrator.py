"""
Session Orchestrator for Compound Ledger

This module ties together all the components and defines the
end-to-end session flow:
1. Cold start (load state -> reconcile growth -> persist)
2. Mutations (await startup -> mutate under lock -> persist)
3. Logout (clear state keys -> reset to initial state)

The orchestrator enforces the boundaries:
- No mutation runs before the reconciliation sweep has finished
- No two mutations interleave (one asyncio.Lock for the session)
- State is written after every mutation (write-after-mutate); the
  in-memory ledger stays the source of truth while the session runs
- Storage failures are logged, never raised to the caller
"""

import asyncio
from datetime import datetime
from typing import Any, Optional, Union

import structlog

from compound_ledger.audit import AuditLogger, configure_logging
from compound_ledger.catalog import PlanCatalog
from compound_ledger.clock import Clock, SystemClock, ensure_utc
from compound_ledger.config import LedgerSettings, get_settings
from compound_ledger.ledger import LAST_OPEN_KEY, STATE_KEYS, Ledger
from compound_ledger.models.audit import AuditEventBuilder
from compound_ledger.models.ledger import (
    Notification,
    PaymentMethod,
    PaymentMethodType,
    Transaction,
)
from compound_ledger.models.projection import ReconciliationReport
from compound_ledger.models.results import Err, InvestmentReceipt, Ok
from compound_ledger.reconciliation import GrowthReconciliationJob
from compound_ledger.services.storage import (
    AUDIT_LOG_KEY,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class SessionNotStartedError(RuntimeError):
    """The ledger was accessed before start() completed."""
    pass


class LedgerSession:
    """
    Orchestrates one app session over a persisted ledger.

    Flow:
    1. start() -> load every key, rebuild the Ledger
    2. Reconcile -> run the growth sweep exactly once
    3. Persist -> write state, then the new last-open time
    4. Mutations -> wait for 1-3, then mutate and persist one at a time

    If the sweep aborts, last-open is not advanced so the next
    cold start retries.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        catalog: Optional[PlanCatalog] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._catalog = catalog or PlanCatalog()
        self._clock = clock or SystemClock()
        self._settings = settings or LedgerSettings()
        self._audit_logger = audit_logger or AuditLogger()

        self._lock = asyncio.Lock()
        self._ledger: Optional[Ledger] = None
        self._startup_report: Optional[ReconciliationReport] = None

    # =========================================================================
    # STARTUP
    # =========================================================================

    @property
    def started(self) -> bool:
        return self._startup_report is not None

    @property
    def ledger(self) -> Ledger:
        """
        The session's ledger, for read-side queries.

        Raises:
            SessionNotStartedError: before start() has completed
        """
        if self._ledger is None or not self.started:
            raise SessionNotStartedError("Call start() before using the ledger")
        return self._ledger

    @property
    def startup_report(self) -> Optional[ReconciliationReport]:
        return self._startup_report

    async def start(self) -> ReconciliationReport:
        """
        Load state and run the cold-start reconciliation.

        Safe to call more than once; only the first call does any work and
        concurrent callers wait for it.
        """
        async with self._lock:
            if self._startup_report is not None:
                return self._startup_report

            state = {key: await self._store.get(key) for key in STATE_KEYS}
            last_open = self._parse_last_open(await self._store.get(LAST_OPEN_KEY))

            self._ledger = Ledger.from_state(
                state,
                catalog=self._catalog,
                clock=self._clock,
                settings=self._settings,
                audit_logger=self._audit_logger,
            )

            job = GrowthReconciliationJob(self._ledger)
            report = job.run(last_open)

            await self._persist()
            if not report.aborted:
                await self._write(LAST_OPEN_KEY, report.ran_at.isoformat())

            self._startup_report = report
            logger.info(
                "session_started",
                matured=len(report.matured_ids),
                credited=report.credited_amount,
                aborted=report.aborted,
            )
            return report

    def _parse_last_open(self, raw: Any) -> Optional[datetime]:
        if raw is None:
            return None
        try:
            return ensure_utc(datetime.fromisoformat(str(raw)))
        except ValueError:
            self._audit_logger.log_record_skipped(LAST_OPEN_KEY, None, f"unreadable timestamp {raw!r}")
            return None

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _write(self, key: str, value: Any) -> bool:
        try:
            await self._store.set(key, value)
        except StorageError as e:
            self._audit_logger.log_storage_error("write", str(e), key)
            return False
        return True

    async def _persist(self) -> bool:
        """Write every ledger key, then flush the audit trail."""
        state = self._ledger.to_state()
        written = []
        for key, value in state.items():
            if await self._write(key, value):
                written.append(key)

        self._audit_logger.log(AuditEventBuilder.state_persisted(written))
        await self._audit_logger.flush()
        return len(written) == len(state)

    async def persist(self) -> bool:
        """
        Force a write of the current state.

        Returns True if every key was written.
        """
        await self.start()
        async with self._lock:
            return await self._persist()

    async def _mutate(self, operation: str, *args):
        """Run a Ledger method by name once started, then persist."""
        await self.start()
        async with self._lock:
            result = getattr(self._ledger, operation)(*args)
            await self._persist()
            return result

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def invest(self, plan_id: str, amount_usd: float) -> Union[Ok[InvestmentReceipt], Err]:
        return await self._mutate("process_investment", plan_id, amount_usd)

    async def deposit(self, amount_usd: float) -> Union[Ok[Transaction], Err]:
        return await self._mutate("deposit", amount_usd)

    async def withdraw(self, amount_usd: float) -> Union[Ok[Transaction], Err]:
        return await self._mutate("withdraw", amount_usd)

    async def add_notification(self, title: str, description: str) -> Notification:
        return await self._mutate("add_notification", title, description)

    async def mark_notifications_as_read(self) -> int:
        return await self._mutate("mark_notifications_as_read")

    async def add_payment_method(
        self,
        method_type: PaymentMethodType,
        provider: str,
        last4: str,
        expiry: Optional[str] = None,
    ) -> PaymentMethod:
        return await self._mutate(
            "add_payment_method", method_type, provider, last4, expiry,
        )

    async def delete_payment_method(self, method_id: str) -> bool:
        return await self._mutate("delete_payment_method", method_id)

    async def set_display_currency(self, currency_code: str) -> bool:
        return await self._mutate("set_display_currency", currency_code)

    async def logout(self) -> None:
        """
        Wipe persisted state and return the ledger to its initial state.

        The audit trail is kept.
        """
        await self.start()
        async with self._lock:
            try:
                await self._store.clear(keep=(AUDIT_LOG_KEY,))
            except StorageError as e:
                self._audit_logger.log_storage_error("clear", str(e))
            self._ledger.reset()
            await self._audit_logger.flush()


def create_session(
    settings: Optional[LedgerSettings] = None,
    clock: Optional[Clock] = None,
    store: Optional[KeyValueStoreInterface] = None,
) -> LedgerSession:
    """
    Factory function to create a session from configuration.

    Args:
        settings: Ledger rules. Defaults to environment configuration.
        clock: Time source. Defaults to the system clock.
        store: Key-value backend. Defaults to the one named by
            STORAGE_BACKEND.

    Returns:
        An unstarted LedgerSession whose audit trail is kept in the same
        store as the ledger state.
    """
    config = get_settings()
    configure_logging(config.app.log_level)

    if store is None:
        storage_settings = config.storage
        if storage_settings.backend == "json_file":
            store = JsonFileKeyValueStore(
                storage_settings.path,
                write_retries=storage_settings.write_retries,
            )
        else:
            store = InMemoryKeyValueStore()

    audit_logger = AuditLogger(KeyValueAuditStorage(store))

    return LedgerSession(
        store=store,
        catalog=PlanCatalog(),
        clock=clock,
        settings=settings or config.ledger,
        audit_logger=audit_logger,
    )
