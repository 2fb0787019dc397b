"""
Audit Logger

Every balance-affecting action is logged. This provides:
1. Complete traceability of who moved money and why
2. Debugging capability for reconciliation passes
3. A history the user can review

The audit logger:
- Logs synchronously so ledger mutations can record events inline
- Buffers events and persists them in one batch via flush()
- Gracefully handles storage failures (never crashes the app)
- Supports correlation IDs to trace related events
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from compound_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from compound_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("compound_ledger").setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.
    
    Logs events both to:
    1. Structured local log (immediately)
    2. Audit storage (on flush, if configured)
    """
    
    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        history_size: int = 500,
    ):
        """
        Initialize audit logger.
        
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            history_size: How many recent events to keep in memory.
        """
        self._storage = storage
        self._logger = structlog.get_logger("compound_ledger.audit")
        self._pending: list[AuditEvent] = []
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
    
    @property
    def recent_events(self) -> list[AuditEvent]:
        """Events logged in this process, oldest first."""
        return list(self._history)
    
    @property
    def pending_count(self) -> int:
        return len(self._pending)
    
    def log(self, event: AuditEvent) -> None:
        """
        Log an audit event locally and queue it for persistence.
        """
        log_dict = event.to_log_dict()
        
        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)
        
        self._history.append(event)
        if self._storage:
            self._pending.append(event)
    
    async def flush(self) -> bool:
        """
        Persist queued events.
        
        Returns True if the write succeeded (or no storage configured).
        Failed batches stay queued for the next flush.
        """
        if not self._storage or not self._pending:
            return True
        
        batch = list(self._pending)
        try:
            ok = await self._storage.append_events(batch)
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                pending=len(batch),
            )
            return False
        
        if ok:
            del self._pending[:len(batch)]
        return ok
    
    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        key: Optional[str] = None,
    ) -> None:
        """Log a persistence failure."""
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            key=key,
            error_message=error_message,
        ))
    
    def log_record_skipped(
        self,
        entity_type: str,
        entity_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record left untouched because it could not be processed."""
        self.log(AuditEventBuilder.record_skipped(
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.
    
    Use this at the start of a multi-step action (e.g., a reconciliation
    sweep). Pass it through all subsequent operations.
    """
    return uuid4()
