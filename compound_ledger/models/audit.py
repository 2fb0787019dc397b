"""
Audit Models for Compound Ledger

Every balance-affecting action and every reconciliation pass produces an
audit event. Audit logs are append-only: events are never modified or
deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Investments
    INVESTMENT_CREATED = "investment_created"
    INVESTMENT_REJECTED = "investment_rejected"
    INVESTMENT_MATURED = "investment_matured"
    
    # Balance movements
    TRANSACTION_POSTED = "transaction_posted"
    WITHDRAWAL_BLOCKED = "withdrawal_blocked"
    OPERATION_REJECTED = "operation_rejected"
    GROWTH_CREDITED = "growth_credited"
    
    # Reconciliation
    RECONCILIATION_STARTED = "reconciliation_started"
    RECONCILIATION_COMPLETED = "reconciliation_completed"
    RECONCILIATION_ABORTED = "reconciliation_aborted"
    RECORD_SKIPPED = "record_skipped"
    
    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_PERSISTED = "state_persisted"
    STORAGE_ERROR = "storage_error"
    LEDGER_RESET = "ledger_reset"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.
    
    This is the core unit of our audit trail.
    """
    
    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    
    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )
    
    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'investment', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    
    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one reconciliation sweep)"
    )
    
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    
    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )
    
    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.
    
    Usage:
        event = AuditEventBuilder.investment_created(investment_id, plan_id, amount)
        event = AuditEventBuilder.record_skipped(investment_id, reason, correlation_id)
    """
    
    @staticmethod
    def investment_created(
        investment_id: str,
        plan_id: str,
        amount: float,
        locked_until: datetime,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_CREATED,
            entity_type="investment",
            entity_id=investment_id,
            description=f"Invested ${amount:,.2f} in plan {plan_id}",
            details={
                "plan_id": plan_id,
                "amount": amount,
                "locked_until": locked_until.isoformat(),
            },
            is_user_action=True,
        )
    
    @staticmethod
    def operation_rejected(
        operation: str,
        kind: str,
        message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.INVESTMENT_REJECTED
            if operation == "invest"
            else AuditEventType.OPERATION_REJECTED
        )
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            description=f"{operation.capitalize()} rejected: {kind}",
            error_code=kind,
            error_message=message,
            details=details or {},
            is_user_action=True,
        )
    
    @staticmethod
    def withdrawal_blocked(
        amount: float,
        locked_count: int,
        earliest_unlock: Optional[datetime],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WITHDRAWAL_BLOCKED,
            severity=AuditSeverity.WARNING,
            description=f"Withdrawal blocked by {locked_count} locked investment(s)",
            details={
                "amount": amount,
                "locked_count": locked_count,
                "earliest_unlock": earliest_unlock.isoformat() if earliest_unlock else None,
            },
            is_user_action=True,
        )
    
    @staticmethod
    def transaction_posted(
        transaction_id: str,
        transaction_type: str,
        amount: float,
        balance_after: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_POSTED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type} of {amount:+,.2f} posted",
            details={
                "type": transaction_type,
                "amount": amount,
                "balance_after": balance_after,
            },
        )
    
    @staticmethod
    def investment_matured(
        investment_id: str,
        payout: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_MATURED,
            entity_type="investment",
            entity_id=investment_id,
            correlation_id=correlation_id,
            description=f"Investment matured, payout ${payout:,.2f}",
            details={"payout": payout},
        )
    
    @staticmethod
    def growth_credited(
        amount: float,
        investment_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROWTH_CREDITED,
            entity_type="account",
            correlation_id=correlation_id,
            description=f"Credited ${amount:,.2f} of growth from {investment_count} investment(s)",
            details={
                "amount": amount,
                "investment_count": investment_count,
            },
        )
    
    @staticmethod
    def reconciliation_started(
        active_count: int,
        last_open: Optional[datetime],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_STARTED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Reconciliation started for {active_count} active investment(s)",
            details={
                "active_count": active_count,
                "last_open": last_open.isoformat() if last_open else None,
            },
        )
    
    @staticmethod
    def reconciliation_completed(
        matured: int,
        skipped: int,
        credited: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_COMPLETED,
            correlation_id=correlation_id,
            description=f"Reconciliation completed: {matured} matured, {skipped} skipped",
            details={
                "matured": matured,
                "skipped": skipped,
                "credited": credited,
            },
        )
    
    @staticmethod
    def reconciliation_aborted(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_ABORTED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Reconciliation aborted; will retry on next start",
            error_message=error_message,
        )
    
    @staticmethod
    def record_skipped(
        entity_type: str,
        entity_id: Optional[str],
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Skipped {entity_type} {entity_id or '<unknown>'}: {reason}",
            details={"reason": reason},
        )
    
    @staticmethod
    def state_loaded(
        investments: int,
        transactions: int,
        quarantined: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            severity=AuditSeverity.DEBUG,
            description=f"Loaded {investments} investment(s) and {transactions} transaction(s)",
            details={
                "investments": investments,
                "transactions": transactions,
                "quarantined": quarantined,
            },
        )
    
    @staticmethod
    def state_persisted(keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_PERSISTED,
            severity=AuditSeverity.DEBUG,
            description=f"Persisted {len(keys)} key(s)",
            details={"keys": keys},
        )
    
    @staticmethod
    def storage_error(
        operation: str,
        key: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage {operation} failed" + (f" for key {key}" if key else ""),
            error_message=error_message,
            details={"operation": operation, "key": key},
        )
    
    @staticmethod
    def ledger_reset(balance: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            description="Ledger reset to initial state",
            details={"balance": balance},
            is_user_action=True,
        )
