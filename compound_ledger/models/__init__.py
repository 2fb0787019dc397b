"""
Data Models Package

This package contains all Pydantic models used by Compound Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from compound_ledger.models.ledger import (
    Investment,
    InvestmentState,
    InvestmentStatus,
    Notification,
    PaymentMethod,
    PaymentMethodType,
    Plan,
    Transaction,
    TransactionStatus,
    TransactionType,
    UserAccount,
)
from compound_ledger.models.projection import (
    FixedReturnProjection,
    InvestmentView,
    PortfolioSummary,
    ReconciliationReport,
    ReturnProjection,
    ROIBreakdown,
    WithdrawalGate,
)
from compound_ledger.models.results import (
    Err,
    InvestmentReceipt,
    LedgerErrorKind,
    Ok,
    Result,
)
from compound_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger records
    "Investment",
    "InvestmentState",
    "InvestmentStatus",
    "Notification",
    "PaymentMethod",
    "PaymentMethodType",
    "Plan",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UserAccount",
    # Read-side projections
    "FixedReturnProjection",
    "InvestmentView",
    "PortfolioSummary",
    "ReconciliationReport",
    "ReturnProjection",
    "ROIBreakdown",
    "WithdrawalGate",
    # Results
    "Err",
    "InvestmentReceipt",
    "LedgerErrorKind",
    "Ok",
    "Result",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
