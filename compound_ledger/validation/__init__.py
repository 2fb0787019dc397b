"""Request validation package."""

from compound_ledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
