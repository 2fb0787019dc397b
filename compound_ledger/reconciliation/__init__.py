"""Cold-start growth reconciliation."""

from compound_ledger.reconciliation.job import GrowthReconciliationJob, RecordSkipped

__all__ = ["GrowthReconciliationJob", "RecordSkipped"]
