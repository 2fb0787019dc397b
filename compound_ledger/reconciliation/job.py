"""
Growth Reconciliation Job

Runs once per cold start, after state is loaded. Catches up everything
that happened to Active investments while the app was closed:

1. Matured investments (days_remaining == 0) are paid their accumulated
   profit and moved to Completed.
2. Growth on the rest is summed and credited as one consolidated Payout,
   throttled so that reopening the app within the credit interval does
   not post again.

FAILURE HANDLING:
- A bad record (orphaned plan, non-finite value, a payout that fails
  validation) is skipped and logged; the sweep continues with the next one.
- Anything else aborts the sweep. Each posting is atomic, so the ledger
  is left consistent; the caller does not advance the last-open time and
  the sweep retries on the next start.
- Only Active investments are visited, so a second run never pays an
  investment twice.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

import structlog

from compound_ledger.audit import AuditLogger, create_correlation_id
from compound_ledger.catalog import PlanCatalog
from compound_ledger.clock import Clock, ensure_utc
from compound_ledger.config import LedgerSettings
from compound_ledger.engine.projection import current_value, days_remaining
from compound_ledger.engine.rates import daily_rate
from compound_ledger.ledger import Ledger
from compound_ledger.models.audit import AuditEventBuilder
from compound_ledger.models.ledger import Investment
from compound_ledger.models.projection import ReconciliationReport


logger = structlog.get_logger(__name__)


class RecordSkipped(Exception):
    """A single investment could not be reconciled."""


class GrowthReconciliationJob:
    """
    One-shot sweep over the ledger's Active investments.

    Catalog, clock and settings default to the ledger's own.
    """

    def __init__(
        self,
        ledger: Ledger,
        catalog: Optional[PlanCatalog] = None,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._catalog = catalog or ledger.catalog
        self._clock = clock or ledger.clock
        self._settings = settings or ledger.settings
        self._audit = audit_logger or ledger.audit_logger

    @property
    def credit_interval(self) -> timedelta:
        return timedelta(hours=self._settings.growth_credit_interval_hours)

    def should_credit(
        self,
        amount: float,
        last_open: Optional[datetime],
        now: datetime,
    ) -> bool:
        """
        Whether consolidated growth may be posted now.

        Requires positive growth above the dust threshold and at least one
        credit interval since the last open. A missing last-open time
        (first start) counts as long enough.
        """
        if not math.isfinite(amount):
            return False
        if amount <= 0 or amount <= self._settings.payout_dust_threshold:
            return False
        if last_open is None:
            return True
        return ensure_utc(now) - ensure_utc(last_open) >= self.credit_interval

    def run(self, last_open: Optional[datetime] = None) -> ReconciliationReport:
        """
        Reconcile every Active investment against the current time.

        Args:
            last_open: When the app was last opened (None if never)

        Returns:
            Report of what was posted and skipped. report.aborted is set
            when the sweep stopped early.
        """
        now = self._clock.now()
        correlation_id = create_correlation_id()
        report = ReconciliationReport(ran_at=now)

        active = self._ledger.active_investments()
        self._audit.log(AuditEventBuilder.reconciliation_started(
            active_count=len(active),
            last_open=last_open,
            correlation_id=correlation_id,
        ))

        try:
            unrealized_count = 0
            for investment in active:
                try:
                    earned, matured = self._evaluate(investment, now)
                except RecordSkipped as e:
                    self._skip(report, investment.id, str(e), correlation_id)
                    continue

                if matured:
                    try:
                        payout = self._ledger.complete_investment(
                            investment.id, earned, correlation_id,
                        )
                    except ValueError as e:
                        self._skip(report, investment.id, f"cannot post payout: {e}", correlation_id)
                        continue
                    if payout is not None:
                        report.matured_ids.append(investment.id)
                        report.payouts.append(payout)
                else:
                    report.unrealized_earnings += earned
                    unrealized_count += 1

            if self.should_credit(report.unrealized_earnings, last_open, now):
                credit = self._ledger.credit_growth(
                    report.unrealized_earnings, unrealized_count, correlation_id,
                )
                report.credited_amount = credit.amount
                report.payouts.append(credit)
        except Exception as e:
            report.aborted = True
            report.error = str(e)
            self._audit.log(AuditEventBuilder.reconciliation_aborted(
                error_message=str(e),
                correlation_id=correlation_id,
            ))
            logger.exception("reconciliation_aborted", correlation_id=str(correlation_id))
            return report

        self._audit.log(AuditEventBuilder.reconciliation_completed(
            matured=len(report.matured_ids),
            skipped=len(report.skipped_ids),
            credited=report.credited_amount,
            correlation_id=correlation_id,
        ))
        return report

    def _evaluate(self, investment: Investment, now: datetime) -> tuple[float, bool]:
        """
        Profit to date and whether the plan has matured.

        Raises:
            RecordSkipped: orphaned plan or a value that cannot be computed
        """
        plan = self._catalog.get(investment.plan_id)
        if plan is None:
            raise RecordSkipped(f"plan {investment.plan_id} is not in the catalog")

        try:
            value = current_value(
                investment.amount,
                daily_rate(plan.annual_roi_percent),
                investment.start_date,
                now,
            )
        except (ArithmeticError, ValueError) as e:
            raise RecordSkipped(f"cannot compute current value: {e}") from e
        if not math.isfinite(value):
            raise RecordSkipped(f"current value is not finite: {value}")

        matured = days_remaining(investment.start_date, plan.duration_days, now) == 0
        return value - investment.amount, matured

    def _skip(
        self,
        report: ReconciliationReport,
        investment_id: str,
        reason: str,
        correlation_id,
    ) -> None:
        report.skipped_ids.append(investment_id)
        self._audit.log_record_skipped("investment", investment_id, reason, correlation_id)
