"""
Plan Catalog

A static, read-only list of plans queryable by id. The ledger resolves
plan ids through this catalog; it never mutates it.
"""

from typing import Iterable, Iterator, Mapping, Optional

from compound_ledger.models.ledger import Plan


class CatalogError(Exception):
    """The configured plan list is invalid."""
    pass


DEFAULT_PLANS: tuple[Plan, ...] = (
    Plan(id="p1", name="1 Week Plan", duration_days=7, annual_roi_percent=2.0, min_deposit=100),
    Plan(id="p2", name="1 Month Plan", duration_days=30, annual_roi_percent=10.0, min_deposit=500),
    Plan(id="p3", name="6 Month Plan", duration_days=180, annual_roi_percent=40.0, min_deposit=1000),
    Plan(id="p4", name="1 Year Plan", duration_days=365, annual_roi_percent=90.0, min_deposit=2500),
)

# Legacy plan ids projected with the constant fixed daily rate over a
# fixed number of days instead of the plan's own duration.
FIXED_RATE_OVERRIDE_DAYS: Mapping[str, int] = {
    "p1": 90,
    "p2": 180,
    "p3": 365,
}


class PlanCatalog:
    """
    Immutable plan lookup.
    
    Every plan id must resolve to exactly one plan, so duplicates are
    rejected at construction.
    """
    
    def __init__(self, plans: Iterable[Plan] = DEFAULT_PLANS):
        self._plans: dict[str, Plan] = {}
        for plan in plans:
            if plan.id in self._plans:
                raise CatalogError(f"Duplicate plan id: {plan.id}")
            self._plans[plan.id] = plan
    
    def get(self, plan_id: str) -> Optional[Plan]:
        return self._plans.get(plan_id)
    
    def require(self, plan_id: str) -> Plan:
        """Like get(), but raises CatalogError for unknown ids."""
        plan = self._plans.get(plan_id)
        if plan is None:
            raise CatalogError(f"Unknown plan id: {plan_id}")
        return plan
    
    def all(self) -> list[Plan]:
        return list(self._plans.values())
    
    def __contains__(self, plan_id: object) -> bool:
        return plan_id in self._plans
    
    def __iter__(self) -> Iterator[Plan]:
        return iter(self._plans.values())
    
    def __len__(self) -> int:
        return len(self._plans)
    
    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "PlanCatalog":
        """
        Build a catalog from plain dicts (e.g. a JSON config file).
        
        Raises:
            CatalogError: if any record is invalid (negative rate, zero
                duration, ...) or ids collide.
        """
        plans = []
        for record in records:
            try:
                plans.append(Plan(**record))
            except ValueError as e:
                raise CatalogError(f"Invalid plan {record.get('id', '<unknown>')}: {e}") from e
        return cls(plans)
