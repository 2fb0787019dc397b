"""Plan catalog package."""

from compound_ledger.catalog.plans import (
    DEFAULT_PLANS,
    FIXED_RATE_OVERRIDE_DAYS,
    CatalogError,
    PlanCatalog,
)

__all__ = [
    "CatalogError",
    "DEFAULT_PLANS",
    "FIXED_RATE_OVERRIDE_DAYS",
    "PlanCatalog",
]
