"""KPI aggregation module.

Provides pool filtering, per-identity totals and the status / PMC group
breakdowns used by the KPI pages.
"""

from reconcile.aggregates.service import (
    UNRESOLVED_KEY,
    AggregationConfig,
    AggregationResult,
    AggregationService,
    Totals,
    aggregate,
    in_pool,
    labor_hours,
    pmc_group_hours,
    status_breakdown,
)
from reconcile.utils.numbers import parse_amount

__all__ = [
    "UNRESOLVED_KEY",
    "AggregationConfig",
    "AggregationResult",
    "AggregationService",
    "Totals",
    "aggregate",
    "in_pool",
    "labor_hours",
    "parse_amount",
    "pmc_group_hours",
    "status_breakdown",
]
