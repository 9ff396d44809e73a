"""KPI aggregation over reconciled project records.

Filters records down to the KPI pool (qualifying status, not archived, not an
excluded customer or internal project) and sums numeric fields per project
identity and overall. Sums are exact Decimals, so the grand total always
equals the sum of the per-key totals. Amounts that do not parse count as zero
and are tallied in ``malformed_numeric``.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Optional

from reconcile.identity.keys import identity_key
from reconcile.store.base import DocumentStore
from reconcile.utils.numbers import ZERO, parse_amount, try_parse_amount

logger = logging.getLogger(__name__)

UNRESOLVED_KEY = "__unresolved__"

DEFAULT_QUALIFYING_STATUSES = frozenset({"Accepted", "In Progress"})
DEFAULT_FIELDS = ("sales", "cost", "hours", "projected_hours")

# PMC groups that count as labor hours
LABOR_CATEGORIES = frozenset({
    "1. Labor", "1. Labor Prep", "Assembly", "Excavation And Backfill Labor",
    "Finish Labor", "Foundation Labor", "Labor", "PM", "Pour And Finish Labor",
    "Site Concrete Labor", "Slab On Grade Labor", "Stone Grading Labor",
    "Travel Labor", "Travel", "Wall Labor", "fab labor", "welder",
})


@dataclass
class AggregationConfig:
    """Which records enter the pool and which fields are summed.

    ``qualifying_statuses=None`` disables the status filter.
    Extra names in ``fields`` that are not record attributes are read from
    the raw document (e.g. "laborSales").
    """

    qualifying_statuses: Optional[frozenset] = DEFAULT_QUALIFYING_STATUSES
    include_archived: bool = False
    fields: tuple[str, ...] = DEFAULT_FIELDS
    excluded_customers: tuple[str, ...] = ()  # case-insensitive substring
    excluded_project_names: tuple[str, ...] = ()  # case-insensitive exact

    def __post_init__(self):
        if self.qualifying_statuses is not None:
            self.qualifying_statuses = frozenset(self.qualifying_statuses)
        self.fields = tuple(self.fields)

    @classmethod
    def from_settings(cls, settings, fields: tuple[str, ...] = DEFAULT_FIELDS) -> "AggregationConfig":
        return cls(
            qualifying_statuses=settings.qualifying_statuses or None,
            include_archived=settings.INCLUDE_ARCHIVED,
            fields=fields,
            excluded_customers=settings.excluded_customers,
            excluded_project_names=settings.excluded_project_names,
        )


@dataclass
class Totals:
    """Running sums for one bucket."""

    fields: tuple[str, ...] = DEFAULT_FIELDS
    values: dict = field(default_factory=dict)
    records: int = 0

    def __post_init__(self):
        for name in self.fields:
            self.values.setdefault(name, ZERO)

    def __getattr__(self, name: str) -> Decimal:
        # Only reached for names that are not real attributes
        values = self.__dict__.get("values")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(name)

    def add(self, amounts: dict) -> None:
        for name, amount in amounts.items():
            self.values[name] = self.values.get(name, ZERO) + amount
        self.records += 1

    def merge(self, other: "Totals") -> None:
        for name, amount in other.values.items():
            self.values[name] = self.values.get(name, ZERO) + amount
        self.records += other.records

    def to_dict(self) -> dict:
        out = {name: float(amount) for name, amount in self.values.items()}
        out["records"] = self.records
        return out


@dataclass
class AggregationResult:
    per_key: "OrderedDict[str, Totals]"
    grand_total: Totals
    included: int = 0
    excluded: int = 0
    unresolved: int = 0
    malformed_numeric: int = 0
    excluded_reasons: dict = field(default_factory=dict)

    @property
    def unresolved_totals(self) -> Optional[Totals]:
        return self.per_key.get(UNRESOLVED_KEY)

    def to_dict(self) -> dict:
        """Plain numbers for reporting."""
        return {
            "per_key": {key: totals.to_dict() for key, totals in self.per_key.items()},
            "grand_total": self.grand_total.to_dict(),
            "unresolved": self.unresolved_totals.to_dict() if self.unresolved_totals else None,
            "counts": {
                "processed": self.included + self.excluded,
                "included": self.included,
                "skipped": self.excluded,
                "failed": 0,
                "unresolved": self.unresolved,
                "malformed_numeric": self.malformed_numeric,
            },
            "excluded_reasons": dict(self.excluded_reasons),
        }


def _field_amount(record: Any, name: str) -> tuple[Decimal, bool]:
    """Value of ``name`` on a record: typed attribute first, raw document second."""
    value = getattr(record, name, None)
    if isinstance(value, Decimal):
        return value, name not in getattr(record, "malformed_fields", ())
    if value is not None:
        return try_parse_amount(value)
    raw = getattr(record, "raw", None) or {}
    return try_parse_amount(raw.get(name))


def exclusion_reason(record: Any, config: AggregationConfig) -> Optional[str]:
    """Why ``record`` is outside the pool, or None if it is in."""
    if not config.include_archived and getattr(record, "is_archived", False):
        return "archived"
    if config.qualifying_statuses is not None:
        status = (getattr(record, "status", "") or "").strip()
        if status not in config.qualifying_statuses:
            return "status"
    if config.excluded_customers:
        customer = (getattr(record, "customer", "") or "").lower()
        if any(excluded.lower() in customer for excluded in config.excluded_customers):
            return "customer"
    if config.excluded_project_names:
        name = (getattr(record, "project_name", "") or "").strip().lower()
        if name in {excluded.strip().lower() for excluded in config.excluded_project_names}:
            return "project_name"
    return None


def in_pool(record: Any, config: AggregationConfig) -> bool:
    return exclusion_reason(record, config) is None


def aggregate(records: Iterable[Any], config: Optional[AggregationConfig] = None) -> AggregationResult:
    """Sum configured fields per identity and overall.

    Records whose identity cannot be resolved go to the ``__unresolved__``
    bucket; they still count toward the grand total.
    """
    config = config or AggregationConfig()
    per_key: "OrderedDict[str, Totals]" = OrderedDict()
    grand_total = Totals(fields=config.fields)
    result = AggregationResult(per_key=per_key, grand_total=grand_total)

    for record in records:
        reason = exclusion_reason(record, config)
        if reason is not None:
            result.excluded += 1
            result.excluded_reasons[reason] = result.excluded_reasons.get(reason, 0) + 1
            continue

        key = identity_key(record)
        if not key:
            key = UNRESOLVED_KEY
            result.unresolved += 1

        amounts = {}
        for name in config.fields:
            amount, ok = _field_amount(record, name)
            if not ok:
                result.malformed_numeric += 1
            amounts[name] = amount

        bucket = per_key.get(key)
        if bucket is None:
            bucket = per_key[key] = Totals(fields=config.fields)
        bucket.add(amounts)
        result.included += 1

    # Grand total is built from the buckets, not a parallel running sum
    for totals in per_key.values():
        grand_total.merge(totals)

    if result.unresolved:
        logger.warning(f"[AGGREGATES] {result.unresolved} records with unresolvable identity")
    if result.malformed_numeric:
        logger.info(f"[AGGREGATES] {result.malformed_numeric} malformed numeric values read as 0")

    return result


def status_breakdown(records: Iterable[Any], fields: tuple[str, ...] = ("sales",)) -> dict:
    """Record count and summed ``fields`` per status, largest count first."""
    buckets: dict[str, Totals] = {}
    for record in records:
        status = (getattr(record, "status", "") or "").strip()
        bucket = buckets.get(status)
        if bucket is None:
            bucket = buckets[status] = Totals(fields=fields)
        bucket.add({name: _field_amount(record, name)[0] for name in fields})
    ordered = sorted(buckets.items(), key=lambda item: (-item[1].records, item[0]))
    return {status: totals.to_dict() for status, totals in ordered}


def pmc_group_hours(records: Iterable[Any]) -> dict:
    """Hours per PMC group from each record's ``pmc_breakdown``.

    Returns:
        {"total_hours", "hours_by_group", "breakdown": [{group, hours, percent}]}
        with the breakdown sorted by hours, descending.
    """
    hours_by_group: dict[str, Decimal] = {}
    for record in records:
        breakdown = getattr(record, "pmc_breakdown", None) or {}
        for group, hours in breakdown.items():
            amount = parse_amount(hours)
            if amount > 0:
                hours_by_group[group] = hours_by_group.get(group, ZERO) + amount

    total = sum(hours_by_group.values(), ZERO)
    breakdown = [
        {
            "group": group,
            "hours": float(hours),
            "percent": float(hours / total * 100) if total > 0 else 0.0,
        }
        for group, hours in sorted(hours_by_group.items(), key=lambda item: (-item[1], item[0]))
    ]
    return {
        "total_hours": float(total),
        "hours_by_group": {group: float(hours) for group, hours in hours_by_group.items()},
        "breakdown": breakdown,
    }


def labor_hours(hours_by_group: dict) -> dict:
    """Restrict a group→hours mapping to labor categories."""
    labor = {group: hours for group, hours in hours_by_group.items() if group in LABOR_CATEGORIES}
    return {"labor_hours": labor, "total_labor_hours": sum(labor.values())}


class AggregationService:
    """Reads a collection and aggregates it."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def aggregate_collection(
        self,
        collection: str,
        record_type: type,
        config: Optional[AggregationConfig] = None,
    ) -> AggregationResult:
        """
        Aggregate one collection.

        Raises:
            StoreReadFailure: Nothing is aggregated from a partial read
        """
        documents = await self.store.list_all(collection)
        records = [record_type.from_document(doc.id, doc.data) for doc in documents]
        result = aggregate(records, config)

        logger.info(
            f"[AGGREGATES] {collection}: {result.included} in pool, {result.excluded} excluded, "
            f"{len(result.per_key)} keys"
        )
        return result
