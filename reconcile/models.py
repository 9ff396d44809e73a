"""Record models.

``StoredDocument`` is the SQLModel table behind the SQL document store. The
dataclasses are typed views of raw documents: raw field names are camelCase
as written by the web app, attributes are snake_case.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from reconcile.utils.numbers import ZERO, try_parse_amount


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoredDocument(SQLModel, table=True):
    """One document of one collection."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    collection: str = Field(max_length=100, index=True, description="Collection name, e.g. 'projects'")
    doc_id: str = Field(max_length=255, description="Document id within the collection")
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Field readers
# ---------------------------------------------------------------------------

def _text(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(data: Mapping[str, Any], name: str) -> Optional[str]:
    """None when the field is absent or null, the string otherwise (may be "")."""
    if name not in data or data[name] is None:
        return None
    return str(data[name])


def _tri_state_bool(value: Any) -> Optional[bool]:
    """archived flag: True/False when present, None when missing."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("yes", "true", "y", "1"):
        return True
    if text in ("no", "false", "n", "0", ""):
        return False
    return None


def _amounts(data: Mapping[str, Any], names: dict[str, str]) -> tuple[dict[str, Decimal], tuple[str, ...]]:
    """Read numeric fields leniently; returns values by attribute and malformed attribute names."""
    values = {}
    malformed = []
    for attr, raw_name in names.items():
        amount, ok = try_parse_amount(data.get(raw_name))
        values[attr] = amount
        if not ok:
            malformed.append(attr)
    return values, tuple(malformed)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class ProjectRecord:
    """Project master record (collection ``projects``)."""

    id: str
    customer: str = ""
    project_number: str = ""
    project_name: str = ""
    job_key: Optional[str] = None  # None = field missing, "" = present but empty
    status: str = ""
    archived: Optional[bool] = None
    sales: Decimal = ZERO
    cost: Decimal = ZERO
    hours: Decimal = ZERO
    projected_hours: Decimal = ZERO
    pmc_group: Optional[str] = None
    pmc_breakdown: dict = field(default_factory=dict)
    raw: dict = field(default_factory=dict, repr=False)
    malformed_fields: tuple[str, ...] = ()

    NUMERIC_FIELDS = {
        "sales": "sales",
        "cost": "cost",
        "hours": "hours",
        "projected_hours": "projectedHours",
    }

    @property
    def is_archived(self) -> bool:
        """Missing archived flag reads as not archived."""
        return bool(self.archived)

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "ProjectRecord":
        amounts, malformed = _amounts(data, cls.NUMERIC_FIELDS)
        archived = data.get("archived")
        if archived is None:
            archived = data.get("ProjectArchived")
        breakdown = data.get("pmcBreakdown")
        return cls(
            id=doc_id,
            customer=_text(data, "customer"),
            project_number=_text(data, "projectNumber"),
            project_name=_text(data, "projectName"),
            job_key=_optional_text(data, "jobKey"),
            status=_text(data, "status"),
            archived=_tri_state_bool(archived),
            pmc_group=_optional_text(data, "pmcGroup"),
            pmc_breakdown=dict(breakdown) if isinstance(breakdown, Mapping) else {},
            raw=dict(data),
            malformed_fields=malformed,
            **amounts,
        )


@dataclass
class ScopeRecord:
    """Scope line item (collection ``projectScopes``)."""

    id: str
    job_key: Optional[str] = None
    title: str = ""
    customer: str = ""
    project_number: str = ""
    project_name: str = ""
    hours: Decimal = ZERO
    sales: Decimal = ZERO
    cost: Decimal = ZERO
    raw: dict = field(default_factory=dict, repr=False)
    malformed_fields: tuple[str, ...] = ()

    NUMERIC_FIELDS = {"hours": "hours", "sales": "sales", "cost": "cost"}

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "ScopeRecord":
        amounts, malformed = _amounts(data, cls.NUMERIC_FIELDS)
        return cls(
            id=doc_id,
            job_key=_optional_text(data, "jobKey"),
            title=_text(data, "title"),
            customer=_text(data, "customer"),
            project_number=_text(data, "projectNumber"),
            project_name=_text(data, "projectName"),
            raw=dict(data),
            malformed_fields=malformed,
            **amounts,
        )


@dataclass
class ScheduleRecord:
    """Schedule allocation (collection ``schedules``)."""

    id: str
    job_key: Optional[str] = None
    project_name: str = ""
    customer: str = ""
    project_number: str = ""
    status: str = ""
    total_hours: Decimal = ZERO
    month: str = ""
    raw: dict = field(default_factory=dict, repr=False)
    malformed_fields: tuple[str, ...] = ()

    NUMERIC_FIELDS = {"total_hours": "totalHours"}

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "ScheduleRecord":
        amounts, malformed = _amounts(data, cls.NUMERIC_FIELDS)
        return cls(
            id=doc_id,
            job_key=_optional_text(data, "jobKey"),
            project_name=_text(data, "projectName"),
            customer=_text(data, "customer"),
            project_number=_text(data, "projectNumber"),
            status=_text(data, "status"),
            month=_text(data, "month"),
            raw=dict(data),
            malformed_fields=malformed,
            **amounts,
        )
