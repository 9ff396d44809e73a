"""Project identity (jobKey) resolution.

A jobKey ties a project to its scopes and schedules:

    customer~projectNumber-or-projectName~projectName

Older documents use ``|`` as the separator. Both encodings name the same
project; grouping goes through ``identity_key`` so they collapse together.
"""

from typing import Any

CANONICAL_SEPARATOR = "~"
LEGACY_SEPARATOR = "|"

KEY_CANONICAL = "canonical"
KEY_LEGACY = "legacy"
KEY_MISSING = "missing"
KEY_OTHER = "other"


def _attr_text(record: Any, name: str) -> str:
    value = getattr(record, name, None)
    if value is None:
        return ""
    return str(value).strip()


def build_job_key(customer: str, project_number: str, project_name: str) -> str:
    """Construct a canonical key from its parts.

    Returns "" when both customer and project name are empty.
    """
    customer = (customer or "").strip()
    project_number = (project_number or "").strip()
    project_name = (project_name or "").strip()
    if not customer and not project_name:
        return ""
    middle = project_number or project_name
    return CANONICAL_SEPARATOR.join([customer, middle, project_name])


def canonicalize(record: Any) -> str:
    """Identity string for a project-like record.

    A stored non-empty ``job_key`` wins and is returned as-is (re-encoding is
    the migrator's job). Otherwise the key is built from customer, project
    number and project name. "" means the identity is unresolvable.
    """
    job_key = getattr(record, "job_key", None)
    if job_key:
        return job_key
    return build_job_key(
        _attr_text(record, "customer"),
        _attr_text(record, "project_number"),
        _attr_text(record, "project_name"),
    )


def is_legacy_key(key: str) -> bool:
    return LEGACY_SEPARATOR in (key or "")


def to_canonical(key: str) -> str:
    """Rewrite legacy separators; canonical keys come back unchanged."""
    return (key or "").replace(LEGACY_SEPARATOR, CANONICAL_SEPARATOR)


def identity_key(record: Any) -> str:
    """Grouping identity: ``canonicalize`` with legacy encoding folded in."""
    return to_canonical(canonicalize(record))


def key_format(key: str) -> str:
    """Classify a stored key: canonical, legacy, missing or other."""
    if not key:
        return KEY_MISSING
    if is_legacy_key(key):
        return KEY_LEGACY
    if key.count(CANONICAL_SEPARATOR) == 2:
        return KEY_CANONICAL
    return KEY_OTHER
