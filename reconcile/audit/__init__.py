"""Read-only identity audits."""

from reconcile.audit.service import find_orphans, find_split_identifiers, key_format_report

__all__ = ["find_orphans", "find_split_identifiers", "key_format_report"]
