"""Tests for read-only identity audits."""

from reconcile.audit.service import find_orphans, find_split_identifiers, key_format_report
from reconcile.models import ProjectRecord, ScheduleRecord, ScopeRecord


def project(doc_id, **data):
    return ProjectRecord.from_document(doc_id, data)


class TestKeyFormatReport:
    """Test key format counting."""

    def test_counts_and_samples(self):
        """Counts per format with sample keys."""
        records = [
            ScopeRecord.from_document("a", {"jobKey": "A~1~B"}),
            ScopeRecord.from_document("b", {"jobKey": "A|1|B"}),
            ScopeRecord.from_document("c", {"jobKey": "C|2|D"}),
            ScopeRecord.from_document("d", {}),
            ScopeRecord.from_document("e", {"jobKey": "loose"}),
        ]
        report = key_format_report(records)
        assert report["total"] == 5
        assert report["counts"] == {"canonical": 1, "legacy": 2, "missing": 1, "other": 1}
        assert report["samples"]["legacy"] == ["A|1|B", "C|2|D"]


class TestFindOrphans:
    """Test orphan detection."""

    def test_orphans_and_legacy_matching(self):
        """Legacy keys match projects; unknown identities are orphans."""
        projects = [project("p1", customer="A", projectNumber="1", projectName="B")]
        schedules = [
            ScheduleRecord.from_document("s1", {"jobKey": "A|1|B"}),
            ScheduleRecord.from_document("s2", {"jobKey": "X~9~Y"}),
            ScheduleRecord.from_document("s3", {"jobKey": "X~9~Y"}),
            ScheduleRecord.from_document("s4", {}),
        ]
        report = find_orphans(projects, schedules)
        assert report["orphans"] == {"X~9~Y": 2}
        assert report["checked"] == 4
        assert report["unresolved"] == 1


class TestFindSplitIdentifiers:
    """Test names split across identities."""

    def test_same_name_two_identities(self):
        """One project name under two keys is reported."""
        records = [
            project("a", customer="Ames", projectNumber="2508-GI", projectName="Giant #6582"),
            project("b", customer="Ames", projectNumber="", projectName="Giant #6582"),
            project("c", customer="Ames", projectNumber="2508-GI", projectName="Giant #6582"),
            project("d", customer="Hoover", projectName="Orchards"),
        ]
        assert find_split_identifiers(records) == {
            "giant #6582": ["Ames~2508-GI~Giant #6582", "Ames~Giant #6582~Giant #6582"],
        }
