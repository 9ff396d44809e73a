"""Shared fixtures: project, scope and schedule documents."""

import pytest

from reconcile.config import ReconcileSettings
from reconcile.store.base import Document
from reconcile.store.memory import InMemoryDocumentStore


def project_doc(doc_id, customer="Ames", number="2508-GI", name="Giant #6582", **fields):
    data = {"customer": customer, "projectNumber": number, "projectName": name}
    data.update(fields)
    return Document(id=doc_id, data=data)


@pytest.fixture
def settings():
    return ReconcileSettings(
        DATABASE_URL="sqlite:///:memory:",
        BATCH_CHUNK_SIZE=2,
        QUALIFYING_STATUSES="Accepted,In Progress",
        INCLUDE_ARCHIVED=False,
        EXCLUDED_CUSTOMERS="",
        EXCLUDED_PROJECT_NAMES="",
    )


@pytest.fixture
def store():
    return InMemoryDocumentStore({
        "projects": [
            project_doc("p1", status="In Progress", hours=100, sales="$1,000.00"),
            project_doc("p2", status="In Progress", hours=50, sales="$500"),
            project_doc("p3", customer="Hoover", number="", name="Brecknock Orchards",
                        status="Accepted", hours="12.5", archived=False),
            project_doc("p4", customer="Kemper", number="2511", name="Barn", status="Lost", hours=40),
            project_doc("p5", customer="Kemper", number="2512", name="Silo", status="Accepted",
                        hours=30, archived=True),
        ],
        "projectScopes": [
            Document("s1", {"jobKey": "Ames~2508-GI~Giant #6582", "title": "Footers", "hours": 10}),
            Document("s2", {"jobKey": "Ames|2508-GI|Giant #6582", "title": "Footers", "hours": 10}),
            Document("s3", {"jobKey": "Ames~2508-GI~Giant #6582", "title": "Walls", "hours": 20}),
            Document("s4", {"jobKey": "Ghost~1~Nowhere", "title": "Slab", "hours": 5}),
        ],
        "schedules": [
            Document("sc1", {"jobKey": "Ames|2508-GI|Giant #6582", "projectName": "Giant #6582",
                             "status": "In Progress", "totalHours": 80, "month": "2026-03"}),
            Document("sc2", {"jobKey": "Hoover~Brecknock Orchards~Brecknock Orchards",
                             "projectName": "Brecknock Orchards", "status": "Accepted",
                             "totalHours": "40", "month": "2026-04"}),
            Document("sc3", {"projectName": "JE Horst/Jono Hardware", "customer": "JE Horst",
                             "status": "Accepted", "totalHours": 16}),
        ],
    })
