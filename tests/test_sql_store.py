"""Tests for the SQLAlchemy-backed document store (in-memory SQLite)."""

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from unittest.mock import patch

from reconcile.database import to_async_url
from reconcile.errors import StoreReadFailure, StoreWriteFailure
from reconcile.identity.migration import migrate_collection
from reconcile.jobs.batch import BatchMutator
from reconcile.store.base import Document
from reconcile.store.sql import SqlDocumentStore


class TestToAsyncUrl:
    """Test async driver URL rewriting."""

    def test_sqlite(self):
        """sqlite URLs use aiosqlite."""
        assert to_async_url("sqlite:///./x.db") == "sqlite+aiosqlite:///./x.db"

    def test_postgres(self):
        """postgres URLs use asyncpg."""
        assert to_async_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
        assert to_async_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"

    def test_already_async(self):
        """URLs with a driver are left alone."""
        assert to_async_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"


@pytest_asyncio.fixture
async def sql_store():
    store = await SqlDocumentStore.connect("sqlite:///:memory:")
    await store.insert_documents("schedules", [
        Document("sc1", {"jobKey": "Ames|2508-GI|Giant #6582", "status": "In Progress", "totalHours": 80}),
        Document("sc2", {"jobKey": "Hoover~B~B", "status": "Accepted", "totalHours": 40}),
        Document("sc3", {"projectName": "Jono", "status": "Accepted"}),
    ])
    yield store
    await store.close()


class TestSqlDocumentStore:
    """Test the SQL document store on in-memory SQLite."""

    @pytest.mark.asyncio
    async def test_list_all_in_insert_order(self, sql_store):
        """Documents come back in insert order."""
        docs = await sql_store.list_all("schedules")
        assert [d.id for d in docs] == ["sc1", "sc2", "sc3"]
        assert docs[0].data["totalHours"] == 80
        assert await sql_store.list_all("projects") == []

    @pytest.mark.asyncio
    async def test_query_by_equality(self, sql_store):
        """Only documents with a matching field are returned."""
        docs = await sql_store.query_by_equality("schedules", "status", "Accepted")
        assert [d.id for d in docs] == ["sc2", "sc3"]

    @pytest.mark.asyncio
    async def test_batch_update_merges(self, sql_store):
        """Updated fields merge into the stored body."""
        await sql_store.batch_update("schedules", {"sc2": {"status": "Complete"}})
        [doc] = await sql_store.query_by_equality("schedules", "status", "Complete")
        assert doc.data == {"jobKey": "Hoover~B~B", "status": "Complete", "totalHours": 40}

    @pytest.mark.asyncio
    async def test_batch_update_is_all_or_nothing(self, sql_store):
        """A missing id rolls back the whole call."""
        with pytest.raises(KeyError):
            await sql_store.batch_update("schedules", {"sc2": {"status": "X"}, "nope": {"status": "X"}})
        assert await sql_store.query_by_equality("schedules", "status", "X") == []

    @pytest.mark.asyncio
    async def test_batch_delete(self, sql_store):
        """Deleted documents are gone."""
        await sql_store.batch_delete("schedules", ["sc1", "sc3"])
        assert [d.id for d in await sql_store.list_all("schedules")] == ["sc2"]

    @pytest.mark.asyncio
    async def test_migration_end_to_end(self, sql_store):
        """Key migration runs against the SQL store."""
        first = await migrate_collection(sql_store, "schedules", chunk_size=1)
        second = await migrate_collection(sql_store, "schedules", chunk_size=1)
        assert first.updated == 1
        assert second.updated == 0
        [doc] = await sql_store.query_by_equality("schedules", "jobKey", "Ames~2508-GI~Giant #6582")
        assert doc.data["totalHours"] == 80

    @pytest.mark.asyncio
    async def test_delete_failure_wrapped(self, sql_store):
        """Driver errors on delete surface as StoreWriteFailure with progress."""
        with patch.object(sql_store, "batch_delete", side_effect=OperationalError("DELETE", {}, Exception("locked"))):
            with pytest.raises(StoreWriteFailure) as exc_info:
                await BatchMutator(sql_store, chunk_size=1).delete("schedules", ["sc1", "sc2"])
        assert exc_info.value.completed == 0
        assert exc_info.value.operation == "delete"

    @pytest.mark.asyncio
    async def test_read_failure(self, sql_store):
        """Driver errors on read become StoreReadFailure."""
        with patch.object(sql_store, "_session_factory", side_effect=OperationalError("SELECT", {}, Exception("gone"))):
            with pytest.raises(StoreReadFailure) as exc_info:
                await sql_store.list_all("schedules")
        assert exc_info.value.collection == "schedules"
