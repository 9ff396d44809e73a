"""SQL-backed document store (SQLAlchemy async, SQLite or PostgreSQL).

Every collection lives in the single ``documents`` table, keyed by
(collection, doc_id), with the document body in a JSON column.

Usage:
    store = await SqlDocumentStore.connect(settings.DATABASE_URL)
    try:
        docs = await store.list_all("projects")
    finally:
        await store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from reconcile.database import close_db, create_engine, create_session_factory, init_db
from reconcile.errors import StoreReadFailure
from reconcile.models import StoredDocument
from reconcile.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)


class SqlDocumentStore(DocumentStore):
    """Document store over an async SQLAlchemy engine."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    async def connect(cls, database_url: str, create_tables: bool = True) -> "SqlDocumentStore":
        """Build an engine for ``database_url`` and (optionally) create the table."""
        engine = create_engine(database_url)
        if create_tables:
            await init_db(engine)
        return cls(engine)

    async def close(self) -> None:
        await close_db(self.engine)

    async def _select(self, collection: str) -> list[StoredDocument]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(StoredDocument)
                    .where(StoredDocument.collection == collection)
                    .order_by(StoredDocument.id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"[STORE] Read failed for {collection}: {e}")
            raise StoreReadFailure(collection, e) from e

    async def list_all(self, collection: str) -> list[Document]:
        rows = await self._select(collection)
        logger.debug(f"[STORE] Read {len(rows)} documents from {collection}")
        return [Document(id=row.doc_id, data=dict(row.data or {})) for row in rows]

    async def query_by_equality(self, collection: str, field_name: str, value: Any) -> list[Document]:
        # JSON path comparison differs between SQLite and PostgreSQL; collections
        # are small, so filter after the read.
        rows = await self._select(collection)
        return [
            Document(id=row.doc_id, data=dict(row.data or {}))
            for row in rows
            if (row.data or {}).get(field_name) == value
        ]

    async def batch_delete(self, collection: str, ids: list[str]) -> None:
        if not ids:
            return
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(StoredDocument).where(
                        StoredDocument.collection == collection,
                        StoredDocument.doc_id.in_(list(ids)),
                    )
                )
        logger.debug(f"[STORE] Deleted {len(ids)} from {collection}")

    async def batch_update(self, collection: str, updates: Mapping[str, Mapping[str, Any]]) -> None:
        if not updates:
            return
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(StoredDocument).where(
                        StoredDocument.collection == collection,
                        StoredDocument.doc_id.in_(list(updates)),
                    )
                )
                rows = {row.doc_id: row for row in result.scalars().all()}
                missing = [doc_id for doc_id in updates if doc_id not in rows]
                if missing:
                    # Raising inside begin() rolls back the whole chunk
                    raise KeyError(f"Documents not found in {collection}: {missing[:5]}")
                for doc_id, fields in updates.items():
                    row = rows[doc_id]
                    # New dict so the JSON column is flagged dirty
                    row.data = {**(row.data or {}), **dict(fields)}
                    row.updated_at = now
        logger.debug(f"[STORE] Updated {len(updates)} in {collection}")

    async def insert_documents(self, collection: str, documents: Iterable[Document]) -> int:
        """Insert documents (ingestion helper, also used to seed tests)."""
        count = 0
        async with self._session_factory() as session:
            async with session.begin():
                for doc in documents:
                    session.add(StoredDocument(collection=collection, doc_id=doc.id, data=dict(doc.data)))
                    count += 1
        logger.info(f"[STORE] Inserted {count} documents into {collection}")
        return count
