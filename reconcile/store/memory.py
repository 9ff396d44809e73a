"""In-memory document store for tests and offline dry runs."""

import copy
import logging
from typing import Any, Iterable, Mapping, Optional

from reconcile.store.base import Document, DocumentStore

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store. Iteration order is insertion order."""

    def __init__(self, collections: Optional[Mapping[str, Iterable[Document]]] = None):
        self._collections: dict[str, dict[str, dict]] = {}
        self.write_calls: list[tuple[str, str, int]] = []
        for name, docs in (collections or {}).items():
            for doc in docs:
                self.add(name, doc.id, doc.data)

    def add(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        self._collections.setdefault(collection, {})[doc_id] = dict(data)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        data = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    async def list_all(self, collection: str) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
        ]

    async def query_by_equality(self, collection: str, field_name: str, value: Any) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
            if data.get(field_name) == value
        ]

    async def batch_delete(self, collection: str, ids: list[str]) -> None:
        docs = self._collections.get(collection, {})
        for doc_id in ids:
            docs.pop(doc_id, None)
        self.write_calls.append(("delete", collection, len(ids)))
        logger.debug(f"[STORE] Deleted {len(ids)} from {collection}")

    async def batch_update(self, collection: str, updates: Mapping[str, Mapping[str, Any]]) -> None:
        docs = self._collections.setdefault(collection, {})
        missing = [doc_id for doc_id in updates if doc_id not in docs]
        if missing:
            raise KeyError(f"Documents not found in {collection}: {missing[:5]}")
        for doc_id, fields in updates.items():
            docs[doc_id].update(copy.deepcopy(dict(fields)))
        self.write_calls.append(("update", collection, len(updates)))
        logger.debug(f"[STORE] Updated {len(updates)} in {collection}")
