"""Chunked batch writes against the document store.

Stores cap how many operations fit in one transaction, so large delete and
update sets are split into chunks and committed one at a time. There is no
retry and no rollback of committed chunks: the first failing chunk aborts
the run with a ``StoreWriteFailure`` that says how far it got.

Usage:
    mutator = BatchMutator(store, chunk_size=400)
    report = await mutator.delete("projectScopes", ids)
    report = await mutator.update("schedules", {doc_id: {"jobKey": new_key}})
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

from reconcile.errors import StoreWriteFailure
from reconcile.store.base import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 400

OP_DELETE = "delete"
OP_UPDATE = "update"


@dataclass
class BatchReport:
    """Outcome of a chunked write."""

    operation: str
    collection: str
    total: int
    completed: int
    chunks: int

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "collection": self.collection,
            "total": self.total,
            "completed": self.completed,
            "chunks": self.chunks,
        }


ProgressCallback = Callable[[int, int, int], None]  # (chunk_index, completed, total)


def chunked(items: Sequence[T], chunk_size: int) -> list[Sequence[T]]:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


async def apply_in_chunks(
    operations: Sequence[T],
    apply_chunk: Callable[[Sequence[T]], Awaitable[None]],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    operation: str = "write",
    collection: str = "",
    on_progress: Optional[ProgressCallback] = None,
) -> BatchReport:
    """Apply ``operations`` through ``apply_chunk`` one chunk at a time.

    Args:
        operations: Items to write (ids, (id, fields) pairs, ...)
        apply_chunk: Coroutine committing one chunk atomically
        chunk_size: Max operations per chunk
        operation: Label for logs and errors
        collection: Collection name for logs and errors
        on_progress: Called after each committed chunk

    Returns:
        BatchReport with completed == total

    Raises:
        StoreWriteFailure: A chunk failed; earlier chunks remain committed
    """
    total = len(operations)
    chunks = chunked(operations, chunk_size)
    completed = 0

    for index, chunk in enumerate(chunks):
        try:
            await apply_chunk(chunk)
        except Exception as e:
            logger.error(
                f"[BATCH] {operation} on {collection} failed at chunk {index + 1}/{len(chunks)} "
                f"({completed}/{total} done): {e}"
            )
            raise StoreWriteFailure(
                operation=operation,
                collection=collection,
                chunk_index=index,
                completed=completed,
                total=total,
                cause=e,
            ) from e

        completed += len(chunk)
        logger.info(
            f"[BATCH] {operation} {collection}: chunk {index + 1}/{len(chunks)} committed "
            f"({completed}/{total})"
        )
        if on_progress is not None:
            on_progress(index, completed, total)

    return BatchReport(
        operation=operation,
        collection=collection,
        total=total,
        completed=completed,
        chunks=len(chunks),
    )


class BatchMutator:
    """Delete and update documents in bounded chunks."""

    def __init__(
        self,
        store: DocumentStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_progress: Optional[ProgressCallback] = None,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.store = store
        self.chunk_size = chunk_size
        self.on_progress = on_progress

    async def delete(self, collection: str, ids: Sequence[str]) -> BatchReport:
        async def _apply(chunk: Sequence[str]) -> None:
            await self.store.batch_delete(collection, list(chunk))

        return await apply_in_chunks(
            list(ids),
            _apply,
            chunk_size=self.chunk_size,
            operation=OP_DELETE,
            collection=collection,
            on_progress=self.on_progress,
        )

    async def update(self, collection: str, updates: Mapping[str, Mapping[str, Any]]) -> BatchReport:
        async def _apply(chunk: Sequence[tuple[str, Mapping[str, Any]]]) -> None:
            await self.store.batch_update(collection, dict(chunk))

        return await apply_in_chunks(
            list(updates.items()),
            _apply,
            chunk_size=self.chunk_size,
            operation=OP_UPDATE,
            collection=collection,
            on_progress=self.on_progress,
        )
