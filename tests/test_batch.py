"""Tests for chunked batch writes."""

from unittest.mock import AsyncMock

import pytest

from reconcile.errors import StoreWriteFailure
from reconcile.jobs.batch import BatchMutator, apply_in_chunks, chunked
from reconcile.store.base import Document
from reconcile.store.memory import InMemoryDocumentStore


class TestChunked:
    """Test chunk splitting."""

    def test_splits_evenly_and_remainder(self):
        """Full chunks first, remainder last."""
        assert chunked([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        """No operations, no chunks."""
        assert chunked([], 400) == []

    def test_rejects_zero(self):
        """Chunk size must be positive."""
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestApplyInChunks:
    """Test the chunked apply loop."""

    @pytest.mark.asyncio
    async def test_all_chunks_applied(self):
        """Every chunk is applied and counted."""
        apply_chunk = AsyncMock()
        progress = []
        report = await apply_in_chunks(
            list(range(7)), apply_chunk, chunk_size=3, operation="delete", collection="c",
            on_progress=lambda index, done, total: progress.append((index, done, total)),
        )
        assert apply_chunk.await_count == 3
        assert report.completed == 7
        assert report.chunks == 3
        assert progress == [(0, 3, 7), (1, 6, 7), (2, 7, 7)]

    @pytest.mark.asyncio
    async def test_failure_aborts_and_reports_progress(self):
        """Chunk 2 fails: chunk 1 stays applied, chunk 3 is never attempted."""
        apply_chunk = AsyncMock(side_effect=[None, RuntimeError("quota exceeded"), None])
        with pytest.raises(StoreWriteFailure) as exc_info:
            await apply_in_chunks(list(range(7)), apply_chunk, chunk_size=3, operation="update", collection="c")

        err = exc_info.value
        assert err.chunk_index == 1
        assert err.completed == 3
        assert err.total == 7
        assert err.operation == "update"
        assert isinstance(err.cause, RuntimeError)
        assert apply_chunk.await_count == 2

    @pytest.mark.asyncio
    async def test_no_operations(self):
        """Nothing to apply reports zero chunks."""
        apply_chunk = AsyncMock()
        report = await apply_in_chunks([], apply_chunk)
        assert report.completed == 0
        apply_chunk.assert_not_awaited()


class TestBatchMutator:
    """Test batch deletes and updates against a store."""

    @pytest.mark.asyncio
    async def test_delete_in_chunks(self):
        """Deletes are issued one chunk at a time."""
        store = InMemoryDocumentStore({"c": [Document(str(i), {"n": i}) for i in range(5)]})
        report = await BatchMutator(store, chunk_size=2).delete("c", ["0", "1", "2"])
        assert report.completed == 3
        assert store.count("c") == 2
        assert store.write_calls == [("delete", "c", 2), ("delete", "c", 1)]

    @pytest.mark.asyncio
    async def test_update_failure_leaves_earlier_chunks(self):
        """A failed chunk leaves committed chunks in place."""
        store = InMemoryDocumentStore({"c": [Document("a", {"v": 1}), Document("b", {"v": 1})]})
        mutator = BatchMutator(store, chunk_size=1)
        with pytest.raises(StoreWriteFailure) as exc_info:
            await mutator.update("c", {"a": {"v": 2}, "missing": {"v": 2}, "b": {"v": 2}})

        assert exc_info.value.completed == 1
        assert store.get("c", "a") == {"v": 2}
        assert store.get("c", "b") == {"v": 1}

    def test_rejects_bad_chunk_size(self):
        """Chunk size must be positive."""
        with pytest.raises(ValueError):
            BatchMutator(InMemoryDocumentStore(), chunk_size=0)
