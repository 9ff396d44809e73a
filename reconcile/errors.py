"""Error types for reconciliation runs.

Identity and numeric problems (unresolvable keys, malformed amounts) are not
exceptions: they are recovered where they occur and counted in reports.
Store I/O problems are fatal to the current run and carry enough context for
a manual retry.
"""

from typing import Optional


class ReconcileError(Exception):
    """Base class for reconciliation errors."""


class StoreReadFailure(ReconcileError):
    """A collection could not be read; no partial result is produced."""

    def __init__(self, collection: str, cause: Optional[BaseException] = None):
        self.collection = collection
        self.cause = cause
        super().__init__(f"Failed to read collection '{collection}': {cause}")


class StoreWriteFailure(ReconcileError):
    """A batch chunk failed to commit.

    Chunks before ``chunk_index`` are committed; it and everything after
    were not applied.
    """

    def __init__(
        self,
        operation: str,
        collection: str,
        chunk_index: int,
        completed: int,
        total: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        self.operation = operation
        self.collection = collection
        self.chunk_index = chunk_index
        self.completed = completed
        self.total = total
        self.cause = cause
        of_total = f"/{total}" if total is not None else ""
        super().__init__(
            f"{operation} on '{collection}' failed at chunk {chunk_index} "
            f"after {completed}{of_total} operations: {cause}"
        )
