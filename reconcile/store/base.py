"""Abstract document store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class Document:
    """A stored document: id plus raw field mapping."""

    id: str
    data: dict = field(default_factory=dict)


class DocumentStore(ABC):
    """Async document store used by the reconciliation components.

    ``batch_delete`` and ``batch_update`` are all-or-nothing per call; chunking
    large write sets is the caller's job (see ``reconcile.jobs.batch``).
    Read failures raise ``StoreReadFailure``; write failures raise the
    underlying error and are wrapped by the batch layer.
    """

    @abstractmethod
    async def list_all(self, collection: str) -> list[Document]:
        """Return every document in ``collection``."""

    @abstractmethod
    async def query_by_equality(self, collection: str, field_name: str, value: Any) -> list[Document]:
        """Return documents whose ``field_name`` equals ``value``."""

    @abstractmethod
    async def batch_delete(self, collection: str, ids: list[str]) -> None:
        """Delete the given document ids in one transaction."""

    @abstractmethod
    async def batch_update(self, collection: str, updates: Mapping[str, Mapping[str, Any]]) -> None:
        """Merge ``fields`` into each document id in one transaction."""

    async def close(self) -> None:
        """Release resources held by the store."""
