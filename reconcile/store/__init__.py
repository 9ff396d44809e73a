"""Document store clients.

The reconciliation components only need four operations from the store:
list a collection, query by equality, batch delete and batch update.
"""

from reconcile.store.base import Document, DocumentStore
from reconcile.store.memory import InMemoryDocumentStore
from reconcile.store.sql import SqlDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
]
