"""Document store adapters."""

from status_hub.store.document_store import DocumentStore, Where, build_store_from_env
from status_hub.store.document_store_inmemory import InMemoryDocumentStore
from status_hub.store.document_store_sqlite import SQLiteDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "Where",
    "build_store_from_env",
]
