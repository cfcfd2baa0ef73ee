"""Document storage: SQLite store and in-memory fake."""

from src.storage.document_store import (
    DocumentStoreProtocol,
    InMemoryDocumentStore,
    SQLiteDocumentStore,
)

__all__ = [
    "DocumentStoreProtocol",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
]
