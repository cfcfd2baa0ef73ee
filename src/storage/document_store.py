"""
Document Store

Flat key-value storage of documents with precomputed embeddings.

Embeddings are stored as JSON-encoded float lists with no schema versioning:
a model swap that changes the embedding dimension is detected at query time
by the ranker (DimensionMismatchError), not here.

Patterns Applied:
- Repository Pattern with Protocol + in-memory fake for tests
- Short-lived SQLite connection per call (safe from any thread)
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Protocol

from src.core.exceptions import DocumentStoreError
from src.core.logging import get_logger
from src.search.models import Document

logger = get_logger(__name__)

_CREATE_DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""

_SELECT_ALL = "SELECT id, title, content, embedding FROM documents ORDER BY rowid"

_UPSERT = """
INSERT OR REPLACE INTO documents (id, title, content, embedding)
VALUES (:id, :title, :content, :embedding)
"""


class DocumentStoreProtocol(Protocol):
    """Protocol for document storage duck typing."""

    def get_all_documents(self) -> list[Document]:
        """Return every stored document in storage order."""
        ...

    def upsert_document(self, document: Document) -> None:
        """Insert or replace a document by id."""
        ...


class SQLiteDocumentStore:
    """SQLite-backed document store.

    Usage:
        store = SQLiteDocumentStore(Path("data/search.db"))
        store.initialize_schema()
        store.upsert_document(doc)
        docs = store.get_all_documents()
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def initialize_schema(self) -> None:
        """Create the database file and documents table if absent."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(_CREATE_DOCUMENTS_TABLE)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to initialize {self._db_path}: {e}") from e
        logger.info("document_store_initialized", db_path=str(self._db_path))

    def get_all_documents(self) -> list[Document]:
        """Return every stored document, decoding JSON embeddings.

        Raises:
            DocumentStoreError: If the database cannot be read or an
                embedding is not a JSON list of numbers
        """
        try:
            with closing(self._connect()) as conn:
                rows = conn.execute(_SELECT_ALL).fetchall()
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to read documents: {e}") from e

        return [self._row_to_document(row) for row in rows]

    def upsert_document(self, document: Document) -> None:
        """Insert or replace a document by id."""
        params = {
            "id": document.id,
            "title": document.title,
            "content": document.content,
            "embedding": json.dumps(list(document.embedding)),
        }
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(_UPSERT, params)
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to store document {document.id!r}: {e}") from e
        logger.debug("document_upserted", document_id=document.id)

    def count(self) -> int:
        """Return the number of stored documents."""
        try:
            with closing(self._connect()) as conn:
                (total,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        except sqlite3.Error as e:
            raise DocumentStoreError(f"Failed to count documents: {e}") from e
        return int(total)

    @staticmethod
    def _row_to_document(row: tuple[str, str, str, str]) -> Document:
        doc_id, title, content, raw_embedding = row
        try:
            embedding = json.loads(raw_embedding)
            if not isinstance(embedding, list):
                raise TypeError(f"expected list, got {type(embedding).__name__}")
            return Document.create(doc_id, title, content, embedding)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise DocumentStoreError(
                f"Malformed embedding for document {doc_id!r}: {e}"
            ) from e


class InMemoryDocumentStore:
    """Fake document store for unit testing.

    Implements DocumentStoreProtocol via duck typing. Like INSERT OR REPLACE,
    replacing an id moves the document to the end of the storage order.
    """

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._documents: dict[str, Document] = {}
        for doc in documents or []:
            self.upsert_document(doc)
        self.reads = 0

    def get_all_documents(self) -> list[Document]:
        self.reads += 1
        return list(self._documents.values())

    def upsert_document(self, document: Document) -> None:
        self._documents.pop(document.id, None)
        self._documents[document.id] = document
