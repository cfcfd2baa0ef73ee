"""
Search Models

Data models shared by the ranker, the search service and the document store.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Document:
    """A stored document with its precomputed embedding.

    Attributes:
        id: Externally assigned unique identifier
        title: Document title
        content: Document body text
        embedding: Embedding vector computed when the document was stored
    """

    id: str
    title: str
    content: str
    embedding: tuple[float, ...]

    @classmethod
    def create(
        cls,
        id: str,  # noqa: A002 - mirrors the stored column name
        title: str,
        content: str,
        embedding: Sequence[float],
    ) -> Document:
        """Build a Document from any float sequence (list, numpy array)."""
        return cls(
            id=id,
            title=title,
            content=content,
            embedding=tuple(float(x) for x in embedding),
        )


@dataclass(frozen=True)
class SearchResult:
    """A ranked document returned by a search.

    Attributes:
        id: Document identifier
        title: Document title
        content: Document body text
        similarity: Cosine similarity to the query (-1.0 to 1.0)
    """

    id: str
    title: str
    content: str
    similarity: float

    def to_dict(self) -> dict[str, str | float]:
        return asdict(self)
