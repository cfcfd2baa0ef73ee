"""
Similarity Ranker

Pure functions for cosine similarity and top-k ranking of documents against
a query vector. No locking needed; nothing here mutates its inputs.

Patterns Applied:
- Rows are unit-normalized here, then scored with
  sklearn.metrics.pairwise.cosine_similarity
- Stable sort so equal scores keep corpus order
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _pairwise_cosine

from src.core.exceptions import DimensionMismatchError
from src.search.models import Document, SearchResult

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

DEFAULT_TOP_K: int = 5


def _as_vector(values: ArrayLike) -> NDArray[np.float64]:
    return np.asarray(values, dtype=np.float64).reshape(-1)


def _unit_rows(matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale each row to unit length; all-zero rows stay zero.

    sklearn's normalize() treats norms below ~10*eps as zero and leaves those
    rows unscaled, so tiny but non-zero vectors are normalized here first.
    Dividing by the largest component before taking the norm keeps
    subnormal values from underflowing to a zero norm.
    """
    peak = np.max(np.abs(matrix), axis=1, keepdims=True)
    peak[peak == 0] = 1.0
    scaled = matrix / peak
    norms = np.linalg.norm(scaled, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return scaled / norms


def _scores(query: NDArray[np.float64], matrix: NDArray[np.float64]) -> NDArray[np.float64]:
    unit_query = _unit_rows(query.reshape(1, -1))
    raw = _pairwise_cosine(unit_query, _unit_rows(matrix))[0]
    return np.clip(raw, -1.0, 1.0)


def cosine_similarity(a: ArrayLike, b: ArrayLike) -> float:
    """Compute cosine similarity between two vectors.

    Only an exactly zero-magnitude vector yields 0.0 (instead of NaN).

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1.0, 1.0]

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    vec_a = _as_vector(a)
    vec_b = _as_vector(b)
    if vec_a.shape[0] != vec_b.shape[0]:
        raise DimensionMismatchError(expected=vec_a.shape[0], actual=vec_b.shape[0])
    if vec_a.shape[0] == 0:
        return 0.0

    return float(_scores(vec_a, vec_b.reshape(1, -1))[0])


def rank(
    query_vector: ArrayLike,
    documents: Sequence[Document],
    k: int = DEFAULT_TOP_K,
) -> list[SearchResult]:
    """Rank documents by cosine similarity to the query vector.

    Args:
        query_vector: Embedded query
        documents: Corpus to rank, in storage order
        k: Maximum number of results

    Returns:
        Up to k SearchResults, highest similarity first; ties keep corpus order

    Raises:
        DimensionMismatchError: If any document embedding differs in dimension
            from the query vector
    """
    if k <= 0 or not documents:
        return []

    query = _as_vector(query_vector)
    dim = query.shape[0]
    for doc in documents:
        if len(doc.embedding) != dim:
            raise DimensionMismatchError(
                expected=dim, actual=len(doc.embedding), document_id=doc.id
            )

    if dim == 0:
        scores = np.zeros(len(documents), dtype=np.float64)
    else:
        matrix = np.array([doc.embedding for doc in documents], dtype=np.float64)
        scores = _scores(query, matrix)

    results = [
        SearchResult(
            id=doc.id,
            title=doc.title,
            content=doc.content,
            similarity=float(score),
        )
        for doc, score in zip(documents, scores)
    ]
    # sorted() is stable, including with reverse=True
    results = sorted(results, key=lambda r: r.similarity, reverse=True)
    return results[:k]
