"""Semantic search: data models, cosine ranking and the search service.

SearchService lives in src.search.service and is imported from there.
"""

from src.search.models import Document, SearchResult
from src.search.ranker import DEFAULT_TOP_K, cosine_similarity, rank

__all__ = [
    "DEFAULT_TOP_K",
    "Document",
    "SearchResult",
    "cosine_similarity",
    "rank",
]
