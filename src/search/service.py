"""
Semantic Search Service

Orchestrates one search: ensure model ready -> embed query -> fetch corpus
-> rank -> top-k results.

Patterns Applied:
- Service Layer Pattern with injected collaborators (lifecycle, store)
- Lifecycle failures surfaced as SearchUnavailableError, chained to the cause
"""

from __future__ import annotations

import time

from src.core.exceptions import (
    ModelFilesMissingError,
    ModelLoadError,
    SearchUnavailableError,
)
from src.core.logging import get_logger
from src.core.tracing import SEARCH_SPAN, get_tracer, mark_span_error
from src.models.embedding.lifecycle import ModelLifecycleManager
from src.search.models import SearchResult
from src.search.ranker import DEFAULT_TOP_K, rank
from src.storage.document_store import DocumentStoreProtocol

logger = get_logger(__name__)
tracer = get_tracer(__name__)


class SearchService:
    """Semantic search over the full document corpus.

    The corpus is loaded in full on every query; it is expected to be small
    enough to fit in memory.

    Usage:
        service = SearchService(lifecycle, store)
        results = await service.search("export data to excel")
    """

    def __init__(
        self,
        lifecycle: ModelLifecycleManager,
        store: DocumentStoreProtocol,
        *,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._lifecycle = lifecycle
        self._store = store
        self._top_k = top_k

    @property
    def lifecycle(self) -> ModelLifecycleManager:
        return self._lifecycle

    @property
    def top_k(self) -> int:
        return self._top_k

    async def search(self, query: str, top_k: int | None = None) -> list[SearchResult]:
        """Return the documents most similar to the query.

        An empty or whitespace-only query returns [] without touching the
        model. An empty corpus also returns [].

        Args:
            query: Free-text query
            top_k: Result limit, defaults to the service's top_k

        Returns:
            SearchResults ordered by descending similarity

        Raises:
            SearchUnavailableError: If the model cannot be made ready
            EmbeddingError: If embedding the query fails
            DimensionMismatchError: If stored embeddings disagree with the model
        """
        if not query or not query.strip():
            logger.debug("search_skipped_empty_query")
            return []

        k = self._top_k if top_k is None else top_k
        start = time.perf_counter()

        with tracer.start_as_current_span(SEARCH_SPAN) as span:
            span.set_attribute("search.top_k", k)

            try:
                await self._lifecycle.ensure_ready()
            except (ModelFilesMissingError, ModelLoadError) as e:
                mark_span_error(span, e)
                logger.error("search_unavailable", error=str(e))
                raise SearchUnavailableError(f"Embedding model unavailable: {e}") from e

            query_vector = await self._lifecycle.embed(query)
            documents = self._store.get_all_documents()
            results = rank(query_vector, documents, k=k)

            span.set_attribute("search.corpus_size", len(documents))
            span.set_attribute("search.result_count", len(results))

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "search_completed",
            query_length=len(query),
            corpus_size=len(documents),
            result_count=len(results),
            top_score=results[0].similarity if results else None,
            elapsed_ms=round(elapsed_ms, 1),
        )
        return results
