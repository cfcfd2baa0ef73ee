"""
Search API Endpoints

POST /api/search - Rank stored documents against a free-text query
GET  /api/status - Model lifecycle status

Patterns Applied:
- FastAPI router pattern
- Pydantic request/response models
- Dependency injection for services
- Typed service errors mapped to status codes (503 unavailable, 500 otherwise)
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_lifecycle_manager, get_search_service
from src.core.exceptions import SearchUnavailableError, SemanticSearchError
from src.core.logging import get_logger
from src.models.embedding.lifecycle import ModelLifecycleManager
from src.search.service import SearchService

logger = get_logger(__name__)

# =============================================================================
# Request/Response Models
# =============================================================================


class SearchRequest(BaseModel):
    """Request body for search endpoint."""

    query: str = Field(default="", description="Free-text search query")


class SearchResultItem(BaseModel):
    """A ranked document."""

    id: str
    title: str
    content: str
    similarity: float = Field(..., description="Cosine similarity (-1 to 1)")


class SearchResponse(BaseModel):
    """Response from search endpoint."""

    results: list[SearchResultItem]


class ModelStatusResponse(BaseModel):
    """Model lifecycle snapshot."""

    is_initialized: bool
    model_name: str
    last_error: str | None = None
    initialization_time_ms: float
    retry_count: int
    state: str
    embedding_dim: int | None = None
    is_ready: bool


class StatusResponse(BaseModel):
    """Response from status endpoint."""

    status: str
    model: ModelStatusResponse
    timestamp: str


# =============================================================================
# Router
# =============================================================================

search_router = APIRouter(prefix="/api", tags=["search"])


@search_router.get("/status", response_model=StatusResponse)
async def model_status(
    lifecycle: Annotated[ModelLifecycleManager, Depends(get_lifecycle_manager)],
) -> StatusResponse:
    """Report model status. Never blocks on an in-flight load."""
    return StatusResponse(
        status="ok",
        model=ModelStatusResponse(**lifecycle.status().to_dict()),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@search_router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    service: Annotated[SearchService, Depends(get_search_service)],
) -> SearchResponse:
    """Return the top-k documents most similar to the query.

    Returns:
        SearchResponse with results ordered by descending similarity

    Raises:
        HTTPException: 400 for an empty query, 503 when the model is
            unavailable, 500 for other search failures
    """
    if not request.query.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query must not be empty",
        )

    try:
        results = await service.search(request.query)
    except SearchUnavailableError as e:
        logger.error("search_request_unavailable", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Search unavailable: {e}",
        ) from e
    except SemanticSearchError as e:
        logger.error("search_request_failed", error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Search failed, please retry later",
        ) from e

    return SearchResponse(
        results=[SearchResultItem(**r.to_dict()) for r in results]
    )
