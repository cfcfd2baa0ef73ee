"""
Semantic-Search-Service - Health API Routes

GET /health - liveness, always 200
GET /ready  - readiness, 503 until the embedding model is READY

Patterns Applied:
- Health Check Pattern
- HealthService class backed by the ModelLifecycleManager
- Pydantic response models
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src import __version__
from src.api.dependencies import get_lifecycle_manager
from src.core.logging import SERVICE_NAME, get_logger
from src.models.embedding.lifecycle import ModelLifecycleManager

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    status: str
    checks: dict[str, bool]
    model: dict[str, Any] | None = None


# =============================================================================
# Health Service
# =============================================================================


class HealthService:
    """Service class for health check operations."""

    def __init__(self, lifecycle: ModelLifecycleManager, version: str = __version__):
        """Initialize health service.

        Args:
            lifecycle: Lifecycle manager whose status drives readiness
            version: Service version string
        """
        self._lifecycle = lifecycle
        self._version = version

    def check_health(self) -> dict[str, Any]:
        """Check basic service health."""
        return {
            "status": "healthy",
            "version": self._version,
            "service": SERVICE_NAME,
        }

    def check_readiness(self) -> tuple[dict[str, Any], bool]:
        """Check if service is ready to accept search requests.

        Returns:
            Tuple of (readiness dict, is_ready bool)
        """
        model_status = self._lifecycle.status()
        checks = {"model_ready": model_status.is_ready}

        is_ready = all(checks.values())
        result: dict[str, Any] = {
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
            "model": model_status.to_dict(),
        }
        return result, is_ready


def get_health_service(
    lifecycle: Annotated[ModelLifecycleManager, Depends(get_lifecycle_manager)],
) -> HealthService:
    """Build a HealthService for the application's lifecycle manager."""
    return HealthService(lifecycle)


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Basic health check endpoint for liveness probe",
)
async def health_check(
    service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthResponse:
    """Health check endpoint."""
    data = service.check_health()
    logger.debug("health_check", status=data["status"])
    return HealthResponse(**data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready"},
    },
    summary="Readiness Check",
    description="Readiness check endpoint for readiness probe",
)
async def readiness_check(
    service: Annotated[HealthService, Depends(get_health_service)],
) -> JSONResponse:
    """Readiness check endpoint.

    Returns:
        200 if the model is ready, 503 otherwise
    """
    data, is_ready = service.check_readiness()

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.debug("readiness_check", status=data["status"], is_ready=is_ready)
    return JSONResponse(content=data, status_code=status_code)
