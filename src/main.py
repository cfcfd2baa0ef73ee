"""
Semantic-Search-Service - Main Application Entry Point

- FastAPI app with lifespan handler
- uvicorn src.main:app starts the service

Patterns Applied:
- Lifespan context manager
- One-time configure_logging() at startup
- request_id bound to structlog context per request (X-Request-ID)
- Eager model initialization as a background task; /api/search still calls
  ensure_ready() so a failed or pending load is retried per request
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from src.api.health import router as health_router
from src.api.search import search_router
from src.core.config import get_settings
from src.core.exceptions import SemanticSearchError
from src.core.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from src.core.tracing import configure_tracing
from src.models.embedding.lifecycle import ModelLifecycleManager
from src.search.service import SearchService
from src.storage.document_store import SQLiteDocumentStore

settings = get_settings()

# Configure logging ONCE at module load
configure_logging(
    log_level=settings.log_level,
    json_output=settings.log_json,
)

logger = get_logger(__name__)


def _log_eager_init_result(task: "asyncio.Task[object]") -> None:
    """Done-callback for the eager model load; failures are already in status()."""
    if task.cancelled():
        logger.info("model_eager_init_cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "model_eager_init_failed",
            error=str(error),
            error_type=type(error).__name__,
            hint="Check SSS_MODEL_DIR and that the model files are present",
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown events."""
    # =========================================================================
    # STARTUP
    # =========================================================================
    logger.info(
        "startup",
        service=settings.service_name,
        version=settings.version,
        environment=settings.environment,
        model_path=str(settings.model_path),
    )

    if settings.tracing_enabled:
        configure_tracing(
            service_name=settings.service_name,
            version=settings.version,
            console_export=settings.tracing_console_export,
        )
        logger.info("tracing_configured")

    try:
        app.state.document_store.initialize_schema()
    except SemanticSearchError as e:
        logger.error("document_store_init_failed", error=str(e))

    init_task: "asyncio.Task[object] | None" = None
    if settings.eager_model_init:
        init_task = asyncio.create_task(app.state.lifecycle.ensure_ready())
        init_task.add_done_callback(_log_eager_init_result)
    app.state.init_task = init_task

    yield

    # =========================================================================
    # SHUTDOWN
    # =========================================================================
    logger.info("shutdown", service=settings.service_name)

    if init_task is not None and not init_task.done():
        init_task.cancel()


app = FastAPI(
    title="Semantic-Search-Service",
    description="Embedding-based semantic search over a small document corpus",
    version=settings.version,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

# Long-lived collaborators, owned by the app
app.state.lifecycle = ModelLifecycleManager(settings)
app.state.document_store = SQLiteDocumentStore(settings.db_path)
app.state.search_service = SearchService(
    app.state.lifecycle,
    app.state.document_store,
    top_k=settings.search_top_k,
)
app.state.init_task = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

REQUEST_ID_HEADER = "X-Request-ID"


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line of a request with its request_id and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    bind_request_context(request_id, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app.include_router(health_router)
app.include_router(search_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirecting to docs."""
    return {
        "service": settings.service_name,
        "version": settings.version,
        "docs": "/docs",
    }
