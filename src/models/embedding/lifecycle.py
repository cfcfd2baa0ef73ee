"""
Embedding Model Lifecycle Manager

Owns loading, retry, timeout and readiness state for the embedding model.

State machine:
    UNLOADED -> LOADING -> READY
    UNLOADED -> LOADING -> FAILED -> LOADING (retry)

Patterns Applied:
- Explicitly owned lifecycle object, injected into SearchService
- Single-flight load: asyncio.Lock guards one shared load task
- Blocking work (model instantiation, inference) runs in the default executor
- Immutable status snapshots swapped in a single assignment

Anti-Patterns Avoided:
- Module-level model singleton mutated from several call sites
- Retrying deployment errors (missing artifacts fail immediately)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from src.core.config import Settings
from src.core.exceptions import (
    ModelFilesMissingError,
    ModelLoadError,
    ModelLoadTimeoutError,
    ModelNotLoadedError,
)
from src.core.logging import get_logger
from src.core.tracing import MODEL_LOAD_SPAN, get_tracer, mark_span_error
from src.models.embedding.embedder import EmbeddingModel, find_missing_artifacts
from src.models.protocols import EmbeddingModelProtocol

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

logger = get_logger(__name__)
tracer = get_tracer(__name__)

ModelFactory = Callable[[Path], EmbeddingModelProtocol]


class ModelState(str, Enum):
    """Lifecycle states of the embedding model."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ModelStatus:
    """Snapshot of the model lifecycle.

    Attributes:
        is_initialized: True once a load attempt has succeeded
        model_name: Configured model name
        last_error: Message of the most recent failure, None when healthy
        initialization_time_ms: Wall-clock time of the successful load
        retry_count: Retries performed in the current load sequence
        state: Current ModelState
        embedding_dim: Dimension reported by the post-load self-test
    """

    is_initialized: bool
    model_name: str
    last_error: str | None = None
    initialization_time_ms: float = 0.0
    retry_count: int = 0
    state: ModelState = ModelState.UNLOADED
    embedding_dim: int | None = None

    @property
    def is_ready(self) -> bool:
        return self.is_initialized and self.last_error is None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for status endpoints, including the derived is_ready."""
        data = asdict(self)
        data["state"] = self.state.value
        data["is_ready"] = self.is_ready
        return data


def _default_factory(settings: Settings) -> ModelFactory:
    def factory(model_path: Path) -> EmbeddingModelProtocol:
        return EmbeddingModel(
            model_path,
            max_length=settings.model_max_length,
            device=settings.model_device,
        ).load()

    return factory


class ModelLifecycleManager:
    """Loads the embedding model once and reports its readiness.

    Usage:
        lifecycle = ModelLifecycleManager(settings)
        model = await lifecycle.ensure_ready()
        vector = await lifecycle.embed("query text")
        lifecycle.status().is_ready
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        model_factory: ModelFactory | None = None,
    ) -> None:
        """Initialize lifecycle manager. No loading happens here.

        Args:
            settings: Application settings (model path, retry policy)
            model_factory: Callable building a loaded model from its directory.
                Defaults to EmbeddingModel(path).load().
        """
        self._settings = settings or Settings()
        self._model_factory = model_factory or _default_factory(self._settings)
        self._model: EmbeddingModelProtocol | None = None
        self._lock = asyncio.Lock()
        self._load_task: asyncio.Future[EmbeddingModelProtocol] | None = None
        self._status = ModelStatus(
            is_initialized=False,
            model_name=self._settings.model_name,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def model_path(self) -> Path:
        return self._settings.model_path

    @property
    def model(self) -> EmbeddingModelProtocol:
        """Get the loaded model.

        Raises:
            ModelNotLoadedError: If the model is not READY
        """
        if self._model is None or self._status.state is not ModelState.READY:
            raise ModelNotLoadedError(f"Model {self._settings.model_name} is not loaded")
        return self._model

    def status(self) -> ModelStatus:
        """Return the most recently committed status snapshot."""
        return self._status

    def _commit(self, **changes: Any) -> None:
        self._status = replace(self._status, **changes)

    # =========================================================================
    # Loading
    # =========================================================================

    async def ensure_ready(self) -> EmbeddingModelProtocol:
        """Make sure the model is loaded, loading it if necessary.

        No-op once READY. Concurrent callers during a load await the same
        in-flight attempt instead of starting another one.

        Returns:
            The loaded model

        Raises:
            ModelFilesMissingError: If required artifacts are absent
            ModelLoadError: If every attempt failed (last error is raised)
        """
        if self._model is not None and self._status.state is ModelState.READY:
            return self._model

        async with self._lock:
            if self._model is not None and self._status.state is ModelState.READY:
                return self._model
            if self._load_task is None or self._load_task.done():
                self._load_task = asyncio.ensure_future(self._load_with_retries())
            task = self._load_task

        # shield: a cancelled caller must not abort the shared load
        return await asyncio.shield(task)

    async def _load_with_retries(self) -> EmbeddingModelProtocol:
        max_attempts = max(1, self._settings.load_max_attempts)
        attempt = 0

        while True:
            attempt += 1
            self._commit(state=ModelState.LOADING, retry_count=attempt - 1)
            try:
                return await self._load_once(attempt, max_attempts)
            except ModelFilesMissingError as e:
                self._commit(
                    state=ModelState.FAILED,
                    is_initialized=False,
                    last_error=str(e),
                )
                logger.error(
                    "model_files_missing",
                    model_path=str(e.model_path),
                    missing_files=e.missing_files,
                    attempt=attempt,
                )
                raise
            except ModelLoadError as e:
                self._commit(
                    state=ModelState.FAILED,
                    is_initialized=False,
                    last_error=str(e),
                )
                if attempt >= max_attempts:
                    logger.error(
                        "model_load_exhausted",
                        attempts=max_attempts,
                        error=str(e),
                    )
                    raise
                logger.warning(
                    "model_load_retry_scheduled",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    delay_seconds=self._settings.load_retry_delay_seconds,
                    error=str(e),
                )

            await asyncio.sleep(self._settings.load_retry_delay_seconds)

    async def _load_once(self, attempt: int, max_attempts: int) -> EmbeddingModelProtocol:
        model_path = self.model_path
        logger.info(
            "model_load_attempt",
            model_name=self._settings.model_name,
            attempt=attempt,
            max_attempts=max_attempts,
        )

        missing = find_missing_artifacts(model_path, self._settings.required_model_files)
        if missing:
            raise ModelFilesMissingError(model_path, missing)

        loop = asyncio.get_running_loop()
        start = time.perf_counter()

        with tracer.start_as_current_span(MODEL_LOAD_SPAN) as span:
            span.set_attribute("model.name", self._settings.model_name)
            span.set_attribute("model.attempt", attempt)

            # A timed-out load thread keeps running; its result is discarded.
            try:
                model = await asyncio.wait_for(
                    loop.run_in_executor(None, self._model_factory, model_path),
                    timeout=self._settings.load_timeout_seconds,
                )
            except asyncio.TimeoutError as e:
                timeout_error = ModelLoadTimeoutError(self._settings.load_timeout_seconds)
                mark_span_error(span, timeout_error)
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.error(
                    "model_load_timeout",
                    attempt=attempt,
                    elapsed_ms=round(elapsed_ms, 1),
                    timeout_seconds=self._settings.load_timeout_seconds,
                )
                raise timeout_error from e
            except Exception as e:
                mark_span_error(span, e)
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.error(
                    "model_load_failed",
                    attempt=attempt,
                    elapsed_ms=round(elapsed_ms, 1),
                    error=str(e),
                )
                raise ModelLoadError(f"Failed to load {self._settings.model_name}: {e}") from e

            elapsed_ms = (time.perf_counter() - start) * 1000

            try:
                vector = await loop.run_in_executor(
                    None, model.embed, self._settings.self_test_text
                )
            except Exception as e:
                mark_span_error(span, e)
                logger.error("model_self_test_failed", attempt=attempt, error=str(e))
                raise ModelLoadError(f"Model self-test failed: {e}") from e

        self._model = model
        self._commit(
            state=ModelState.READY,
            is_initialized=True,
            last_error=None,
            initialization_time_ms=round(elapsed_ms, 1),
            retry_count=0,
            embedding_dim=len(vector),
        )
        logger.info(
            "model_ready",
            model_name=self._settings.model_name,
            attempt=attempt,
            elapsed_ms=round(elapsed_ms, 1),
            embedding_dim=len(vector),
        )
        return model

    # =========================================================================
    # Inference
    # =========================================================================

    async def embed(self, text: str) -> NDArray[np.float32]:
        """Embed text without blocking the event loop.

        Ensures the model is ready first; load errors propagate unchanged and
        EmbeddingError from inference is not retried.
        """
        model = await self.ensure_ready()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, model.embed, text)
