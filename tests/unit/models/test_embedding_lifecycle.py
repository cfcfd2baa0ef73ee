"""
Model Lifecycle Manager Tests.

Validates the load state machine:
- missing artifacts fail once, without retry
- transient failures retried up to load_max_attempts, then surfaced
- a later ensure_ready() starts a fresh attempt sequence
- timeouts surface as ModelLoadTimeoutError
- concurrent ensure_ready() calls share one load (single-flight)
- status() snapshots are safe to read during a load
"""
from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path

import numpy as np
import pytest

from src.core.config import Settings
from src.core.exceptions import (
    EmbeddingError,
    ModelFilesMissingError,
    ModelLoadError,
    ModelLoadTimeoutError,
    ModelNotLoadedError,
)
from src.models.embedding.fakes import DIM_FAKE, FakeEmbeddingModel, deterministic_embedding
from src.models.embedding.lifecycle import ModelLifecycleManager, ModelState, ModelStatus

# =============================================================================
# Test Constants
# =============================================================================
MODEL_NAME = "mini-test-model"
REQUIRED_FILES = ["config.json", "tokenizer.json"]


# =============================================================================
# Helpers
# =============================================================================
def make_settings(model_dir: Path, **overrides: object) -> Settings:
    values: dict[str, object] = {
        "model_dir": model_dir,
        "model_name": MODEL_NAME,
        "required_model_files": REQUIRED_FILES,
        "load_retry_delay_seconds": 0.0,
        "load_timeout_seconds": 2.0,
        "load_max_attempts": 3,
    }
    values.update(overrides)
    return Settings(**values)


def install_artifacts(model_dir: Path) -> Path:
    model_path = model_dir / MODEL_NAME
    model_path.mkdir(parents=True, exist_ok=True)
    for name in REQUIRED_FILES:
        (model_path / name).write_text("{}")
    return model_path


class FlakyFactory:
    """Model factory failing its first ``failures`` calls."""

    def __init__(self, failures: int = 0, delay: float = 0.0) -> None:
        self.failures = failures
        self.delay = delay
        self.calls = 0
        self.paths: list[Path] = []

    def __call__(self, model_path: Path) -> FakeEmbeddingModel:
        self.calls += 1
        self.paths.append(model_path)
        if self.delay:
            time.sleep(self.delay)
        if self.calls <= self.failures:
            raise RuntimeError(f"load failure {self.calls}")
        return FakeEmbeddingModel(model_path).load()


class BrokenSelfTestModel(FakeEmbeddingModel):
    def embed(self, text: str) -> np.ndarray:
        raise EmbeddingError("inference exploded")


@pytest.fixture
def model_dir(tmp_path: Path) -> Path:
    install_artifacts(tmp_path)
    return tmp_path


# =============================================================================
# Initial State
# =============================================================================
class TestInitialState:
    """A fresh manager is UNLOADED and not ready."""

    def test_status_starts_unloaded(self, tmp_path: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=FlakyFactory())

        status = lifecycle.status()

        assert isinstance(status, ModelStatus)
        assert status.state is ModelState.UNLOADED
        assert status.is_initialized is False
        assert status.is_ready is False
        assert status.last_error is None
        assert status.model_name == MODEL_NAME

    def test_constructor_does_not_load(self, tmp_path: Path) -> None:
        factory = FlakyFactory()
        ModelLifecycleManager(make_settings(tmp_path), model_factory=factory)
        assert factory.calls == 0

    def test_model_property_raises_before_load(self, tmp_path: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=FlakyFactory())
        with pytest.raises(ModelNotLoadedError):
            _ = lifecycle.model

    def test_status_to_dict_includes_is_ready(self, tmp_path: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=FlakyFactory())

        data = lifecycle.status().to_dict()

        assert data["is_ready"] is False
        assert data["state"] == "unloaded"
        assert data["last_error"] is None


# =============================================================================
# Successful Load
# =============================================================================
class TestSuccessfulLoad:
    """Load, self-test and READY state."""

    @pytest.mark.asyncio
    async def test_ensure_ready_loads_model(self, model_dir: Path) -> None:
        factory = FlakyFactory()
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        model = await lifecycle.ensure_ready()

        assert model is lifecycle.model
        assert factory.calls == 1
        assert factory.paths == [model_dir / MODEL_NAME]

    @pytest.mark.asyncio
    async def test_status_after_success(self, model_dir: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=FlakyFactory())

        await lifecycle.ensure_ready()
        status = lifecycle.status()

        assert status.state is ModelState.READY
        assert status.is_initialized is True
        assert status.is_ready is True
        assert status.last_error is None
        assert status.retry_count == 0
        assert status.initialization_time_ms >= 0.0
        assert status.embedding_dim == DIM_FAKE

    @pytest.mark.asyncio
    async def test_self_test_runs_sanity_text(self, model_dir: Path) -> None:
        settings = make_settings(model_dir, self_test_text="sanity check sentence")
        lifecycle = ModelLifecycleManager(settings, model_factory=FlakyFactory())

        model = await lifecycle.ensure_ready()

        assert model.calls == ["sanity check sentence"]

    @pytest.mark.asyncio
    async def test_repeated_ensure_ready_is_noop(self, model_dir: Path) -> None:
        factory = FlakyFactory()
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        first = await lifecycle.ensure_ready()
        second = await lifecycle.ensure_ready()

        assert first is second
        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_embed_returns_model_vector(self, model_dir: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=FlakyFactory())

        vector = await lifecycle.embed("export to csv")

        np.testing.assert_array_equal(vector, deterministic_embedding("export to csv"))
        assert lifecycle.status().is_ready is True


# =============================================================================
# Missing Artifacts
# =============================================================================
class TestMissingArtifacts:
    """Missing model files are a deployment error: no retry."""

    @pytest.mark.asyncio
    async def test_missing_files_fail_immediately(self, tmp_path: Path) -> None:
        factory = FlakyFactory()
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=factory)

        with pytest.raises(ModelFilesMissingError) as exc_info:
            await lifecycle.ensure_ready()

        assert factory.calls == 0
        assert exc_info.value.missing_files == REQUIRED_FILES
        assert exc_info.value.model_path == tmp_path / MODEL_NAME

    @pytest.mark.asyncio
    async def test_partial_artifacts_list_only_missing(self, tmp_path: Path) -> None:
        model_path = tmp_path / MODEL_NAME
        model_path.mkdir()
        (model_path / "config.json").write_text("{}")
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=FlakyFactory())

        with pytest.raises(ModelFilesMissingError) as exc_info:
            await lifecycle.ensure_ready()

        assert exc_info.value.missing_files == ["tokenizer.json"]

    @pytest.mark.asyncio
    async def test_status_not_ready_after_missing_files(self, tmp_path: Path) -> None:
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=FlakyFactory())

        with pytest.raises(ModelFilesMissingError):
            await lifecycle.ensure_ready()
        status = lifecycle.status()

        assert status.is_ready is False
        assert status.state is ModelState.FAILED
        assert status.last_error is not None
        assert "config.json" in status.last_error

    @pytest.mark.asyncio
    async def test_recovers_once_artifacts_installed(self, tmp_path: Path) -> None:
        factory = FlakyFactory()
        lifecycle = ModelLifecycleManager(make_settings(tmp_path), model_factory=factory)

        with pytest.raises(ModelFilesMissingError):
            await lifecycle.ensure_ready()
        with pytest.raises(ModelFilesMissingError):
            await lifecycle.ensure_ready()
        assert lifecycle.status().is_ready is False

        install_artifacts(tmp_path)
        await lifecycle.ensure_ready()

        assert lifecycle.status().is_ready is True
        assert lifecycle.status().last_error is None
        assert factory.calls == 1


# =============================================================================
# Transient Failures and Retry
# =============================================================================
class TestRetryPolicy:
    """Transient failures are retried up to load_max_attempts total."""

    @pytest.mark.asyncio
    async def test_three_failures_make_exactly_three_attempts(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=3)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        with pytest.raises(ModelLoadError) as exc_info:
            await lifecycle.ensure_ready()

        assert factory.calls == 3
        assert "load failure 3" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_status_after_exhaustion(self, model_dir: Path) -> None:
        lifecycle = ModelLifecycleManager(
            make_settings(model_dir), model_factory=FlakyFactory(failures=3)
        )

        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()
        status = lifecycle.status()

        assert status.state is ModelState.FAILED
        assert status.is_ready is False
        assert status.retry_count == 2
        assert "load failure 3" in (status.last_error or "")

    @pytest.mark.asyncio
    async def test_fourth_call_starts_fresh_sequence(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=10)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()
        assert factory.calls == 3

        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()
        assert factory.calls == 6

    @pytest.mark.asyncio
    async def test_fresh_sequence_can_succeed(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=3)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()
        await lifecycle.ensure_ready()

        assert factory.calls == 4
        assert lifecycle.status().is_ready is True

    @pytest.mark.asyncio
    async def test_success_after_retries_resets_counters(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=2)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        await lifecycle.ensure_ready()
        status = lifecycle.status()

        assert factory.calls == 3
        assert status.is_ready is True
        assert status.retry_count == 0
        assert status.last_error is None

    @pytest.mark.asyncio
    async def test_waits_between_attempts(self, model_dir: Path) -> None:
        settings = make_settings(model_dir, load_retry_delay_seconds=0.05)
        lifecycle = ModelLifecycleManager(settings, model_factory=FlakyFactory(failures=3))

        start = time.perf_counter()
        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()
        elapsed = time.perf_counter() - start

        # two waits: after attempt 1 and attempt 2, none after the last
        assert elapsed >= 0.1

    @pytest.mark.asyncio
    async def test_last_attempt_raises_without_waiting(self, model_dir: Path) -> None:
        settings = make_settings(
            model_dir, load_max_attempts=1, load_retry_delay_seconds=5.0
        )
        factory = FlakyFactory(failures=1)
        lifecycle = ModelLifecycleManager(settings, model_factory=factory)

        with pytest.raises(ModelLoadError) as exc_info:
            await asyncio.wait_for(lifecycle.ensure_ready(), timeout=1.0)

        assert factory.calls == 1
        assert "load failure 1" in str(exc_info.value)
        assert lifecycle.status().retry_count == 0

    @pytest.mark.asyncio
    async def test_non_positive_attempts_still_try_once(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=1)
        lifecycle = ModelLifecycleManager(
            make_settings(model_dir, load_max_attempts=0), model_factory=factory
        )

        with pytest.raises(ModelLoadError):
            await lifecycle.ensure_ready()

        assert factory.calls == 1

    @pytest.mark.asyncio
    async def test_self_test_failure_is_retried(self, model_dir: Path) -> None:
        calls = 0

        def factory(model_path: Path) -> FakeEmbeddingModel:
            nonlocal calls
            calls += 1
            return BrokenSelfTestModel(model_path).load()

        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        with pytest.raises(ModelLoadError) as exc_info:
            await lifecycle.ensure_ready()

        assert calls == 3
        assert "self-test" in str(exc_info.value)
        assert lifecycle.status().is_ready is False


# =============================================================================
# Timeout
# =============================================================================
class TestLoadTimeout:
    """Instantiation slower than load_timeout_seconds settles as a timeout."""

    @pytest.mark.asyncio
    async def test_slow_load_times_out(self, model_dir: Path) -> None:
        settings = make_settings(model_dir, load_timeout_seconds=0.05, load_max_attempts=1)
        lifecycle = ModelLifecycleManager(settings, model_factory=FlakyFactory(delay=0.3))

        with pytest.raises(ModelLoadTimeoutError) as exc_info:
            await lifecycle.ensure_ready()

        assert exc_info.value.timeout_seconds == 0.05
        assert lifecycle.status().state is ModelState.FAILED
        assert "timed out" in (lifecycle.status().last_error or "")

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self, model_dir: Path) -> None:
        settings = make_settings(model_dir, load_timeout_seconds=0.05, load_max_attempts=2)
        factory = FlakyFactory(delay=0.2)
        lifecycle = ModelLifecycleManager(settings, model_factory=factory)

        with pytest.raises(ModelLoadTimeoutError):
            await lifecycle.ensure_ready()

        assert factory.calls == 2


# =============================================================================
# Concurrency
# =============================================================================
class TestSingleFlight:
    """Concurrent ensure_ready() calls share one in-flight load."""

    @pytest.mark.asyncio
    async def test_concurrent_calls_trigger_one_load(self, model_dir: Path) -> None:
        factory = FlakyFactory(delay=0.1)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        models = await asyncio.gather(*(lifecycle.ensure_ready() for _ in range(10)))

        assert factory.calls == 1
        assert all(m is models[0] for m in models)

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(self, model_dir: Path) -> None:
        factory = FlakyFactory(failures=10)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        outcomes = await asyncio.gather(
            *(lifecycle.ensure_ready() for _ in range(5)), return_exceptions=True
        )

        assert factory.calls == 3
        assert all(isinstance(o, ModelLoadError) for o in outcomes)

    @pytest.mark.asyncio
    async def test_status_readable_during_load(self, model_dir: Path) -> None:
        release = threading.Event()

        def blocking_factory(model_path: Path) -> FakeEmbeddingModel:
            release.wait(timeout=5)
            return FakeEmbeddingModel(model_path).load()

        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=blocking_factory)
        task = asyncio.create_task(lifecycle.ensure_ready())

        for _ in range(100):
            if lifecycle.status().state is ModelState.LOADING:
                break
            await asyncio.sleep(0.01)

        status = lifecycle.status()
        assert status.state is ModelState.LOADING
        assert status.is_ready is False

        release.set()
        await task
        assert lifecycle.status().is_ready is True

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_load(self, model_dir: Path) -> None:
        factory = FlakyFactory(delay=0.1)
        lifecycle = ModelLifecycleManager(make_settings(model_dir), model_factory=factory)

        waiter = asyncio.create_task(lifecycle.ensure_ready())
        await asyncio.sleep(0.02)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        await lifecycle.ensure_ready()

        assert factory.calls == 1
        assert lifecycle.status().is_ready is True
