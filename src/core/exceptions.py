"""
Semantic-Search-Service - Custom Exceptions

All service errors derive from SemanticSearchError so callers can catch the
whole family without shadowing builtins like TimeoutError or RuntimeError.

Retry policy by type:
- ModelFilesMissingError: deployment error, never retried
- ModelLoadError / ModelLoadTimeoutError: transient, retried by the lifecycle manager
- EmbeddingError: single inference failure, propagated as-is
"""

from __future__ import annotations

from pathlib import Path


class SemanticSearchError(Exception):
    """Base exception for Semantic-Search-Service."""
    pass


class ConfigurationError(SemanticSearchError):
    """Raised when configuration is invalid or missing."""
    pass


class ModelFilesMissingError(SemanticSearchError):
    """Raised when required model artifacts are absent from the model directory.

    Not retryable: the files will not appear by waiting.
    """

    def __init__(self, model_path: Path, missing_files: list[str]) -> None:
        self.model_path = model_path
        self.missing_files = list(missing_files)
        super().__init__(
            f"Model files missing in {model_path}: {', '.join(self.missing_files)}"
        )


class ModelLoadError(SemanticSearchError):
    """Raised when a model fails to load or fails its self-test."""
    pass


class ModelLoadTimeoutError(ModelLoadError):
    """Raised when model instantiation exceeds the load timeout."""

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Model load timed out after {timeout_seconds:g}s")


class EmbeddingError(SemanticSearchError):
    """Raised when a single embedding call fails."""
    pass


class ModelNotLoadedError(EmbeddingError):
    """Raised when a model is used before it has been loaded.

    Distinct from a plain EmbeddingError so callers can trigger a lazy load
    instead of propagating.
    """
    pass


class DimensionMismatchError(SemanticSearchError):
    """Raised when two vectors compared together differ in dimension."""

    def __init__(
        self,
        expected: int,
        actual: int,
        document_id: str | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.document_id = document_id
        where = f" for document {document_id!r}" if document_id is not None else ""
        super().__init__(
            f"Embedding dimension mismatch{where}: expected {expected}, got {actual}"
        )


class SearchUnavailableError(SemanticSearchError):
    """Raised by search when the embedding model cannot be made ready."""
    pass


class DocumentStoreError(SemanticSearchError):
    """Raised when stored documents cannot be read or written."""
    pass
