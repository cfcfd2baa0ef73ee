"""
Sentence Embedding

This package turns text into fixed-length vectors and owns the model lifecycle:
- EmbeddingModel - local HuggingFace encoder, mean-pooled + L2-normalized
- ModelLifecycleManager - load / retry / timeout / readiness state
- FakeEmbeddingModel - deterministic embeddings for tests
"""

from src.models.embedding.embedder import (
    DEFAULT_MAX_LENGTH,
    EmbeddingModel,
    find_missing_artifacts,
    mean_pool,
)
from src.models.embedding.fakes import DIM_FAKE, FakeEmbeddingModel, deterministic_embedding
from src.models.embedding.lifecycle import (
    ModelLifecycleManager,
    ModelState,
    ModelStatus,
)

__all__ = [
    "DEFAULT_MAX_LENGTH",
    "DIM_FAKE",
    "EmbeddingModel",
    "FakeEmbeddingModel",
    "ModelLifecycleManager",
    "ModelState",
    "ModelStatus",
    "deterministic_embedding",
    "find_missing_artifacts",
    "mean_pool",
]
