"""
Fake Embedders for Testing

Per the Repository Pattern:
- FakeClient implementations for unit testing
- Deterministic outputs for reproducibility
- No real model loading required
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from src.core.exceptions import ModelNotLoadedError

if TYPE_CHECKING:
    from numpy.typing import NDArray

DIM_FAKE: int = 384


def deterministic_embedding(text: str, dim: int = DIM_FAKE, seed: int = 42) -> NDArray[np.float32]:
    """Generate deterministic embedding from text hash.

    Args:
        text: Input text to hash
        dim: Output embedding dimension
        seed: Random seed for reproducibility

    Returns:
        Deterministic L2-normalized embedding vector
    """
    text_hash = int(hashlib.md5(text.encode()).hexdigest()[:8], 16)
    rng = np.random.default_rng(seed + text_hash)

    embedding = rng.standard_normal(dim).astype(np.float32)
    embedding = embedding / np.linalg.norm(embedding)
    return embedding


class FakeEmbeddingModel:
    """Fake embedding model for testing.

    Returns deterministic embeddings based on input hash, or a fixed vector
    from ``vectors`` when the text is listed there.

    Example:
        >>> model = FakeEmbeddingModel().load()
        >>> emb1 = model.embed("test")
        >>> emb2 = model.embed("test")
        >>> assert (emb1 == emb2).all()
    """

    def __init__(
        self,
        model_path: Path | None = None,
        *,
        dim: int = DIM_FAKE,
        vectors: dict[str, list[float]] | None = None,
    ) -> None:
        self._model_path = model_path or Path("fake-model")
        self._dim = dim
        self._vectors = vectors or {}
        self._loaded = False
        self.calls: list[str] = []

    def load(self) -> FakeEmbeddingModel:
        """Mark the fake as loaded."""
        self._loaded = True
        return self

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def embedding_dim(self) -> int | None:
        return self._dim if self._loaded else None

    def embed(self, text: str) -> NDArray[np.float32]:
        """Generate deterministic embedding for text."""
        if not self._loaded:
            raise ModelNotLoadedError("Fake embedding model not loaded")
        self.calls.append(text)
        if text in self._vectors:
            return np.asarray(self._vectors[text], dtype=np.float32)
        return deterministic_embedding(text, self._dim)
