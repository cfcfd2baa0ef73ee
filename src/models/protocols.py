"""
Semantic-Search-Service - Model Protocols

Defines Protocol interfaces for duck typing support, so the lifecycle manager
and search service accept either the HuggingFace-backed EmbeddingModel or a
FakeEmbeddingModel in tests.

Patterns Applied:
- Protocol typing for duck typing
- Structural subtyping (no inheritance required)
"""

from typing import Protocol

import numpy as np
import numpy.typing as npt


class EmbeddingModelProtocol(Protocol):
    """Protocol for text embedding models.

    embed() must be deterministic for a fixed model and input and return a
    1-D, L2-normalized vector of dimension embedding_dim.
    """

    def embed(self, text: str) -> npt.NDArray[np.float32]:
        """Embed a single text string."""
        ...

    @property
    def embedding_dim(self) -> int | None:
        """Output dimension, or None before the model is loaded."""
        ...
