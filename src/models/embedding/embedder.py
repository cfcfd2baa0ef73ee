"""
Sentence Embedding Model

Wraps a local HuggingFace encoder (all-MiniLM-L6-v2 by default) and turns text
into a mean-pooled, L2-normalized vector.

The model is never fetched from the hub: load() passes local_files_only=True,
and the lifecycle manager checks find_missing_artifacts() before calling it.

Anti-Patterns Avoided:
- Model cached, not loaded per request
- No exception shadowing (EmbeddingError / ModelNotLoadedError)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from src.core.exceptions import EmbeddingError, ModelNotLoadedError
from src.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    import torch
    from numpy.typing import NDArray

DEFAULT_MAX_LENGTH: int = 256

logger = get_logger(__name__)


def find_missing_artifacts(model_path: Path, required_files: Iterable[str]) -> list[str]:
    """Return the required artifact files not present under model_path.

    A missing directory reports every required file as missing.
    """
    if not model_path.is_dir():
        return list(required_files)
    return [name for name in required_files if not (model_path / name).is_file()]


def mean_pool(last_hidden_state: torch.Tensor, attention_mask: torch.Tensor) -> torch.Tensor:
    """Average token embeddings, ignoring padding positions.

    Args:
        last_hidden_state: Encoder output of shape (batch, tokens, hidden)
        attention_mask: Mask of shape (batch, tokens), 1 for real tokens

    Returns:
        Tensor of shape (batch, hidden)
    """
    mask = attention_mask.unsqueeze(-1).to(last_hidden_state.dtype)
    summed = (last_hidden_state * mask).sum(dim=1)
    counts = mask.sum(dim=1).clamp(min=1e-9)
    return summed / counts


class EmbeddingModel:
    """Local sentence embedding model.

    Construction is cheap; load() does the blocking work and is meant to be
    run in an executor by ModelLifecycleManager.

    Example:
        >>> model = EmbeddingModel(Path("models/sentence-transformers/all-MiniLM-L6-v2")).load()
        >>> model.embed("user login").shape
        (384,)
    """

    def __init__(
        self,
        model_path: Path,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
        device: str | None = None,
    ) -> None:
        """Initialize embedding model wrapper.

        Args:
            model_path: Directory holding the tokenizer and encoder files
            max_length: Maximum number of tokens per input
            device: Torch device (CPU if None)
        """
        self._model_path = model_path
        self._max_length = max_length
        self._device = device
        self._tokenizer: Any = None
        self._model: Any = None
        self._embedding_dim: int | None = None

    def load(self) -> EmbeddingModel:
        """Load tokenizer and encoder from the local model directory.

        Returns:
            self, so a factory can be written as EmbeddingModel(path).load()
        """
        # Import here to avoid import at module load
        from transformers import AutoModel, AutoTokenizer

        logger.info("loading_embedding_model", model_path=str(self._model_path))

        tokenizer = AutoTokenizer.from_pretrained(
            str(self._model_path), local_files_only=True
        )
        model = AutoModel.from_pretrained(str(self._model_path), local_files_only=True)

        if self._device:
            model = model.to(self._device)
        model.eval()

        self._tokenizer = tokenizer
        self._model = model
        self._embedding_dim = int(model.config.hidden_size)
        return self

    @property
    def is_loaded(self) -> bool:
        """Check if the encoder has been loaded."""
        return self._model is not None

    @property
    def embedding_dim(self) -> int | None:
        """Return embedding dimension, or None before load()."""
        return self._embedding_dim

    @property
    def model_path(self) -> Path:
        """Return the model directory."""
        return self._model_path

    def embed(self, text: str) -> NDArray[np.float32]:
        """Generate a normalized embedding for a single text.

        Args:
            text: Input text

        Returns:
            1-D float32 vector of length embedding_dim

        Raises:
            ModelNotLoadedError: If load() has not completed
            EmbeddingError: If tokenization or inference fails
        """
        if self._model is None or self._tokenizer is None:
            raise ModelNotLoadedError(f"Embedding model not loaded: {self._model_path}")

        try:
            import torch
            import torch.nn.functional as F

            inputs = self._tokenizer(
                text,
                max_length=self._max_length,
                padding=True,
                truncation=True,
                return_tensors="pt",
            )
            if self._device:
                inputs = {k: v.to(self._device) for k, v in inputs.items()}

            with torch.no_grad():
                outputs = self._model(**inputs)
                pooled = mean_pool(outputs.last_hidden_state, inputs["attention_mask"])
                embedding = F.normalize(pooled, p=2, dim=-1)

            return embedding.cpu().numpy().astype(np.float32)[0]
        except Exception as e:
            logger.error("embedding_failed", error=str(e), text_length=len(text))
            raise EmbeddingError(f"Embedding inference failed: {e}") from e
