"""Embedding backends.

The default backend is a deterministic hash projection: it needs no model
download and always maps the same text to the same vector, which keeps
retrieval reproducible. A ``sentence-transformers`` backend is available for
real semantic vectors when the ``transformers`` extra is installed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Literal, Protocol, Sequence

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from sentence_transformers import SentenceTransformer

    from docvault.config import AppConfig

DEFAULT_BACKEND = "hash"
DEFAULT_DIMENSION = 128
DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    dimension: int

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray: ...

    def embed_query(self, text: str) -> np.ndarray: ...


def utf16_code_units(text: str) -> np.ndarray:
    """UTF-16 code units of ``text``; astral characters become surrogate pairs."""
    return np.frombuffer(text.encode("utf-16-le", "surrogatepass"), dtype="<u2").astype(np.int64)


def simple_hash(text: str) -> int:
    """Rolling 31-multiplier hash wrapped to a signed 32-bit integer.

    The hash runs over UTF-16 code units rather than code points. The absolute
    value is returned so it can seed non-negative vector values.
    """
    value = 0
    for unit in utf16_code_units(text).tolist():
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def simulate_embedding(text: str, dimension: int = DEFAULT_DIMENSION) -> np.ndarray:
    """Project text onto a fixed-length pseudo-random vector in [-0.5, 0.5)."""
    seed = simple_hash(text)
    positions = np.arange(dimension, dtype=np.int64)
    units = utf16_code_units(text)
    if units.size:
        codes = units[positions % units.size]
    else:
        codes = np.zeros(dimension, dtype=np.int64)
    vector = ((seed + positions * codes) % 1000) / 1000.0 - 0.5
    return vector.astype("float32")


class HashEmbedder:
    """Embedder producing deterministic hash-derived vectors."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension < 1:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return a float32 matrix with one row per input text."""
        sentences = list(texts)
        if not sentences:
            return np.empty((0, self.dimension), dtype="float32")
        return np.vstack([simulate_embedding(text, self.dimension) for text in sentences])

    def embed_query(self, text: str) -> np.ndarray:
        return simulate_embedding(text, self.dimension)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


class SentenceTransformerEmbedder:
    """Thin wrapper around `SentenceTransformer` for query and document embeddings."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model = self._load_model()
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info(
            "Loaded %s | Backend: %s", self.config.model_name, self.config.backend
        )

    def _load_model(self) -> "SentenceTransformer":
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise RuntimeError(
                "sentence-transformers is not installed. Install the extra with "
                "\"python -m pip install '.[transformers]'\""
            ) from exc

        return SentenceTransformer(
            self.config.model_name,
            backend=self.config.backend,
            device=self.config.device,
        )

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        embeddings = self._model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0]


def build_embedder(config: "AppConfig") -> Embedder:
    """Create the embedder selected by ``config.embedding_backend``."""
    backend = config.embedding_backend
    if backend == "hash":
        return HashEmbedder(config.embedding_dimension)
    if backend == "sentence-transformers":
        return SentenceTransformerEmbedder()
    raise ValueError(f"Unknown embedding backend: {backend}")
