"""
Embedding provider: a thin adapter over a sentence-transformers model.
"""
import threading
from typing import List, Optional, Sequence

import numpy as np

from .config import get_settings
from .exceptions import EmbeddingError
from .logging_config import logger

_provider: Optional["EmbeddingProvider"] = None
_provider_lock = threading.Lock()


def _load_sentence_transformer(model_name: str):
    from sentence_transformers import SentenceTransformer

    # Explicit tokenizer settings avoid the clean_up_tokenization_spaces FutureWarning
    return SentenceTransformer(
        model_name,
        tokenizer_kwargs={"clean_up_tokenization_spaces": False},
    )


class EmbeddingProvider:
    """
    Turns text into fixed-length vectors.

    `model` is anything with a sentence-transformers style
    ``encode(list[str], normalize_embeddings=..., show_progress_bar=...)``.
    The dimension is read from the model's first embedding at construction
    time and never changes afterwards.
    """

    def __init__(self, model, model_name: str = "", expected_dim: Optional[int] = None):
        self.model = model
        self.model_name = model_name
        # Warm up with a test embedding
        sample = self._encode(["test"])[0]
        self._dimension = len(sample)
        if expected_dim is not None and self._dimension != expected_dim:
            raise EmbeddingError(
                "Embedding model dimension does not match configuration",
                {"model": model_name, "dimension": self._dimension, "expected": expected_dim},
            )

    @property
    def dimension(self) -> int:
        return self._dimension

    def _encode(self, texts: List[str]) -> List[List[float]]:
        try:
            vecs = self.model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        except Exception as e:
            raise EmbeddingError("Embedding model failed", {"error": str(e)}) from e
        if isinstance(vecs, np.ndarray):
            return vecs.tolist()
        return [list(map(float, v)) for v in vecs]

    @staticmethod
    def _check_input(text) -> None:
        if not isinstance(text, str):
            raise EmbeddingError("Embedding input must be a string", {"type": type(text).__name__})
        if not text.strip():
            raise EmbeddingError("Cannot embed empty text")

    def embed(self, text: str) -> List[float]:
        """Embed one text; raises EmbeddingError on empty input or model failure."""
        return self.embed_many([text])[0]

    def embed_many(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        for text in texts:
            self._check_input(text)
        vecs = self._encode(list(texts))
        if len(vecs) != len(texts):
            raise EmbeddingError(
                "Embedding model returned the wrong number of vectors",
                {"expected": len(texts), "got": len(vecs)},
            )
        for vec in vecs:
            if len(vec) != self._dimension:
                raise EmbeddingError(
                    "Embedding model returned a vector of unexpected dimension",
                    {"expected": self._dimension, "got": len(vec)},
                )
        return vecs


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 when either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)


def preload_model() -> EmbeddingProvider:
    """Preload the embedding model on startup to avoid first-request delay."""
    global _provider
    with _provider_lock:
        if _provider is None:
            settings = get_settings()
            logger.info("Loading embedding model", model=settings.embed_model)
            model = _load_sentence_transformer(settings.embed_model)
            _provider = EmbeddingProvider(
                model,
                model_name=settings.embed_model,
                expected_dim=settings.embed_dim,
            )
            logger.info("Embedding model loaded", model=settings.embed_model, dimension=_provider.dimension)
    return _provider


def get_provider() -> EmbeddingProvider:
    if _provider is None:
        return preload_model()
    return _provider
