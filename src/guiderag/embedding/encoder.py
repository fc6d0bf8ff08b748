"""Optional dense ranking through sentence-transformers."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Literal, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

from guiderag.models import Index, SearchResult

if TYPE_CHECKING:
    from guiderag.index.lifecycle import IndexManager

DEFAULT_MODEL = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query and chunk embeddings.

    A non-torch backend that fails to load falls back to PyTorch.
    """

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        try:
            self._model = self._load_model()
        except Exception as e:
            if self.config.backend == "torch":
                raise
            logger.warning(
                f"Failed to load model with backend '{self.config.backend}': {e}. "
                "Falling back to PyTorch."
            )
            self.config.backend = "torch"
            self._model = self._load_model()

        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info(f"Loaded embedding model {self.config.model_name} | Backend: {self.config.backend}")

    def _load_model(self) -> SentenceTransformer:
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


class EmbeddingRanker:
    """Rank chunks of the live index by cosine similarity to the query.

    Chunk embeddings are computed once per index generation.
    """

    def __init__(self, model: EmbeddingModel, manager: "IndexManager", *, boost: float = 2.0) -> None:
        self.model = model
        self.manager = manager
        self.boost = boost
        self._lock = threading.Lock()
        self._cached_index: Index | None = None
        self._matrix: np.ndarray | None = None

    def _chunk_matrix(self, index: Index) -> np.ndarray:
        with self._lock:
            if self._cached_index is not index or self._matrix is None:
                matrix = self.model.embed([chunk.text for chunk in index.chunks])
                norms = np.linalg.norm(matrix, axis=1, keepdims=True)
                self._matrix = matrix / np.where(norms == 0, 1.0, norms)
                self._cached_index = index
            return self._matrix

    def rank(self, query: str, top_k: int) -> List[SearchResult]:
        index = self.manager.current()
        if index is None or not index.chunks or top_k <= 0:
            return []

        matrix = self._chunk_matrix(index)
        vector = np.asarray(self.model.embed_query(query), dtype="float32")
        norm = float(np.linalg.norm(vector))
        if norm == 0:
            return []
        scores = (matrix @ (vector / norm)) * index.boosts(self.boost)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            SearchResult(
                filename=index.chunks[i].filename,
                snippet=index.chunks[i].text,
                score=float(scores[i]),
            )
            for i in order
        ]
