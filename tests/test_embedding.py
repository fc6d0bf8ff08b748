"""Tests for the sentence-transformers encoder and dense ranker."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from guiderag.embedding.encoder import EmbeddingConfig, EmbeddingModel, EmbeddingRanker
from guiderag.models import Chunk, Index


class TestEmbeddingConfig:
    """Test EmbeddingConfig dataclass."""

    def test_default_config(self) -> None:
        config = EmbeddingConfig()
        assert config.model_name == "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
        assert config.batch_size == 16
        assert config.normalize is True
        assert config.backend == "torch"


class TestEmbeddingModel:
    """Test EmbeddingModel wrapper."""

    @patch("guiderag.embedding.encoder.SentenceTransformer")
    def test_embed(self, mock_st: MagicMock) -> None:
        instance = mock_st.return_value
        instance.get_sentence_embedding_dimension.return_value = 3
        instance.encode.return_value = np.ones((2, 3), dtype="float64")

        model = EmbeddingModel(EmbeddingConfig(model_name="tiny", batch_size=4))
        embeddings = model.embed(["a", "b"])

        assert model.dimension == 3
        assert embeddings.dtype == np.float32
        assert embeddings.shape == (2, 3)
        kwargs = instance.encode.call_args[1]
        assert kwargs["batch_size"] == 4
        assert kwargs["normalize_embeddings"] is True
        mock_st.assert_called_once_with("tiny", backend="torch", device=None)

    @patch("guiderag.embedding.encoder.SentenceTransformer")
    def test_embed_query(self, mock_st: MagicMock) -> None:
        instance = mock_st.return_value
        instance.get_sentence_embedding_dimension.return_value = 2
        instance.encode.return_value = np.array([[0.6, 0.8]])

        assert EmbeddingModel().embed_query("q").tolist() == pytest.approx([0.6, 0.8])

    @patch("guiderag.embedding.encoder.SentenceTransformer")
    def test_falls_back_to_torch(self, mock_st: MagicMock) -> None:
        loaded = MagicMock()
        loaded.get_sentence_embedding_dimension.return_value = 2
        mock_st.side_effect = [RuntimeError("onnxruntime missing"), loaded]

        model = EmbeddingModel(EmbeddingConfig(backend="onnx"))

        assert model.config.backend == "torch"
        assert mock_st.call_count == 2
        assert mock_st.call_args[1]["backend"] == "torch"

    @patch("guiderag.embedding.encoder.SentenceTransformer")
    def test_torch_failure_propagates(self, mock_st: MagicMock) -> None:
        mock_st.side_effect = OSError("model not found")

        with pytest.raises(OSError):
            EmbeddingModel()


def _index() -> Index:
    chunks = (
        Chunk(0, "a.md", "a", "about tetris"),
        Chunk(1, "12.md", "12", "also about tetris"),
        Chunk(2, "c.md", "c", "about cooking"),
    )
    return Index.assemble(("x",), {"x": 1.0}, chunks, frozenset({"12"}))


def _fake_model(chunk_vectors: list[list[float]], query: list[float]) -> MagicMock:
    model = MagicMock()
    model.embed.return_value = np.array(chunk_vectors, dtype="float32")
    model.embed_query.return_value = np.array(query, dtype="float32")
    return model


class TestEmbeddingRanker:
    """Test EmbeddingRanker ordering and caching."""

    def test_rank_with_boost(self) -> None:
        manager = MagicMock()
        manager.current.return_value = _index()
        model = _fake_model([[1, 0], [2, 0], [0, 1]], [1, 0])

        results = EmbeddingRanker(model, manager).rank("tetris", 2)

        assert [r.filename for r in results] == ["12.md", "a.md"]
        assert results[0].score == pytest.approx(2.0)
        assert results[1].score == pytest.approx(1.0)

    def test_chunk_embeddings_cached_per_index(self) -> None:
        index = _index()
        manager = MagicMock()
        manager.current.return_value = index
        model = _fake_model([[1, 0], [1, 0], [0, 1]], [0, 1])
        ranker = EmbeddingRanker(model, manager, boost=1.0)

        ranker.rank("cooking", 1)
        ranker.rank("cooking", 1)
        assert model.embed.call_count == 1

        manager.current.return_value = _index()
        ranker.rank("cooking", 1)
        assert model.embed.call_count == 2

    def test_no_index_or_zero_k(self) -> None:
        manager = MagicMock()
        manager.current.return_value = None
        model = _fake_model([[1, 0]], [1, 0])

        assert EmbeddingRanker(model, manager).rank("q", 3) == []
        manager.current.return_value = _index()
        assert EmbeddingRanker(model, manager).rank("q", 0) == []

    def test_zero_query_vector(self) -> None:
        manager = MagicMock()
        manager.current.return_value = _index()
        model = _fake_model([[1, 0], [1, 0], [0, 1]], [0, 0])

        assert EmbeddingRanker(model, manager).rank("q", 3) == []
