"""Tests for index snapshot persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from guiderag.index.builder import build_index
from guiderag.index.search import retrieve_top_k
from guiderag.index.storage import index_from_dict, index_to_dict, load_index, save_index
from guiderag.models import Document


@pytest.fixture
def index():
    return build_index(
        [
            Document("12.md", "משחק טטריס כיף עם חברים בערב " + "alpha beta gamma"),
            Document("b.md", "react hooks component state management"),
            Document("c.md", "security tokens deploy pipeline settings"),
        ],
        priority_names={"12"},
    )


class TestSnapshotShape:
    def test_layout(self, index) -> None:
        payload = index_to_dict(index)

        assert payload["vocab"] == list(index.vocabulary)
        assert len(payload["idf"]) == len(payload["vocab"])
        assert payload["priority"] == ["12"]
        first = payload["chunks"][0]
        assert set(first) == {"id", "filename", "base", "text", "vec"}
        assert first["filename"] == "12.md"
        assert all(len(pair) == 2 for pair in first["vec"])

    def test_invalid_term_reference(self, index) -> None:
        payload = index_to_dict(index)
        payload["chunks"][0]["vec"].append([len(payload["vocab"]) + 5, 1.0])

        with pytest.raises(ValueError):
            index_from_dict(payload)

    def test_idf_length_mismatch(self, index) -> None:
        payload = index_to_dict(index)
        payload["idf"].pop()

        with pytest.raises(ValueError):
            index_from_dict(payload)


class TestSaveLoad:
    def test_file_round_trip_preserves_ranking(self, index, tmp_path: Path) -> None:
        path = tmp_path / "snapshots" / "local_vectors.json"
        save_index(index, path)
        restored = load_index(path)

        assert restored == index
        assert retrieve_top_k(restored, "טטריס") == retrieve_top_k(index, "טטריס")

    def test_writes_utf8_json(self, index, tmp_path: Path) -> None:
        path = tmp_path / "index.json"
        save_index(index, path)

        raw = path.read_text(encoding="utf-8")
        assert "טטריס" in raw
        assert json.loads(raw)["priority"] == ["12"]
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]

    def test_overwrites_previous_snapshot(self, index, tmp_path: Path) -> None:
        path = tmp_path / "index.json"
        save_index(build_index([]), path)
        save_index(index, path)

        assert len(load_index(path)) == len(index)
