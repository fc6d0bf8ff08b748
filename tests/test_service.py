"""Tests for the GuideService composition."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from guiderag.config import AppConfig
from guiderag.models import SearchResult
from guiderag.service import GuideService


def _padding(prefix: str, count: int) -> str:
    return " ".join(f"{prefix}{i}" for i in range(count))


def _write_guides(data_dir: Path) -> None:
    data_dir.mkdir(exist_ok=True)
    (data_dir / "12.md").write_text("משחק טטריס כיף " + _padding("tp", 80), encoding="utf-8")
    (data_dir / "notes.md").write_text("react hooks " + _padding("np", 20), encoding="utf-8")


class TestGuideService:
    def test_start_builds_and_writes_snapshot(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        snapshot = tmp_path / "state" / "index.json"
        service = GuideService(AppConfig(data_dir=tmp_path / "guides", snapshot_path=snapshot))

        service.start(watch=False)

        assert service.index_size == 3
        assert snapshot.exists()

    def test_snapshot_inside_data_dir_is_not_a_guide(self, tmp_path: Path) -> None:
        data_dir = tmp_path / "guides"
        _write_guides(data_dir)
        service = GuideService(
            AppConfig(data_dir=data_dir, snapshot_path=data_dir / "local_vectors.json")
        )

        service.start(watch=False)
        service.rebuild()

        assert [g.filename for g in service.read_guides()] == ["12.md", "notes.md"]
        assert service.index_size == 3

    def test_search_and_prompt(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        service = GuideService(AppConfig(data_dir=tmp_path / "guides", priority_bases=("12",)))
        service.start(watch=False)

        results = service.search("טטריס")
        bundle = service.build_prompt("צור לי משחק טטריס")

        assert results[0].filename == "12.md"
        assert bundle.retrieved == results
        assert bundle.task.value == "creative"

    def test_rules_payload(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        service = GuideService(AppConfig(data_dir=tmp_path / "guides"))

        payload = service.rules()

        assert payload["guides"] == ["12.md", "notes.md"]
        assert payload["indexSize"] == 3
        assert "taskHints" in payload["rules"]

    def test_missing_data_dir(self, tmp_path: Path) -> None:
        service = GuideService(AppConfig(data_dir=tmp_path / "missing"))
        service.start()

        assert service.index_size == 0
        assert service.search("anything") == []
        service.stop()

    def test_watcher_started_and_stopped(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        service = GuideService(AppConfig(data_dir=tmp_path / "guides", watch_interval=0.05))

        with patch("guiderag.service.CorpusWatcher") as mock_watcher:
            service.start(watch=True)
            mock_watcher.return_value.start.assert_called_once()
            service.stop()
            mock_watcher.return_value.stop.assert_called_once()

    def test_dense_ranker_used(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        dense = MagicMock()
        dense.rank.return_value = [SearchResult("x.md", "dense", 0.5)]
        service = GuideService(AppConfig(data_dir=tmp_path / "guides"), dense=dense)
        service.start(watch=False)

        assert service.search("react") == [SearchResult("x.md", "dense", 0.5)]

    def test_unavailable_embedding_model_falls_back(self, tmp_path: Path) -> None:
        _write_guides(tmp_path / "guides")
        config = AppConfig(data_dir=tmp_path / "guides", embedding_model="missing/model")

        with patch(
            "guiderag.embedding.encoder.SentenceTransformer", side_effect=OSError("not found")
        ):
            service = GuideService(config)
        service.start(watch=False)

        assert service.searcher.dense is None
        assert service.search("react", threshold=0.0)[0].filename == "notes.md"
