"""Composition of loader, index lifecycle, ranking and prompt assembly."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from guiderag.classify import GuideRules, classify, derive_rules
from guiderag.config import AppConfig
from guiderag.index.builder import IndexBuilder
from guiderag.index.lifecycle import CorpusWatcher, DebouncedTrigger, IndexManager
from guiderag.index.search import DenseRanker, Searcher
from guiderag.ingestion.loader import read_documents
from guiderag.models import Document, SearchResult
from guiderag.prompt import PromptBundle, build_prompt

LOGGER = logging.getLogger(__name__)


class GuideService:
    """Everything a front end needs: rebuilds, search, rules and prompts."""

    def __init__(self, config: AppConfig | None = None, *, dense: DenseRanker | None = None) -> None:
        self.config = config or AppConfig()
        self.data_dir = self.config.resolve_data_dir(Path.cwd())
        self._exclude = self._excluded_names()
        self.manager = IndexManager(
            self.read_guides,
            IndexBuilder(
                priority_names=frozenset(self.config.priority_bases),
                max_tokens=self.config.chunk_tokens,
                min_chars=self.config.min_chunk_chars,
                vocab_limit=self.config.vocab_limit,
            ),
            snapshot_path=self.config.snapshot_path,
        )
        if dense is None and self.config.embedding_model:
            dense = self._load_dense_ranker()
        self.searcher = Searcher(
            self.manager,
            top_k=self.config.top_k,
            threshold=self.config.threshold,
            boost=self.config.priority_boost,
            dense=dense,
        )
        self.trigger = DebouncedTrigger(self.manager.rebuild, delay=self.config.debounce_seconds)
        self._watcher: CorpusWatcher | None = None

    def _excluded_names(self) -> frozenset[str]:
        snapshot = self.config.snapshot_path
        if snapshot is not None and snapshot.resolve().parent == self.data_dir.resolve():
            return frozenset({snapshot.name})
        return frozenset()

    def _load_dense_ranker(self) -> DenseRanker | None:
        try:
            from guiderag.embedding.encoder import EmbeddingConfig, EmbeddingModel, EmbeddingRanker

            model = EmbeddingModel(EmbeddingConfig(model_name=self.config.embedding_model))
        except Exception as exc:
            LOGGER.warning("Embedding model unavailable, using term weights only: %s", exc)
            return None
        return EmbeddingRanker(model, self.manager, boost=self.config.priority_boost)

    def read_guides(self) -> List[Document]:
        return read_documents(self.data_dir, exclude=self._exclude)

    def start(self, *, watch: bool = True) -> None:
        """Load any snapshot, build the first generation and start watching."""
        self.manager.load_snapshot()
        self.manager.rebuild()
        if watch and self._watcher is None and self.data_dir.is_dir():
            self._watcher = CorpusWatcher(
                self.data_dir,
                self.trigger.trigger,
                interval=self.config.watch_interval,
                exclude=self._exclude,
            )
            self._watcher.start()

    def stop(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self.trigger.cancel()

    def rebuild(self) -> bool:
        return self.manager.rebuild()

    @property
    def index_size(self) -> int:
        index = self.manager.current()
        return len(index) if index is not None else 0

    def search(
        self, query: str, *, top_k: int | None = None, threshold: float | None = None
    ) -> List[SearchResult]:
        return self.searcher.search(query, top_k=top_k, threshold=threshold)

    def rules(self) -> Dict[str, Any]:
        """Rebuild the index and report the rules derived from the guides."""
        guides = self.read_guides()
        rules = derive_rules(guides)
        self.manager.rebuild()
        return {
            "guides": [guide.filename for guide in guides],
            "rules": rules.to_dict(),
            "indexSize": self.index_size,
        }

    def build_prompt(
        self,
        text: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        threshold: float | None = None,
        rules: GuideRules | None = None,
    ) -> PromptBundle:
        if rules is None:
            rules = derive_rules(self.read_guides())
        index = self.manager.current()
        classification = classify(text, rules, index)
        retrieved = self.search(text, threshold=threshold)
        return build_prompt(
            text,
            classification=classification,
            rules=rules,
            retrieved=retrieved,
            chunks=index.chunks if index is not None else (),
            model=model,
            temperature=temperature,
            top_p=top_p,
        )
