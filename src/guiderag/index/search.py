"""Priority-boosted, thresholded term-weight ranking."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Protocol

import numpy as np

from guiderag.models import Index, SearchResult
from guiderag.utils.text import tokenize

if TYPE_CHECKING:
    from guiderag.index.lifecycle import IndexManager

LOGGER = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.08
DEFAULT_TOP_K = 3
PRIORITY_BOOST = 2.0


def retrieve_top_k(
    index: Index | None,
    query: str,
    k: int = DEFAULT_TOP_K,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    boost: float = PRIORITY_BOOST,
) -> List[SearchResult]:
    """Return at most ``k`` chunks ranked by boosted score.

    Chunks sharing no term with the query, or whose boosted score is below
    ``threshold``, are left out. Equal scores keep insertion order.
    """
    if index is None or k <= 0 or not index.chunks:
        return []

    tokens = tokenize(query)
    if not tokens:
        return []

    raw = index.score(tokens)
    adjusted = raw * index.boosts(boost)
    eligible = np.flatnonzero((raw > 0) & (adjusted >= threshold))
    if eligible.size == 0:
        return []

    order = eligible[np.argsort(-adjusted[eligible], kind="stable")][:k]
    return [
        SearchResult(
            filename=index.chunks[i].filename,
            snippet=index.chunks[i].text,
            score=float(adjusted[i]),
        )
        for i in order
    ]


class DenseRanker(Protocol):
    def rank(self, query: str, top_k: int) -> List[SearchResult]: ...


class Searcher:
    """High-level API over the live index generation."""

    def __init__(
        self,
        manager: "IndexManager",
        *,
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
        boost: float = PRIORITY_BOOST,
        dense: DenseRanker | None = None,
    ) -> None:
        self.manager = manager
        self.top_k = top_k
        self.threshold = threshold
        self.boost = boost
        self.dense = dense

    def search(
        self, query: str, *, top_k: int | None = None, threshold: float | None = None
    ) -> List[SearchResult]:
        k = self.top_k if top_k is None else top_k
        if self.dense is not None and k > 0 and query.strip():
            try:
                results = self.dense.rank(query, k)
            except Exception as exc:
                LOGGER.warning("Embedding ranking failed, using term weights: %s", exc)
            else:
                if results:
                    return results[:k]
                LOGGER.debug("Embedding ranking returned nothing, using term weights")

        return retrieve_top_k(
            self.manager.current(),
            query,
            k,
            threshold=self.threshold if threshold is None else threshold,
            boost=self.boost,
        )
