"""Core GuideRAG data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Sequence, Tuple

import numpy as np

SparseVector = Tuple[Tuple[int, float], ...]


@dataclass(frozen=True, slots=True)
class Document:
    """Raw guide text as read from the corpus directory."""

    filename: str
    text: str


@dataclass(frozen=True, slots=True)
class Chunk:
    """Token window of a document paired with its sparse term weights."""

    id: int
    filename: str
    base: str
    text: str
    vector: SparseVector = ()


@dataclass(slots=True)
class SearchResult:
    filename: str
    snippet: str
    score: float


@dataclass(frozen=True, slots=True)
class Index:
    """One immutable generation of the term-weight index.

    ``rows``/``cols``/``values`` hold every chunk vector in coordinate form so a
    query can be scored against all chunks with a handful of numpy operations.
    """

    vocabulary: Tuple[str, ...]
    idf: Mapping[str, float]
    chunks: Tuple[Chunk, ...]
    priority_bases: FrozenSet[str] = frozenset()
    term_ids: Dict[str, int] = field(default_factory=dict, repr=False, compare=False)
    rows: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64), repr=False, compare=False)
    cols: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64), repr=False, compare=False)
    values: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float64), repr=False, compare=False)

    @classmethod
    def assemble(
        cls,
        vocabulary: Sequence[str],
        idf: Mapping[str, float],
        chunks: Sequence[Chunk],
        priority_bases: Sequence[str] | FrozenSet[str] = frozenset(),
    ) -> "Index":
        rows: List[int] = []
        cols: List[int] = []
        values: List[float] = []
        for position, chunk in enumerate(chunks):
            for term_index, weight in chunk.vector:
                rows.append(position)
                cols.append(term_index)
                values.append(weight)
        return cls(
            vocabulary=tuple(vocabulary),
            idf=dict(idf),
            chunks=tuple(chunks),
            priority_bases=frozenset(priority_bases),
            term_ids={term: i for i, term in enumerate(vocabulary)},
            rows=np.asarray(rows, dtype=np.int64),
            cols=np.asarray(cols, dtype=np.int64),
            values=np.asarray(values, dtype=np.float64),
        )

    @classmethod
    def empty(cls) -> "Index":
        return cls.assemble((), {}, ())

    def __len__(self) -> int:
        return len(self.chunks)

    def score(self, tokens: Sequence[str]) -> np.ndarray:
        """Return the raw term-weight score of every chunk for ``tokens``."""
        scores = np.zeros(len(self.chunks), dtype=np.float64)
        if not self.chunks or not tokens:
            return scores

        query = np.zeros(len(self.vocabulary), dtype=np.float64)
        for token in tokens:
            term_index = self.term_ids.get(token)
            if term_index is not None:
                query[term_index] += 1.0
        if not query.any():
            return scores

        return np.bincount(
            self.rows, weights=self.values * query[self.cols], minlength=len(self.chunks)
        ).astype(np.float64, copy=False)

    def boosts(self, boost: float) -> np.ndarray:
        """Per-chunk multiplier: ``boost`` for priority bases, 1.0 otherwise."""
        return np.asarray(
            [boost if chunk.base in self.priority_bases else 1.0 for chunk in self.chunks],
            dtype=np.float64,
        )
