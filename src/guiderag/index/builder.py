"""Term-weight index construction."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterable, List, Sequence

from guiderag.models import Chunk, Document, Index
from guiderag.utils.text import chunk_text, tokenize

LOGGER = logging.getLogger(__name__)

DEFAULT_VOCAB_LIMIT = 5000


def base_name(filename: str) -> str:
    """Return ``filename`` without directory and its last extension."""
    name = PurePath(filename).name
    stem, dot, _ = name.rpartition(".")
    return stem if dot and stem else name


def inverse_document_frequency(num_chunks: int, doc_freq: int) -> float:
    return math.log((1 + num_chunks) / (1 + doc_freq))


def build_vocabulary(tokenized: Iterable[Sequence[str]], limit: int | None) -> List[str]:
    """Rank terms by raw occurrence count; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for tokens in tokenized:
        counts.update(tokens)
    # Counter keeps insertion order and sorted() is stable.
    ranked = sorted(counts, key=lambda term: -counts[term])
    if limit is not None and limit >= 0:
        ranked = ranked[:limit]
    return ranked


@dataclass(slots=True)
class IndexBuilder:
    """Builds :class:`Index` generations with fixed chunking parameters."""

    priority_names: frozenset[str] = field(default_factory=frozenset)
    max_tokens: int = 60
    min_chars: int = 20
    vocab_limit: int | None = DEFAULT_VOCAB_LIMIT

    def build(self, documents: Sequence[Document]) -> Index:
        priority: set[str] = set()
        drafts: List[tuple[str, str, str]] = []

        for document in documents:
            try:
                base = base_name(document.filename)
                pieces = chunk_text(
                    document.text or "", max_tokens=self.max_tokens, min_chars=self.min_chars
                )
            except Exception as exc:
                LOGGER.warning("Skipping unreadable document %s: %s", document.filename, exc)
                continue
            if base in self.priority_names:
                priority.add(base)
            drafts.extend((document.filename, base, piece) for piece in pieces)

        if not drafts:
            LOGGER.info("Built empty index from %d documents", len(documents))
            return Index.assemble((), {}, (), priority)

        tokenized = [tokenize(text) for _, _, text in drafts]
        vocabulary = build_vocabulary(tokenized, self.vocab_limit)
        term_ids = {term: i for i, term in enumerate(vocabulary)}

        doc_freq: Counter[str] = Counter()
        for tokens in tokenized:
            doc_freq.update(set(tokens))
        idf = {
            term: inverse_document_frequency(len(drafts), doc_freq[term]) for term in vocabulary
        }

        chunks: List[Chunk] = []
        for chunk_id, ((filename, base, text), tokens) in enumerate(zip(drafts, tokenized)):
            counts = Counter(token for token in tokens if token in term_ids)
            vector = tuple(
                (term_ids[term], count * idf[term])
                for term, count in sorted(counts.items(), key=lambda item: term_ids[item[0]])
                if count * idf[term] != 0
            )
            chunks.append(Chunk(id=chunk_id, filename=filename, base=base, text=text, vector=vector))

        LOGGER.info(
            "Built index: %d chunks, %d terms, %d priority sources",
            len(chunks),
            len(vocabulary),
            len(priority),
        )
        return Index.assemble(vocabulary, idf, chunks, priority)


def build_index(
    documents: Sequence[Document],
    *,
    priority_names: Iterable[str] = (),
    max_tokens: int = 60,
    min_chars: int = 20,
    vocab_limit: int | None = DEFAULT_VOCAB_LIMIT,
) -> Index:
    """Build an index generation from ``documents``."""
    builder = IndexBuilder(
        priority_names=frozenset(priority_names),
        max_tokens=max_tokens,
        min_chars=min_chars,
        vocab_limit=vocab_limit,
    )
    return builder.build(documents)
