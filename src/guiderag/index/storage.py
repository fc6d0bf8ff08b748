"""JSON snapshot of an index generation."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from guiderag.models import Chunk, Index


def index_to_dict(index: Index) -> Dict[str, Any]:
    return {
        "vocab": list(index.vocabulary),
        "idf": [index.idf[term] for term in index.vocabulary],
        "priority": sorted(index.priority_bases),
        "chunks": [
            {
                "id": chunk.id,
                "filename": chunk.filename,
                "base": chunk.base,
                "text": chunk.text,
                "vec": [[term_index, weight] for term_index, weight in chunk.vector],
            }
            for chunk in index.chunks
        ],
    }


def index_from_dict(payload: Dict[str, Any]) -> Index:
    vocabulary = [str(term) for term in payload.get("vocab", [])]
    weights = payload.get("idf", [])
    if len(weights) != len(vocabulary):
        raise ValueError("Snapshot vocabulary and idf length mismatch")

    chunks = []
    for position, raw in enumerate(payload.get("chunks", [])):
        vector = tuple((int(term_index), float(weight)) for term_index, weight in raw.get("vec", []))
        for term_index, _ in vector:
            if not 0 <= term_index < len(vocabulary):
                raise ValueError(f"Chunk {position} references unknown term {term_index}")
        chunks.append(
            Chunk(
                id=int(raw.get("id", position)),
                filename=str(raw["filename"]),
                base=str(raw.get("base", "")),
                text=str(raw["text"]),
                vector=vector,
            )
        )
    return Index.assemble(
        vocabulary,
        {term: float(weight) for term, weight in zip(vocabulary, weights)},
        chunks,
        payload.get("priority", []),
    )


def save_index(index: Index, path: Path) -> None:
    """Write ``index`` to ``path``, replacing any previous snapshot atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(index_to_dict(index), handle, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def load_index(path: Path) -> Index:
    with Path(path).open("r", encoding="utf-8") as handle:
        return index_from_dict(json.load(handle))
