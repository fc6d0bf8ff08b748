"""Utility helpers for working with the guide directory."""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Iterator, Tuple

Fingerprint = Tuple[Tuple[str, int, int], ...]


def iter_guide_paths(data_dir: Path, *, exclude: Collection[str] = ()) -> Iterator[Path]:
    """Yield regular, non-hidden files directly inside ``data_dir`` in name order."""
    if not data_dir.is_dir():
        return
    for item in sorted(data_dir.iterdir()):
        if item.name.startswith(".") or item.name in exclude:
            continue
        if item.is_file():
            yield item


def corpus_fingerprint(data_dir: Path, *, exclude: Collection[str] = ()) -> Fingerprint:
    """Summarise the directory as ``(name, size, mtime_ns)`` triples."""
    entries = []
    for path in iter_guide_paths(data_dir, exclude=exclude):
        try:
            stat = path.stat()
        except OSError:
            continue
        entries.append((path.name, stat.st_size, stat.st_mtime_ns))
    return tuple(entries)
