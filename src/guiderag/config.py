"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Tuple


def _get_default_data_dir() -> Path:
    """Prefer a local ``data/`` directory, else the user's Documents folder."""
    local_dir = Path("data")
    if local_dir.is_dir():
        return local_dir
    return Path.home() / "Documents" / "GuideRAG" / "data"


def _split_names(raw: str) -> Tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


@dataclass(slots=True)
class AppConfig:
    data_dir: Path | None = None
    snapshot_path: Path | None = None
    chunk_tokens: int = 60
    min_chunk_chars: int = 20
    vocab_limit: int = 5000
    threshold: float = 0.08
    top_k: int = 3
    priority_bases: Tuple[str, ...] = field(default_factory=tuple)
    priority_boost: float = 2.0
    debounce_seconds: float = 0.5
    watch_interval: float = 1.0
    embedding_model: str | None = None

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()
        self.data_dir = Path(self.data_dir)
        if self.snapshot_path is not None:
            self.snapshot_path = Path(self.snapshot_path)
        self.priority_bases = tuple(self.priority_bases)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> "AppConfig":
        """Build a config from ``GUIDERAG_*`` variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if env.get("GUIDERAG_DATA_DIR"):
            values["data_dir"] = Path(env["GUIDERAG_DATA_DIR"])
        if env.get("GUIDERAG_SNAPSHOT"):
            values["snapshot_path"] = Path(env["GUIDERAG_SNAPSHOT"])
        if env.get("GUIDERAG_THRESHOLD"):
            values["threshold"] = float(env["GUIDERAG_THRESHOLD"])
        if env.get("GUIDERAG_PRIORITY"):
            values["priority_bases"] = _split_names(env["GUIDERAG_PRIORITY"])
        if env.get("GUIDERAG_EMBEDDING_MODEL"):
            values["embedding_model"] = env["GUIDERAG_EMBEDDING_MODEL"]
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)  # type: ignore[arg-type]

    def resolve_data_dir(self, base_dir: Path | None = None) -> Path:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()
        if Path(self.data_dir).is_absolute() or base_dir is None:
            return Path(self.data_dir)
        return base_dir / self.data_dir
