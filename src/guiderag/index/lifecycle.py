"""Index generation ownership, debounced rebuild triggers and corpus polling."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Collection, Sequence

from guiderag.index.builder import IndexBuilder
from guiderag.index.storage import load_index, save_index
from guiderag.models import Document, Index
from guiderag.utils.files import corpus_fingerprint

LOGGER = logging.getLogger(__name__)

DocumentSource = Callable[[], Sequence[Document]]


class IndexManager:
    """Owns the live :class:`Index` and swaps in complete generations only.

    Builds never overlap. A rebuild requested while another one runs is
    coalesced: the running build performs a single follow-up pass instead.
    """

    def __init__(
        self,
        source: DocumentSource,
        builder: IndexBuilder | None = None,
        *,
        snapshot_path: Path | None = None,
    ) -> None:
        self.source = source
        self.builder = builder or IndexBuilder()
        self.snapshot_path = Path(snapshot_path) if snapshot_path is not None else None
        self._current: Index | None = None
        self._generation = 0
        self._state_lock = threading.Lock()
        self._building = False
        self._pending = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def building(self) -> bool:
        return self._building

    def current(self) -> Index | None:
        return self._current

    def load_snapshot(self) -> bool:
        """Seed the live index from the snapshot file, if one is configured."""
        if self.snapshot_path is None or not self.snapshot_path.exists():
            return False
        try:
            index = load_index(self.snapshot_path)
        except Exception as exc:
            LOGGER.warning("Ignoring unreadable index snapshot %s: %s", self.snapshot_path, exc)
            return False
        self._publish(index)
        LOGGER.info("Loaded index snapshot with %d chunks", len(index))
        return True

    def rebuild(self) -> bool:
        """Build a new generation from the document source.

        Returns ``False`` when the request was folded into a build already
        in progress.
        """
        with self._state_lock:
            if self._building:
                self._pending = True
                LOGGER.debug("Rebuild already running, coalescing request")
                return False
            self._building = True

        try:
            while True:
                self._build_once()
                with self._state_lock:
                    if not self._pending:
                        self._building = False
                        break
                    self._pending = False
        except BaseException:
            with self._state_lock:
                self._building = False
                self._pending = False
            raise
        return True

    def _build_once(self) -> None:
        try:
            documents = list(self.source())
            index = self.builder.build(documents)
        except Exception:
            LOGGER.exception("Index rebuild failed, keeping generation %d", self._generation)
            return
        self._publish(index)
        if self.snapshot_path is not None:
            try:
                save_index(index, self.snapshot_path)
            except OSError as exc:
                LOGGER.warning("Could not write index snapshot %s: %s", self.snapshot_path, exc)

    def _publish(self, index: Index) -> None:
        self._current = index
        self._generation += 1


class DebouncedTrigger:
    """Collapse a burst of ``trigger()`` calls into one delayed callback."""

    def __init__(
        self,
        callback: Callable[[], object],
        *,
        delay: float = 0.5,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.callback = callback
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer: threading.Timer | None = None
        self._token = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._token += 1
            timer = self._timer_factory(self.delay, self._fire, args=(self._token,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, token: int) -> None:
        with self._lock:
            # A timer cancelled after it started running must not fire.
            if token != self._token or self._timer is None:
                return
            self._timer = None
        try:
            self.callback()
        except Exception:
            LOGGER.exception("Debounced callback failed")


class CorpusWatcher:
    """Poll the corpus directory and report fingerprint changes."""

    def __init__(
        self,
        data_dir: Path,
        on_change: Callable[[], object],
        *,
        interval: float = 1.0,
        exclude: Collection[str] = (),
    ) -> None:
        self.data_dir = Path(data_dir)
        self.on_change = on_change
        self.interval = interval
        self.exclude = frozenset(exclude)
        self._last = corpus_fingerprint(self.data_dir, exclude=self.exclude)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def check(self) -> bool:
        fingerprint = corpus_fingerprint(self.data_dir, exclude=self.exclude)
        if fingerprint == self._last:
            return False
        self._last = fingerprint
        LOGGER.info("Change detected in %s", self.data_dir)
        self.on_change()
        return True

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="corpus-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval * 2)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.check()
            except Exception:
                LOGGER.exception("Corpus watch poll failed")
