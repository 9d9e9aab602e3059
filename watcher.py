"""Change notifications for individually watchable usage files.

Watchdog watches directories, so each target's parent directory is scheduled
once and events are routed to the target by path. Session files are too
numerous to watch one by one; the scheduler's interval covers them.
"""

import logging
import os
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable
from enum import Enum
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

log = logging.getLogger(__name__)


class WatchState(Enum):
    UNWATCHED = "unwatched"
    WATCHED = "watched"


def _event_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw)).absolute()


class _DirectoryHandler(FileSystemEventHandler):
    def __init__(self, watcher: "FileWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._changed(_event_path(event.src_path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._changed(_event_path(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # Atomic rewrites land as a move onto the target
        self._watcher._lost(_event_path(event.src_path))
        self._watcher._changed(_event_path(event.dest_path))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._watcher._lost(_event_path(event.src_path))


class FileWatcher:
    """Calls ``on_change(path)`` when a watched file is written or replaced.

    A target is only watched if it exists when ``start()`` runs. A target
    that is deleted or moved away stays unwatched until the next ``start()``.
    """

    def __init__(
        self,
        paths: Iterable[Path],
        on_change: Callable[[Path], None],
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self._targets = [Path(p).absolute() for p in paths]
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._observer = None
        self._states = {p: WatchState.UNWATCHED for p in self._targets}
        self._lock = threading.Lock()

    def state(self, path: Path) -> WatchState:
        return self._states[Path(path).absolute()]

    @property
    def states(self) -> dict[str, str]:
        return {str(p): s.value for p, s in self._states.items()}

    def start(self) -> None:
        self.stop()
        by_dir: dict[Path, list[Path]] = defaultdict(list)
        for target in self._targets:
            if target.is_file():
                by_dir[target.parent].append(target)
            else:
                log.warning("Not watching %s: file does not exist", target)

        if not by_dir:
            return

        observer = self._observer_factory()
        handler = _DirectoryHandler(self)
        watched: list[Path] = []
        for directory, targets in by_dir.items():
            try:
                observer.schedule(handler, str(directory), recursive=False)
            except OSError as exc:
                log.warning("Could not watch %s: %s", directory, exc)
                continue
            watched.extend(targets)

        if not watched:
            return
        try:
            observer.start()
        except OSError as exc:
            log.warning("File watcher failed to start, relying on periodic refresh: %s", exc)
            return

        self._observer = observer
        with self._lock:
            for target in watched:
                self._states[target] = WatchState.WATCHED
        log.debug("Watching %s", ", ".join(str(t) for t in watched))

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        with self._lock:
            for target in self._targets:
                self._states[target] = WatchState.UNWATCHED
        if observer is not None:
            observer.stop()
            observer.join(timeout=5)

    def _changed(self, path: Path) -> None:
        with self._lock:
            watched = self._states.get(path) is WatchState.WATCHED
        if watched:
            self._on_change(path)

    def _lost(self, path: Path) -> None:
        with self._lock:
            if self._states.get(path) is not WatchState.WATCHED:
                return
            self._states[path] = WatchState.UNWATCHED
        log.warning("Stopped watching %s: file went away", path)
