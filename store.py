import logging
import threading
from collections.abc import Callable

from models import UsageSnapshot
from windows import local_now, next_weekly_reset

log = logging.getLogger(__name__)

Observer = Callable[[UsageSnapshot], None]
Dispatch = Callable[[Callable[[], None]], None]


def empty_snapshot() -> UsageSnapshot:
    now = local_now()
    return UsageSnapshot(weekly_reset_at=next_weekly_reset(now), computed_at=now)


def call_now(fn: Callable[[], None]) -> None:
    fn()


class SnapshotStore:
    """Holds the last published snapshot.

    Reads are a single attribute load and never wait for a running pass.
    ``dispatch`` decides where observer callbacks run, e.g.
    ``loop.call_soon_threadsafe`` to land them on an event loop.
    """

    def __init__(self, initial: UsageSnapshot | None = None, dispatch: Dispatch = call_now):
        self._current = initial if initial is not None else empty_snapshot()
        self._dispatch = dispatch
        self._observers: list[Observer] = []
        self._lock = threading.Lock()

    @property
    def current(self) -> UsageSnapshot:
        return self._current

    def publish(self, snapshot: UsageSnapshot) -> None:
        with self._lock:
            self._current = snapshot
            observers = list(self._observers)
        for observer in observers:
            self._dispatch(lambda obs=observer: self._notify(obs, snapshot))

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    @staticmethod
    def _notify(observer: Observer, snapshot: UsageSnapshot) -> None:
        try:
            observer(snapshot)
        except Exception:
            log.exception("Snapshot observer failed")
