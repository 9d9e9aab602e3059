"""Single-flight refresh scheduling.

Triggers (file events, the interval timer, explicit refreshes) only raise a
dirty flag. One worker thread drains it, so at most one pass runs at a time
and any number of requests made during a pass collapse into one more pass.
"""

import logging
import threading
import time
from collections.abc import Callable

log = logging.getLogger(__name__)


class RefreshScheduler:
    def __init__(self, refresh: Callable[[], None], interval: float | None = 30.0):
        self._refresh = refresh
        self._interval = interval
        self._cond = threading.Condition()
        self._dirty = False
        self._running = False
        self._stopping = False
        self._thread: threading.Thread | None = None
        self.pass_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._cond:
            if self.is_running:
                return
            self._stopping = False
            self._thread = threading.Thread(
                target=self._run, name="usage-refresh", daemon=True
            )
            self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def request(self) -> None:
        with self._cond:
            self._dirty = True
            self._cond.notify_all()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until nothing is pending or running. False on timeout."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._dirty and not self._running, timeout
            )

    def _run(self) -> None:
        next_tick = self._next_tick()
        while True:
            with self._cond:
                while not self._dirty and not self._stopping:
                    if next_tick is None:
                        self._cond.wait()
                        continue
                    remaining = next_tick - time.monotonic()
                    if remaining <= 0:
                        self._dirty = True
                        break
                    self._cond.wait(remaining)
                if self._stopping:
                    self._dirty = False
                    self._cond.notify_all()
                    return
                self._dirty = False
                self._running = True

            next_tick = self._next_tick()
            try:
                self._refresh()
            except Exception:
                log.exception("Refresh pass failed")
            finally:
                with self._cond:
                    self._running = False
                    self.pass_count += 1
                    self._cond.notify_all()

    def _next_tick(self) -> float | None:
        if not self._interval:
            return None
        return time.monotonic() + self._interval


class Debouncer:
    """Collapse calls made within ``window`` seconds into one trailing call."""

    def __init__(self, window: float, action: Callable[[], None]):
        self._window = window
        self._action = action
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._generation = 0

    def trigger(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self._window, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            # a newer trigger or cancel() got in after this timer expired
            if generation != self._generation:
                return
            self._timer = None
        self._action()
