import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from config import ConfigSource, Settings, file_config_source, limits_from_config
from models import UsageSnapshot
from reconciler import SourcePaths, reconcile
from scheduler import Debouncer, RefreshScheduler
from store import Dispatch, Observer, SnapshotStore, call_now
from watcher import FileWatcher
from windows import local_now

log = logging.getLogger(__name__)


def _no_config() -> dict:
    return {}


class UsageEngine:
    """Owns the snapshot and everything that refreshes it.

    Construct one per process and hand it to whatever reads the snapshot or
    asks for a refresh.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        config_source: ConfigSource | None = None,
        clock: Callable[[], datetime] = local_now,
        dispatch: Dispatch = call_now,
    ):
        self.settings = settings or Settings()
        if config_source is None:
            if self.settings.config_path is not None:
                config_source = file_config_source(self.settings.config_path)
            else:
                config_source = _no_config
        self._config_source = config_source
        self._clock = clock
        self._paths = SourcePaths(
            projects_dir=self.settings.projects_dir,
            history_path=self.settings.history_path,
            stats_cache_path=self.settings.stats_cache_path,
        )
        self.store = SnapshotStore(dispatch=dispatch)
        self.scheduler = RefreshScheduler(self.run_pass, self.settings.refresh_interval)
        self._file_debouncer = Debouncer(self.settings.debounce_window, self.scheduler.request)
        self._config_debouncer = Debouncer(self.settings.debounce_window, self.scheduler.request)
        self.watcher = FileWatcher(
            [self.settings.history_path, self.settings.stats_cache_path],
            self._on_file_changed,
        )

    @property
    def snapshot(self) -> UsageSnapshot:
        return self.store.current

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        return self.store.subscribe(observer)

    def start(self) -> None:
        self.scheduler.start()
        self.scheduler.request()
        self.watcher.start()

    def stop(self) -> None:
        self.watcher.stop()
        self._file_debouncer.cancel()
        self._config_debouncer.cancel()
        self.scheduler.stop()

    def refresh(self, wait: bool = False, timeout: float | None = 30.0) -> UsageSnapshot:
        if wait and not self.scheduler.is_running:
            # No worker to drain the request; run the pass on this thread.
            return self.run_pass()
        self.scheduler.request()
        if wait:
            self.scheduler.wait_idle(timeout)
        return self.snapshot

    def on_config_changed(self) -> None:
        self._config_debouncer.trigger()

    def run_pass(self) -> UsageSnapshot:
        """One reconciliation pass. Called on the scheduler's worker thread."""
        try:
            limits = limits_from_config(self._config_source())
        except Exception as exc:
            log.warning("Config read failed, using default limits: %s", exc)
            limits = limits_from_config({})
        snapshot = reconcile(
            self._paths,
            limits,
            self._clock(),
            first_weekday=self.settings.first_weekday,
        )
        self.store.publish(snapshot)
        log.debug(
            "Published usage: 5h=%d/%d weekly=%d/%d today=%d",
            snapshot.five_hour_count,
            snapshot.five_hour_limit,
            snapshot.weekly_count,
            snapshot.weekly_limit,
            snapshot.today_message_count,
        )
        return snapshot

    def _on_file_changed(self, path: Path) -> None:
        log.debug("Change in %s", path)
        self._file_debouncer.trigger()
