"""Merge the three usage sources into one snapshot.

Session files also cover non-interactive callers but can be pruned; the
history log only sees interactive prompts. Each live metric takes the larger
of the two. The stats cache lags the live logs and only supplies the earlier
days of the current week.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from collectors.history import scan_history
from collectors.sessions import scan_sessions
from collectors.stats_cache import load_daily_activity, weekly_backfill
from models import UsageLimits, UsageSnapshot, WindowCounts
from windows import next_weekly_reset, rolling_window_start, start_of_day, start_of_week

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourcePaths:
    projects_dir: Path
    history_path: Path
    stats_cache_path: Path


def _guarded(name: str, scan: Callable[[], WindowCounts]) -> WindowCounts:
    try:
        return scan()
    except Exception as exc:
        log.warning("%s source failed, treating as empty: %s", name, exc)
        return WindowCounts.empty()


def _backfill(path: Path, now: datetime, first_weekday: int) -> int:
    try:
        activity = load_daily_activity(path)
        if not activity:
            return 0
        return weekly_backfill(activity, start_of_week(now, first_weekday), now)
    except Exception as exc:
        log.warning("Stats cache failed, no weekly backfill: %s", exc)
        return 0


def merge_window_counts(sessions: WindowCounts, history: WindowCounts) -> WindowCounts:
    """Larger count wins per metric; the reset instant follows the rolling count."""
    if sessions.five_hour_count >= history.five_hour_count:
        chosen = sessions
    else:
        chosen = history
    return WindowCounts(
        five_hour_count=chosen.five_hour_count,
        five_hour_reset_at=chosen.five_hour_reset_at,
        today_count=max(sessions.today_count, history.today_count),
    )


def reconcile(
    paths: SourcePaths,
    limits: UsageLimits,
    now: datetime,
    first_weekday: int = 0,
) -> UsageSnapshot:
    today_start = start_of_day(now)
    window_start = rolling_window_start(now)

    sessions = _guarded(
        "Session", lambda: scan_sessions(paths.projects_dir, today_start, window_start, now)
    )
    history = _guarded(
        "History", lambda: scan_history(paths.history_path, today_start, window_start, now)
    )
    merged = merge_window_counts(sessions, history)

    weekly_count = merged.today_count + _backfill(paths.stats_cache_path, now, first_weekday)
    log.debug(
        "Reconciled sessions=%s history=%s weekly=%d", sessions, history, weekly_count
    )

    return UsageSnapshot.build(
        five_hour_count=merged.five_hour_count,
        five_hour_reset_at=merged.five_hour_reset_at,
        weekly_count=weekly_count,
        weekly_reset_at=next_weekly_reset(now, first_weekday),
        today_message_count=merged.today_count,
        limits=limits,
        computed_at=now,
        is_available=merged.today_count > 0 or paths.stats_cache_path.exists(),
    )
