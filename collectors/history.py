import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from collectors.lines import iter_lines_reversed
from models import HistoryEntry, WindowCounts
from windows import FIVE_HOUR_WINDOW, shift

log = logging.getLogger(__name__)


def _epoch_ms(moment: datetime) -> float:
    return moment.timestamp() * 1000


def scan_history(
    path: Path,
    today_start: datetime,
    window_start: datetime,
    now: datetime,
) -> WindowCounts:
    """Count prompts in the global history log, newest first.

    Entries stamped after ``now`` are skipped without ending the scan.

    The log is append-only, so iteration stops at the first entry older than
    both boundaries. An entry appended out of order behind that point is not
    counted.
    """
    if not path.exists():
        return WindowCounts.empty()

    window_ms = _epoch_ms(window_start)
    today_ms = _epoch_ms(today_start)
    now_ms = _epoch_ms(now)

    five_hour_count = 0
    today_count = 0
    oldest_in_window: float | None = None

    try:
        for line in iter_lines_reversed(path):
            if not line.strip():
                continue
            try:
                entry = HistoryEntry.model_validate_json(line)
            except ValidationError:
                log.debug("Skipping malformed history line")
                continue

            ts = entry.timestamp
            if ts > now_ms:
                continue
            if ts < today_ms and ts < window_ms:
                break

            if ts >= window_ms:
                five_hour_count += 1
                if oldest_in_window is None or ts < oldest_in_window:
                    oldest_in_window = ts
            if ts >= today_ms:
                today_count += 1
    except OSError as exc:
        log.debug("Could not read history log %s: %s", path, exc)

    reset_at = None
    if oldest_in_window is not None:
        oldest = datetime.fromtimestamp(oldest_in_window / 1000, tz=timezone.utc)
        reset_at = shift(oldest.astimezone(today_start.tzinfo), FIVE_HOUR_WINDOW)
    return WindowCounts(
        five_hour_count=five_hour_count,
        five_hour_reset_at=reset_at,
        today_count=today_count,
    )
