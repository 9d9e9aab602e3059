import json
import logging
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

from collectors.lines import iter_lines
from models import LogEntry, WindowCounts
from windows import FIVE_HOUR_WINDOW, day_key, shift

log = logging.getLogger(__name__)

# Cheap substring checks run before json.loads; the structured parse decides.
_USER_MARKERS = ('"type":"user"', '"type": "user"')
_TOOL_RESULT_MARKER = '"tool_result"'


def _parse_iso(ts_str: str) -> datetime:
    ts = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _has_tool_result(data: dict) -> bool:
    # Catches tool results the substring check misses, e.g. an escaped
    # "tool\u005fresult" type that only json.loads turns into "tool_result".
    content = (data.get("message") or {}).get("content")
    if not isinstance(content, list):
        return False
    return any(isinstance(block, dict) and block.get("type") == "tool_result" for block in content)


def _utc_day_prefixes(today_start: datetime) -> tuple[str, ...]:
    """UTC day keys that can overlap the local day starting at ``today_start``."""
    first = today_start.astimezone(timezone.utc)
    last = (today_start + timedelta(days=1, microseconds=-1)).astimezone(timezone.utc)
    return tuple({day_key(first), day_key(last)})


def _parse_line(line: str, source: Path, prefixes: tuple[str, ...]) -> LogEntry | None:
    if not line or not any(marker in line for marker in _USER_MARKERS):
        return None
    # Tool-result continuations are API round-trips, not messages typed by the user
    if _TOOL_RESULT_MARKER in line:
        return None
    data = json.loads(line)
    if not isinstance(data, dict) or data.get("type") != "user":
        return None
    ts_str = data.get("timestamp")
    if not isinstance(ts_str, str) or not ts_str.startswith(prefixes):
        return None
    return LogEntry(
        timestamp=_parse_iso(ts_str),
        is_user_authored=not _has_tool_result(data),
        source_file=source,
    )


def _touched_since(root: Path, since: datetime) -> Iterator[Path]:
    cutoff = since.timestamp()
    for fp in root.rglob("*.jsonl"):
        try:
            if fp.stat().st_mtime < cutoff:
                continue
        except OSError:
            continue
        yield fp


def iter_user_entries(root: Path, today_start: datetime) -> Iterator[LogEntry]:
    """Yield today's user-authored entries from session files touched today."""
    if not root.is_dir():
        return
    prefixes = _utc_day_prefixes(today_start)
    for fp in _touched_since(root, today_start):
        try:
            for line in iter_lines(fp):
                try:
                    entry = _parse_line(line, fp, prefixes)
                except (json.JSONDecodeError, ValueError, AttributeError):
                    log.debug("Skipping malformed line in %s", fp)
                    continue
                if entry is None or not entry.is_user_authored:
                    continue
                if entry.timestamp < today_start:
                    continue
                yield entry
        except OSError as exc:
            log.debug("Could not read session file %s: %s", fp, exc)
            continue


def scan_sessions(
    root: Path,
    today_start: datetime,
    window_start: datetime,
    now: datetime,
) -> WindowCounts:
    """Count user messages in per-session JSONL files under ``root``.

    Entries stamped after ``now`` are ignored.
    """
    five_hour_count = 0
    today_count = 0
    oldest_in_window: datetime | None = None

    for entry in iter_user_entries(root, today_start):
        if entry.timestamp > now:
            continue
        today_count += 1
        if entry.timestamp >= window_start:
            five_hour_count += 1
            if oldest_in_window is None or entry.timestamp < oldest_in_window:
                oldest_in_window = entry.timestamp

    return WindowCounts(
        five_hour_count=five_hour_count,
        five_hour_reset_at=shift(oldest_in_window, FIVE_HOUR_WINDOW) if oldest_in_window else None,
        today_count=today_count,
    )
