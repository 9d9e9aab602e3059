import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from models import DailyActivity
from windows import day_key

log = logging.getLogger(__name__)


def load_daily_activity(path: Path) -> list[DailyActivity] | None:
    """Per-day activity from the stats cache, or None if the file is absent.

    An unreadable or malformed cache yields an empty list. Day records that
    fail validation are dropped one by one.
    """
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError, ValueError) as exc:
        log.warning("Could not read stats cache %s: %s", path, exc)
        return []
    if not isinstance(data, dict):
        return []

    daily_activity = []
    for day in data.get("dailyActivity") or []:
        try:
            activity = DailyActivity(
                date=day["date"],
                message_count=day.get("messageCount", 0),
                session_count=day.get("sessionCount", 0),
                tool_call_count=day.get("toolCallCount", 0),
            )
        except (KeyError, TypeError, AttributeError, ValidationError):
            log.debug("Skipping malformed dailyActivity record: %r", day)
            continue
        if activity.message_count < 0:
            continue
        daily_activity.append(activity)
    return daily_activity


def weekly_backfill(
    daily_activity: list[DailyActivity],
    week_start: datetime,
    today: datetime,
) -> int:
    """Messages on the days of the current week before today."""
    start_key = day_key(week_start)
    today_key = day_key(today)
    return sum(
        d.message_count
        for d in daily_activity
        if start_key <= d.date < today_key
    )
