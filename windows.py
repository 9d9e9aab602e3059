"""Window boundaries for the usage gauge.

Every function takes an aware ``now``; its tzinfo is treated as the
observer's local zone, so day and week boundaries fall on local midnight.
Day and week steps are taken on the wall clock and the UTC offset is looked
up again afterwards, so a boundary past a DST change is still midnight.
"""

import time
from datetime import datetime, timedelta, timezone, tzinfo

FIVE_HOUR_WINDOW = timedelta(hours=5)
ONE_WEEK = timedelta(days=7)

MONDAY = 0
SUNDAY = 6

_EPOCH = datetime(1970, 1, 1)


class SystemZone(tzinfo):
    """The host's local zone, with the UTC offset looked up per instant."""

    def utcoffset(self, dt):
        return timedelta(seconds=self._local(dt).tm_gmtoff)

    def dst(self, dt):
        local = self._local(dt)
        if local.tm_isdst <= 0:
            return timedelta(0)
        return timedelta(seconds=local.tm_gmtoff + time.timezone)

    def tzname(self, dt):
        return self._local(dt).tm_zone

    def fromutc(self, dt):
        stamp = (dt.replace(tzinfo=None) - _EPOCH).total_seconds()
        return dt + timedelta(seconds=time.localtime(stamp).tm_gmtoff)

    def __repr__(self):
        return "SystemZone()"

    @staticmethod
    def _local(dt):
        if dt is None:
            return time.localtime()
        wall = (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second, -1, -1, -1)
        return time.localtime(time.mktime(wall))


SYSTEM_ZONE = SystemZone()


def local_now() -> datetime:
    return datetime.now(SYSTEM_ZONE)


def _resolve_zone(now: datetime) -> datetime:
    # datetime.astimezone() pins a fixed offset; swap it for the system zone
    # so later day/week steps pick up DST changes.
    if not isinstance(now.tzinfo, timezone):
        return now
    wall = now.replace(tzinfo=None)
    if now.utcoffset() == SYSTEM_ZONE.utcoffset(wall) and now.tzname() == SYSTEM_ZONE.tzname(wall):
        return wall.replace(tzinfo=SYSTEM_ZONE)
    return now


def shift(moment: datetime, delta: timedelta) -> datetime:
    """``moment + delta`` in elapsed time, kept in ``moment``'s zone."""
    return (moment.astimezone(timezone.utc) + delta).astimezone(moment.tzinfo)


def rolling_window_start(now: datetime) -> datetime:
    return shift(_resolve_zone(now), -FIVE_HOUR_WINDOW)


def start_of_day(now: datetime) -> datetime:
    return _resolve_zone(now).replace(hour=0, minute=0, second=0, microsecond=0)


def day_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def start_of_week(now: datetime, first_weekday: int = MONDAY) -> datetime:
    """Local midnight of the most recent ``first_weekday`` at or before ``now``."""
    if not MONDAY <= first_weekday <= SUNDAY:
        raise ValueError(f"first_weekday must be 0-6, got {first_weekday}")
    days_back = (now.weekday() - first_weekday) % 7
    return start_of_day(now) - timedelta(days=days_back)


def next_weekly_reset(now: datetime, first_weekday: int = MONDAY) -> datetime:
    """Next week boundary strictly after ``now``."""
    reset = start_of_week(now, first_weekday)
    while reset <= now:
        reset += ONE_WEEK
    return reset
