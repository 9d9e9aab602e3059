from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LogEntry(BaseModel):
    timestamp: datetime
    is_user_authored: bool = False
    source_file: Path


class HistoryEntry(BaseModel):
    display: str | None = None
    timestamp: float  # epoch milliseconds
    project: str | None = None


class WindowCounts(BaseModel):
    """What a single live source saw for the rolling window and today."""

    five_hour_count: int = 0
    five_hour_reset_at: datetime | None = None
    today_count: int = 0

    @classmethod
    def empty(cls) -> "WindowCounts":
        return cls()


class DailyActivity(BaseModel):
    date: str  # YYYY-MM-DD, local time
    message_count: int = 0
    session_count: int = 0
    tool_call_count: int = 0


class UsageLimits(BaseModel):
    five_hour_limit: int = 80
    weekly_limit: int = 500
    plan: str = "Pro"


def _percentage(count: int, limit: int) -> float:
    return count / limit if limit > 0 else 0.0


class UsageSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    five_hour_count: int = 0
    five_hour_limit: int = 80
    five_hour_percentage: float = 0.0
    five_hour_reset_at: datetime | None = None

    weekly_count: int = 0
    weekly_limit: int = 500
    weekly_percentage: float = 0.0
    weekly_reset_at: datetime

    today_message_count: int = 0

    plan: str = "Pro"
    computed_at: datetime
    is_available: bool = False

    @classmethod
    def build(
        cls,
        *,
        five_hour_count: int,
        five_hour_reset_at: datetime | None,
        weekly_count: int,
        weekly_reset_at: datetime,
        today_message_count: int,
        limits: UsageLimits,
        computed_at: datetime,
        is_available: bool,
    ) -> "UsageSnapshot":
        return cls(
            five_hour_count=five_hour_count,
            five_hour_limit=limits.five_hour_limit,
            five_hour_percentage=_percentage(five_hour_count, limits.five_hour_limit),
            five_hour_reset_at=five_hour_reset_at,
            weekly_count=weekly_count,
            weekly_limit=limits.weekly_limit,
            weekly_percentage=_percentage(weekly_count, limits.weekly_limit),
            weekly_reset_at=weekly_reset_at,
            today_message_count=today_message_count,
            plan=limits.plan,
            computed_at=computed_at,
            is_available=is_available,
        )
