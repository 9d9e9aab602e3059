"""Engine settings and the quota limits read from the external config store."""

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from models import UsageLimits

log = logging.getLogger(__name__)

FIVE_HOUR_LIMIT_KEY = "five-hour-limit"
WEEKLY_LIMIT_KEY = "weekly-limit"
PLAN_KEY = "plan"

ConfigSource = Callable[[], Mapping[str, Any]]


def _default_claude_dir() -> Path:
    env = os.environ.get("CLAUDE_CONFIG_DIR")
    return Path(env).expanduser() if env else Path.home() / ".claude"


class Settings(BaseModel):
    claude_dir: Path = Field(default_factory=_default_claude_dir)
    refresh_interval: float = 30.0  # seconds between safety-net rescans
    debounce_window: float = 0.1
    first_weekday: int = Field(default=0, ge=0, le=6)  # 0 = Monday
    config_path: Path | None = None

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @property
    def history_path(self) -> Path:
        return self.claude_dir / "history.jsonl"

    @property
    def stats_cache_path(self) -> Path:
        return self.claude_dir / "stats-cache.json"


def _positive_int(config: Mapping[str, Any], key: str, default: int) -> int:
    value = config.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        log.warning("Ignoring invalid %s=%r, using %d", key, value, default)
        return default
    return value


def limits_from_config(config: Mapping[str, Any]) -> UsageLimits:
    defaults = UsageLimits()
    plan = config.get(PLAN_KEY)
    if plan is not None and not isinstance(plan, str):
        log.warning("Ignoring invalid %s=%r", PLAN_KEY, plan)
        plan = None
    return UsageLimits(
        five_hour_limit=_positive_int(config, FIVE_HOUR_LIMIT_KEY, defaults.five_hour_limit),
        weekly_limit=_positive_int(config, WEEKLY_LIMIT_KEY, defaults.weekly_limit),
        plan=plan or defaults.plan,
    )


def load_config_file(path: Path) -> dict[str, Any]:
    """Read the YAML config mapping at ``path``; a missing file is empty.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        ValueError: If the top level is not a mapping
    """
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return raw


def file_config_source(path: Path) -> ConfigSource:
    """Accessor that re-reads ``path`` on every call and never raises."""

    def read() -> Mapping[str, Any]:
        try:
            return load_config_file(path)
        except (yaml.YAMLError, ValueError, OSError) as exc:
            log.warning("Could not load config %s: %s", path, exc)
            return {}

    return read
