"""Shared fixtures: a fake ~/.claude tree and a fixed clock."""
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from config import Settings
from reconciler import SourcePaths

# Wednesday; the Monday-anchored week started 2026-03-09
NOW = datetime(2026, 3, 11, 14, 0, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    text = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def user_message(ts: datetime, text: str = "hello") -> dict:
    return {
        "type": "user",
        "timestamp": iso(ts),
        "sessionId": "session-1",
        "message": {"role": "user", "content": text},
    }


def tool_result(ts: datetime) -> dict:
    return {
        "type": "user",
        "timestamp": iso(ts),
        "sessionId": "session-1",
        "message": {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "ok"}],
        },
    }


def assistant_message(ts: datetime) -> dict:
    return {
        "type": "assistant",
        "timestamp": iso(ts),
        "sessionId": "session-1",
        "message": {"role": "assistant", "content": [{"type": "text", "text": "hi"}]},
    }


class ClaudeHome:
    """Builds the three usage sources under a temporary directory."""

    def __init__(self, root: Path, now: datetime):
        self.root = root
        self.now = now

    @property
    def projects_dir(self) -> Path:
        return self.root / "projects"

    @property
    def history_path(self) -> Path:
        return self.root / "history.jsonl"

    @property
    def stats_cache_path(self) -> Path:
        return self.root / "stats-cache.json"

    @property
    def paths(self) -> SourcePaths:
        return SourcePaths(
            projects_dir=self.projects_dir,
            history_path=self.history_path,
            stats_cache_path=self.stats_cache_path,
        )

    def settings(self, **overrides) -> Settings:
        return Settings(claude_dir=self.root, **overrides)

    def session(
        self,
        records: list,
        name: str = "session-1",
        project: str = "-home-user-project",
        mtime: datetime | None = None,
        compact: bool = False,
    ) -> Path:
        path = self.projects_dir / project / f"{name}.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        separators = (",", ":") if compact else None
        lines = [
            r if isinstance(r, str) else json.dumps(r, separators=separators)
            for r in records
        ]
        path.write_text("\n".join(lines) + "\n")
        stamp = (mtime or self.now).timestamp()
        os.utime(path, (stamp, stamp))
        return path

    def history(self, entries: list) -> Path:
        """Append-ordered history; datetimes become prompt records, strings are raw lines."""
        self.root.mkdir(parents=True, exist_ok=True)
        lines = []
        for entry in entries:
            if isinstance(entry, str):
                lines.append(entry)
            else:
                lines.append(json.dumps({
                    "display": "prompt",
                    "timestamp": epoch_ms(entry),
                    "project": "/home/user/project",
                }))
        self.history_path.write_text("\n".join(lines) + "\n")
        return self.history_path

    def stats_cache(self, days: dict[str, int], **extra) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        doc = {
            "version": 1,
            "lastComputedDate": max(days) if days else "",
            "dailyActivity": [
                {"date": d, "messageCount": n, "sessionCount": 1, "toolCallCount": 0}
                for d, n in sorted(days.items())
            ],
            "modelUsage": {},
            "totalSessions": len(days),
            "totalMessages": sum(days.values()),
        }
        doc.update(extra)
        self.stats_cache_path.write_text(json.dumps(doc))
        return self.stats_cache_path


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def home(tmp_path: Path) -> ClaudeHome:
    return ClaudeHome(tmp_path / ".claude", NOW)
