"""Shared test fixtures."""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from claude_battery.config import Settings

# Fixed "now" used by most tests: 2026-02-19 12:30 UTC
NOW = datetime(2026, 2, 19, 12, 30, tzinfo=timezone.utc)


def iso(ts: datetime) -> str:
    """Format like Claude Code does: millisecond precision, Z suffix."""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def assistant_entry(
    uuid: str | None,
    ts: datetime,
    input_tokens: int = 100,
    output_tokens: int = 50,
    **usage_extra: Any,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "type": "assistant",
        "timestamp": iso(ts),
        "message": {
            "role": "assistant",
            "model": "claude-sonnet-4-6",
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                **usage_extra,
            },
        },
    }
    if uuid is not None:
        entry["uuid"] = uuid
    return entry


def user_entry(uuid: str, ts: datetime) -> dict[str, Any]:
    return {
        "type": "user",
        "uuid": uuid,
        "timestamp": iso(ts),
        "message": {"role": "user", "content": "hello"},
    }


def write_jsonl(
    path: Path,
    entries: list[dict[str, Any] | str],
    mtime: datetime | None = None,
) -> Path:
    """Write entries (dicts or raw lines) to a JSONL file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        for entry in entries:
            line = entry if isinstance(entry, str) else json.dumps(entry)
            f.write(line + "\n")
    if mtime is not None:
        os.utime(path, (mtime.timestamp(), mtime.timestamp()))
    return path


@pytest.fixture
def claude_dir(tmp_path: Path) -> Path:
    """An empty fake ~/.claude directory with a projects/ folder."""
    d = tmp_path / ".claude"
    (d / "projects").mkdir(parents=True)
    return d


@pytest.fixture
def projects_dir(claude_dir: Path) -> Path:
    return claude_dir / "projects"


@pytest.fixture
def test_settings(claude_dir: Path, tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        claude_dir=claude_dir,
        reset_anchor_file=tmp_path / "battery" / "settings.json",
        diagnostic_log_path="",
        plan_limits_file="",
        reference_timezone="UTC",
        scan_workers=1,
    )


@pytest.fixture
def write_credentials(claude_dir: Path):
    def _write(tier: str | None) -> Path:
        oauth: dict[str, Any] = {
            "accessToken": "sk-test",
            "refreshToken": "rt-test",
            "expiresAt": 0,
            "subscriptionType": "max",
        }
        if tier is not None:
            oauth["rateLimitTier"] = tier
        path = claude_dir / ".credentials.json"
        path.write_text(json.dumps({"claudeAiOauth": oauth}), encoding="utf-8")
        return path

    return _write


def hours(n: float) -> timedelta:
    return timedelta(hours=n)
