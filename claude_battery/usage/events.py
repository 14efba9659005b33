"""Read usage events from Claude Code session logs.

Claude Code appends one JSON object per line to
``~/.claude/projects/<project>/<session>.jsonl`` (sub-agent sessions live in
nested directories).  Only a handful of fields matter here:

    {"uuid": "...", "timestamp": "2026-02-19T10:00:05.000Z",
     "message": {"usage": {"input_tokens": 100, "output_tokens": 300, ...}}}

Everything in this module is read-only and tolerant: unreadable directories,
files that fail to decode and malformed lines are skipped, never raised.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"

# Extended ISO-8601 with fractional seconds and an explicit offset
_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d+(?:Z|[+-]\d{2}:\d{2})\Z")


@dataclass(frozen=True)
class UsageEvent:
    """A single parsed log record."""

    identity: str | None
    timestamp: datetime  # timezone-aware, UTC
    input_tokens: int = 0
    output_tokens: int = 0
    has_usage: bool = False

    @property
    def counts_usage(self) -> bool:
        """True when the record can contribute tokens (identity + usage payload)."""
        return self.identity is not None and self.has_usage

    @property
    def tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp with an explicit offset, returned in UTC.

    Only the form Claude Code writes is accepted: ``T`` separator, fractional
    seconds and a ``Z`` or ``+HH:MM`` offset.  Naive timestamps are rejected:
    without an offset the instant is ambiguous.
    """
    if not isinstance(value, str) or not _TIMESTAMP_RE.match(value):
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if ts.tzinfo is None:
        return None
    return ts.astimezone(timezone.utc)


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key, 0)
    # bool is an int subclass; JSON true/false is not a token count
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def parse_event(line: str) -> UsageEvent | None:
    """Parse one JSONL line into a UsageEvent, or None if it is unusable."""
    try:
        entry = json.loads(line)
    except (json.JSONDecodeError, ValueError):
        return None
    if not isinstance(entry, dict):
        return None

    ts = parse_timestamp(entry.get("timestamp"))
    if ts is None:
        return None

    uuid = entry.get("uuid")
    identity = uuid if isinstance(uuid, str) and uuid else None

    message = entry.get("message")
    usage = message.get("usage") if isinstance(message, dict) else None
    if not isinstance(usage, dict):
        return UsageEvent(identity=identity, timestamp=ts)

    return UsageEvent(
        identity=identity,
        timestamp=ts,
        input_tokens=_token_count(usage, "input_tokens"),
        output_tokens=_token_count(usage, "output_tokens"),
        has_usage=True,
    )


def iter_log_files(root: Path, cutoff: datetime) -> Iterator[Path]:
    """Yield ``*.jsonl`` files under *root* modified at or after *cutoff*.

    Walks depth-first with each directory listing sorted by name so the order
    is reproducible.  Entries whose name starts with ``.`` are skipped and
    symlinked directories are not followed.
    """
    cutoff_ts = cutoff.timestamp()
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.debug("Could not list %s: %s", root, e)
        return

    for entry in entries:
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_dir(follow_symlinks=False):
                yield from iter_log_files(Path(entry.path), cutoff)
                continue
            if not entry.name.endswith(LOG_SUFFIX) or not entry.is_file():
                continue
            # Skip files not touched since the cutoff
            if entry.stat().st_mtime < cutoff_ts:
                continue
        except OSError as e:
            logger.debug("Could not stat %s: %s", entry.path, e)
            continue
        yield Path(entry.path)


def iter_file_events(path: Path) -> Iterator[UsageEvent]:
    """Yield events from a single log file.

    The file is decoded up front so a file that is not valid UTF-8 is skipped
    as a whole rather than half-read.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read %s: %s", path, e)
        return

    # Records are "\n"-delimited; raw U+2028 may occur inside JSON strings
    for line in content.split("\n"):
        line = line.strip()
        if not line:
            continue
        event = parse_event(line)
        if event is not None:
            yield event


def iter_events(root: Path, cutoff: datetime) -> Iterator[UsageEvent]:
    """Yield events from every recent log file under *root*."""
    for path in iter_log_files(root, cutoff):
        yield from iter_file_events(path)
