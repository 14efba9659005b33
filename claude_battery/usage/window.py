"""Accounting window detection.

The rate limit resets on a fixed-length (5 hour) window.  Its boundaries are
either pinned to a user-configured anchor hour, or inferred from recent
activity: sessions are bursty, and a gap of a full window length means the
upstream service has started a new accounting period.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Iterable

from claude_battery.usage.events import iter_events

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_HOURS = 5


@dataclass(frozen=True)
class AccountingWindow:
    """Half-open interval ``[start, end)`` over which usage is summed."""

    start: datetime
    end: datetime
    mode: str = "inferred"  # "anchored" | "inferred" | "fallback"

    @classmethod
    def starting_at(
        cls, start: datetime, hours: int = DEFAULT_WINDOW_HOURS, mode: str = "inferred"
    ) -> AccountingWindow:
        start = start.astimezone(timezone.utc)
        return cls(start=start, end=start + timedelta(hours=hours), mode=mode)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def truncate_to_hour(instant: datetime) -> datetime:
    return instant.replace(minute=0, second=0, microsecond=0)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ── Anchored mode ────────────────────────────────────────────────────────────


def anchor_boundary_hours(anchor_hour: int, window_hours: int = DEFAULT_WINDOW_HOURS) -> list[int]:
    """Window-start hours of the day for an anchor, e.g. 8 -> [4, 8, 13, 18, 23]."""
    if not 0 <= anchor_hour <= 23:
        raise ValueError(f"anchor hour must be in 0..23, got {anchor_hour}")
    count = -(-24 // window_hours)  # ceil
    return sorted({(anchor_hour + window_hours * k) % 24 for k in range(count)})


def anchored_window(
    anchor_hour: int,
    now: datetime | None = None,
    tz: tzinfo = timezone.utc,
    window_hours: int = DEFAULT_WINDOW_HOURS,
) -> AccountingWindow:
    """Window whose start is the latest anchor boundary at or before *now*.

    Boundaries are evaluated on the wall clock of *tz*.  Before the first
    boundary of the day the window rolls back to the last boundary of the
    previous day.

    A boundary that falls in a DST gap does not exist on the wall clock; it
    resolves with the pre-transition offset, so 02:00 on a spring-forward day
    starts the window at 03:00 local time.
    """
    now = (now or _utc_now()).astimezone(tz)
    boundaries = anchor_boundary_hours(anchor_hour, window_hours)
    current = truncate_to_hour(now)

    earlier = [h for h in boundaries if h <= current.hour]
    if earlier:
        start = current.replace(hour=earlier[-1])
    else:
        previous_day = current - timedelta(days=1)
        start = previous_day.replace(hour=boundaries[-1])

    return AccountingWindow.starting_at(start, window_hours, mode="anchored")


# ── Inferred mode ────────────────────────────────────────────────────────────


def infer_block_start(
    timestamps: Iterable[datetime], window_hours: int = DEFAULT_WINDOW_HOURS
) -> datetime | None:
    """Start of the most recent activity block, or None without activity.

    A new block begins at the (hour-truncated) timestamp of the first event
    that either follows a gap of at least one window length or falls past the
    end of the current block.
    """
    ordered = sorted(timestamps)
    if not ordered:
        return None

    duration = timedelta(hours=window_hours)
    block_start = truncate_to_hour(ordered[0])
    previous = ordered[0]
    for ts in ordered[1:]:
        block_end = block_start + duration
        if ts - previous >= duration or ts >= block_end:
            block_start = truncate_to_hour(ts)
        previous = ts
    return block_start


def inferred_window(
    timestamps: Iterable[datetime],
    now: datetime | None = None,
    window_hours: int = DEFAULT_WINDOW_HOURS,
) -> AccountingWindow:
    now = (now or _utc_now()).astimezone(timezone.utc)
    candidate = infer_block_start(timestamps, window_hours)
    if candidate is not None:
        window = AccountingWindow.starting_at(candidate, window_hours, mode="inferred")
        if window.contains(now):
            return window
    # No activity, the block has expired, or the data is ahead of the clock
    return AccountingWindow.starting_at(truncate_to_hour(now), window_hours, mode="fallback")


def recent_timestamps(
    root: Path, now: datetime, lookback_hours: int = 24
) -> list[datetime]:
    """Timestamps of all events under *root* from the last *lookback_hours*."""
    cutoff = now - timedelta(hours=lookback_hours)
    return [event.timestamp for event in iter_events(root, cutoff) if event.timestamp >= cutoff]


def detect_window(
    root: Path,
    now: datetime | None = None,
    *,
    anchor_hour: int | None = None,
    tz: tzinfo = timezone.utc,
    window_hours: int = DEFAULT_WINDOW_HOURS,
    lookback_hours: int = 24,
) -> AccountingWindow:
    """Establish the accounting window for *now*."""
    now = (now or _utc_now()).astimezone(timezone.utc)
    if anchor_hour is not None:
        window = anchored_window(anchor_hour, now, tz, window_hours)
        logger.debug("Anchored window (hour=%d): %s -> %s", anchor_hour, window.start, window.end)
        return window

    timestamps = recent_timestamps(root, now, lookback_hours)
    window = inferred_window(timestamps, now, window_hours)
    logger.debug(
        "Inferred window from %d timestamps (%s): %s -> %s",
        len(timestamps), window.mode, window.start, window.end,
    )
    return window
