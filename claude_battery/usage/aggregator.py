"""Sum token usage inside an accounting window.

Only ``input_tokens + output_tokens`` count towards the tracked quota; cache
counters are ignored.  The same assistant message can show up more than once
(resumed sessions copy earlier records into a new file), so usage is
deduplicated by event ``uuid`` across the whole scan.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable

from claude_battery.usage.events import UsageEvent, iter_file_events

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageTotals:
    """Result of aggregating one window."""

    used: int = 0
    earliest: datetime | None = None
    events: int = 0  # in-window events seen
    counted: int = 0  # events that contributed tokens

    @property
    def has_data(self) -> bool:
        """Distinguishes "no activity yet" from "activity with zero usage"."""
        return self.earliest is not None


class UsageAggregator:
    """Thread-safe fold over usage events for a single window."""

    def __init__(self, window_start: datetime) -> None:
        self.window_start = window_start
        self._lock = threading.Lock()
        self._seen: set[str] = set()
        self._used = 0
        self._earliest: datetime | None = None
        self._events = 0
        self._counted = 0

    def add(self, event: UsageEvent) -> None:
        if event.timestamp < self.window_start:
            return
        with self._lock:
            self._events += 1
            if self._earliest is None or event.timestamp < self._earliest:
                self._earliest = event.timestamp

            if not event.counts_usage or event.identity in self._seen:
                return
            self._seen.add(event.identity)  # type: ignore[arg-type]
            self._used += event.tokens
            self._counted += 1

    def add_all(self, events: Iterable[UsageEvent]) -> None:
        for event in events:
            self.add(event)

    def totals(self) -> UsageTotals:
        with self._lock:
            return UsageTotals(
                used=self._used,
                earliest=self._earliest,
                events=self._events,
                counted=self._counted,
            )


def aggregate(events: Iterable[UsageEvent], window_start: datetime) -> UsageTotals:
    """Sum deduplicated usage of *events* at or after *window_start*."""
    aggregator = UsageAggregator(window_start)
    aggregator.add_all(events)
    return aggregator.totals()


def aggregate_files(
    paths: Iterable[Path],
    window_start: datetime,
    max_workers: int = 1,
) -> UsageTotals:
    """Aggregate events read from *paths*, on a thread pool when *max_workers* > 1.

    All workers feed one aggregator, so an identity seen in two files is only
    counted once regardless of which worker reads it first.
    """
    aggregator = UsageAggregator(window_start)
    paths = list(paths)

    if max_workers <= 1:
        for path in paths:
            aggregator.add_all(iter_file_events(path))
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            # list() re-raises anything a worker raised
            list(pool.map(lambda p: aggregator.add_all(iter_file_events(p)), paths))

    totals = aggregator.totals()
    logger.debug(
        "Aggregated %d files: %d tokens from %d/%d events",
        len(paths), totals.used, totals.counted, totals.events,
    )
    return totals
