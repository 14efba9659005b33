"""Usage snapshot service: window detection + aggregation + plan limits.

``UsageService.snapshot()`` is the single entry point used by the CLI and the
API.  It keeps no state between calls except the tier cache it owns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from claude_battery.config import Settings, settings as default_settings
from claude_battery.usage.aggregator import UsageTotals, aggregate_files
from claude_battery.usage.anchor import AnchorStore
from claude_battery.usage.credentials import CredentialCache
from claude_battery.usage.diagnostics import DiagnosticLog
from claude_battery.usage.events import iter_log_files
from claude_battery.usage.plans import PlanLimitTable, TierTable, resolve_limit, resolve_plan_name
from claude_battery.usage.window import AccountingWindow, detect_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    """Quota usage for the current accounting window."""

    used: int
    limit: int
    remaining: int
    window_start: datetime
    window_end: datetime
    earliest: datetime | None = None
    plan_name: str = ""
    tier: str | None = None
    window_mode: str = "inferred"

    @classmethod
    def build(
        cls,
        totals: UsageTotals,
        limit: int,
        window: AccountingWindow,
        plan_name: str = "",
        tier: str | None = None,
    ) -> UsageSnapshot:
        return cls(
            used=totals.used,
            limit=limit,
            remaining=max(0, limit - totals.used),
            window_start=window.start,
            window_end=window.end,
            earliest=totals.earliest,
            plan_name=plan_name,
            tier=tier,
            window_mode=window.mode,
        )

    @property
    def remaining_percent(self) -> int:
        """Remaining quota as a whole percentage, clamped to 0..100."""
        if self.limit <= 0:
            return 0
        return max(0, min(100, int(self.remaining / self.limit * 100)))

    @property
    def has_data(self) -> bool:
        return self.earliest is not None

    def resets_in_seconds(self, now: datetime | None = None) -> int:
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.window_end - now).total_seconds()))


def format_tokens(n: int) -> str:
    """Format a token count for display."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


def format_duration(seconds: int) -> str:
    """Format seconds into a human-readable duration like '2h 13m'."""
    if seconds <= 0:
        return "now"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    return f"{minutes}m"


def snapshot_to_dict(snapshot: UsageSnapshot, now: datetime | None = None) -> dict[str, Any]:
    """Convert a UsageSnapshot to a JSON-serializable dict."""
    resets_in = snapshot.resets_in_seconds(now)
    return {
        "used": snapshot.used,
        "limit": snapshot.limit,
        "remaining": snapshot.remaining,
        "remaining_percent": snapshot.remaining_percent,
        "window_start": snapshot.window_start.isoformat(),
        "window_end": snapshot.window_end.isoformat(),
        "window_mode": snapshot.window_mode,
        "earliest": snapshot.earliest.isoformat() if snapshot.earliest else None,
        "has_data": snapshot.has_data,
        "plan_name": snapshot.plan_name,
        "tier": snapshot.tier,
        "resets_in_seconds": resets_in,
        "resets_in_label": format_duration(resets_in),
    }


def resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown reference timezone %r, using UTC", name)
        return timezone.utc


def load_limit_table(config: Settings) -> PlanLimitTable:
    if config.plan_limits_file:
        return PlanLimitTable.from_yaml(Path(config.plan_limits_file).expanduser())
    return PlanLimitTable.from_mapping(config.plan_limits)


class UsageService:
    """Builds usage snapshots from the local Claude Code logs."""

    def __init__(
        self,
        config: Settings | None = None,
        *,
        credentials: CredentialCache | None = None,
        anchors: AnchorStore | None = None,
        diagnostics: DiagnosticLog | None = None,
        limits: PlanLimitTable | None = None,
    ) -> None:
        self.config = config or default_settings
        self.credentials = credentials or CredentialCache(
            self.config.credentials_path, ttl_seconds=self.config.credentials_ttl_seconds
        )
        self.anchors = anchors or AnchorStore(self.config.reset_anchor_file)
        self.diagnostics = diagnostics or DiagnosticLog(
            Path(self.config.diagnostic_log_path).expanduser()
            if self.config.diagnostic_log_path
            else None
        )
        self.limits = limits or load_limit_table(self.config)
        self.plan_names: TierTable[str] = TierTable.build(self.config.plan_names)
        self.tz = resolve_timezone(self.config.reference_timezone)

    # -- plan ------------------------------------------------------------------

    def tier(self) -> str | None:
        return self.credentials.tier()

    def plan_limit(self, tier: str | None = None) -> int:
        return resolve_limit(tier, self.limits, self.config.default_token_limit)

    def plan_name(self, tier: str | None = None) -> str:
        return resolve_plan_name(tier, self.plan_names)

    # -- window / usage --------------------------------------------------------

    def current_window(self, now: datetime | None = None) -> AccountingWindow:
        """Accounting window for *now*; the anchor is re-read on every call."""
        return detect_window(
            self.config.projects_dir,
            now,
            anchor_hour=self.anchors.load(),
            tz=self.tz,
            window_hours=self.config.window_hours,
            lookback_hours=self.config.lookback_hours,
        )

    def usage(self, window: AccountingWindow) -> UsageTotals:
        files = list(iter_log_files(self.config.projects_dir, window.start))
        self.diagnostics.write(f"Scanning {len(files)} files since {window.start.isoformat()}")
        return aggregate_files(files, window.start, max_workers=self.config.scan_workers)

    def snapshot(self, now: datetime | None = None) -> UsageSnapshot:
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        window = self.current_window(now)
        self.diagnostics.write(
            f"Window ({window.mode}): {window.start.isoformat()} -> {window.end.isoformat()}"
        )

        totals = self.usage(window)
        tier = self.tier()
        snapshot = UsageSnapshot.build(
            totals,
            limit=self.plan_limit(tier),
            window=window,
            plan_name=self.plan_name(tier),
            tier=tier,
        )
        self.diagnostics.write(
            f"used={snapshot.used} limit={snapshot.limit} remaining={snapshot.remaining} "
            f"earliest={snapshot.earliest.isoformat() if snapshot.earliest else None}"
        )
        return snapshot
