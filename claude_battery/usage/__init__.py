from claude_battery.usage.aggregator import UsageAggregator, UsageTotals, aggregate, aggregate_files
from claude_battery.usage.events import UsageEvent, iter_events, iter_log_files, parse_event
from claude_battery.usage.plans import PlanLimitTable, resolve_limit, resolve_plan_name
from claude_battery.usage.service import UsageService, UsageSnapshot, snapshot_to_dict
from claude_battery.usage.window import AccountingWindow, detect_window

__all__ = [
    "AccountingWindow",
    "PlanLimitTable",
    "UsageAggregator",
    "UsageEvent",
    "UsageService",
    "UsageSnapshot",
    "UsageTotals",
    "aggregate",
    "aggregate_files",
    "detect_window",
    "iter_events",
    "iter_log_files",
    "parse_event",
    "resolve_limit",
    "resolve_plan_name",
    "snapshot_to_dict",
]
