"""Entry point for claude-battery."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from claude_battery.config import settings
from claude_battery.usage.service import (
    UsageService,
    UsageSnapshot,
    format_duration,
    format_tokens,
    snapshot_to_dict,
)

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _style(percent: int) -> str:
    if percent > 50:
        return "green"
    if percent > 20:
        return "yellow"
    return "red"


def render_snapshot(snapshot: UsageSnapshot, now: datetime | None = None) -> Panel:
    now = now or datetime.now(timezone.utc)
    pct = snapshot.remaining_percent
    style = _style(pct)

    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Remaining", f"[bold {style}]{pct}%[/bold {style}]")
    table.add_row("Tokens", f"{format_tokens(snapshot.remaining)} / {format_tokens(snapshot.limit)}")
    table.add_row("Used", format_tokens(snapshot.used))
    table.add_row(
        "Resets",
        f"{snapshot.window_end.astimezone():%H:%M} "
        f"(in {format_duration(snapshot.resets_in_seconds(now))})",
    )
    table.add_row("Window", snapshot.window_mode)
    if not snapshot.has_data:
        table.add_row("", "[dim]no activity in this window[/dim]")

    return Panel(table, title=f"Claude {snapshot.plan_name}", style=style, expand=False)


def run_status(service: UsageService, as_json: bool = False) -> None:
    """Print the current usage snapshot."""
    with console.status("[bold green]Scanning session logs..."):
        snapshot = service.snapshot()
    if as_json:
        print(json.dumps(snapshot_to_dict(snapshot), indent=2))
        return
    console.print(render_snapshot(snapshot))


def run_window(service: UsageService) -> None:
    window = service.current_window()
    console.print(
        f"[bold]{window.start.astimezone():%Y-%m-%d %H:%M}[/bold] -> "
        f"[bold]{window.end.astimezone():%Y-%m-%d %H:%M}[/bold] [dim]({window.mode})[/dim]"
    )


def run_anchor(service: UsageService, action: str, hour: int | None = None) -> int:
    if action == "set":
        try:
            service.anchors.save(hour)  # type: ignore[arg-type]
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            return 2
        console.print(f"Reset anchor set to [bold]{hour:02d}:00[/bold] ({service.config.reference_timezone})")
    elif action == "clear":
        service.anchors.clear()
        console.print("Reset anchor cleared; window boundaries will be inferred")
    else:
        current = service.anchors.load()
        if current is None:
            console.print("No reset anchor configured (inferred mode)")
        else:
            console.print(f"Reset anchor: [bold]{current:02d}:00[/bold] ({service.config.reference_timezone})")
    return 0


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting claude-battery API server", style="bold green"))
    uvicorn.run(
        "claude_battery.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Claude Code rate-limit usage from local logs")
    sub = parser.add_subparsers(dest="command")

    status_parser = sub.add_parser("status", help="Show current usage")
    status_parser.add_argument("--json", action="store_true", help="Print JSON instead of a panel")

    sub.add_parser("window", help="Show the active accounting window")

    anchor_parser = sub.add_parser("anchor", help="Show, set or clear the reset anchor hour")
    anchor_sub = anchor_parser.add_subparsers(dest="action")
    anchor_sub.add_parser("show")
    set_parser = anchor_sub.add_parser("set")
    set_parser.add_argument("hour", type=int, help="Hour of day (0-23)")
    anchor_sub.add_parser("clear")

    sub.add_parser("serve", help="Start the API server")

    args = parser.parse_args(argv)

    if args.command == "serve":
        run_server()
        return
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    service = UsageService()
    if args.command == "status":
        run_status(service, as_json=args.json)
    elif args.command == "window":
        run_window(service)
    elif args.command == "anchor":
        code = run_anchor(service, args.action or "show", getattr(args, "hour", None))
        if code:
            sys.exit(code)


if __name__ == "__main__":
    main()
