"""Tests for accounting window detection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from claude_battery.usage.window import (
    AccountingWindow,
    anchor_boundary_hours,
    anchored_window,
    detect_window,
    infer_block_start,
    inferred_window,
    truncate_to_hour,
)
from conftest import NOW, assistant_entry, hours, user_entry, write_jsonl

T = datetime(2026, 2, 19, 8, 15, tzinfo=timezone.utc)


def utc(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 2, day, hour, minute, tzinfo=timezone.utc)


class TestAccountingWindow:
    def test_starting_at(self):
        window = AccountingWindow.starting_at(utc(19, 8))
        assert window.end == window.start + timedelta(hours=5)
        assert window.duration == timedelta(hours=5)

    def test_half_open(self):
        window = AccountingWindow.starting_at(utc(19, 8))
        assert window.contains(utc(19, 8))
        assert window.contains(utc(19, 12, 59))
        assert not window.contains(utc(19, 13))
        assert not window.contains(utc(19, 7, 59))

    def test_truncate_to_hour(self):
        assert truncate_to_hour(datetime(2026, 2, 19, 8, 59, 59, 999, tzinfo=timezone.utc)) == utc(19, 8)


class TestAnchorBoundaries:
    def test_anchor_8(self):
        assert anchor_boundary_hours(8) == [4, 8, 13, 18, 23]

    def test_anchor_0(self):
        assert anchor_boundary_hours(0) == [0, 5, 10, 15, 20]

    @pytest.mark.parametrize("anchor", range(24))
    def test_five_boundaries_spaced_five_hours_from_anchor(self, anchor):
        boundaries = anchor_boundary_hours(anchor)
        assert len(boundaries) == 5
        assert boundaries == sorted((anchor + 5 * k) % 24 for k in range(5))
        assert anchor in boundaries

    @pytest.mark.parametrize("anchor", [-1, 24, 100])
    def test_out_of_range(self, anchor):
        with pytest.raises(ValueError):
            anchor_boundary_hours(anchor)


class TestAnchoredWindow:
    def test_latest_boundary_before_now(self):
        window = anchored_window(8, utc(19, 14, 20))
        assert window.start == utc(19, 13)
        assert window.end == utc(19, 18)
        assert window.mode == "anchored"

    def test_exactly_on_boundary(self):
        window = anchored_window(8, utc(19, 4))
        assert window.start == utc(19, 4)

    def test_rolls_back_to_previous_day(self):
        window = anchored_window(8, utc(19, 2, 10))
        assert window.start == utc(18, 23)
        assert window.end == utc(19, 4)

    def test_reference_timezone(self):
        jst = timezone(timedelta(hours=9))
        # 05:30 UTC is 14:30 JST -> 13:00 JST boundary -> 04:00 UTC
        window = anchored_window(8, utc(19, 5, 30), tz=jst)
        assert window.start == utc(19, 4)
        assert window.start.tzinfo == timezone.utc
        assert window.end == utc(19, 9)

    def test_reference_timezone_previous_day(self):
        jst = timezone(timedelta(hours=9))
        # 17:00 UTC on the 18th is 02:00 JST on the 19th -> 23:00 JST on the 18th
        window = anchored_window(8, utc(18, 17), tz=jst)
        assert window.start == utc(18, 14)

    def test_boundary_in_dst_gap(self):
        try:
            new_york = ZoneInfo("America/New_York")
        except ZoneInfoNotFoundError:
            pytest.skip("tz database not available")
        # 2026-03-08 is spring-forward: local 02:00 does not exist.
        # 09:30 UTC is 05:30 EDT, so the 02:00 boundary applies and lands on 03:00 EDT.
        now = datetime(2026, 3, 8, 9, 30, tzinfo=timezone.utc)
        window = anchored_window(2, now, tz=new_york)
        assert window.start == datetime(2026, 3, 8, 7, tzinfo=timezone.utc)
        assert window.end == datetime(2026, 3, 8, 12, tzinfo=timezone.utc)
        assert window.duration == hours(5)
        assert window.start.astimezone(new_york).hour == 3


class TestInferBlockStart:
    def test_no_timestamps(self):
        assert infer_block_start([]) is None

    def test_single_block(self):
        assert infer_block_start([T, T + hours(1)]) == utc(19, 8)

    def test_gap_starts_new_block(self):
        # T+1:00 -> T+6:30 is a 5.5h gap
        start = infer_block_start([T, T + hours(1), T + hours(6.5)])
        assert start == truncate_to_hour(T + hours(6.5))
        assert start == utc(19, 14)

    def test_gap_of_exactly_window_length(self):
        assert infer_block_start([T, T + hours(5)]) == utc(19, 13)

    def test_block_end_without_gap(self):
        # Continuous activity: a new block starts once past the block end (13:00)
        stamps = [T, T + hours(2), T + hours(4), T + hours(6)]
        assert infer_block_start(stamps) == utc(19, 14)

    def test_unsorted_input(self):
        assert infer_block_start([T + hours(6.5), T, T + hours(1)]) == utc(19, 14)


class TestInferredWindow:
    def test_now_inside_candidate(self):
        window = inferred_window([T, T + hours(1)], now=utc(19, 10))
        assert window.start == utc(19, 8)
        assert window.end == utc(19, 13)
        assert window.mode == "inferred"

    def test_now_past_candidate_end(self):
        window = inferred_window([T, T + hours(1)], now=utc(19, 13, 45))
        assert window.start == utc(19, 13)
        assert window.end == utc(19, 18)
        assert window.mode == "fallback"

    def test_now_before_candidate(self):
        window = inferred_window([T], now=utc(19, 6, 30))
        assert window.start == utc(19, 6)
        assert window.mode == "fallback"

    def test_no_activity(self):
        window = inferred_window([], now=NOW)
        assert window.start == utc(19, 12)
        assert window.end == utc(19, 17)

    def test_scenario_second_block(self):
        window = inferred_window([T, T + hours(1), T + hours(6.5)], now=T + hours(7))
        assert window.start == utc(19, 14)
        assert window.end == utc(19, 19)


class TestDetectWindow:
    def test_inferred_from_logs(self, projects_dir: Path):
        write_jsonl(
            projects_dir / "p" / "s1.jsonl",
            [user_entry("a", NOW - hours(3)), assistant_entry("b", NOW - hours(2.9))],
        )
        write_jsonl(projects_dir / "q" / "s2.jsonl", [assistant_entry("c", NOW - hours(2))])

        window = detect_window(projects_dir, NOW)
        assert window.start == utc(19, 9)
        assert window.mode == "inferred"

    def test_ignores_events_older_than_lookback(self, projects_dir: Path):
        write_jsonl(
            projects_dir / "p" / "s.jsonl",
            [assistant_entry("old", NOW - hours(30)), assistant_entry("new", NOW - hours(1))],
        )
        window = detect_window(projects_dir, NOW, lookback_hours=24)
        assert window.start == utc(19, 11)

    def test_empty_directory_falls_back_to_now(self, projects_dir: Path):
        window = detect_window(projects_dir, NOW)
        assert window.start == utc(19, 12)
        assert window.mode == "fallback"

    def test_missing_directory(self, tmp_path: Path):
        window = detect_window(tmp_path / "missing", NOW)
        assert window.start == utc(19, 12)

    def test_anchor_overrides_logs(self, projects_dir: Path):
        write_jsonl(projects_dir / "p" / "s.jsonl", [assistant_entry("a", NOW - hours(1))])
        window = detect_window(projects_dir, NOW, anchor_hour=8)
        assert window.start == utc(19, 8)
        assert window.mode == "anchored"
