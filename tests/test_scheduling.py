"""Tests for the calendar helpers."""

from __future__ import annotations

from datetime import date

import pytest

from orenemr import scheduling


@pytest.mark.parametrize(
    "value,expected",
    [
        ("00:30", "12:30 AM"),
        ("09:05", "9:05 AM"),
        ("12:00", "12:00 PM"),
        ("14:05", "2:05 PM"),
    ],
)
def test_format_time_12h(value: str, expected: str) -> None:
    assert scheduling.format_time_12h(value) == expected


def test_format_time_range() -> None:
    assert scheduling.format_time_range({"start": "09:00", "end": "09:30"}) == (
        "9:00 AM - 9:30 AM"
    )
    assert scheduling.format_time_range({"start": "09:00"}) == ""


def test_text_color_for_background() -> None:
    assert scheduling.text_color_for("#ffffff") == "#000000"
    assert scheduling.text_color_for("#1a237e") == "#ffffff"
    assert scheduling.text_color_for(None) == "#000000"


@pytest.mark.parametrize(
    "stored", ["#fff", "red", "#12345g", "#ffffff;background:url(x)", "#ffffff\n"]
)
def test_malformed_color_falls_back_to_default(stored: str) -> None:
    assert scheduling.safe_color(stored) == scheduling.DEFAULT_EVENT_COLOR
    assert scheduling.text_color_for(stored) == "#000000"


def test_safe_color_keeps_hex_and_custom_default() -> None:
    assert scheduling.safe_color("#1A237E") == "#1A237E"
    assert scheduling.safe_color(None, "#000000") == "#000000"


def test_group_by_date_sorts_days_and_times() -> None:
    appointments = [
        {"_id": "b", "date": "2024-05-02T00:00:00Z", "time": {"start": "10:00"}},
        {"_id": "c", "date": "2024-05-01T00:00:00Z", "time": {"start": "15:00"}},
        {"_id": "a", "date": "2024-05-01T00:00:00Z", "time": {"start": "08:30"}},
    ]

    days = scheduling.group_by_date(appointments)

    assert list(days) == ["2024-05-01", "2024-05-02"]
    assert [a["_id"] for a in days["2024-05-01"]] == ["a", "c"]


def test_month_grid_starts_on_sunday() -> None:
    # May 2024 starts on a Wednesday
    grid = scheduling.month_grid(2024, 5)

    assert grid[0][:3] == [None, None, None]
    assert grid[0][3] == date(2024, 5, 1)
    assert all(len(week) == 7 for week in grid)
    assert grid[-1][5] == date(2024, 5, 31)


def test_week_days_sunday_to_saturday() -> None:
    days = scheduling.week_days(date(2024, 5, 15))  # a Wednesday

    assert days[0] == date(2024, 5, 12)
    assert days[-1] == date(2024, 5, 18)
    assert scheduling.week_days(date(2024, 5, 12))[0] == date(2024, 5, 12)


def test_status_counts_default_to_scheduled() -> None:
    counts = scheduling.status_counts([{"status": "completed"}, {}, {}])

    assert counts == {"completed": 1, "scheduled": 2}


def test_times_overlap() -> None:
    nine = {"start": "09:00", "end": "10:00"}

    assert scheduling.times_overlap(nine, {"start": "09:30", "end": "10:30"})
    assert not scheduling.times_overlap(nine, {"start": "10:00", "end": "11:00"})


def test_dashboard_windows() -> None:
    windows = scheduling.dashboard_windows(date(2024, 5, 30))

    assert windows["today"] == ("2024-05-30", "2024-05-31")
    assert windows["upcoming"] == ("2024-05-31", "2024-06-06")
