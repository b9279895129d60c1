"""Calendar helpers for the appointment pages and dashboard."""

from __future__ import annotations

import calendar
import re
from collections import Counter, defaultdict
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

DEFAULT_EVENT_COLOR = "#ffffff"
HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def format_time_12h(value: str) -> str:
    """Format "14:05" as "2:05 PM" and "00:30" as "12:30 AM"."""
    hours, _, minutes = value.partition(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def format_time_range(time: dict[str, str]) -> str:
    start, end = time.get("start"), time.get("end")
    if not start or not end:
        return ""
    return f"{format_time_12h(start)} - {format_time_12h(end)}"


def brightness(hex_color: str) -> float:
    """Perceived brightness (0-255) of a "#rrggbb" color."""
    value = hex_color.lstrip("#")
    r, g, b = (int(value[i : i + 2], 16) for i in (0, 2, 4))
    return (r * 299 + g * 587 + b * 114) / 1000


def safe_color(value: str | None, default: str = DEFAULT_EVENT_COLOR) -> str:
    """The value if it is a "#rrggbb" color, otherwise the default."""
    if value and HEX_COLOR.fullmatch(value):
        return value
    return default


def text_color_for(hex_color: str | None) -> str:
    """Black text on light backgrounds, white on dark ones."""
    light = brightness(safe_color(hex_color)) > 128
    return "#000000" if light else "#ffffff"


def appointment_date(appointment: dict[str, Any]) -> str:
    """The "YYYY-MM-DD" part of an appointment's date."""
    return str(appointment.get("date") or "")[:10]


def group_by_date(
    appointments: Iterable[dict[str, Any]],
) -> dict[str, list[dict[str, Any]]]:
    """Appointments keyed by day, each day ordered by start time."""
    days: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for appt in appointments:
        days[appointment_date(appt)].append(appt)
    for appts in days.values():
        appts.sort(key=lambda a: (a.get("time") or {}).get("start", ""))
    return dict(sorted(days.items()))


def month_grid(year: int, month: int) -> list[list[date | None]]:
    """Weeks of the month starting on Sunday; days outside it are None."""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    return [
        [day if day.month == month else None for day in week]
        for week in cal.monthdatescalendar(year, month)
    ]


def week_days(anchor: date) -> list[date]:
    """The Sunday-to-Saturday week containing ``anchor``."""
    start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    return [start + timedelta(days=i) for i in range(7)]


def status_counts(appointments: Iterable[dict[str, Any]]) -> dict[str, int]:
    return dict(Counter(a.get("status", "scheduled") for a in appointments))


def times_overlap(a: dict[str, str], b: dict[str, str]) -> bool:
    """Whether two "HH:MM" ranges on the same day overlap."""
    return a["start"] < b["end"] and b["start"] < a["end"]


def dashboard_windows(today: date) -> dict[str, tuple[str, str]]:
    """Date ranges the dashboard queries: today's and the coming week's
    appointments, as ("startDate", "endDate") pairs."""
    tomorrow = today + timedelta(days=1)
    next_week = today + timedelta(days=7)
    return {
        "today": (today.isoformat(), tomorrow.isoformat()),
        "upcoming": (tomorrow.isoformat(), next_week.isoformat()),
    }
