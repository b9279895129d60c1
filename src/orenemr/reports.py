"""Patient report helpers: the unsettled-case list and its columns."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any


def unsettled_cases(patients: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Patients with no discharge visit yet."""
    return [
        p
        for p in patients
        if not any(v.get("visitType") == "discharge" for v in p.get("visits") or [])
    ]


def filter_patients(
    patients: Iterable[dict[str, Any]], term: str
) -> list[dict[str, Any]]:
    """Case-insensitive match on full name, phone or email."""
    term = term.strip().lower()
    if not term:
        return list(patients)
    return [
        p
        for p in patients
        if term in f"{p.get('firstName', '')} {p.get('lastName', '')}".lower()
        or term in (p.get("phone") or "")
        or term in (p.get("email") or "").lower()
    ]


def calculate_age(date_of_birth: str | date, today: date | None = None) -> int:
    today = today or date.today()
    if isinstance(date_of_birth, str):
        date_of_birth = date.fromisoformat(date_of_birth[:10])
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def last_visit_date(visits: Iterable[dict[str, Any]]) -> str:
    """Date ("YYYY-MM-DD") of the most recent visit, or "No visits"."""
    dates = [str(v["date"])[:10] for v in visits if v.get("date")]
    return max(dates) if dates else "No visits"
