"""Tests for the unsettled-case report helpers."""

from __future__ import annotations

from datetime import date
from typing import Any

from orenemr import reports

PATIENTS = [
    {
        "firstName": "Ana",
        "lastName": "Lopez",
        "phone": "555-0100",
        "email": "Ana@Example.com",
        "visits": [
            {"visitType": "initial", "date": "2024-01-10T09:00:00Z"},
            {"visitType": "followup", "date": "2024-02-12T09:00:00Z"},
        ],
    },
    {
        "firstName": "Ben",
        "lastName": "Cruz",
        "phone": "555-0199",
        "email": "ben@example.com",
        "visits": [{"visitType": "discharge", "date": "2024-03-01T09:00:00Z"}],
    },
    {"firstName": "Cy", "lastName": "Diaz", "visits": []},
]


def _names(patients: list[dict[str, Any]]) -> list[str]:
    return [p["firstName"] for p in patients]


def test_unsettled_cases_exclude_discharged() -> None:
    cases = reports.unsettled_cases(PATIENTS)

    assert [p["firstName"] for p in cases] == ["Ana", "Cy"]


def test_filter_patients_by_name_phone_or_email() -> None:
    assert _names(reports.filter_patients(PATIENTS, "ana lo")) == ["Ana"]
    assert _names(reports.filter_patients(PATIENTS, "0199")) == ["Ben"]
    assert _names(reports.filter_patients(PATIENTS, "ANA@")) == ["Ana"]
    assert len(reports.filter_patients(PATIENTS, "  ")) == 3


def test_calculate_age_before_and_after_birthday() -> None:
    today = date(2024, 6, 15)

    assert reports.calculate_age("1990-06-15T00:00:00Z", today) == 34
    assert reports.calculate_age(date(1990, 6, 16), today) == 33


def test_last_visit_date() -> None:
    assert reports.last_visit_date(PATIENTS[0]["visits"]) == "2024-02-12"
    assert reports.last_visit_date([]) == "No visits"
