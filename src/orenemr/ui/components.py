"""Widgets shared by several pages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.models import ref_id, ref_name
from orenemr.resources import auth as auth_api
from orenemr.resources import patients as patients_api
from orenemr.ui import session

logger = logging.getLogger(__name__)

PICKER_LIMIT = 200


def api_failed(action: str, exc: OrenEMRAPIError) -> None:
    """Log a failed call and tell the user."""
    logger.warning("%s failed: %s", action, exc)
    st.error(f"{action} failed: {exc.message}")


def show_errors(errors: dict[str, str]) -> None:
    listed = "\n".join(f"- {message}" for message in errors.values())
    st.error("Please fix the following:\n\n" + listed)


def person(value: Any, default: str = "Unknown") -> str:
    return ref_name(value, default)


# The token argument keys each cache to one login.


@st.cache_data(ttl=60, show_spinner=False)
def _doctors(token: str) -> list[dict[str, Any]]:
    return session.call(auth_api.list_doctors)


@st.cache_data(ttl=30, show_spinner=False)
def _patients(token: str) -> list[dict[str, Any]]:
    data = session.call(patients_api.list_patients, limit=PICKER_LIMIT)
    return data.get("patients", [])


def _choices(
    loader: Callable[[str], list[dict[str, Any]]], what: str
) -> list[dict[str, Any]]:
    """Picker options, or none (with an error shown) when loading fails."""
    try:
        return loader(st.session_state.get("token", ""))
    except OrenEMRAPIError as exc:
        api_failed(f"Loading {what}", exc)
        return []


def doctor_picker(label: str, current: Any = None, key: str | None = None) -> str:
    """Select box over doctors; returns the chosen doctor id ("" if none)."""
    doctors = _choices(_doctors, "doctors")
    ids = [""] + [d["_id"] for d in doctors]
    names = {d["_id"]: person(d) for d in doctors}
    current_id = ref_id(current)
    return st.selectbox(
        label,
        ids,
        index=ids.index(current_id) if current_id in ids else 0,
        format_func=lambda i: names.get(i, "Select a doctor"),
        key=key,
    )


def patient_picker(label: str, current: Any = None, key: str | None = None) -> str:
    """Select box over patients; returns the chosen patient id ("" if none)."""
    patients = _choices(_patients, "patients")
    ids = [""] + [p["_id"] for p in patients]
    names = {p["_id"]: person(p) for p in patients}
    current_id = ref_id(current)
    return st.selectbox(
        label,
        ids,
        index=ids.index(current_id) if current_id in ids else 0,
        format_func=lambda i: names.get(i, "Select a patient"),
        key=key,
    )


def refresh_pickers() -> None:
    """Forget cached patient and doctor lists after they change."""
    _doctors.clear()
    _patients.clear()


def current_page(key: str) -> int:
    return int(st.session_state.get(key, 1))


def pager(total_pages: int, key: str) -> None:
    """Page selector below a list; the choice is read back with current_page()."""
    total_pages = max(int(total_pages or 1), 1)
    if current_page(key) > total_pages:
        st.session_state[key] = total_pages
    st.number_input(
        f"Page (of {total_pages})", min_value=1, max_value=total_pages, step=1, key=key
    )


def lines(text: str) -> list[str]:
    """Split a text area into its non-blank lines."""
    return [line.strip() for line in text.splitlines() if line.strip()]
