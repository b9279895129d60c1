"""Dashboard: patient count, today's and upcoming appointments, billing."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

import streamlit as st

from orenemr.api_client import OrenEMRAPIError, OrenEMRClient
from orenemr.resources import appointments as appointments_api
from orenemr.resources import billing as billing_api
from orenemr.resources import patients as patients_api
from orenemr.scheduling import dashboard_windows, format_time_range, status_counts
from orenemr.ui import components, session

logger = logging.getLogger(__name__)


async def load_dashboard(client: OrenEMRClient, today: date) -> dict[str, Any]:
    windows = dashboard_windows(today)
    patients, todays, upcoming, billing = await asyncio.gather(
        patients_api.list_patients(client, limit=1),
        appointments_api.list_appointments(client, *windows["today"]),
        appointments_api.list_appointments(client, *windows["upcoming"]),
        billing_api.billing_summary(client),
    )
    return {
        "patientCount": patients.get("totalPatients", 0),
        "today": todays,
        "upcoming": upcoming,
        "appointmentStats": status_counts(todays + upcoming),
        "billing": billing,
    }


def _appointment_rows(appointments: list[dict[str, Any]]) -> list[dict[str, str]]:
    return [
        {
            "Date": str(a.get("date", ""))[:10],
            "Time": format_time_range(a.get("time") or {}),
            "Patient": components.person(a.get("patient")),
            "Doctor": components.person(a.get("doctor")),
            "Status": a.get("status", ""),
        }
        for a in appointments
    ]


def dashboard_page() -> None:
    user = session.current_user() or {}
    st.title("Dashboard")
    st.caption(f"Welcome, {components.person(user, '')}".strip(" ,"))

    try:
        data = session.call(load_dashboard, date.today())
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the dashboard", exc)
        return

    cols = st.columns(4)
    cols[0].metric("Patients", data["patientCount"])
    cols[1].metric("Appointments today", len(data["today"]))
    cols[2].metric("Upcoming (7 days)", len(data["upcoming"]))
    cols[3].metric("Outstanding", f"${data['billing'].get('outstanding', 0):,.2f}")

    st.subheader("Today's appointments")
    if data["today"]:
        st.dataframe(
            _appointment_rows(data["today"]), use_container_width=True, hide_index=True
        )
    else:
        st.info("No appointments today.")

    left, right = st.columns(2)
    with left:
        st.subheader("Appointments by status")
        stats = data["appointmentStats"]
        if stats:
            st.bar_chart(stats)
        else:
            st.caption("Nothing scheduled this week.")
    with right:
        st.subheader("Billing this month")
        billing = data["billing"]
        st.metric("Billed", f"${billing.get('billedThisMonth', 0):,.2f}")
        st.metric("Collected", f"${billing.get('collectedThisMonth', 0):,.2f}")

    st.subheader("Upcoming appointments")
    if data["upcoming"]:
        st.dataframe(
            _appointment_rows(data["upcoming"]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No upcoming appointments.")
