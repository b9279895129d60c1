"""Unsettled case report and report sharing."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.reports import (
    calculate_age,
    filter_patients,
    last_visit_date,
    unsettled_cases,
)
from orenemr.resources import patients as patients_api
from orenemr.resources import reports as reports_api
from orenemr.ui import components, session

logger = logging.getLogger(__name__)

REPORT_LIMIT = 1000


def report_rows(patients: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {
            "Name": components.person(p),
            "Age": calculate_age(p["dateOfBirth"]) if p.get("dateOfBirth") else "",
            "Phone": p.get("phone", ""),
            "Email": p.get("email", ""),
            "Doctor": components.person(p.get("assignedDoctor"), ""),
            "Last visit": last_visit_date(p.get("visits") or []),
        }
        for p in patients
    ]


def _csv(rows: list[dict[str, Any]]) -> str:
    buffer = io.StringIO()
    if rows:
        writer = csv.DictWriter(buffer, fieldnames=list(rows[0]))
        writer.writeheader()
        writer.writerows(rows)
    return buffer.getvalue()


def _share_panel() -> None:
    st.subheader("Email a report")
    with st.form("share-report", clear_on_submit=True):
        upload = st.file_uploader("Report PDF", type=["pdf"])
        email = st.text_input("Send to")
        submitted = st.form_submit_button("Upload and send")
    if not submitted:
        return
    if upload is None or not email:
        st.error("Choose a PDF and enter an email address.")
        return
    try:
        session.call(reports_api.upload_report, upload.name, upload.getvalue())
        session.call(reports_api.email_report, email, upload.name)
    except OrenEMRAPIError as exc:
        components.api_failed("Sending the report", exc)
        return
    st.success(f"{upload.name} sent to {email}.")


def unsettled_cases_page() -> None:
    st.title("Unsettled cases")
    st.caption("Active patients without a discharge visit.")
    try:
        data = session.call(
            patients_api.list_patients, limit=REPORT_LIMIT, status="active"
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading patients", exc)
        return

    cases = unsettled_cases(data.get("patients", []))
    st.metric("Unsettled cases", len(cases))
    search = st.text_input("Search by name, phone or email")
    rows = report_rows(filter_patients(cases, search))
    if rows:
        st.dataframe(rows, use_container_width=True, hide_index=True)
        st.download_button(
            "Download CSV", _csv(rows), file_name="unsettled-cases.csv", mime="text/csv"
        )
    else:
        st.info("No matching patients.")
    _share_panel()
