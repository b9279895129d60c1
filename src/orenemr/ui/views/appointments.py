"""Appointment calendar, list, form and details."""

from __future__ import annotations

import logging
from datetime import date, time, timedelta
from typing import Any

import streamlit as st

from orenemr.api_client import AppointmentConflictError, OrenEMRAPIError
from orenemr.models import Appointment, ref_id
from orenemr.resources import appointments as appointments_api
from orenemr.resources import google_calendar as calendar_api
from orenemr.scheduling import (
    appointment_date,
    format_time_range,
    group_by_date,
    month_grid,
    week_days,
)
from orenemr.ui import components, session
from orenemr.validation import validate_appointment

logger = logging.getLogger(__name__)

TYPES = ("initial", "followup", "discharge", "consultation", "other")
STATUSES = ("scheduled", "completed", "cancelled", "no-show")
STATUS_ICONS = {
    "scheduled": "🔵",
    "completed": "🟢",
    "cancelled": "🔴",
    "no-show": "🟡",
}


def _status(appointment: dict[str, Any]) -> str:
    status = appointment.get("status", "scheduled")
    return f"{STATUS_ICONS.get(status, '')} {status}".strip()


def _rows(appointments: list[dict[str, Any]]) -> list[dict[str, str]]:
    return [
        {
            "Date": appointment_date(a),
            "Time": format_time_range(a.get("time") or {}),
            "Patient": components.person(a.get("patient")),
            "Doctor": components.person(a.get("doctor")),
            "Type": a.get("type", ""),
            "Status": _status(a),
        }
        for a in appointments
    ]


# --- Calendar ---


def _day_cell(day: date | None, appointments: list[dict[str, Any]]) -> None:
    if day is None:
        return
    label = f"**{day.day}**" if day == date.today() else str(day.day)
    st.markdown(label)
    for appt in appointments:
        start = (appt.get("time") or {}).get("start", "")
        text = f"{STATUS_ICONS.get(appt.get('status', ''), '')} {start} "
        text += components.person(appt.get("patient"))
        if st.button(text, key=f"cal-{appt['_id']}", use_container_width=True):
            session.navigate("appointment", id=appt["_id"])


def calendar_page() -> None:
    st.title("Appointments")
    top = st.columns([2, 2, 1, 1])
    view = top[0].radio("View", ("Month", "Week"), horizontal=True)
    anchor = top[1].date_input("Go to", date.today())
    if top[2].button("List view"):
        session.navigate("appointments-list")
    if top[3].button("New", type="primary"):
        session.navigate("appointment-new")

    if view == "Month":
        weeks = month_grid(anchor.year, anchor.month)
        days = [day for week in weeks for day in week if day is not None]
    else:
        weeks = [week_days(anchor)]
        days = weeks[0]

    try:
        appointments = session.call(
            appointments_api.list_appointments,
            days[0].isoformat(),
            days[-1].isoformat(),
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading appointments", exc)
        return
    by_day = group_by_date(appointments)

    st.subheader(anchor.strftime("%B %Y"))
    header = st.columns(7)
    for col, name in zip(header, ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")):
        col.caption(name)
    for week in weeks:
        for col, day in zip(st.columns(7, border=True), week):
            with col:
                _day_cell(day, by_day.get(day.isoformat(), []) if day else [])


# --- List ---


def appointment_list_page() -> None:
    st.title("Appointment list")
    c1, c2, c3, c4 = st.columns(4)
    start = c1.date_input("From", date.today())
    end = c2.date_input("To", date.today() + timedelta(days=30))
    status = c3.selectbox("Status", ("",) + STATUSES, format_func=lambda s: s or "All")
    with c4:
        doctor = components.doctor_picker("Doctor", key="appointments-doctor")
    if st.button("Calendar view"):
        session.navigate("appointments")

    try:
        appointments = session.call(
            appointments_api.list_appointments,
            start.isoformat(),
            end.isoformat(),
            status=status,
            doctor=doctor,
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading appointments", exc)
        return
    if not appointments:
        st.info("No appointments found.")
        return
    st.dataframe(_rows(appointments), use_container_width=True, hide_index=True)
    for appt in appointments:
        label = f"{appointment_date(appt)} {format_time_range(appt.get('time') or {})}"
        label += f" - {components.person(appt.get('patient'))}"
        if st.button(label, key=f"open-{appt['_id']}"):
            session.navigate("appointment", id=appt["_id"])


# --- Form ---


def _parse_time(value: str, fallback: time) -> time:
    try:
        return time.fromisoformat(value) if value else fallback
    except ValueError:
        return fallback


def appointment_form_page() -> None:
    appointment_id = session.param("id")
    st.title("Edit appointment" if appointment_id else "New appointment")
    if appointment_id:
        try:
            record = session.call(appointments_api.get_appointment, appointment_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Loading the appointment", exc)
            return
        form = Appointment.model_validate(record).to_payload()
    else:
        form = Appointment(patient=session.param("patient") or None).to_payload()

    slot = form.get("time", {})
    with st.form("appointment"):
        patient = components.patient_picker("Patient *", form.get("patient"))
        doctor = components.doctor_picker(
            "Doctor *", form.get("doctor") or (session.current_user() or {}).get("_id")
        )
        c1, c2, c3 = st.columns(3)
        booked = appointment_date(form)
        day = c1.date_input(
            "Date *", date.fromisoformat(booked) if booked else date.today()
        )
        start = c2.time_input("Start *", _parse_time(slot.get("start", ""), time(9, 0)))
        end = c3.time_input("End *", _parse_time(slot.get("end", ""), time(9, 30)))
        kind = c1.selectbox(
            "Type",
            TYPES,
            index=TYPES.index(form["type"]) if form["type"] in TYPES else 0,
        )
        status = c2.selectbox(
            "Status",
            STATUSES,
            index=STATUSES.index(form["status"]) if form["status"] in STATUSES else 0,
        )
        notes = st.text_area("Notes", form.get("notes", ""))
        submitted = st.form_submit_button("Save appointment", type="primary")

    if not submitted:
        return
    data = {
        **form,
        "patient": patient,
        "doctor": doctor,
        "date": day.isoformat(),
        "time": {"start": start.strftime("%H:%M"), "end": end.strftime("%H:%M")},
        "type": kind,
        "status": status,
        "notes": notes,
    }
    errors = validate_appointment(data)
    if errors:
        components.show_errors(errors)
        return
    try:
        saved = session.call(
            appointments_api.save_appointment, data, appointment_id or None
        )
    except AppointmentConflictError:
        st.error("This doctor already has an appointment in that time slot.")
        return
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the appointment", exc)
        return
    if saved.get("googleCalendarEventId"):
        _resync(saved["_id"])
    session.flash("Appointment saved.")
    session.navigate("appointment", id=saved.get("_id") or appointment_id)


def _resync(appointment_id: str) -> None:
    try:
        session.call(calendar_api.update_synced_appointment, appointment_id)
    except OrenEMRAPIError as exc:
        logger.warning("Google Calendar update for %s failed: %s", appointment_id, exc)
        session.flash("Saved, but the Google Calendar event was not updated.", "error")


# --- Details ---


def _google_panel(appointment: dict[str, Any]) -> None:
    appointment_id = appointment["_id"]
    st.subheader("Google Calendar")
    try:
        if appointment.get("googleCalendarEventId"):
            st.caption("Synced with Google Calendar.")
            c1, c2 = st.columns(2)
            if c1.button("Update event"):
                session.call(calendar_api.update_synced_appointment, appointment_id)
                st.success("Google Calendar event updated.")
            if c2.button("Remove event"):
                session.call(calendar_api.remove_synced_appointment, appointment_id)
                session.flash("Removed from Google Calendar.")
                session.navigate("appointment", id=appointment_id)
        elif st.button("Add to Google Calendar"):
            session.call(calendar_api.sync_appointment, appointment_id)
            session.flash("Added to Google Calendar.")
            session.navigate("appointment", id=appointment_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Google Calendar sync", exc)


def appointment_details_page() -> None:
    appointment_id = session.param("id")
    try:
        appointment = session.call(appointments_api.get_appointment, appointment_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the appointment", exc)
        return

    st.title("Appointment")
    c1, c2, c3 = st.columns(3)
    c1.metric("Date", appointment_date(appointment))
    c2.metric("Time", format_time_range(appointment.get("time") or {}))
    c3.metric("Status", _status(appointment))
    st.write(f"**Patient:** {components.person(appointment.get('patient'))}")
    st.write(f"**Doctor:** {components.person(appointment.get('doctor'))}")
    st.write(f"**Type:** {appointment.get('type', '')}")
    if appointment.get("notes"):
        st.write(f"**Notes:** {appointment['notes']}")

    if appointment.get("status") == "scheduled":
        notes = st.text_input("Notes for cancel / complete")
        c1, c2, c3 = st.columns(3)
        try:
            if c1.button("Complete", type="primary"):
                session.call(
                    appointments_api.complete_appointment, appointment_id, notes
                )
                session.flash("Appointment completed.")
                session.navigate("appointment", id=appointment_id)
            if c2.button("Cancel appointment"):
                session.call(appointments_api.cancel_appointment, appointment_id, notes)
                session.flash("Appointment cancelled.")
                session.navigate("appointment", id=appointment_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Updating the appointment", exc)
        if c3.button("Edit"):
            session.navigate("appointment-edit", id=appointment_id)

    _google_panel(appointment)

    st.divider()
    confirm = st.checkbox("I want to delete this appointment")
    if st.button("Delete", disabled=not confirm):
        try:
            if appointment.get("googleCalendarEventId"):
                session.call(calendar_api.remove_synced_appointment, appointment_id)
            session.call(appointments_api.delete_appointment, appointment_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Deleting the appointment", exc)
            return
        session.flash("Appointment deleted.")
        session.navigate("appointments")

    patient_id = ref_id(appointment.get("patient"))
    if patient_id and st.button("Open patient"):
        session.navigate("patient", id=patient_id)
