"""Patient list, patient form and patient details."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any

import streamlit as st

from orenemr.api_client import OrenEMRAPIError, OrenEMRClient
from orenemr.models import Attorney, Patient, ref_id
from orenemr.reports import calculate_age
from orenemr.resources import appointments as appointments_api
from orenemr.resources import billing as billing_api
from orenemr.resources import notes as notes_api
from orenemr.resources import patients as patients_api
from orenemr.scheduling import format_time_range
from orenemr.ui import components, session
from orenemr.validation import prepare_patient_payload, validate_patient

logger = logging.getLogger(__name__)

GENDERS = ("", "male", "female", "other")
SIDES = ("", "Left", "Right", "Bilateral")
HISTORY_FIELDS = {
    "allergies": "Allergies",
    "medications": "Medications",
    "conditions": "Conditions",
    "surgeries": "Surgeries",
    "familyHistory": "Family history",
}
SUBJECTIVE_FLAGS = {
    "radiatingRight": "Radiating right",
    "radiatingLeft": "Radiating left",
    "sciaticaRight": "Sciatica right",
    "sciaticaLeft": "Sciatica left",
}
PAGE_KEY = "patients-page"


def _date_or_none(value: Any) -> date | None:
    return date.fromisoformat(str(value)[:10]) if value else None


# --- List ---


def patient_list_page() -> None:
    st.title("Patients")
    top_left, top_right = st.columns([3, 1])
    search = top_left.text_input("Search by name or email", key="patients-search")
    if top_right.button("New patient", type="primary"):
        session.navigate("patient-new")

    try:
        data = session.call(
            patients_api.list_patients,
            page=components.current_page(PAGE_KEY),
            search=search,
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading patients", exc)
        return

    patients = data.get("patients", [])
    st.caption(f"{data.get('totalPatients', 0)} patient(s)")
    for p in patients:
        cols = st.columns([3, 2, 2, 2, 1])
        cols[0].write(f"**{components.person(p)}**")
        dob = p.get("dateOfBirth")
        cols[1].write(f"Age {calculate_age(dob)}" if dob else "")
        cols[2].write(p.get("phone", ""))
        cols[3].write(components.person(p.get("assignedDoctor"), "Unassigned"))
        if cols[4].button("Open", key=f"open-{p['_id']}"):
            session.navigate("patient", id=p["_id"])
    if not patients:
        st.info("No patients found.")
    components.pager(data.get("totalPages", 1), PAGE_KEY)


# --- Form ---


def _form_defaults(patient_id: str) -> dict[str, Any] | None:
    if not patient_id:
        return Patient().to_payload()
    try:
        record = session.call(patients_api.get_patient, patient_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the patient", exc)
        return None
    return Patient.model_validate(record).to_payload()


def _body_parts_editor(parts: list[dict[str, str]]) -> list[dict[str, str]]:
    rows = parts or [{"part": "", "side": ""}]
    edited = st.data_editor(
        rows,
        num_rows="dynamic",
        column_config={
            "part": st.column_config.TextColumn("Body part"),
            "side": st.column_config.SelectboxColumn("Side", options=list(SIDES)),
        },
        key="body-parts",
        use_container_width=True,
    )
    return [dict(row) for row in edited]


def patient_form_page() -> None:
    patient_id = session.param("id")
    st.title("Edit patient" if patient_id else "New patient")
    form = _form_defaults(patient_id)
    if form is None:
        return

    address = form.get("address", {})
    history = form.get("medicalHistory", {})
    subjective = form.get("subjective", {})
    attorney = form.get("attorney") or Attorney().to_payload()

    with st.form("patient"):
        st.subheader("Personal information")
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name *", form.get("firstName", ""))
        last_name = c2.text_input("Last name *", form.get("lastName", ""))
        dob = c1.date_input(
            "Date of birth *",
            _date_or_none(form.get("dateOfBirth")),
            min_value=date(1900, 1, 1),
            max_value=date.today(),
        )
        gender = form.get("gender", "")
        gender = c2.selectbox(
            "Gender",
            GENDERS,
            index=GENDERS.index(gender) if gender in GENDERS else 0,
        )
        email = c1.text_input("Email *", form.get("email", ""))
        phone = c2.text_input("Phone *", form.get("phone", ""))
        doctor = components.doctor_picker(
            "Assigned doctor *", form.get("assignedDoctor")
        )
        status = st.selectbox(
            "Status",
            ("active", "discharged"),
            index=1 if form.get("status") == "discharged" else 0,
        )

        st.subheader("Address")
        a1, a2 = st.columns(2)
        street = a1.text_input("Street", address.get("street", ""))
        city = a2.text_input("City", address.get("city", ""))
        state = a1.text_input("State", address.get("state", ""))
        zip_code = a2.text_input("ZIP code", address.get("zipCode", ""))
        country = a1.text_input("Country", address.get("country", ""))

        st.subheader("Medical history")
        st.caption("One entry per line.")
        history_text = {
            key: st.text_area(label, "\n".join(history.get(key, [])), height=80)
            for key, label in HISTORY_FIELDS.items()
        }

        st.subheader("Subjective")
        body_parts = _body_parts_editor(subjective.get("bodyPart", []))
        s1, s2 = st.columns(2)
        severity = s1.text_input("Severity", subjective.get("severity", ""))
        timing = s2.text_input("Timing", subjective.get("timing", ""))
        context = s1.text_input("Context", subjective.get("context", ""))
        radiating_to = s2.text_input("Radiating to", subjective.get("radiatingTo", ""))
        flags = {
            key: column.checkbox(label, subjective.get(key, False))
            for column, (key, label) in zip(st.columns(4), SUBJECTIVE_FLAGS.items())
        }
        subjective_notes = st.text_area("Notes", subjective.get("notes", ""))

        st.subheader("Attorney")
        t1, t2 = st.columns(2)
        attorney_name = t1.text_input("Attorney name", attorney.get("name", ""))
        attorney_firm = t2.text_input("Firm", attorney.get("firm", ""))
        attorney_phone = t1.text_input("Attorney phone", attorney.get("phone", ""))
        attorney_email = t2.text_input("Attorney email", attorney.get("email", ""))
        case_number = t1.text_input("Case number", attorney.get("caseNumber", ""))
        office = attorney.get("address", {})
        attorney_street = t2.text_input("Attorney street", office.get("street", ""))
        attorney_city = t1.text_input("Attorney city", office.get("city", ""))
        attorney_state = t2.text_input("Attorney state", office.get("state", ""))
        attorney_zip = t1.text_input("Attorney ZIP", office.get("zipCode", ""))

        submitted = st.form_submit_button("Save patient", type="primary")

    if st.button("Cancel"):
        if patient_id:
            session.navigate("patient", id=patient_id)
        session.navigate("patients")

    if not submitted:
        return

    data = {
        **form,
        "firstName": first_name,
        "lastName": last_name,
        "dateOfBirth": dob,
        "gender": gender,
        "email": email,
        "phone": phone,
        "assignedDoctor": doctor,
        "status": status,
        "address": {
            "street": street,
            "city": city,
            "state": state,
            "zipCode": zip_code,
            "country": country,
        },
        "medicalHistory": {
            key: components.lines(text) for key, text in history_text.items()
        },
        "subjective": {
            **subjective,
            "bodyPart": body_parts,
            "severity": severity,
            "timing": timing,
            "context": context,
            "radiatingTo": radiating_to,
            **flags,
            "notes": subjective_notes,
        },
        "attorney": {
            "name": attorney_name,
            "firm": attorney_firm,
            "phone": attorney_phone,
            "email": attorney_email,
            "caseNumber": case_number,
            "address": {
                "street": attorney_street,
                "city": attorney_city,
                "state": attorney_state,
                "zipCode": attorney_zip,
            },
        },
    }
    errors = validate_patient(data)
    if errors:
        components.show_errors(errors)
        return

    payload = prepare_patient_payload(data)
    try:
        if patient_id:
            saved = session.call(patients_api.update_patient, patient_id, payload)
        else:
            saved = session.call(patients_api.create_patient, payload)
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the patient", exc)
        return
    components.refresh_pickers()
    session.flash("Patient saved.")
    session.navigate("patient", id=ref_id(saved.get("patient", saved)) or patient_id)


# --- Details ---


async def load_patient_details(
    client: OrenEMRClient, patient_id: str
) -> dict[str, Any]:
    patient, visits, appointments, invoices, notes = await asyncio.gather(
        patients_api.get_patient(client, patient_id),
        patients_api.list_patient_visits(client, patient_id),
        appointments_api.list_appointments(client, patient=patient_id),
        billing_api.invoice_count(client, patient_id),
        notes_api.list_patient_notes(client, patient_id),
    )
    return {
        "patient": patient,
        "visits": visits,
        "appointments": appointments,
        "invoiceCount": invoices,
        "notes": notes,
    }


def _send_form_panel(patient: dict[str, Any]) -> None:
    with st.expander("Send intake form to patient"):
        with st.form("send-intake", clear_on_submit=True):
            email = st.text_input("Email", patient.get("email", ""))
            name = st.text_input("Name", components.person(patient, ""))
            instructions = st.text_area("Instructions")
            language = st.selectbox("Language", ("english", "spanish"))
            if not st.form_submit_button("Send"):
                return
        if not email:
            st.error("Email is required")
            return
        try:
            result = session.call(
                patients_api.send_form_to_client,
                email,
                name,
                instructions,
                language,
                patient["_id"],
            )
        except OrenEMRAPIError as exc:
            components.api_failed("Sending the form", exc)
            return
        st.success(f"Form link sent to {email}.")
        st.code(result.get("formLink", ""))


def patient_details_page() -> None:
    patient_id = session.param("id")
    try:
        data = session.call(load_patient_details, patient_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the patient", exc)
        if st.button("Back to patients"):
            session.navigate("patients")
        return

    patient = data["patient"]
    user = session.current_user() or {}
    st.title(components.person(patient))
    dob = patient.get("dateOfBirth")
    st.caption(
        f"{patient.get('gender', '').title()} | "
        + (f"Age {calculate_age(dob)} | " if dob else "")
        + f"Status: {patient.get('status', 'active')} | "
        f"Doctor: {components.person(patient.get('assignedDoctor'), 'Unassigned')}"
    )

    actions = st.columns(5)
    if actions[0].button("Edit"):
        session.navigate("patient-edit", id=patient_id)
    if user.get("role") in ("doctor", "admin"):
        if actions[1].button("Initial visit"):
            session.navigate("visit-initial", id=patient_id)
        if actions[2].button("Follow-up visit"):
            session.navigate("visit-followup", id=patient_id)
        if actions[3].button("Discharge visit"):
            session.navigate("visit-discharge", id=patient_id)
    if actions[4].button("Delete", type="secondary"):
        st.session_state["confirm-delete-patient"] = patient_id
    if st.session_state.get("confirm-delete-patient") == patient_id:
        st.warning("Delete this patient and their records?")
        if st.button("Yes, delete", type="primary"):
            try:
                session.call(patients_api.delete_patient, patient_id)
            except OrenEMRAPIError as exc:
                components.api_failed("Deleting the patient", exc)
                return
            components.refresh_pickers()
            session.flash("Patient deleted.")
            session.navigate("patients")

    contact, history = st.columns(2)
    with contact:
        st.subheader("Contact")
        st.write(f"Email: {patient.get('email', '')}")
        st.write(f"Phone: {patient.get('phone', '')}")
        address = patient.get("address") or {}
        st.write(", ".join(v for v in address.values() if isinstance(v, str) and v))
    with history:
        st.subheader("Medical history")
        for key, label in HISTORY_FIELDS.items():
            items = (patient.get("medicalHistory") or {}).get(key) or []
            st.write(f"**{label}:** {', '.join(items) if items else 'None'}")

    visits_tab, appts_tab, notes_tab = st.tabs(
        [
            f"Visits ({len(data['visits'])})",
            f"Appointments ({len(data['appointments'])})",
            f"Notes ({len(data['notes'])})",
        ]
    )
    with visits_tab:
        for visit in data["visits"]:
            cols = st.columns([2, 2, 2, 1])
            cols[0].write(str(visit.get("date", ""))[:10])
            cols[1].write(visit.get("visitType") or visit.get("__t", ""))
            cols[2].write(components.person(visit.get("doctor")))
            if cols[3].button("View", key=f"visit-{visit['_id']}"):
                session.navigate("visit", id=visit["_id"])
    with appts_tab:
        for appt in data["appointments"]:
            cols = st.columns([2, 2, 2, 1])
            cols[0].write(str(appt.get("date", ""))[:10])
            cols[1].write(format_time_range(appt.get("time") or {}))
            cols[2].write(appt.get("status", ""))
            if cols[3].button("View", key=f"appt-{appt['_id']}"):
                session.navigate("appointment", id=appt["_id"])
    with notes_tab:
        for note in data["notes"]:
            with st.expander(f"{note.get('title', '')} ({note.get('noteType', '')})"):
                st.markdown(note.get("content", ""))

    st.caption(f"Invoices on file: {data['invoiceCount']}")
    _send_form_panel(patient)
