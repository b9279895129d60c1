"""Clinical notes: list, form with attachments and AI drafts, print view."""

from __future__ import annotations

import html
import logging
from typing import Any, get_args

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.models import Note, NoteType, ref_id
from orenemr.resources import notes as notes_api
from orenemr.resources import patients as patients_api
from orenemr.scheduling import safe_color, text_color_for
from orenemr.ui import components, session
from orenemr.validation import validate_note

logger = logging.getLogger(__name__)

NOTE_TYPES = get_args(NoteType)
CODE_FIELDS = (
    ("Diagnosis codes", "diagnosisCodes"),
    ("Treatment codes", "treatmentCodes"),
)
PAGE_KEY = "notes-page"


def _index(options: tuple[str, ...], value: Any) -> int:
    return options.index(value) if value in options else 0


def _note_card(note: dict[str, Any]) -> None:
    color = safe_color(note.get("colorCode"))
    title = html.escape(note.get("title", ""))
    meta = html.escape(
        f"{note.get('noteType', '')} | {components.person(note.get('patient'))} | "
        f"{str(note.get('createdAt', ''))[:10]}"
    )
    badge = " (AI)" if note.get("isAiGenerated") else ""
    st.markdown(
        f'<div style="background:{color};color:{text_color_for(color)};'
        f'padding:0.6rem 0.8rem;border-radius:0.4rem;margin-bottom:0.3rem">'
        f"<strong>{title}</strong>{badge}<br><small>{meta}</small></div>",
        unsafe_allow_html=True,
    )


# --- List ---


def note_list_page() -> None:
    st.title("Clinical notes")
    c1, c2, c3, c4 = st.columns([2, 1, 2, 1])
    search = c1.text_input("Search", key="notes-search")
    note_type = c2.selectbox(
        "Type", ("",) + NOTE_TYPES, format_func=lambda t: t or "All"
    )
    with c3:
        patient = components.patient_picker("Patient", key="notes-patient")
    if c4.button("New note", type="primary"):
        session.navigate("note-new")

    try:
        data = session.call(
            notes_api.list_notes,
            page=components.current_page(PAGE_KEY),
            patient_id=patient,
            note_type=note_type,
            search=search,
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading notes", exc)
        return

    notes = data.get("notes", [])
    if not notes:
        st.info("No notes found.")
        return
    for note in notes:
        left, right = st.columns([5, 1])
        with left:
            _note_card(note)
        if right.button("Open", key=f"open-{note['_id']}"):
            session.navigate("note-edit", id=note["_id"])
        if right.button("Print", key=f"print-{note['_id']}"):
            session.navigate("note-print", id=note["_id"])
    components.pager(data.get("pagination", {}).get("pages", 1), PAGE_KEY)


# --- Form ---


def _codes_editor(
    label: str, codes: list[dict[str, str]], key: str
) -> list[dict[str, str]]:
    st.markdown(f"**{label}**")
    rows = [
        {"code": c.get("code", ""), "description": c.get("description", "")}
        for c in codes
    ]
    edited = st.data_editor(
        rows or [{"code": "", "description": ""}],
        num_rows="dynamic",
        key=key,
        use_container_width=True,
    )
    return [dict(row) for row in edited if row.get("code")]


def _visit_picker(patient_id: str, current: Any) -> str:
    if not patient_id:
        return ""
    try:
        visits = session.call(patients_api.list_patient_visits, patient_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading visits", exc)
        return ref_id(current)
    ids = [""] + [v["_id"] for v in visits]
    labels = {
        v["_id"]: f"{str(v.get('date', ''))[:10]} ({v.get('visitType', 'visit')})"
        for v in visits
    }
    current_id = ref_id(current)
    return st.selectbox(
        "Visit",
        ids,
        index=ids.index(current_id) if current_id in ids else 0,
        format_func=lambda i: labels.get(i, "No visit"),
    )


def _generate_panel(patient_id: str, note_type: str, visit_id: str) -> None:
    with st.expander("Draft with AI"):
        st.caption("The server drafts and saves a note from the patient's records.")
        prompt = st.text_area("Extra instructions (optional)", key="note-ai-prompt")
        if not st.button("Generate note"):
            return
        if not patient_id:
            st.error("Select a patient first.")
            return
        with st.spinner("Generating..."):
            try:
                note = session.call(
                    notes_api.generate_note,
                    patient_id,
                    note_type,
                    visit_id or None,
                    {"instructions": prompt} if prompt else None,
                )
            except OrenEMRAPIError as exc:
                components.api_failed("Generating the note", exc)
                return
        session.flash("AI note generated. Review it before relying on it.")
        session.navigate("note-edit", id=note["_id"])


def note_form_page() -> None:
    note_id = session.param("id")
    st.title("Edit note" if note_id else "New note")
    if note_id:
        try:
            record = session.call(notes_api.get_note, note_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Loading the note", exc)
            return
        form = Note.model_validate(record).to_payload()
    else:
        form = Note(patient=session.param("patient") or None).to_payload()

    patient = components.patient_picker("Patient *", form.get("patient"))
    visit = _visit_picker(patient, form.get("visit"))
    c1, c2 = st.columns([3, 1])
    title = c1.text_input("Title *", form.get("title", ""))
    color = c2.color_picker("Color", safe_color(form.get("colorCode")))
    note_type = st.selectbox(
        "Type",
        NOTE_TYPES,
        index=_index(NOTE_TYPES, form.get("noteType")),
    )
    content = st.text_area("Content *", form.get("content", ""), height=300)
    diagnosis = _codes_editor(
        "Diagnosis codes", form.get("diagnosisCodes", []), "dx-codes"
    )
    treatment = _codes_editor(
        "Treatment codes", form.get("treatmentCodes", []), "tx-codes"
    )

    existing = form.get("attachments", [])
    remove: list[str] = []
    if existing:
        names = {
            a["_id"]: a.get("originalname") or a.get("filename", "") for a in existing
        }
        remove = st.multiselect(
            "Remove attachments", list(names), format_func=lambda i: names[i]
        )
    uploads = st.file_uploader(
        f"Attachments (up to {notes_api.MAX_ATTACHMENTS})", accept_multiple_files=True
    )

    if note_id:
        with st.expander("Delete"):
            _delete_panel(note_id)
    else:
        _generate_panel(patient, note_type, visit)

    if not st.button("Save note", type="primary"):
        return
    data = {
        **form,
        "title": title,
        "content": content,
        "noteType": note_type,
        "colorCode": color,
        "patient": patient,
        "visit": visit or None,
        "diagnosisCodes": diagnosis,
        "treatmentCodes": treatment,
    }
    errors = validate_note(data)
    if errors:
        components.show_errors(errors)
        return
    attachments = [
        (f.name, f.getvalue(), f.type or "application/octet-stream")
        for f in uploads or []
    ]
    try:
        saved = session.call(
            notes_api.save_note, data, attachments, remove, note_id or None
        )
    except ValueError as exc:
        st.error(str(exc))
        return
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the note", exc)
        return
    session.flash("Note saved.")
    session.navigate("note-edit", id=saved.get("_id") or note_id)


def _delete_panel(note_id: str) -> None:
    confirm = st.checkbox("I want to delete this note")
    if st.button("Delete note", disabled=not confirm):
        try:
            session.call(notes_api.delete_note, note_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Deleting the note", exc)
            return
        session.flash("Note deleted.")
        session.navigate("notes")


# --- Print ---


def note_print_page() -> None:
    note_id = session.param("id")
    try:
        note = session.call(notes_api.get_note, note_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the note", exc)
        return

    st.title(note.get("title", "Note"))
    st.write(
        f"**Patient:** {components.person(note.get('patient'))}  \n"
        f"**Doctor:** {components.person(note.get('doctor'))}  \n"
        f"**Type:** {note.get('noteType', '')}  \n"
        f"**Date:** {str(note.get('createdAt', ''))[:10]}"
    )
    st.divider()
    st.markdown(note.get("content", ""))
    for label, key in CODE_FIELDS:
        codes = note.get(key) or []
        if codes:
            st.markdown(f"**{label}**")
            listed = (f"- {c.get('code')}: {c.get('description', '')}" for c in codes)
            st.markdown("\n".join(listed))
    st.caption("Use your browser's print command to print this page.")
    st.download_button(
        "Download as text",
        f"{note.get('title', '')}\n\n{note.get('content', '')}",
        file_name=f"{note.get('title') or 'note'}.txt",
    )
    if st.button("Back to note"):
        session.navigate("note-edit", id=note_id)
