"""Questionnaire templates and the public patient intake form."""

from __future__ import annotations

import logging
from typing import Any, get_args

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.models import FormItemType, FormTemplate, Patient
from orenemr.resources import form_templates as templates_api
from orenemr.resources import patients as patients_api
from orenemr.ui import components, session
from orenemr.validation import validate_public_intake, validate_template

logger = logging.getLogger(__name__)

ITEM_TYPES = get_args(FormItemType)
LANGUAGES = ("english", "spanish", "bilingual")
OPTION_SEPARATOR = ";"


# --- Template list ---


def _send_panel(template: dict[str, Any]) -> None:
    with st.form(f"send-{template['_id']}", clear_on_submit=True):
        c1, c2 = st.columns(2)
        email = c1.text_input("Client email")
        name = c2.text_input("Client name")
        instructions = st.text_area("Instructions", height=80)
        if not st.form_submit_button("Send form"):
            return
    if not email:
        st.error("Client email is required.")
        return
    try:
        result = session.call(
            patients_api.send_form_to_client,
            email,
            name,
            instructions,
            template.get("language", "english"),
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Sending the form", exc)
        return
    if result.get("emailSent"):
        st.success(f"Form sent to {email}.")
    else:
        st.warning("The email could not be sent. Share this link instead:")
        st.code(result.get("formLink", ""))


def template_list_page() -> None:
    st.title("Form templates")
    c1, c2 = st.columns([3, 1])
    search = c1.text_input("Search templates")
    if c2.button("New template", type="primary"):
        session.navigate("form-template-builder")

    try:
        templates = session.call(templates_api.list_templates, search=search)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading templates", exc)
        return
    if not templates:
        st.info("No templates yet.")
        return

    for template in templates:
        template_id = template["_id"]
        with st.container(border=True):
            st.markdown(f"**{template.get('title', '')}**")
            tags = [template.get("language", "english")]
            tags.append("active" if template.get("isActive", True) else "inactive")
            if template.get("isPublic"):
                tags.append("public")
            count = len(template.get("items", []))
            st.caption(f"{count} questions | " + ", ".join(tags))
            if template.get("description"):
                st.write(template["description"])
            cols = st.columns(4)
            try:
                if cols[0].button("Edit", key=f"edit-{template_id}"):
                    session.navigate("form-template-builder", id=template_id)
                if cols[1].button("Duplicate", key=f"dup-{template_id}"):
                    copy = session.call(templates_api.duplicate_template, template_id)
                    session.flash(f"Created {copy.get('title', 'a copy')}.")
                    session.navigate("form-templates")
                if cols[2].button("Delete", key=f"del-{template_id}"):
                    session.call(templates_api.delete_template, template_id)
                    session.flash("Template deleted.")
                    session.navigate("form-templates")
            except OrenEMRAPIError as exc:
                components.api_failed("Updating the template", exc)
            with cols[3].popover("Send to client"):
                _send_panel(template)


# --- Builder ---


def item_rows(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Template items as flat editor rows, options joined by ";"."""
    return [
        {
            "type": item.get("type", "text"),
            "questionText": item.get("questionText", ""),
            "isRequired": bool(item.get("isRequired")),
            "options": f"{OPTION_SEPARATOR} ".join(item.get("options") or []),
            "placeholder": item.get("placeholder", ""),
            "instructions": item.get("instructions", ""),
        }
        for item in items
    ]


def items_from_rows(
    rows: list[dict[str, Any]], original: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Editor rows back to items.

    Fields the editor does not show (matrix layout, demographic fields)
    are kept from the item that was at the same position.
    """
    items = []
    for index, row in enumerate(rows):
        base = original[index] if index < len(original) else {}
        raw_options = str(row.get("options") or "")
        options = [o.strip() for o in raw_options.split(OPTION_SEPARATOR)]
        items.append(
            {
                **base,
                "type": row.get("type") or "text",
                "questionText": row.get("questionText") or "",
                "isRequired": bool(row.get("isRequired")),
                "options": [o for o in options if o],
                "placeholder": row.get("placeholder") or "",
                "instructions": row.get("instructions") or "",
            }
        )
    return items


def template_builder_page() -> None:
    template_id = session.param("id")
    st.title("Edit template" if template_id else "New template")
    if template_id:
        try:
            record = session.call(templates_api.get_template, template_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Loading the template", exc)
            return
        form = FormTemplate.model_validate(record).to_payload()
    else:
        form = FormTemplate().to_payload()

    title = st.text_input("Title *", form.get("title", ""))
    description = st.text_area("Description", form.get("description", ""))
    c1, c2, c3 = st.columns(3)
    language = form.get("language")
    language = c1.selectbox(
        "Language",
        LANGUAGES,
        index=LANGUAGES.index(language) if language in LANGUAGES else 0,
    )
    is_active = c2.checkbox("Active", form.get("isActive", True))
    is_public = c3.checkbox("Shared with all doctors", form.get("isPublic", False))

    st.subheader("Questions")
    st.caption(f'Separate choices with "{OPTION_SEPARATOR}".')
    original = form.get("items", [])
    edited = st.data_editor(
        item_rows(original) or item_rows([{}]),
        num_rows="dynamic",
        column_config={
            "type": st.column_config.SelectboxColumn("Type", options=list(ITEM_TYPES)),
            "questionText": st.column_config.TextColumn("Question", width="large"),
            "isRequired": st.column_config.CheckboxColumn("Required"),
            "options": st.column_config.TextColumn("Choices"),
            "placeholder": st.column_config.TextColumn("Placeholder"),
            "instructions": st.column_config.TextColumn("Instructions"),
        },
        key="template-items",
        use_container_width=True,
    )

    c1, c2 = st.columns(2)
    if c2.button("Cancel"):
        session.navigate("form-templates")
    if not c1.button("Save template", type="primary"):
        return
    data = {
        **form,
        "title": title,
        "description": description,
        "language": language,
        "isActive": is_active,
        "isPublic": is_public,
        "items": items_from_rows([dict(row) for row in edited], original),
    }
    errors = validate_template(data)
    if errors:
        components.show_errors(errors)
        return
    try:
        session.call(templates_api.save_template, data, template_id or None)
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the template", exc)
        return
    session.flash("Template saved.")
    session.navigate("form-templates")


# --- Public intake ---


def intake_page() -> None:
    """The form a patient fills in from the emailed link; no login."""
    token = session.param("token")
    st.title("Patient intake form")
    if not token:
        st.error("This form link is invalid.")
        return
    if st.session_state.get("intake-done") == token:
        st.success("Thank you! Your information has been submitted.")
        return

    with st.form("intake"):
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name *")
        last_name = c2.text_input("Last name *")
        email = c1.text_input("Email *")
        phone = c2.text_input("Phone")
        dob = c1.date_input("Date of birth", value=None)
        gender = c2.selectbox("Gender", ("", "male", "female", "other"))
        street = st.text_input("Street")
        a1, a2, a3 = st.columns(3)
        city = a1.text_input("City")
        state = a2.text_input("State")
        zip_code = a3.text_input("ZIP code")
        st.caption("One entry per line.")
        allergies = st.text_area("Allergies", height=70)
        medications = st.text_area("Current medications", height=70)
        conditions = st.text_area("Medical conditions", height=70)
        complaint = st.text_area("What brings you in today?")
        submitted = st.form_submit_button("Submit", type="primary")

    if not submitted:
        return
    data = Patient(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email.strip(),
        phone=phone,
        date_of_birth=dob,
        gender=gender,
    ).to_payload()
    data["address"] = {
        "street": street,
        "city": city,
        "state": state,
        "zipCode": zip_code,
    }
    data["medicalHistory"] = {
        "allergies": components.lines(allergies),
        "medications": components.lines(medications),
        "conditions": components.lines(conditions),
    }
    data["subjective"] = {"notes": complaint}
    errors = validate_public_intake(data)
    if errors:
        components.show_errors(errors)
        return
    try:
        session.run_async(
            session.with_client(patients_api.submit_public_form, "", token, data)
        )
    except OrenEMRAPIError as exc:
        logger.warning("Intake submission with token %s failed: %s", token[:8], exc)
        st.error(exc.message or "This form could not be submitted.")
        return
    st.session_state["intake-done"] = token
    st.rerun()
