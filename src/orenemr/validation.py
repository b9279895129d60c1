"""Client-side form checks run before any API call.

Each validator takes the form as a camelCase dict (the same shape that is
posted to the server) and returns a ``{field: message}`` map. An empty map
means the form may be submitted; otherwise pages show the messages next to
the fields and skip the request. The server repeats every check, so these
only cover required fields and obvious mistakes.
"""

from __future__ import annotations

import copy
import re
from datetime import date, datetime
from typing import Any

Errors = dict[str, str]

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
_CHOICE_TYPES = {"dropdown", "checkbox", "radio"}


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    return None


def validate_patient(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if _blank(form.get("firstName")):
        errors["firstName"] = "First name is required"
    if _blank(form.get("lastName")):
        errors["lastName"] = "Last name is required"
    if not form.get("dateOfBirth"):
        errors["dateOfBirth"] = "Date of birth is required"
    email = form.get("email") or ""
    if not email.strip():
        errors["email"] = "Email is required"
    elif not _EMAIL_RE.search(email):
        errors["email"] = "Email is invalid"
    if _blank(form.get("phone")):
        errors["phone"] = "Phone number is required"
    if not form.get("assignedDoctor"):
        errors["assignedDoctor"] = "Please assign a doctor"
    return errors


def prepare_patient_payload(form: dict[str, Any]) -> dict[str, Any]:
    """Strip the blanks a patient form accumulates before it is saved.

    Empty medical-history entries and half-filled body parts are dropped,
    the attorney block goes away entirely when nobody was entered, and a
    missing status defaults to "active". The input is not modified.
    """
    data = copy.deepcopy(form)

    dob = data.get("dateOfBirth")
    if isinstance(dob, (date, datetime)):
        data["dateOfBirth"] = dob.isoformat()

    history = data.get("medicalHistory")
    if isinstance(history, dict):
        data["medicalHistory"] = {
            key: [item for item in value if not _blank(item)]
            if isinstance(value, list)
            else value
            for key, value in history.items()
        }

    subjective = data.get("subjective")
    if isinstance(subjective, dict):
        parts = subjective.get("bodyPart")
        subjective["bodyPart"] = [
            bp
            for bp in (parts if isinstance(parts, list) else [])
            if not _blank(bp.get("part")) and not _blank(bp.get("side"))
        ]

    address = data.get("address")
    if isinstance(address, dict):
        data["address"] = {k: v for k, v in address.items() if not _blank(v)}

    attorney = data.get("attorney")
    if isinstance(attorney, dict):
        fields = ("name", "firm", "phone", "email", "caseNumber")
        if all(_blank(attorney.get(f)) for f in fields):
            del data["attorney"]
        elif isinstance(attorney.get("address"), dict):
            filled = {k: v for k, v in attorney["address"].items() if not _blank(v)}
            if filled:
                attorney["address"] = filled
            else:
                del attorney["address"]

    if not data.get("status"):
        data["status"] = "active"
    return data


def validate_appointment(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if not form.get("patient"):
        errors["patient"] = "Patient is required"
    if not form.get("doctor"):
        errors["doctor"] = "Doctor is required"
    time = form.get("time") or {}
    start, end = time.get("start"), time.get("end")
    if not start:
        errors["time.start"] = "Start time is required"
    if not end:
        errors["time.end"] = "End time is required"
    # "HH:MM" strings compare correctly as text.
    if start and end and start >= end:
        errors["time.end"] = "End time must be after start time"
    return errors


def validate_invoice(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if not form.get("patient"):
        errors["patient"] = "Patient is required"
    items = form.get("items") or []
    if not items:
        errors["items"] = "At least one item is required"
    if _blank(form.get("invoiceNumber")):
        errors["invoiceNumber"] = "Invoice number is required"

    for index, item in enumerate(items):
        if _blank(item.get("description")):
            errors[f"items[{index}].description"] = "Description is required"
        if float(item.get("quantity") or 0) <= 0:
            errors[f"items[{index}].quantity"] = "Quantity must be greater than 0"
        if float(item.get("unitPrice") or 0) < 0:
            errors[f"items[{index}].unitPrice"] = "Unit price cannot be negative"

    issued = _as_date(form.get("dateIssued"))
    due = _as_date(form.get("dueDate"))
    if issued and due and due < issued:
        errors["dueDate"] = "Due date must be after issue date"
    return errors


def validate_note(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if _blank(form.get("title")):
        errors["title"] = "Title is required"
    if _blank(form.get("content")):
        errors["content"] = "Content is required"
    if not form.get("patient"):
        errors["patient"] = "Patient is required"
    return errors


def validate_initial_visit(form: dict[str, Any]) -> Errors:
    if _blank(form.get("chiefComplaint")):
        return {"chiefComplaint": "Chief complaint is required"}
    return {}


def validate_followup(form: dict[str, Any]) -> Errors:
    if not form.get("previousVisit"):
        return {"previousVisit": "Previous visit is required"}
    return {}


def validate_task(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if _blank(form.get("title")):
        errors["title"] = "Title is required"
    if not form.get("assignedTo"):
        errors["assignedTo"] = "Assignee is required"
    if not form.get("patient"):
        errors["patient"] = "Patient is required"
    return errors


def validate_template(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if _blank(form.get("title")):
        errors["title"] = "Title is required"
    items = form.get("items") or []
    if not items:
        errors["items"] = "Add at least one question"
    for index, item in enumerate(items):
        if _blank(item.get("questionText")):
            errors[f"items[{index}].questionText"] = "Question text is required"
        if item.get("type") in _CHOICE_TYPES:
            options = [o for o in item.get("options") or [] if not _blank(o)]
            if not options:
                errors[f"items[{index}].options"] = "At least one option is required"
    return errors


def validate_public_intake(form: dict[str, Any]) -> Errors:
    errors: Errors = {}
    if _blank(form.get("firstName")):
        errors["firstName"] = "First name is required"
    if _blank(form.get("lastName")):
        errors["lastName"] = "Last name is required"
    if _blank(form.get("email")):
        errors["email"] = "Email is required"
    return errors
