"""Clinical notes, including file attachments and AI-drafted notes.

API endpoints used:
- GET    /api/notes                     - Paged, filtered, sorted list
- GET    /api/notes/{id}                - One note
- GET    /api/notes/patient/{patientId} - Notes of one patient
- POST   /api/notes                     - Create (multipart)
- PUT    /api/notes/{id}                - Update (multipart)
- DELETE /api/notes/{id}                - Delete
- POST   /api/notes/generate            - Draft a note with the server's LLM

Notes are saved as multipart form data so attachments can ride along.
List-valued fields (diagnosis and treatment codes, attachments to remove)
travel as JSON strings inside the form.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from orenemr.api_client import OrenEMRClient
from orenemr.models import ref_id

logger = logging.getLogger(__name__)

MAX_ATTACHMENTS = 5

# (filename, content, content type)
Attachment = tuple[str, bytes, str]


async def list_notes(
    client: OrenEMRClient,
    page: int = 1,
    limit: int = 10,
    patient_id: str | None = None,
    doctor_id: str | None = None,
    note_type: str | None = None,
    search: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> dict[str, Any]:
    """Returns ``{"notes", "pagination": {"total", "page", "limit", "pages"}}``."""
    return await client.get(
        "/notes",
        params={
            "page": page,
            "limit": limit,
            "patientId": patient_id,
            "doctorId": doctor_id,
            "noteType": note_type,
            "search": search,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        },
    )


async def get_note(client: OrenEMRClient, note_id: str) -> dict[str, Any]:
    return await client.get(f"/notes/{note_id}")


async def list_patient_notes(
    client: OrenEMRClient, patient_id: str
) -> list[dict[str, Any]]:
    return await client.get(f"/notes/patient/{patient_id}")


def build_note_form(
    form: dict[str, Any], remove_attachments: list[str] | None = None
) -> dict[str, str]:
    """Flatten a note form into multipart fields."""
    fields = {
        "title": form.get("title", ""),
        "content": form.get("content", ""),
        "noteType": form.get("noteType", "Progress"),
        "colorCode": form.get("colorCode", "#FFFFFF"),
        "patientId": ref_id(form.get("patient")),
        "diagnosisCodes": json.dumps(form.get("diagnosisCodes") or []),
        "treatmentCodes": json.dumps(form.get("treatmentCodes") or []),
        "isAiGenerated": "true" if form.get("isAiGenerated") else "false",
    }
    visit_id = ref_id(form.get("visit"))
    if visit_id:
        fields["visitId"] = visit_id
    if remove_attachments:
        fields["removeAttachments"] = json.dumps(remove_attachments)
    return fields


async def save_note(
    client: OrenEMRClient,
    form: dict[str, Any],
    attachments: list[Attachment] | None = None,
    remove_attachments: list[str] | None = None,
    note_id: str | None = None,
) -> dict[str, Any]:
    """Create (no id) or update a note and return the saved record.

    Args:
        form: Note fields, camelCase; ``patient`` and ``visit`` may be ids
            or populated objects.
        attachments: New files to upload, at most five per save.
        remove_attachments: Ids of existing attachments to delete
            (updates only).

    Raises:
        ValueError: More than five attachments were given.
    """
    attachments = attachments or []
    if len(attachments) > MAX_ATTACHMENTS:
        raise ValueError(
            f"A note can carry at most {MAX_ATTACHMENTS} attachments per save"
        )

    fields = build_note_form(form, remove_attachments if note_id else None)
    files = [("attachments", attachment) for attachment in attachments] or None
    if note_id:
        note = await client.put(f"/notes/{note_id}", data=fields, files=files)
    else:
        note = await client.post("/notes", data=fields, files=files)
    logger.info(
        "Saved note %s with %d new attachment(s)", note.get("_id"), len(attachments)
    )
    return note


async def delete_note(client: OrenEMRClient, note_id: str) -> dict[str, Any]:
    return await client.delete(f"/notes/{note_id}")


async def generate_note(
    client: OrenEMRClient,
    patient_id: str,
    note_type: str,
    visit_id: str | None = None,
    prompt_data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Have the server draft and save a note; returns the new note."""
    payload: dict[str, Any] = {"patientId": patient_id, "noteType": note_type}
    if visit_id:
        payload["visitId"] = visit_id
    if prompt_data:
        payload["promptData"] = prompt_data
    data = await client.post("/notes/generate", json_data=payload)
    return data.get("note", data)
