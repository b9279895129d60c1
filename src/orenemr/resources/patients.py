"""Patient records and patient-facing intake forms.

API endpoints used:
- GET    /api/patients                          - Paged list with search
- GET    /api/patients/{id}                     - One patient
- POST   /api/patients                          - Create
- PUT    /api/patients/{id}                     - Update
- DELETE /api/patients/{id}                     - Delete
- GET    /api/patients/{id}/visits              - Visit history
- POST   /api/patients/send-to-client           - Email an intake form link
- POST   /api/patients/form-submission/{token}  - Public intake submission
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def list_patients(
    client: OrenEMRClient,
    page: int = 1,
    limit: int = 10,
    search: str = "",
    status: str | None = None,
) -> dict[str, Any]:
    """Get one page of patients.

    The server matches ``search`` against first name, last name and email,
    and doctors only ever see their own patients.

    Returns:
        ``{"patients", "totalPages", "currentPage", "totalPatients"}``.
    """
    return await client.get(
        "/patients",
        params={"page": page, "limit": limit, "search": search, "status": status},
    )


async def get_patient(client: OrenEMRClient, patient_id: str) -> dict[str, Any]:
    return await client.get(f"/patients/{patient_id}")


async def create_patient(
    client: OrenEMRClient, payload: dict[str, Any]
) -> dict[str, Any]:
    return await client.post("/patients", json_data=payload)


async def update_patient(
    client: OrenEMRClient, patient_id: str, payload: dict[str, Any]
) -> dict[str, Any]:
    return await client.put(f"/patients/{patient_id}", json_data=payload)


async def delete_patient(client: OrenEMRClient, patient_id: str) -> dict[str, Any]:
    return await client.delete(f"/patients/{patient_id}")


async def list_patient_visits(
    client: OrenEMRClient, patient_id: str
) -> list[dict[str, Any]]:
    """All visits of a patient, newest first, doctors populated."""
    return await client.get(f"/patients/{patient_id}/visits")


async def send_form_to_client(
    client: OrenEMRClient,
    email: str,
    name: str = "",
    instructions: str = "",
    language: str = "english",
    patient_id: str | None = None,
) -> dict[str, Any]:
    """Email a one-time intake form link to a patient.

    Returns:
        ``{"message", "formLink", "token", "emailSent"}``.
    """
    payload: dict[str, Any] = {
        "email": email,
        "name": name,
        "instructions": instructions,
        "language": language,
    }
    if patient_id:
        payload["patientId"] = patient_id
    return await client.post("/patients/send-to-client", json_data=payload)


async def submit_public_form(
    client: OrenEMRClient, token: str, data: dict[str, Any]
) -> dict[str, Any]:
    """Submit an intake form from its emailed link.

    This is the one call made without a bearer token: the link token in the
    URL identifies the form. A used or unknown token is rejected with 400.
    """
    return await client.post(
        f"/patients/form-submission/{token}", json_data=data, auth=False
    )
