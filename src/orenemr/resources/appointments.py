"""Appointment scheduling endpoints.

API endpoints used:
- GET    /api/appointments                - Filtered list, sorted by date and start
- GET    /api/appointments/{id}           - One appointment
- POST   /api/appointments                - Book
- PUT    /api/appointments/{id}           - Reschedule / edit
- PATCH  /api/appointments/{id}/cancel    - Cancel with optional notes
- PATCH  /api/appointments/{id}/complete  - Complete with optional notes
- DELETE /api/appointments/{id}           - Delete
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import AppointmentConflictError, OrenEMRAPIError, OrenEMRClient

CONFLICT_MESSAGE = "Conflicting appointment exists"


async def list_appointments(
    client: OrenEMRClient,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    doctor: str | None = None,
    patient: str | None = None,
) -> list[dict[str, Any]]:
    """List appointments in a date range (inclusive, "YYYY-MM-DD").

    Doctors only see their own appointments unless ``doctor`` is given.
    """
    return await client.get(
        "/appointments",
        params={
            "startDate": start_date,
            "endDate": end_date,
            "status": status,
            "doctor": doctor,
            "patient": patient,
        },
    )


async def get_appointment(client: OrenEMRClient, appointment_id: str) -> dict[str, Any]:
    return await client.get(f"/appointments/{appointment_id}")


async def save_appointment(
    client: OrenEMRClient,
    payload: dict[str, Any],
    appointment_id: str | None = None,
) -> dict[str, Any]:
    """Create (no id) or update an appointment and return the saved record.

    Raises:
        AppointmentConflictError: The doctor already has an appointment
            overlapping this slot on that date.
        OrenEMRAPIError: Any other API failure.
    """
    try:
        if appointment_id:
            data = await client.put(
                f"/appointments/{appointment_id}", json_data=payload
            )
        else:
            data = await client.post("/appointments", json_data=payload)
    except OrenEMRAPIError as exc:
        if exc.status_code == 400 and exc.message == CONFLICT_MESSAGE:
            raise AppointmentConflictError(
                exc.status_code, exc.detail, exc.message
            ) from exc
        raise
    return data.get("appointment", data)


async def cancel_appointment(
    client: OrenEMRClient, appointment_id: str, notes: str = ""
) -> dict[str, Any]:
    data = await client.patch(
        f"/appointments/{appointment_id}/cancel", json_data={"notes": notes}
    )
    return data.get("appointment", data)


async def complete_appointment(
    client: OrenEMRClient, appointment_id: str, notes: str = ""
) -> dict[str, Any]:
    data = await client.patch(
        f"/appointments/{appointment_id}/complete", json_data={"notes": notes}
    )
    return data.get("appointment", data)


async def delete_appointment(
    client: OrenEMRClient, appointment_id: str
) -> dict[str, Any]:
    return await client.delete(f"/appointments/{appointment_id}")
