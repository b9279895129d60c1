"""Visit documentation endpoints.

API endpoints used:
- GET   /api/patients/visits/{id}      - One visit
- PUT   /api/patients/visits/{id}      - Save fields onto an existing visit
- POST  /api/visits                    - Create an initial/followup/discharge visit
- PATCH /api/visits/{id}               - Patch a saved visit (AI narrative)
- GET   /api/visits/patient/{id}       - Visits of one patient
- POST  /api/generate-narrative        - Ask the server for a visit narrative

Saving a discharge visit also marks the patient discharged (server-side).
"""

from __future__ import annotations

import logging
from typing import Any

from orenemr.api_client import OrenEMRAPIError, OrenEMRAuthError, OrenEMRClient

logger = logging.getLogger(__name__)

VISIT_TYPES = ("initial", "followup", "discharge")


async def get_visit(client: OrenEMRClient, visit_id: str) -> dict[str, Any]:
    return await client.get(f"/patients/visits/{visit_id}")


async def create_visit(
    client: OrenEMRClient, visit_type: str, payload: dict[str, Any]
) -> dict[str, Any]:
    """Create a visit and return the saved record.

    Args:
        visit_type: "initial", "followup" or "discharge".
        payload: The visit fields, camelCase. ``visitType`` is overwritten.

    Raises:
        ValueError: For an unknown visit type.
    """
    if visit_type not in VISIT_TYPES:
        raise ValueError(f"Unknown visit type: {visit_type!r}")
    data = await client.post("/visits", json_data={**payload, "visitType": visit_type})
    visit = data.get("visit", data)
    logger.info("Saved %s visit %s", visit_type, visit.get("_id"))
    return visit


async def update_visit(
    client: OrenEMRClient, visit_id: str, fields: dict[str, Any]
) -> dict[str, Any]:
    return await client.put(f"/patients/visits/{visit_id}", json_data=fields)


async def patch_visit(
    client: OrenEMRClient, visit_id: str, fields: dict[str, Any]
) -> dict[str, Any]:
    return await client.patch(f"/visits/{visit_id}", json_data=fields)


async def list_visits_for_patient(
    client: OrenEMRClient, patient_id: str
) -> list[dict[str, Any]]:
    return await client.get(f"/visits/patient/{patient_id}")


async def generate_narrative(client: OrenEMRClient, form: dict[str, Any]) -> str:
    """Have the server write a prose narrative for a visit.

    Returns:
        The narrative text, or "" when the server reports no success.
    """
    data = await client.post("/generate-narrative", json_data=form)
    if not data.get("success"):
        return ""
    return data.get("narrative", "")


async def create_visit_with_narrative(
    client: OrenEMRClient,
    visit_type: str,
    payload: dict[str, Any],
    form: dict[str, Any],
) -> dict[str, Any]:
    """Create a visit, then attach a narrative generated from ``form``.

    The narrative is best effort: if generating or attaching it fails the
    visit stays saved and the failure is only logged.

    Returns:
        The saved visit.
    """
    visit = await create_visit(client, visit_type, payload)
    try:
        narrative = await generate_narrative(client, {**form, "visitType": visit_type})
        if narrative:
            await patch_visit(client, visit["_id"], {"aiNarrative": narrative})
    except (OrenEMRAPIError, OrenEMRAuthError) as exc:
        logger.warning(
            "Narrative for visit %s not generated: %s", visit.get("_id"), exc
        )
    return visit
