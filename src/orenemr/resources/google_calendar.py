"""Google Calendar authorization and appointment sync.

API endpoints used:
- GET    /api/google-calendar/auth                - OAuth consent URL
- GET    /api/google-calendar/callback            - Finish OAuth (code + state)
- POST   /api/google-calendar/sync/{appointmentId} - Push one appointment
- PUT    /api/google-calendar/sync/{appointmentId} - Update its event
- DELETE /api/google-calendar/sync/{appointmentId} - Remove its event
- POST   /api/google-calendar/sync-all            - Push every unsynced appointment

The Google side lives entirely on the server; these calls only start the
OAuth dance and trigger syncs.
"""

from __future__ import annotations

import logging
from typing import Any

from orenemr.api_client import OrenEMRClient

logger = logging.getLogger(__name__)


async def get_auth_url(client: OrenEMRClient) -> str:
    data = await client.get("/google-calendar/auth")
    return data.get("authUrl", "")


async def complete_authorization(
    client: OrenEMRClient, code: str, state: str
) -> dict[str, Any]:
    """Hand the OAuth ``code`` and ``state`` from the redirect to the server.

    Raises:
        ValueError: If either parameter is missing.
    """
    if not code or not state:
        raise ValueError("Google authorization response is missing code or state")
    return await client.get(
        "/google-calendar/callback", params={"code": code, "state": state}
    )


async def sync_appointment(
    client: OrenEMRClient, appointment_id: str
) -> dict[str, Any]:
    return await client.post(f"/google-calendar/sync/{appointment_id}")


async def update_synced_appointment(
    client: OrenEMRClient, appointment_id: str
) -> dict[str, Any]:
    return await client.put(f"/google-calendar/sync/{appointment_id}")


async def remove_synced_appointment(
    client: OrenEMRClient, appointment_id: str
) -> dict[str, Any]:
    return await client.delete(f"/google-calendar/sync/{appointment_id}")


async def sync_all(client: OrenEMRClient) -> list[dict[str, Any]]:
    """Sync every appointment without an event; returns per-appointment results."""
    data = await client.post("/google-calendar/sync-all")
    results = data.get("results", [])
    failed = [r for r in results if r.get("status") != "success"]
    if failed:
        logger.warning(
            "%d of %d appointments failed to sync", len(failed), len(results)
        )
    return results
