"""Questionnaire (form template) definitions.

API endpoints used:
- GET    /api/form-templates                - Filtered list, newest first
- GET    /api/form-templates/{id}           - One template
- POST   /api/form-templates                - Create
- PUT    /api/form-templates/{id}           - Update
- DELETE /api/form-templates/{id}           - Delete
- POST   /api/form-templates/{id}/duplicate - Copy as "<title> (Copy)"
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def list_templates(
    client: OrenEMRClient,
    is_active: bool | None = None,
    is_public: bool | None = None,
    created_by: str | None = None,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """Doctors see their own templates plus public ones."""
    return await client.get(
        "/form-templates",
        params={
            "isActive": is_active,
            "isPublic": is_public,
            "createdBy": created_by,
            "search": search,
        },
    )


async def get_template(client: OrenEMRClient, template_id: str) -> dict[str, Any]:
    return await client.get(f"/form-templates/{template_id}")


async def save_template(
    client: OrenEMRClient,
    payload: dict[str, Any],
    template_id: str | None = None,
) -> dict[str, Any]:
    if template_id:
        data = await client.put(f"/form-templates/{template_id}", json_data=payload)
    else:
        data = await client.post("/form-templates", json_data=payload)
    return data.get("template", data)


async def delete_template(client: OrenEMRClient, template_id: str) -> dict[str, Any]:
    return await client.delete(f"/form-templates/{template_id}")


async def duplicate_template(client: OrenEMRClient, template_id: str) -> dict[str, Any]:
    data = await client.post(f"/form-templates/{template_id}/duplicate")
    return data.get("template", data)
