"""In-app notifications for the logged-in user.

API endpoints used:
- GET    /api/notifications                - List plus unread count
- PUT    /api/notifications/{id}/read      - Mark one read
- PUT    /api/notifications/{id}/dismiss   - Dismiss one
- PUT    /api/notifications/mark-all-read  - Mark all (optionally one type) read
- DELETE /api/notifications/{id}           - Delete
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def list_notifications(
    client: OrenEMRClient,
    is_read: bool | None = None,
    is_dismissed: bool | None = None,
    type: str | None = None,
    limit: int = 50,
) -> dict[str, Any]:
    """Returns ``{"notifications", "unreadCount"}``, newest first."""
    return await client.get(
        "/notifications",
        params={
            "isRead": is_read,
            "isDismissed": is_dismissed,
            "type": type,
            "limit": limit,
        },
    )


async def mark_read(client: OrenEMRClient, notification_id: str) -> dict[str, Any]:
    data = await client.put(f"/notifications/{notification_id}/read")
    return data.get("notification", data)


async def dismiss(client: OrenEMRClient, notification_id: str) -> dict[str, Any]:
    data = await client.put(f"/notifications/{notification_id}/dismiss")
    return data.get("notification", data)


async def mark_all_read(client: OrenEMRClient, type: str | None = None) -> int:
    """Mark every unread notification read; returns how many changed."""
    data = await client.put("/notifications/mark-all-read", params={"type": type})
    return int(data.get("count", 0))


async def delete_notification(
    client: OrenEMRClient, notification_id: str
) -> dict[str, Any]:
    return await client.delete(f"/notifications/{notification_id}")
