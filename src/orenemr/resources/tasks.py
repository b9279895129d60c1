"""Staff tasks.

API endpoints used:
- GET    /api/tasks           - Filtered list
- GET    /api/tasks/my-tasks  - Tasks assigned to the logged-in user
- GET    /api/tasks/{id}      - One task
- POST   /api/tasks           - Create (notifies the assignee)
- PUT    /api/tasks/{id}      - Update
- DELETE /api/tasks/{id}      - Delete
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def list_tasks(
    client: OrenEMRClient,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
    patient: str | None = None,
    due_date: str | None = None,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """List tasks. ``due_date`` keeps tasks due on or before that date."""
    return await client.get(
        "/tasks",
        params={
            "status": status,
            "priority": priority,
            "assignedTo": assigned_to,
            "patient": patient,
            "dueDate": due_date,
            "search": search,
        },
    )


async def my_tasks(
    client: OrenEMRClient, status: str | None = None
) -> list[dict[str, Any]]:
    return await client.get("/tasks/my-tasks", params={"status": status})


async def get_task(client: OrenEMRClient, task_id: str) -> dict[str, Any]:
    return await client.get(f"/tasks/{task_id}")


async def save_task(
    client: OrenEMRClient,
    payload: dict[str, Any],
    task_id: str | None = None,
) -> dict[str, Any]:
    if task_id:
        return await client.put(f"/tasks/{task_id}", json_data=payload)
    return await client.post("/tasks", json_data=payload)


async def delete_task(client: OrenEMRClient, task_id: str) -> dict[str, Any]:
    return await client.delete(f"/tasks/{task_id}")
