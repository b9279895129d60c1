"""User account endpoints.

API endpoints used:
- POST /api/auth/login            - Exchange credentials for a token
- GET  /api/auth/me               - The logged-in user
- GET  /api/auth/doctors          - Users with the doctor role
- POST /api/auth/register         - Create a user account
- PUT  /api/auth/update-profile   - Change name / email
- PUT  /api/auth/change-password  - Change password
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def login(client: OrenEMRClient, username: str, password: str) -> dict[str, Any]:
    """Log in and return ``{"token", "user"}`` for the session."""
    user = await client.login(username, password)
    return {"token": client.token, "user": user}


async def get_current_user(client: OrenEMRClient) -> dict[str, Any]:
    return await client.get("/auth/me")


async def list_doctors(client: OrenEMRClient) -> list[dict[str, Any]]:
    return await client.get("/auth/doctors")


async def register_user(
    client: OrenEMRClient, payload: dict[str, Any]
) -> dict[str, Any]:
    """Create an account. ``payload`` holds username, email, password,
    firstName, lastName and role."""
    return await client.post("/auth/register", json_data=payload)


async def update_profile(
    client: OrenEMRClient, first_name: str, last_name: str, email: str
) -> dict[str, Any]:
    return await client.put(
        "/auth/update-profile",
        json_data={"firstName": first_name, "lastName": last_name, "email": email},
    )


async def change_password(
    client: OrenEMRClient, current_password: str, new_password: str
) -> dict[str, Any]:
    return await client.put(
        "/auth/change-password",
        json_data={"currentPassword": current_password, "newPassword": new_password},
    )
