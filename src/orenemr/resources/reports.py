"""Report PDF upload and email.

API endpoints used:
- POST /api/reports/upload  - Store a PDF on the server (multipart "file")
- POST /api/reports/email   - Email a stored PDF to an address
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import OrenEMRClient


async def upload_report(
    client: OrenEMRClient,
    filename: str,
    content: bytes,
    content_type: str = "application/pdf",
) -> dict[str, Any]:
    return await client.post(
        "/reports/upload", files=[("file", (filename, content, content_type))]
    )


async def email_report(
    client: OrenEMRClient, email: str, filename: str
) -> dict[str, Any]:
    """Email a previously uploaded report; 404 if it was never uploaded."""
    return await client.post(
        "/reports/email", json_data={"email": email, "fileName": filename}
    )
