"""Invoices and payments.

API endpoints used:
- GET  /api/billing                    - Paged, filtered invoice list
- GET  /api/billing/count/{patientId}  - Number of invoices for a patient
- GET  /api/billing/{id}               - One invoice
- POST /api/billing                    - Create
- PUT  /api/billing/{id}               - Update (refused once paid)
- POST /api/billing/{id}/payments      - Record a payment
- GET  /api/billing/summary/dashboard  - Month totals and status counts

The server recomputes item totals, subtotal and total on every save;
orenemr.billing_math mirrors that arithmetic for the form preview.
"""

from __future__ import annotations

from typing import Any

from orenemr.api_client import DuplicateInvoiceError, OrenEMRAPIError, OrenEMRClient

PAYMENT_METHODS = ("cash", "credit", "insurance", "other")


async def list_invoices(
    client: OrenEMRClient,
    status: str | None = None,
    patient: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict[str, Any]:
    """Returns ``{"invoices", "totalPages", "currentPage", "totalInvoices"}``."""
    return await client.get(
        "/billing",
        params={
            "status": status,
            "patient": patient,
            "startDate": start_date,
            "endDate": end_date,
            "page": page,
            "limit": limit,
        },
    )


async def get_invoice(client: OrenEMRClient, invoice_id: str) -> dict[str, Any]:
    return await client.get(f"/billing/{invoice_id}")


async def invoice_count(client: OrenEMRClient, patient_id: str) -> int:
    data = await client.get(f"/billing/count/{patient_id}")
    return int(data.get("totalInvoices", 0))


async def save_invoice(
    client: OrenEMRClient,
    payload: dict[str, Any],
    invoice_id: str | None = None,
) -> dict[str, Any]:
    """Create (no id) or update an invoice and return the saved record.

    Raises:
        DuplicateInvoiceError: The invoice number is taken (HTTP 409).
        OrenEMRAPIError: Any other failure, including editing a paid invoice.
    """
    try:
        if invoice_id:
            data = await client.put(f"/billing/{invoice_id}", json_data=payload)
        else:
            data = await client.post("/billing", json_data=payload)
    except OrenEMRAPIError as exc:
        if exc.status_code == 409:
            raise DuplicateInvoiceError(
                exc.status_code, exc.detail, exc.message
            ) from exc
        raise
    return data.get("invoice", data)


async def record_payment(
    client: OrenEMRClient,
    invoice_id: str,
    amount: float,
    method: str = "cash",
    reference: str = "",
    notes: str = "",
) -> dict[str, Any]:
    """Add a payment; the server sets the status to "paid" or "partial".

    Raises:
        ValueError: For a non-positive amount or unknown method.
    """
    if amount <= 0:
        raise ValueError("Payment amount must be greater than 0")
    if method not in PAYMENT_METHODS:
        raise ValueError(f"Unknown payment method: {method!r}")
    data = await client.post(
        f"/billing/{invoice_id}/payments",
        json_data={
            "amount": amount,
            "method": method,
            "reference": reference,
            "notes": notes,
        },
    )
    return data.get("invoice", data)


async def billing_summary(client: OrenEMRClient) -> dict[str, Any]:
    """Returns ``{"billedThisMonth", "collectedThisMonth", "outstanding",
    "statusCounts"}``."""
    return await client.get("/billing/summary/dashboard")
