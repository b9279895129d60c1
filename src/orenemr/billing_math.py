"""Invoice arithmetic shown while an invoice is edited.

The server recomputes these on save; this module mirrors its rules so the
form can preview totals and the status a payment will lead to.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

DUE_IN_DAYS = 30


def line_total(item: dict[str, Any]) -> float:
    return float(item.get("quantity") or 0) * float(item.get("unitPrice") or 0)


def compute_totals(
    items: Iterable[dict[str, Any]], tax: float = 0, discount: float = 0
) -> dict[str, Any]:
    """Return the items with their ``total`` filled in, plus subtotal and total.

    total = subtotal + tax - discount
    """
    priced = [{**item, "total": line_total(item)} for item in items]
    subtotal = sum(item["total"] for item in priced)
    return {
        "items": priced,
        "subtotal": subtotal,
        "total": subtotal + (tax or 0) - (discount or 0),
    }


def total_paid(payments: Iterable[dict[str, Any]]) -> float:
    return sum(float(p.get("amount") or 0) for p in payments)


def balance_due(invoice: dict[str, Any]) -> float:
    paid = total_paid(invoice.get("paymentHistory") or [])
    return float(invoice.get("total") or 0) - paid


def payment_status(
    total: float, payments: Iterable[dict[str, Any]], current: str
) -> str:
    """Status after recording payments: "paid" once they cover the total,
    "partial" when something was paid, otherwise ``current`` unchanged."""
    paid = total_paid(payments)
    if paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return current


def default_due_date(issued: date) -> date:
    return issued + timedelta(days=DUE_IN_DAYS)


def suggest_invoice_number(
    now: datetime | None = None, sequence: int | None = None
) -> str:
    """Invoice number in the server's format, e.g. "INV-2410-0042".

    Without ``sequence`` the last four digits are random, as on the server.
    """
    now = now or datetime.now()
    if sequence is None:
        sequence = random.randrange(10000)
    return f"INV-{now:%y%m}-{sequence % 10000:04d}"
