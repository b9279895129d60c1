"""Invoice list, invoice form and invoice details with payments."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import streamlit as st

from orenemr.api_client import DuplicateInvoiceError, OrenEMRAPIError
from orenemr.billing_math import (
    balance_due,
    compute_totals,
    default_due_date,
    payment_status,
    suggest_invoice_number,
    total_paid,
)
from orenemr.models import Invoice, InvoiceItem, ref_id
from orenemr.resources import billing as billing_api
from orenemr.ui import components, session
from orenemr.validation import validate_invoice

logger = logging.getLogger(__name__)

STATUSES = ("draft", "sent", "paid", "partial", "overdue", "cancelled")
PAGE_KEY = "billing-page"


def _money(value: Any) -> str:
    return f"${float(value or 0):,.2f}"


def _date(value: Any) -> date | None:
    return date.fromisoformat(str(value)[:10]) if value else None


# --- List ---


def invoice_list_page() -> None:
    st.title("Billing")
    try:
        summary = session.call(billing_api.billing_summary)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the billing summary", exc)
        summary = {}
    cols = st.columns(3)
    cols[0].metric("Billed this month", _money(summary.get("billedThisMonth")))
    cols[1].metric("Collected this month", _money(summary.get("collectedThisMonth")))
    cols[2].metric("Outstanding", _money(summary.get("outstanding")))

    c1, c2, c3 = st.columns([2, 2, 1])
    status = c1.selectbox("Status", ("",) + STATUSES, format_func=lambda s: s or "All")
    with c2:
        patient = components.patient_picker("Patient", key="billing-patient")
    if c3.button("New invoice", type="primary"):
        session.navigate("invoice-new")

    try:
        data = session.call(
            billing_api.list_invoices,
            status=status,
            patient=patient,
            page=components.current_page(PAGE_KEY),
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading invoices", exc)
        return

    invoices = data.get("invoices", [])
    if not invoices:
        st.info("No invoices found.")
        return
    st.dataframe(
        [
            {
                "Invoice": inv.get("invoiceNumber", ""),
                "Patient": components.person(inv.get("patient")),
                "Issued": str(inv.get("dateIssued", ""))[:10],
                "Due": str(inv.get("dueDate", ""))[:10],
                "Total": _money(inv.get("total")),
                "Balance": _money(balance_due(inv)),
                "Status": inv.get("status", ""),
            }
            for inv in invoices
        ],
        use_container_width=True,
        hide_index=True,
    )
    for inv in invoices:
        if st.button(f"Open {inv.get('invoiceNumber', '')}", key=f"open-{inv['_id']}"):
            session.navigate("invoice", id=inv["_id"])
    components.pager(data.get("totalPages", 1), PAGE_KEY)


# --- Form ---


def _form_defaults(invoice_id: str) -> dict[str, Any] | None:
    if invoice_id:
        try:
            record = session.call(billing_api.get_invoice, invoice_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Loading the invoice", exc)
            return None
        return Invoice.model_validate(record).to_payload()
    today = date.today()
    return Invoice(
        invoice_number=suggest_invoice_number(),
        patient=session.param("patient") or None,
        date_issued=today,
        due_date=default_due_date(today),
        items=[InvoiceItem()],
    ).to_payload()


def invoice_form_page() -> None:
    invoice_id = session.param("id")
    st.title("Edit invoice" if invoice_id else "New invoice")
    form = _form_defaults(invoice_id)
    if form is None:
        return
    if form.get("status") == "paid":
        st.warning("Paid invoices cannot be edited.")
        return

    c1, c2 = st.columns(2)
    number = c1.text_input("Invoice number *", form.get("invoiceNumber", ""))
    with c2:
        patient = components.patient_picker("Patient *", form.get("patient"))
    issued = c1.date_input(
        "Date issued *", _date(form.get("dateIssued")) or date.today()
    )
    due = c2.date_input(
        "Due date *", _date(form.get("dueDate")) or default_due_date(issued)
    )
    status = c1.selectbox(
        "Status",
        STATUSES,
        index=STATUSES.index(form["status"]) if form.get("status") in STATUSES else 0,
    )

    st.subheader("Items")
    rows = [
        {k: item.get(k) for k in ("description", "code", "quantity", "unitPrice")}
        for item in form.get("items", [])
    ]
    edited = st.data_editor(
        rows,
        num_rows="dynamic",
        column_config={
            "description": st.column_config.TextColumn("Description", required=True),
            "code": st.column_config.TextColumn("Code"),
            "quantity": st.column_config.NumberColumn("Qty", min_value=0, step=1),
            "unitPrice": st.column_config.NumberColumn("Unit price", min_value=0),
        },
        key="invoice-items",
        use_container_width=True,
    )
    t1, t2 = st.columns(2)
    tax = t1.number_input("Tax", min_value=0.0, value=float(form.get("tax") or 0))
    discount = t2.number_input(
        "Discount", min_value=0.0, value=float(form.get("discount") or 0)
    )
    totals = compute_totals([dict(row) for row in edited], tax, discount)
    m1, m2 = st.columns(2)
    m1.metric("Subtotal", _money(totals["subtotal"]))
    m2.metric("Total", _money(totals["total"]))
    notes = st.text_area("Notes", form.get("notes", ""))

    if not st.button("Save invoice", type="primary"):
        return
    data = {
        **form,
        "invoiceNumber": number.strip(),
        "patient": patient,
        "dateIssued": issued.isoformat(),
        "dueDate": due.isoformat(),
        "status": status,
        "items": totals["items"],
        "subtotal": totals["subtotal"],
        "tax": tax,
        "discount": discount,
        "total": totals["total"],
        "notes": notes,
    }
    errors = validate_invoice(data)
    if errors:
        components.show_errors(errors)
        return
    try:
        saved = session.call(billing_api.save_invoice, data, invoice_id or None)
    except DuplicateInvoiceError:
        st.error(f"Invoice number {number} already exists. Please use another.")
        return
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the invoice", exc)
        return
    session.flash("Invoice saved.")
    session.navigate("invoice", id=saved.get("_id") or invoice_id)


# --- Details ---


def _payment_form(invoice: dict[str, Any]) -> None:
    balance = balance_due(invoice)
    with st.form("payment", clear_on_submit=True):
        c1, c2 = st.columns(2)
        amount = c1.number_input(
            "Amount", min_value=0.0, value=max(balance, 0.0), step=10.0
        )
        method = c2.selectbox("Method", billing_api.PAYMENT_METHODS)
        reference = c1.text_input("Reference")
        notes = c2.text_input("Notes")
        submitted = st.form_submit_button("Record payment", type="primary")
    if not submitted:
        return
    try:
        session.call(
            billing_api.record_payment, invoice["_id"], amount, method, reference, notes
        )
    except ValueError as exc:
        st.error(str(exc))
        return
    except OrenEMRAPIError as exc:
        components.api_failed("Recording the payment", exc)
        return
    payments = [*invoice.get("paymentHistory", []), {"amount": amount}]
    total = float(invoice.get("total") or 0)
    new_status = payment_status(total, payments, invoice["status"])
    session.flash(f"Payment of {_money(amount)} recorded. Invoice is now {new_status}.")
    session.navigate("invoice", id=invoice["_id"])


def invoice_details_page() -> None:
    invoice_id = session.param("id")
    try:
        invoice = session.call(billing_api.get_invoice, invoice_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the invoice", exc)
        return

    st.title(f"Invoice {invoice.get('invoiceNumber', '')}")
    st.caption(f"Patient: {components.person(invoice.get('patient'))}")
    cols = st.columns(4)
    cols[0].metric("Status", invoice.get("status", ""))
    cols[1].metric("Total", _money(invoice.get("total")))
    cols[2].metric("Paid", _money(total_paid(invoice.get("paymentHistory", []))))
    cols[3].metric("Balance", _money(balance_due(invoice)))
    st.write(
        f"Issued {str(invoice.get('dateIssued', ''))[:10]}, "
        f"due {str(invoice.get('dueDate', ''))[:10]}"
    )

    st.subheader("Items")
    st.dataframe(
        [
            {
                "Description": item.get("description", ""),
                "Code": item.get("code", ""),
                "Qty": item.get("quantity", 0),
                "Unit price": _money(item.get("unitPrice")),
                "Total": _money(item.get("total")),
            }
            for item in invoice.get("items", [])
        ],
        use_container_width=True,
        hide_index=True,
    )
    st.write(
        f"Subtotal {_money(invoice.get('subtotal'))} + tax {_money(invoice.get('tax'))}"
        f" - discount {_money(invoice.get('discount'))}"
    )
    if invoice.get("notes"):
        st.write(f"**Notes:** {invoice['notes']}")

    st.subheader("Payments")
    history = invoice.get("paymentHistory", [])
    if history:
        st.dataframe(
            [
                {
                    "Date": str(p.get("date", ""))[:10],
                    "Amount": _money(p.get("amount")),
                    "Method": p.get("method", ""),
                    "Reference": p.get("reference", ""),
                    "Notes": p.get("notes", ""),
                }
                for p in history
            ],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No payments recorded.")
    if invoice.get("status") not in ("paid", "cancelled"):
        _payment_form(invoice)
        if st.button("Edit invoice"):
            session.navigate("invoice-edit", id=invoice_id)

    patient_id = ref_id(invoice.get("patient"))
    if patient_id and st.button("Open patient"):
        session.navigate("patient", id=patient_id)
