"""Tests for the resource functions.

Each test hands the function an AsyncMock in place of OrenEMRClient, so no
server is needed. We verify the endpoint and payload each call sends and
how server errors map onto the typed exceptions the pages catch.
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from orenemr.api_client import (
    AppointmentConflictError,
    DuplicateInvoiceError,
    OrenEMRAPIError,
)
from orenemr.resources import appointments, billing, google_calendar, notes
from orenemr.resources import notifications, patients, reports, visits


def _mock_client(**responses: Any) -> AsyncMock:
    """Create a mock client; keyword arguments set each verb's return value."""
    client = AsyncMock()
    for verb, value in responses.items():
        getattr(client, verb).return_value = value
    return client


# --- appointments ---


@pytest.mark.asyncio
async def test_save_appointment_creates_without_id() -> None:
    client = _mock_client(post={"appointment": {"_id": "a1"}})

    saved = await appointments.save_appointment(client, {"date": "2024-05-01"})

    assert saved == {"_id": "a1"}
    client.post.assert_awaited_once_with(
        "/appointments", json_data={"date": "2024-05-01"}
    )


@pytest.mark.asyncio
async def test_save_appointment_updates_with_id() -> None:
    client = _mock_client(put={"_id": "a1", "status": "scheduled"})

    saved = await appointments.save_appointment(client, {"notes": "x"}, "a1")

    assert saved["status"] == "scheduled"
    client.put.assert_awaited_once_with("/appointments/a1", json_data={"notes": "x"})


@pytest.mark.asyncio
async def test_overlapping_slot_raises_conflict_error() -> None:
    """A 400 "Conflicting appointment exists" means the slot is taken."""
    client = AsyncMock()
    client.post.side_effect = OrenEMRAPIError(
        400, "{}", appointments.CONFLICT_MESSAGE
    )

    with pytest.raises(AppointmentConflictError):
        await appointments.save_appointment(client, {})


@pytest.mark.asyncio
async def test_other_appointment_errors_pass_through() -> None:
    client = AsyncMock()
    client.post.side_effect = OrenEMRAPIError(400, "bad", "Patient not found")

    with pytest.raises(OrenEMRAPIError) as excinfo:
        await appointments.save_appointment(client, {})

    assert not isinstance(excinfo.value, AppointmentConflictError)


@pytest.mark.asyncio
async def test_cancel_appointment_sends_notes() -> None:
    client = _mock_client(patch={"appointment": {"status": "cancelled"}})

    result = await appointments.cancel_appointment(client, "a1", "Patient ill")

    assert result["status"] == "cancelled"
    client.patch.assert_awaited_once_with(
        "/appointments/a1/cancel", json_data={"notes": "Patient ill"}
    )


# --- billing ---


@pytest.mark.asyncio
async def test_duplicate_invoice_number_raises_duplicate_error() -> None:
    client = AsyncMock()
    client.post.side_effect = OrenEMRAPIError(409, "dup", "Invoice number exists")

    with pytest.raises(DuplicateInvoiceError):
        await billing.save_invoice(client, {"invoiceNumber": "INV-1"})


@pytest.mark.asyncio
async def test_record_payment_posts_payment() -> None:
    client = _mock_client(post={"invoice": {"status": "partial"}})

    invoice = await billing.record_payment(client, "i1", 50.0, "credit", "ref-9")

    assert invoice["status"] == "partial"
    client.post.assert_awaited_once_with(
        "/billing/i1/payments",
        json_data={
            "amount": 50.0,
            "method": "credit",
            "reference": "ref-9",
            "notes": "",
        },
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("amount,method", [(0, "cash"), (-5, "cash"), (10, "bitcoin")])
async def test_record_payment_rejects_bad_input(amount: float, method: str) -> None:
    client = AsyncMock()

    with pytest.raises(ValueError):
        await billing.record_payment(client, "i1", amount, method)

    client.post.assert_not_awaited()


@pytest.mark.asyncio
async def test_invoice_count_returns_int() -> None:
    client = _mock_client(get={"totalInvoices": 3})

    assert await billing.invoice_count(client, "p1") == 3
    client.get.assert_awaited_once_with("/billing/count/p1")


# --- visits ---


@pytest.mark.asyncio
async def test_create_visit_sets_type() -> None:
    client = _mock_client(post={"visit": {"_id": "v1"}})

    visit = await visits.create_visit(client, "discharge", {"visitType": "x", "a": 1})

    assert visit == {"_id": "v1"}
    client.post.assert_awaited_once_with(
        "/visits", json_data={"visitType": "discharge", "a": 1}
    )


@pytest.mark.asyncio
async def test_create_visit_rejects_unknown_type() -> None:
    with pytest.raises(ValueError, match="Unknown visit type"):
        await visits.create_visit(AsyncMock(), "house-call", {})


@pytest.mark.asyncio
async def test_generate_narrative_without_success_is_empty() -> None:
    client = _mock_client(post={"success": False, "narrative": "ignored"})

    assert await visits.generate_narrative(client, {}) == ""


@pytest.mark.asyncio
async def test_create_visit_with_narrative_patches_visit() -> None:
    client = AsyncMock()
    client.post.side_effect = [
        {"visit": {"_id": "v1"}},
        {"success": True, "narrative": "Patient improving."},
    ]
    client.patch.return_value = {}

    visit = await visits.create_visit_with_narrative(
        client, "followup", {"patient": "p1"}, {"notes": "better"}
    )

    assert visit == {"_id": "v1"}
    narrative_call = client.post.await_args_list[1]
    assert narrative_call.args == ("/generate-narrative",)
    assert narrative_call.kwargs["json_data"] == {
        "notes": "better",
        "visitType": "followup",
    }
    client.patch.assert_awaited_once_with(
        "/visits/v1", json_data={"aiNarrative": "Patient improving."}
    )


@pytest.mark.asyncio
async def test_narrative_failure_keeps_saved_visit() -> None:
    """The visit is already saved; a narrative error must not surface."""
    client = AsyncMock()
    client.post.side_effect = [
        {"visit": {"_id": "v1"}},
        OrenEMRAPIError(500, "boom", "LLM unavailable"),
    ]

    visit = await visits.create_visit_with_narrative(client, "initial", {}, {})

    assert visit == {"_id": "v1"}
    client.patch.assert_not_awaited()


# --- notes ---


class TestNotes:
    """Tests for note multipart forms and attachment handling."""

    def test_build_note_form_encodes_lists_and_flags(self) -> None:
        fields = notes.build_note_form(
            {
                "title": "Progress",
                "patient": {"_id": "p1", "firstName": "Ana"},
                "visit": "v1",
                "diagnosisCodes": [{"code": "M54.5", "description": "Low back pain"}],
                "isAiGenerated": True,
            }
        )

        assert fields["patientId"] == "p1"
        assert fields["visitId"] == "v1"
        assert fields["isAiGenerated"] == "true"
        assert fields["noteType"] == "Progress"
        assert json.loads(fields["diagnosisCodes"])[0]["code"] == "M54.5"
        assert json.loads(fields["treatmentCodes"]) == []
        assert "removeAttachments" not in fields

    @pytest.mark.asyncio
    async def test_save_note_rejects_more_than_five_attachments(self) -> None:
        client = AsyncMock()
        files = [(f"f{i}.pdf", b"x", "application/pdf") for i in range(6)]

        with pytest.raises(ValueError, match="at most 5"):
            await notes.save_note(client, {"title": "t"}, files)

        client.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_sends_attachments_as_multipart(self) -> None:
        client = _mock_client(post={"_id": "n1"})
        scan = ("scan.pdf", b"%PDF", "application/pdf")

        note = await notes.save_note(client, {"title": "t"}, [scan], ["old1"])

        assert note == {"_id": "n1"}
        call = client.post.await_args
        assert call.args == ("/notes",)
        assert call.kwargs["files"] == [("attachments", scan)]
        # Nothing to remove on a brand new note
        assert "removeAttachments" not in call.kwargs["data"]

    @pytest.mark.asyncio
    async def test_update_sends_removed_attachment_ids(self) -> None:
        client = _mock_client(put={"_id": "n1"})

        await notes.save_note(client, {"title": "t"}, None, ["att1", "att2"], "n1")

        call = client.put.await_args
        assert call.args == ("/notes/n1",)
        assert call.kwargs["files"] is None
        assert json.loads(call.kwargs["data"]["removeAttachments"]) == ["att1", "att2"]

    @pytest.mark.asyncio
    async def test_generate_note_sends_optional_fields_only_when_set(self) -> None:
        client = _mock_client(post={"note": {"_id": "n2"}})

        note = await notes.generate_note(client, "p1", "SOAP")

        assert note == {"_id": "n2"}
        client.post.assert_awaited_once_with(
            "/notes/generate", json_data={"patientId": "p1", "noteType": "SOAP"}
        )


# --- notifications and Google Calendar ---


@pytest.mark.asyncio
async def test_mark_all_read_returns_count() -> None:
    client = _mock_client(put={"message": "ok", "count": 4})

    assert await notifications.mark_all_read(client, "task_due") == 4
    client.put.assert_awaited_once_with(
        "/notifications/mark-all-read", params={"type": "task_due"}
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("code,state", [("", "s"), ("c", "")])
async def test_complete_authorization_needs_code_and_state(
    code: str, state: str
) -> None:
    client = AsyncMock()

    with pytest.raises(ValueError):
        await google_calendar.complete_authorization(client, code, state)

    client.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_sync_all_returns_results() -> None:
    results = [
        {"appointmentId": "a1", "status": "success"},
        {"appointmentId": "a2", "status": "error", "message": "quota"},
    ]
    client = _mock_client(post={"results": results})

    assert await google_calendar.sync_all(client) == results


# --- patients and reports ---


@pytest.mark.asyncio
async def test_submit_public_form_skips_auth() -> None:
    client = _mock_client(post={"message": "ok"})

    await patients.submit_public_form(client, "tok", {"firstName": "Ana"})

    client.post.assert_awaited_once_with(
        "/patients/form-submission/tok", json_data={"firstName": "Ana"}, auth=False
    )


@pytest.mark.asyncio
async def test_send_form_to_client_includes_patient_when_given() -> None:
    client = _mock_client(post={"emailSent": True})

    await patients.send_form_to_client(client, "a@b.c", "Ana", patient_id="p1")

    payload = client.post.await_args.kwargs["json_data"]
    assert payload["patientId"] == "p1"
    assert payload["language"] == "english"


@pytest.mark.asyncio
async def test_upload_and_email_report() -> None:
    client = _mock_client(post={"message": "ok"})

    await reports.upload_report(client, "cases.pdf", b"%PDF")
    await reports.email_report(client, "boss@clinic.test", "cases.pdf")

    upload, email = client.post.await_args_list
    pdf = ("cases.pdf", b"%PDF", "application/pdf")
    assert upload.kwargs["files"] == [("file", pdf)]
    assert email.kwargs["json_data"] == {
        "email": "boss@clinic.test",
        "fileName": "cases.pdf",
    }
