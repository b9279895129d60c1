"""Tests for the entity models and reference helpers."""

from __future__ import annotations

from datetime import date

import pytest

from orenemr.models import (
    Appointment,
    DischargeVisit,
    FollowupVisit,
    InitialVisit,
    Invoice,
    Note,
    Patient,
    parse_visit,
    ref_id,
    ref_name,
    visit_kind,
)


def test_patient_reads_camel_case_and_keeps_unknown_fields() -> None:
    patient = Patient.model_validate(
        {
            "_id": "p1",
            "firstName": "Ana",
            "lastName": "Lopez",
            "medicalHistory": {"allergies": ["Latex"]},
            "createdAt": "2024-01-01T00:00:00Z",
        }
    )

    assert patient.id == "p1"
    assert patient.full_name == "Ana Lopez"
    assert patient.medical_history.allergies == ["Latex"]
    assert patient.to_payload()["createdAt"] == "2024-01-01T00:00:00Z"


def test_to_payload_uses_aliases_and_iso_dates() -> None:
    patient = Patient(first_name="Ana", date_of_birth=date(1990, 4, 2))

    payload = patient.to_payload()

    assert payload["firstName"] == "Ana"
    assert payload["dateOfBirth"] == "1990-04-02"
    assert payload["address"]["zipCode"] == ""
    # None fields are left out
    assert "_id" not in payload
    assert "attorney" not in payload


def test_appointment_defaults() -> None:
    appointment = Appointment.model_validate(
        {"patient": {"_id": "p1"}, "time": {"start": "09:00", "end": "09:30"}}
    )

    assert appointment.status == "scheduled"
    assert appointment.type == "initial"
    assert ref_id(appointment.patient) == "p1"
    assert "googleCalendarEventId" not in appointment.to_payload()


def test_invoice_items_and_payments() -> None:
    invoice = Invoice.model_validate(
        {
            "invoiceNumber": "INV-2405-0001",
            "items": [{"description": "Adjustment", "unitPrice": 80}],
            "paymentHistory": [{"amount": 20, "method": "credit"}],
        }
    )

    assert invoice.items[0].quantity == 1
    assert invoice.items[0].unit_price == 80
    assert invoice.payment_history[0].method == "credit"


def test_note_rejects_unknown_type() -> None:
    with pytest.raises(ValueError):
        Note.model_validate({"noteType": "Gossip"})


class TestVisits:
    """Visit records arrive with visitType or only the "__t" discriminator."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"visitType": "followup"}, "followup"),
            ({"__t": "DischargeVisit"}, "discharge"),
            ({"__t": "InitialVisit"}, "initial"),
            ({}, ""),
        ],
    )
    def test_visit_kind(self, data: dict[str, str], expected: str) -> None:
        assert visit_kind(data) == expected

    def test_parse_visit_picks_model(self) -> None:
        assert isinstance(parse_visit({"__t": "InitialVisit"}), InitialVisit)
        assert isinstance(parse_visit({"visitType": "followup"}), FollowupVisit)
        discharge = parse_visit({"visitType": "discharge", "homeCare": ["Ice"]})
        assert isinstance(discharge, DischargeVisit)
        assert discharge.home_care == ["Ice"]

    def test_parse_visit_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown visit type"):
            parse_visit({"visitType": "telehealth"})

    def test_initial_visit_payload_keeps_nested_camel_case(self) -> None:
        visit = InitialVisit.model_validate(
            {"durationFrequency": {"timesPerWeek": "3"}, "chiefComplaint": "Neck"}
        )

        payload = visit.to_payload()

        assert payload["visitType"] == "initial"
        assert payload["durationFrequency"] == {
            "timesPerWeek": "3",
            "reEvalInWeeks": "",
        }


def test_ref_helpers() -> None:
    doctor = {"_id": "d1", "firstName": "Ana", "lastName": "Smith"}

    assert ref_id(doctor) == "d1"
    assert ref_id("d2") == "d2"
    assert ref_id(None) == ""
    assert ref_name(doctor) == "Ana Smith"
    assert ref_name("d2", "Unknown") == "Unknown"
