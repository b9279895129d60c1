"""Page-level tests run through Streamlit's AppTest.

Concept - AppTest:
    streamlit.testing runs a page script headless, lets the test fill in
    widgets and click buttons, and exposes what was rendered (errors,
    select boxes, uncaught exceptions). The resource functions are patched
    with AsyncMocks, so no clinic server is involved.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from orenemr.api_client import OrenEMRAPIError, OrenEMRAuthError

DOCTORS = [{"_id": "d1", "firstName": "Sam", "lastName": "Reyes"}]


def _patient_form_page() -> None:
    from orenemr.ui.views import patients

    patients.patient_form_page()


def _patient_picker_page() -> None:
    from orenemr.ui import components

    components.patient_picker("Patient")


def _doctor_picker_page() -> None:
    import streamlit as st

    from orenemr.ui import components

    if st.query_params.get("page") != "login":
        components.doctor_picker("Doctor")


def _app(script) -> AppTest:
    at = AppTest.from_function(script, default_timeout=30)
    at.session_state["token"] = "user-token"
    at.session_state["user"] = {"_id": "u1", "role": "doctor"}
    at.session_state["toasts"] = []
    at.session_state["drafts"] = {}
    return at


def _text_input(at: AppTest, label: str):
    return next(widget for widget in at.text_input if widget.label == label)


@pytest.fixture(autouse=True)
def _clear_cached_lists():
    """Picker lists are cached per token; start every test empty."""
    st.cache_data.clear()
    yield
    st.cache_data.clear()


class TestPatientForm:
    """Saving the new-patient form."""

    def test_missing_required_field_is_reported_and_not_saved(self) -> None:
        create = AsyncMock(return_value={"patient": {"_id": "p1"}})
        with (
            patch(
                "orenemr.resources.auth.list_doctors",
                AsyncMock(return_value=DOCTORS),
            ),
            patch("orenemr.resources.patients.create_patient", create),
        ):
            at = _app(_patient_form_page)
            at.run()
            _text_input(at, "First name *").input("Ana")
            _text_input(at, "Email *").input("ana@example.com")
            _text_input(at, "Phone *").input("555-0100")
            at.date_input[0].set_value(date(1990, 4, 2))
            doctor = next(s for s in at.selectbox if s.label == "Assigned doctor *")
            doctor.select_index(1)
            next(b for b in at.button if b.label == "Save patient").click()
            at.run()

        assert not at.exception
        messages = " ".join(error.value for error in at.error)
        assert "Last name is required" in messages
        assert "First name is required" not in messages
        create.assert_not_awaited()


class TestPickers:
    """Select boxes fed from the API degrade instead of crashing the page."""

    def test_unreachable_server_shows_error_and_empty_picker(self) -> None:
        failure = OrenEMRAPIError(0, "refused", "Could not reach the clinic server.")
        with patch(
            "orenemr.resources.patients.list_patients",
            AsyncMock(side_effect=failure),
        ):
            at = _app(_patient_picker_page)
            at.run()

        assert not at.exception
        assert at.error[0].value == (
            "Loading patients failed: Could not reach the clinic server."
        )
        assert len(at.selectbox) == 1

    def test_expired_session_logs_out(self) -> None:
        expired = OrenEMRAuthError("Your session has expired. Please log in again.")
        with patch(
            "orenemr.resources.auth.list_doctors",
            AsyncMock(side_effect=expired),
        ):
            at = _app(_doctor_picker_page)
            at.run()

        assert not at.exception
        assert at.session_state["token"] == ""
        assert at.session_state["user"] is None
