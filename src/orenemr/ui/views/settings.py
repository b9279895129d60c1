"""Profile, password and Google Calendar settings."""

from __future__ import annotations

import logging

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.resources import auth as auth_api
from orenemr.resources import google_calendar as calendar_api
from orenemr.ui import components, session

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def _profile_form() -> None:
    user = session.current_user() or {}
    st.subheader("Profile")
    with st.form("profile"):
        c1, c2 = st.columns(2)
        first_name = c1.text_input("First name", user.get("firstName", ""))
        last_name = c2.text_input("Last name", user.get("lastName", ""))
        email = st.text_input("Email", user.get("email", ""))
        submitted = st.form_submit_button("Save profile")
    if not submitted:
        return
    try:
        data = session.call(auth_api.update_profile, first_name, last_name, email)
    except OrenEMRAPIError as exc:
        components.api_failed("Updating the profile", exc)
        return
    session.set_auth(st.session_state.token, data.get("user", {**user, **data}))
    components.refresh_pickers()
    session.flash("Profile updated.")
    session.navigate("settings")


def _password_form() -> None:
    st.subheader("Password")
    with st.form("password", clear_on_submit=True):
        current = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Change password")
    if not submitted:
        return
    if len(new) < MIN_PASSWORD_LENGTH:
        st.error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return
    if new != confirm:
        st.error("New passwords do not match.")
        return
    try:
        session.call(auth_api.change_password, current, new)
    except OrenEMRAPIError as exc:
        components.api_failed("Changing the password", exc)
        return
    st.success("Password changed.")


def _calendar_panel() -> None:
    st.subheader("Google Calendar")
    c1, c2 = st.columns(2)
    try:
        if c1.button("Connect Google Calendar"):
            url = session.call(calendar_api.get_auth_url)
            st.link_button("Continue to Google", url, type="primary")
        if c2.button("Sync all appointments"):
            with st.spinner("Syncing..."):
                results = session.call(calendar_api.sync_all)
            failed = [r for r in results if r.get("status") != "success"]
            st.success(f"Synced {len(results) - len(failed)} appointment(s).")
            if failed:
                st.warning(f"{len(failed)} appointment(s) could not be synced.")
    except OrenEMRAPIError as exc:
        components.api_failed("Google Calendar", exc)


def settings_page() -> None:
    st.title("Settings")
    if session.param("calendarConnected") == "true":
        st.success("Google Calendar connected.")
    _profile_form()
    _password_form()
    _calendar_panel()
