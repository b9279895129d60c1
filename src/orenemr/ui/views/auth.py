"""Login, registration, staff accounts and the Google Calendar callback."""

from __future__ import annotations

import logging

import streamlit as st

from orenemr.api_client import OrenEMRAPIError, OrenEMRAuthError
from orenemr.resources import auth as auth_api
from orenemr.resources import google_calendar as calendar_api
from orenemr.ui import components, session

logger = logging.getLogger(__name__)

ROLES = ("doctor", "admin")


def login_page() -> None:
    st.title("OrenEMR")
    st.caption("Sign in to your account")

    with st.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")

    if submitted:
        if not username or not password:
            st.error("Please enter your username and password.")
            return
        try:
            result = session.run_async(
                session.with_client(auth_api.login, "", username, password)
            )
        except OrenEMRAuthError as exc:
            logger.info("Login failed for %s: %s", username, exc)
            st.error("Invalid username or password.")
            return
        session.set_auth(result["token"], result["user"])
        session.flash(f"Welcome back, {result['user'].get('firstName', username)}!")
        session.navigate("dashboard")

    if st.button("Create an account"):
        session.navigate("register")


def _account_form(key: str, roles: tuple[str, ...]) -> dict[str, str] | None:
    with st.form(key, clear_on_submit=True):
        left, right = st.columns(2)
        first_name = left.text_input("First name")
        last_name = right.text_input("Last name")
        username = st.text_input("Username")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        role = st.selectbox("Role", roles)
        if not st.form_submit_button("Create account", type="primary"):
            return None
    if not all([first_name, last_name, username, email, password]):
        st.error("All fields are required.")
        return None
    return {
        "firstName": first_name,
        "lastName": last_name,
        "username": username,
        "email": email,
        "password": password,
        "role": role,
    }


def register_page() -> None:
    st.title("Create an account")
    payload = _account_form("register", ROLES[:1])
    if payload is not None:
        try:
            session.run_async(session.with_client(auth_api.register_user, "", payload))
        except OrenEMRAPIError as exc:
            components.api_failed("Registration", exc)
            return
        session.flash("Account created. You can sign in now.")
        session.navigate("login")
    if st.button("Back to sign in"):
        session.navigate("login")


def admin_page() -> None:
    st.title("Staff accounts")
    try:
        doctors = session.call(auth_api.list_doctors)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading doctors", exc)
        doctors = []
    st.subheader("Doctors")
    st.dataframe(
        [{"Name": components.person(d), "Email": d.get("email", "")} for d in doctors],
        use_container_width=True,
        hide_index=True,
    )

    st.subheader("Add an account")
    payload = _account_form("admin-register", ROLES)
    if payload is not None:
        try:
            session.call(auth_api.register_user, payload)
        except OrenEMRAPIError as exc:
            components.api_failed("Creating the account", exc)
            return
        components.refresh_pickers()
        session.flash(f"Account {payload['username']} created.")
        session.navigate("admin")


def google_callback_page() -> None:
    """Finish connecting Google Calendar after Google redirects back here."""
    st.title("Google Calendar")
    code, state = session.param("code"), session.param("state")
    if not code:
        st.error("No authorization code received from Google.")
    else:
        with st.spinner("Connecting to Google Calendar..."):
            try:
                session.call(calendar_api.complete_authorization, code, state)
            except (OrenEMRAPIError, ValueError) as exc:
                logger.warning("Google Calendar authorization failed: %s", exc)
                st.error("Failed to connect Google Calendar. Please try again.")
            else:
                session.flash("Google Calendar connected successfully!")
                session.navigate("settings")
    if st.button("Back to settings"):
        session.navigate("settings")
