"""Per-browser session state and the bridge from pages to the API.

st.session_state persists across reruns (one per browser tab). We keep:
- token / user: the login, last write wins
- toasts: messages queued by one run and shown on the next
- drafts: unsaved visit forms, keyed per patient

The current page and its parameters live in the URL query string
(st.query_params), so links such as the emailed intake form work.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, NoReturn, TypeVar

import streamlit as st

from orenemr.api_client import OrenEMRAuthError, OrenEMRClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def init_session() -> None:
    defaults: dict[str, Any] = {"token": "", "user": None, "toasts": [], "drafts": {}}
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


# --- Auth ---


def current_user() -> dict[str, Any] | None:
    return st.session_state.get("user")


def is_authenticated() -> bool:
    return bool(st.session_state.get("token")) and current_user() is not None


def set_auth(token: str, user: dict[str, Any]) -> None:
    st.session_state.token = token
    st.session_state.user = user


def logout() -> None:
    st.session_state.token = ""
    st.session_state.user = None
    st.session_state.drafts = {}


# --- API calls ---


def _client_for(token: str) -> OrenEMRClient:
    if token:
        # A user's token is only ever replaced by logging in as that user
        return OrenEMRClient(token=token, username="", password="")
    return OrenEMRClient()


async def with_client(
    fn: Callable[..., Coroutine[Any, Any, T]], token: str, *args: Any, **kwargs: Any
) -> T:
    """Await fn(client, ...) on a client that lives for this call only.

    With a user token, a 401 raises OrenEMRAuthError instead of falling back
    to the configured service credentials. Token-less calls (login, public
    intake) keep those credentials.
    """
    async with _client_for(token) as client:
        return await fn(client, *args, **kwargs)


def call(fn: Callable[..., Coroutine[Any, Any, T]], *args: Any, **kwargs: Any) -> T:
    """Run a resource function with a client for this script run.

    Example:
        patients = call(patients_api.list_patients, search="Lopez")

    An expired session logs the user out and sends them back to login;
    every other error propagates to the page.
    """
    token = st.session_state.get("token", "")
    try:
        return run_async(with_client(fn, token, *args, **kwargs))
    except OrenEMRAuthError as exc:
        logger.warning("Session ended: %s", exc)
        logout()
        flash(str(exc), "error")
        navigate("login")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine that does not need the API client."""
    return asyncio.run(coro)


# --- Toasts ---


def flash(message: str, kind: str = "success") -> None:
    """Queue a toast for the next run (survives st.rerun)."""
    st.session_state.toasts.append((message, kind))


def show_toasts() -> None:
    icons = {"success": "✅", "error": "⚠️", "info": "ℹ️"}
    for message, kind in st.session_state.toasts:
        st.toast(message, icon=icons.get(kind))
    st.session_state.toasts = []


# --- Navigation ---


def navigate(page: str, **params: str) -> NoReturn:
    """Switch page (and its parameters) and rerun the script."""
    st.query_params.clear()
    st.query_params.update({"page": page, **params})
    st.rerun()


def param(name: str, default: str = "") -> str:
    return st.query_params.get(name, default)


# --- Drafts ---


def drafts() -> dict[str, Any]:
    return st.session_state.drafts
