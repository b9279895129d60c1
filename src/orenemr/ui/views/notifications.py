"""Notification center."""

from __future__ import annotations

import logging

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.models import ref_id
from orenemr.resources import notifications as notifications_api
from orenemr.ui import components, session

logger = logging.getLogger(__name__)

TYPES = ("task", "appointment", "system", "other")
TYPE_ICONS = {"task": "📋", "appointment": "📅", "system": "⚙️", "other": "🔔"}


def notifications_page() -> None:
    st.title("Notifications")
    c1, c2, c3 = st.columns([1, 1, 1])
    kind = c1.selectbox("Type", ("",) + TYPES, format_func=lambda t: t or "All")
    unread_only = c2.toggle("Unread only")
    show_dismissed = c3.toggle("Show dismissed")

    try:
        data = session.call(
            notifications_api.list_notifications,
            is_read=False if unread_only else None,
            is_dismissed=None if show_dismissed else False,
            type=kind,
        )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading notifications", exc)
        return

    unread = data.get("unreadCount", 0)
    st.caption(f"{unread} unread")
    if unread and st.button("Mark all as read"):
        try:
            count = session.call(notifications_api.mark_all_read, kind)
        except OrenEMRAPIError as exc:
            components.api_failed("Marking notifications read", exc)
        else:
            session.flash(f"Marked {count} notification(s) read.")
            session.navigate("notifications")

    notifications = data.get("notifications", [])
    if not notifications:
        st.info("You're all caught up.")
        return

    for note in notifications:
        note_id = note["_id"]
        with st.container(border=True):
            icon = TYPE_ICONS.get(note.get("type", ""), "")
            heading = f"{icon} **{note.get('title', '')}**"
            if not note.get("isRead"):
                heading += " :blue[new]"
            st.markdown(heading)
            st.write(note.get("message", ""))
            st.caption(str(note.get("createdAt", ""))[:16].replace("T", " "))
            cols = st.columns(4)
            try:
                if not note.get("isRead") and cols[0].button(
                    "Mark read", key=f"read-{note_id}"
                ):
                    session.call(notifications_api.mark_read, note_id)
                    session.navigate("notifications")
                if not note.get("isDismissed") and cols[1].button(
                    "Dismiss", key=f"dismiss-{note_id}"
                ):
                    session.call(notifications_api.dismiss, note_id)
                    session.navigate("notifications")
                if cols[2].button("Delete", key=f"delete-{note_id}"):
                    session.call(notifications_api.delete_notification, note_id)
                    session.navigate("notifications")
            except OrenEMRAPIError as exc:
                components.api_failed("Updating the notification", exc)
            task_id = ref_id(note.get("relatedTask"))
            if task_id and cols[3].button("Open task", key=f"task-{note_id}"):
                session.navigate("task", id=task_id)
