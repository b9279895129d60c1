"""Staff tasks: list, form and details."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import streamlit as st

from orenemr.api_client import OrenEMRAPIError
from orenemr.models import Task, ref_id
from orenemr.resources import tasks as tasks_api
from orenemr.ui import components, session
from orenemr.validation import validate_task

logger = logging.getLogger(__name__)

PRIORITIES = ("low", "medium", "high")
STATUSES = ("pending", "in-progress", "completed")
PRIORITY_ICONS = {"low": "⚪", "medium": "🟠", "high": "🔴"}


def _index(options: tuple[str, ...], value: Any) -> int:
    return options.index(value) if value in options else 0


def _or_all(value: str) -> str:
    return value or "All"


def task_list_page() -> None:
    st.title("Tasks")
    c1, c2, c3, c4 = st.columns([2, 1, 1, 1])
    search = c1.text_input("Search tasks")
    status = c2.selectbox("Status", ("",) + STATUSES, format_func=_or_all)
    priority = c3.selectbox("Priority", ("",) + PRIORITIES, format_func=_or_all)
    mine = c4.toggle("Only mine", value=True)
    if st.button("New task", type="primary"):
        session.navigate("task-new")

    try:
        if mine:
            tasks = session.call(tasks_api.my_tasks, status)
        else:
            tasks = session.call(
                tasks_api.list_tasks, status=status, priority=priority, search=search
            )
    except OrenEMRAPIError as exc:
        components.api_failed("Loading tasks", exc)
        return

    if mine:
        term = search.lower()
        tasks = [
            t
            for t in tasks
            if (not priority or t.get("priority") == priority)
            and (not term or term in t.get("title", "").lower())
        ]
    if not tasks:
        st.info("No tasks found.")
        return

    today = date.today().isoformat()
    for task in tasks:
        due = str(task.get("dueDate") or "")[:10]
        overdue = due and due < today and task.get("status") != "completed"
        left, right = st.columns([5, 1])
        left.markdown(
            f"{PRIORITY_ICONS.get(task.get('priority', ''), '')} "
            f"**{task.get('title', '')}**"
            f"  \n{task.get('status', '')} | due {due or '-'}"
            f"{' (overdue)' if overdue else ''} | "
            f"{components.person(task.get('patient'))}"
        )
        if right.button("Open", key=f"open-{task['_id']}"):
            session.navigate("task", id=task["_id"])


def task_form_page() -> None:
    task_id = session.param("id")
    st.title("Edit task" if task_id else "New task")
    if task_id:
        try:
            record = session.call(tasks_api.get_task, task_id)
        except OrenEMRAPIError as exc:
            components.api_failed("Loading the task", exc)
            return
        form = Task.model_validate(record).to_payload()
    else:
        form = Task(
            patient=session.param("patient") or None,
            assigned_to=(session.current_user() or {}).get("_id"),
        ).to_payload()

    with st.form("task"):
        title = st.text_input("Title *", form.get("title", ""))
        description = st.text_area("Description", form.get("description", ""))
        c1, c2, c3 = st.columns(3)
        priority = c1.selectbox(
            "Priority", PRIORITIES, index=_index(PRIORITIES, form["priority"])
        )
        status = c2.selectbox(
            "Status", STATUSES, index=_index(STATUSES, form["status"])
        )
        due_date = str(form.get("dueDate") or "")[:10]
        due = c3.date_input(
            "Due date", date.fromisoformat(due_date) if due_date else None
        )
        assigned_to = components.doctor_picker("Assigned to *", form.get("assignedTo"))
        patient = components.patient_picker("Patient *", form.get("patient"))
        submitted = st.form_submit_button("Save task", type="primary")

    if not submitted:
        return
    data = {
        **form,
        "title": title,
        "description": description,
        "priority": priority,
        "status": status,
        "dueDate": due.isoformat() if due else None,
        "assignedTo": assigned_to,
        "patient": patient,
    }
    errors = validate_task(data)
    if errors:
        components.show_errors(errors)
        return
    try:
        saved = session.call(tasks_api.save_task, data, task_id or None)
    except OrenEMRAPIError as exc:
        components.api_failed("Saving the task", exc)
        return
    session.flash("Task saved.")
    session.navigate("task", id=saved.get("_id") or task_id)


def task_details_page() -> None:
    task_id = session.param("id")
    try:
        task = session.call(tasks_api.get_task, task_id)
    except OrenEMRAPIError as exc:
        components.api_failed("Loading the task", exc)
        return

    st.title(task.get("title", "Task"))
    cols = st.columns(3)
    cols[0].metric("Status", task.get("status", ""))
    cols[1].metric("Priority", task.get("priority", ""))
    cols[2].metric("Due", str(task.get("dueDate") or "-")[:10])
    st.write(f"**Assigned to:** {components.person(task.get('assignedTo'))}")
    st.write(f"**Created by:** {components.person(task.get('createdBy'))}")
    st.write(f"**Patient:** {components.person(task.get('patient'))}")
    if task.get("description"):
        st.write(task["description"])

    c1, c2, c3 = st.columns(3)
    try:
        if task.get("status") != "completed" and c1.button(
            "Mark completed", type="primary"
        ):
            session.call(tasks_api.save_task, {"status": "completed"}, task_id)
            session.flash("Task completed.")
            session.navigate("task", id=task_id)
        if c3.button("Delete"):
            session.call(tasks_api.delete_task, task_id)
            session.flash("Task deleted.")
            session.navigate("tasks")
    except OrenEMRAPIError as exc:
        components.api_failed("Updating the task", exc)
    if c2.button("Edit"):
        session.navigate("task-edit", id=task_id)

    links = (
        ("Open patient", "patient", ref_id(task.get("patient"))),
        ("Open visit", "visit", ref_id(task.get("relatedVisit"))),
        ("Open note", "note-edit", ref_id(task.get("relatedNote"))),
    )
    for label, page, target in links:
        if target and st.button(label):
            session.navigate(page, id=target)
