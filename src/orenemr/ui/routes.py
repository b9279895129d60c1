"""Route table and access rules.

A route is addressed by the ``page`` query parameter. Each one names the
view that renders it and who may open it:

- public:    anyone, logged in or not
- private:   any logged-in user
- clinician: logged-in doctors and admins (visit entry)
- admin:     admins only
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from orenemr.ui.views import (
    appointments,
    auth,
    billing,
    dashboard,
    forms,
    notes,
    notifications,
    patients,
    reports,
    settings,
    tasks,
    visits,
)

PUBLIC = "public"
PRIVATE = "private"
CLINICIAN = "clinician"
ADMIN = "admin"

CLINICIAN_ROLES = ("doctor", "admin")

HOME = "dashboard"
LOGIN = "login"


@dataclass(frozen=True)
class Route:
    name: str
    title: str
    render: Callable[[], None]
    access: str = PRIVATE
    # Shown in the sidebar when set
    icon: str = ""


_ROUTES = (
    Route("login", "Sign in", auth.login_page, PUBLIC),
    Route("register", "Register", auth.register_page, PUBLIC),
    Route("google-callback", "Google Calendar", auth.google_callback_page, PUBLIC),
    Route("intake", "Intake form", forms.intake_page, PUBLIC),
    Route("dashboard", "Dashboard", dashboard.dashboard_page, icon="🏠"),
    Route("patients", "Patients", patients.patient_list_page, icon="🧑"),
    Route("patient-new", "New patient", patients.patient_form_page),
    Route("patient", "Patient", patients.patient_details_page),
    Route("patient-edit", "Edit patient", patients.patient_form_page),
    Route("appointments", "Appointments", appointments.calendar_page, icon="📅"),
    Route("appointments-list", "Appointment list", appointments.appointment_list_page),
    Route("appointment-new", "New appointment", appointments.appointment_form_page),
    Route("appointment", "Appointment", appointments.appointment_details_page),
    Route("appointment-edit", "Edit appointment", appointments.appointment_form_page),
    Route("visit-initial", "Initial visit", visits.initial_visit_page, CLINICIAN),
    Route("visit-followup", "Follow-up visit", visits.followup_visit_page, CLINICIAN),
    Route("visit-discharge", "Discharge visit", visits.discharge_visit_page, CLINICIAN),
    Route("visit", "Visit", visits.visit_details_page),
    Route("notes", "Notes", notes.note_list_page, icon="📝"),
    Route("note-new", "New note", notes.note_form_page),
    Route("note-edit", "Edit note", notes.note_form_page),
    Route("note-print", "Print note", notes.note_print_page),
    Route("tasks", "Tasks", tasks.task_list_page, icon="✅"),
    Route("task-new", "New task", tasks.task_form_page),
    Route("task", "Task", tasks.task_details_page),
    Route("task-edit", "Edit task", tasks.task_form_page),
    Route("notifications", "Notifications", notifications.notifications_page, icon="🔔"),
    Route("billing", "Billing", billing.invoice_list_page, icon="💵"),
    Route("invoice-new", "New invoice", billing.invoice_form_page),
    Route("invoice", "Invoice", billing.invoice_details_page),
    Route("invoice-edit", "Edit invoice", billing.invoice_form_page),
    Route("unsettled-cases", "Unsettled cases", reports.unsettled_cases_page, icon="📊"),
    Route("form-templates", "Form templates", forms.template_list_page, icon="📋"),
    Route("form-template-builder", "Template builder", forms.template_builder_page),
    Route("settings", "Settings", settings.settings_page, icon="⚙️"),
    Route("admin", "Staff accounts", auth.admin_page, ADMIN, icon="🔑"),
)

ROUTES: dict[str, Route] = {route.name: route for route in _ROUTES}


def can_access(route: Route, user: dict[str, Any] | None) -> bool:
    if route.access == PUBLIC:
        return True
    if user is None:
        return False
    role = user.get("role")
    if route.access == CLINICIAN:
        return role in CLINICIAN_ROLES
    if route.access == ADMIN:
        return role == "admin"
    return True


def resolve(page: str, user: dict[str, Any] | None) -> Route:
    """The route to render for ``page``.

    Unknown pages go to the dashboard (or login when signed out). A page the
    user may not open sends a signed-out user to login and anyone else to
    the dashboard.
    """
    route = ROUTES.get(page)
    if route is not None and can_access(route, user):
        return route
    return ROUTES[LOGIN] if user is None else ROUTES[HOME]


def nav_routes(user: dict[str, Any] | None) -> list[Route]:
    """Sidebar entries the user may open, in table order."""
    return [r for r in _ROUTES if r.icon and r.access != PUBLIC and can_access(r, user)]
