"""OrenEMR REST resources.

Each module in this package wraps one family of clinic API endpoints.
Every function takes an OrenEMRClient as its first argument, makes one or
more requests and returns the decoded JSON. Pages never build URLs
themselves; they call these functions.

Resources are organized by endpoint family:
- auth.py:             Current user, doctors list, registration, profile
- patients.py:         Patient records, visit history, intake form links
- visits.py:           Initial / follow-up / discharge visits, narratives
- appointments.py:     Scheduling, cancel / complete
- billing.py:          Invoices, payments, billing dashboard summary
- notes.py:            Clinical notes with attachments, AI drafts
- form_templates.py:   Questionnaire definitions
- tasks.py:            Staff tasks
- notifications.py:    In-app notifications
- google_calendar.py:  Google Calendar authorization and sync
- reports.py:          Report PDF upload and email
"""
