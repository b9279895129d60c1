"""OrenEMR clinic front-end.

This package contains the clinic-facing side of the OrenEMR system:
an HTTP client for the clinic's REST API, one module per API resource,
the follow-up visit auto-populate flow, and a Streamlit app that puts
screens on top of all of it.
"""
