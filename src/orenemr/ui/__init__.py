"""Streamlit front-end.

Run with:
    streamlit run src/orenemr/ui/app.py

app.py is the entry point: it configures logging, restores the session,
resolves the current route (see routes.py) and renders the page. Each
module under views/ renders one family of pages.
"""
