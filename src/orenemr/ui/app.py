"""Streamlit entry point for the OrenEMR front-end.

Streamlit re-runs this script on every interaction. Each run:
1. configures logging (a no-op after the first run)
2. restores the browser session (token, user, toasts, drafts)
3. resolves the ``page`` query parameter to a route the user may open
4. draws the sidebar and renders the page

Run locally with:
    streamlit run src/orenemr/ui/app.py
"""

import logging

import streamlit as st

from orenemr.config import LOG_LEVEL
from orenemr.ui import routes, session

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="OrenEMR", page_icon="\U0001f3e5", layout="wide")

session.init_session()
user = session.current_user()
requested = session.param("page")
route = routes.resolve(requested, user)

if requested and route.name != requested:
    logger.info("Page %r not available to %s", requested, (user or {}).get("username"))
    if user is not None and requested in routes.ROUTES:
        st.warning("You don't have access to that page.")

if user is not None:
    with st.sidebar:
        st.markdown(f"**{user.get('firstName', '')} {user.get('lastName', '')}**")
        st.caption(user.get("role", ""))
        for entry in routes.nav_routes(user):
            if st.button(
                f"{entry.icon} {entry.title}",
                key=f"nav-{entry.name}",
                use_container_width=True,
                type="primary" if entry.name == route.name else "secondary",
            ):
                session.navigate(entry.name)
        st.divider()
        if st.button("Log out", use_container_width=True):
            session.logout()
            session.flash("You have been logged out.", "info")
            session.navigate(routes.LOGIN)

session.show_toasts()
route.render()
