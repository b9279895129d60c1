"""Configuration for the OrenEMR front-end.

Loads settings from environment variables (via a .env file or the system
environment). Uses sensible defaults so the package can be imported even
when env vars are not set, which is what the test suite relies on.

At *runtime* (when actually talking to the clinic API), missing credentials
simply mean every user has to log in through the login page.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists (it won't exist in CI or Docker, that's fine)
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

# --- Clinic API connection ---
# Base URL of the clinic REST server. All endpoints live under /api.
OREN_API_BASE_URL: str = os.getenv("OREN_API_BASE_URL", "http://localhost:5000")

# Optional service credentials. When set, the client logs itself in again
# after its token expires or the server answers 401.
OREN_USERNAME: str = os.getenv("OREN_USERNAME", "")
OREN_PASSWORD: str = os.getenv("OREN_PASSWORD", "")

# The server signs tokens for 24 hours.
OREN_TOKEN_TTL_SECONDS: int = int(os.getenv("OREN_TOKEN_TTL_SECONDS", "86400"))

# Seconds before an HTTP request is abandoned
OREN_HTTP_TIMEOUT: float = float(os.getenv("OREN_HTTP_TIMEOUT", "30"))

# --- Patient-facing links ---
# Where emailed intake-form links point to (the Streamlit app itself).
CLIENT_BASE_URL: str = os.getenv("CLIENT_BASE_URL", "http://localhost:8501")

# --- LLM (home care suggestions) ---
ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest")

# --- Logging ---
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
