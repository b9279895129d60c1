"""HTTP client for the OrenEMR clinic REST API with bearer-token auth.

This module provides the OrenEMRClient class, which handles:
1. Logging in with a username and password (POST /api/auth/login)
2. Attaching the returned JWT as "Authorization: Bearer <token>"
3. Logging in again when the token expires or the server answers 401,
   if service credentials are configured
4. Authenticated GET/POST/PUT/PATCH/DELETE requests to any /api endpoint

Concept - one client per script run:
    Streamlit re-runs the page script on every interaction and each run
    drives its coroutines with its own event loop. httpx.AsyncClient
    connection pools belong to the loop that created them, so pages create
    a client for the run, use it, and close it (see orenemr.ui.session).
    The login token outlives the client in the Streamlit session.

Usage:
    async with OrenEMRClient() as client:
        await client.login("frontdesk", "secret")
        patients = await client.get("/patients", params={"search": "Lopez"})
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any

import httpx

from orenemr.config import (
    OREN_API_BASE_URL,
    OREN_HTTP_TIMEOUT,
    OREN_PASSWORD,
    OREN_TOKEN_TTL_SECONDS,
    OREN_USERNAME,
)

logger = logging.getLogger(__name__)


class OrenEMRAuthError(Exception):
    """Raised when logging in fails or the session is no longer valid."""


class OrenEMRAPIError(Exception):
    """Raised when an API request returns an error response.

    Attributes:
        status_code: HTTP status (0 when the server could not be reached).
        detail: The raw response body or transport error text.
        message: The server's human-readable "message" field, if any.
    """

    def __init__(self, status_code: int, detail: str, message: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        self.message = message or detail
        super().__init__(f"HTTP {status_code}: {self.message}")


class AppointmentConflictError(OrenEMRAPIError):
    """The doctor already has an appointment overlapping the requested slot."""


class DuplicateInvoiceError(OrenEMRAPIError):
    """The invoice number is already used by another invoice."""


class OrenEMRClient:
    """Async HTTP client for the OrenEMR REST API.

    Attributes:
        base_url: The server URL (e.g., "http://localhost:5000").
        api_base: Full API base URL (e.g., "http://localhost:5000/api").
        user: The user record returned by the last successful login.
    """

    def __init__(
        self,
        base_url: str = OREN_API_BASE_URL,
        username: str = OREN_USERNAME,
        password: str = OREN_PASSWORD,
        token: str = "",
        token_ttl: int = OREN_TOKEN_TTL_SECONDS,
        timeout: float = OREN_HTTP_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_base = f"{self.base_url}/api"
        self.username = username
        self.password = password
        self.token_ttl = token_ttl
        self.user: dict[str, Any] = {}

        # A token handed in from an earlier login has an unknown issue time;
        # it stays in use until the server rejects it.
        self._token: str = token
        self._token_expires_at: float = math.inf if token else 0.0

        self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @property
    def token(self) -> str:
        return self._token

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def __aenter__(self) -> OrenEMRClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # --- Authentication ---

    async def login(self, username: str = "", password: str = "") -> dict[str, Any]:
        """Log in and store the bearer token.

        Falls back to the configured service credentials when no username
        and password are given. On success the credentials are remembered
        so the client can log in again after a 401.

        Returns:
            The user record from the login response.

        Raises:
            OrenEMRAuthError: If the server rejects the credentials or
                cannot be reached.
        """
        username = username or self.username
        password = password or self.password
        url = f"{self.api_base}/auth/login"
        try:
            response = await self._http.post(
                url, json={"username": username, "password": password}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            raise OrenEMRAuthError(
                f"Login failed (HTTP {exc.response.status_code}): {body}"
            ) from exc
        except httpx.HTTPError as exc:
            raise OrenEMRAuthError(f"Login request failed: {exc}") from exc

        data = response.json()
        self._token = data["token"]
        # Refresh a minute early so requests never race the expiry.
        self._token_expires_at = time.time() + self.token_ttl - 60
        self.user = data.get("user", {})
        self.username, self.password = username, password
        logger.debug("Logged in as %s", username)
        return self.user

    async def _ensure_token(self) -> None:
        """Log in again if the token is missing or expired and we can."""
        if self._token and time.time() < self._token_expires_at:
            return
        if self.has_credentials:
            logger.info("Token missing or expired - logging in")
            await self.login()

    # --- API request methods ---

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """Make an authenticated GET request.

        Args:
            endpoint: API path relative to /api (e.g., "/patients").
            params: Optional query parameters. None values are dropped.
        """
        return await self._request("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_data: Any = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
        auth: bool = True,
    ) -> Any:
        """Make a POST request (JSON body, or multipart when files are given)."""
        return await self._request(
            "POST", endpoint, json_data=json_data, data=data, files=files, auth=auth
        )

    async def put(
        self,
        endpoint: str,
        json_data: Any = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await self._request(
            "PUT", endpoint, params=params, json_data=json_data, data=data, files=files
        )

    async def patch(self, endpoint: str, json_data: Any = None) -> Any:
        return await self._request("PATCH", endpoint, json_data=json_data)

    async def delete(self, endpoint: str) -> Any:
        return await self._request("DELETE", endpoint)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None = None,
        auth: bool = True,
    ) -> Any:
        """Send a request to the clinic API.

        This is the internal method every public verb delegates to.
        It handles:
        1. Ensuring we have a valid token (logging in again if needed)
        2. Setting the Authorization: Bearer header
        3. Retrying once on 401 when service credentials are configured
        4. Raising typed errors for non-2xx responses

        Raises:
            OrenEMRAuthError: If the session expired and cannot be renewed.
            OrenEMRAPIError: If the API returns a non-2xx status or the
                server cannot be reached.
        """
        if auth:
            await self._ensure_token()

        url = f"{self.api_base}{endpoint}"
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}
        headers = {"Accept": "application/json"}
        if auth and self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        response = await self._send(
            method, url, headers, params, json_data, data, files
        )

        if response.status_code == 401 and auth:
            if not self.has_credentials:
                logger.warning("%s %s rejected with 401 - session expired", method, url)
                raise OrenEMRAuthError("Your session has expired. Please log in again.")
            logger.warning("Got 401 - logging in again and retrying")
            await self.login()
            headers["Authorization"] = f"Bearer {self._token}"
            response = await self._send(
                method, url, headers, params, json_data, data, files
            )

        if response.status_code >= 400:
            raise self._api_error(method, url, response)

        if not response.content:
            return {}
        if "json" not in response.headers.get("content-type", ""):
            # Redirects and plain-text acknowledgements
            return {
                "text": response.text,
                "location": response.headers.get("location", ""),
            }
        return response.json()

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: dict[str, Any] | None,
        json_data: Any,
        data: dict[str, Any] | None,
        files: list[tuple[str, tuple[str, bytes, str]]] | None,
    ) -> httpx.Response:
        try:
            return await self._http.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_data,
                data=data,
                files=files,
            )
        except httpx.HTTPError as exc:
            logger.error("No response from %s %s: %s", method, url, exc)
            raise OrenEMRAPIError(
                status_code=0,
                detail=f"Request to {url} failed: {exc}",
                message="Could not reach the clinic server.",
            ) from exc

    @staticmethod
    def _api_error(method: str, url: str, response: httpx.Response) -> OrenEMRAPIError:
        """Build the error for a non-2xx response, logging the body first."""
        message = ""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("error") or "")
        logger.error(
            "%s %s failed with HTTP %d: %s",
            method,
            url,
            response.status_code,
            response.text,
        )
        return OrenEMRAPIError(
            status_code=response.status_code,
            detail=response.text,
            message=message,
        )
