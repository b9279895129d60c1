"""Tests for the OrenEMR API client.

These tests use httpx's MockTransport to simulate the clinic server. No
real server connection is needed; every response is faked.

Concept - Mocking HTTP calls:
    Instead of making real network requests, we replace httpx's transport
    layer with a function that returns pre-defined responses. This lets us
    test login, the 401 re-login and error mapping without a running
    server.
"""

import json
import math
import time

import httpx
import pytest

from orenemr.api_client import (
    OrenEMRAPIError,
    OrenEMRAuthError,
    OrenEMRClient,
)

# --- Test helpers ---


def _login_response(token: str = "test-token") -> dict[str, object]:
    """Build a fake /auth/login response."""
    return {
        "token": token,
        "user": {
            "_id": "u1",
            "username": "drsmith",
            "firstName": "Ana",
            "lastName": "Smith",
            "role": "doctor",
        },
    }


def _make_client(handler, **kwargs: object) -> OrenEMRClient:
    """Create a client with test defaults wired to a mock transport."""
    defaults: dict[str, object] = {
        "base_url": "http://clinic.test",
        "username": "",
        "password": "",
    }
    defaults.update(kwargs)
    client = OrenEMRClient(**defaults)  # type: ignore[arg-type]
    client._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


# --- Login tests ---


class TestLogin:
    """Tests for logging in and keeping the token fresh."""

    @pytest.mark.asyncio
    async def test_login_stores_token_and_user(self) -> None:
        """A successful login should keep the token, user and credentials."""
        seen: dict[str, object] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_login_response())

        client = _make_client(handler)
        user = await client.login("drsmith", "secret")

        assert seen["url"] == "http://clinic.test/api/auth/login"
        assert seen["body"] == {"username": "drsmith", "password": "secret"}
        assert client.token == "test-token"
        assert user["firstName"] == "Ana"
        assert client.has_credentials
        assert client._token_expires_at > time.time()

        await client.close()

    @pytest.mark.asyncio
    async def test_login_failure_raises_auth_error(self) -> None:
        """Rejected credentials should raise OrenEMRAuthError."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Invalid credentials"})

        client = _make_client(handler)

        with pytest.raises(OrenEMRAuthError, match="401"):
            await client.login("drsmith", "wrong")
        assert client.token == ""

        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_server_on_login_raises_auth_error(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        client = _make_client(handler)

        with pytest.raises(OrenEMRAuthError, match="Login request failed"):
            await client.login("drsmith", "secret")

        await client.close()

    @pytest.mark.asyncio
    async def test_expired_token_logs_in_again(self) -> None:
        """_ensure_token() should log in when the token has expired."""
        logins: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            logins.append(request.url.path)
            return httpx.Response(200, json=_login_response(f"token-{len(logins)}"))

        client = _make_client(handler, username="svc", password="pw")
        await client.login()
        client._token_expires_at = time.time() - 1

        await client._ensure_token()

        assert logins == ["/api/auth/login", "/api/auth/login"]
        assert client.token == "token-2"

        await client.close()

    @pytest.mark.asyncio
    async def test_passed_in_token_never_expires_locally(self) -> None:
        """A token from the session is used until the server rejects it."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        client = _make_client(handler, token="session-token")

        assert client._token_expires_at == math.inf
        await client._ensure_token()
        assert client.token == "session-token"

        await client.close()


# --- API request tests ---


class TestAPIRequests:
    """Tests for authenticated requests."""

    @pytest.mark.asyncio
    async def test_get_adds_bearer_header_and_drops_empty_params(self) -> None:
        captured: dict[str, object] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers.get("authorization")
            captured["params"] = dict(request.url.params)
            return httpx.Response(200, json={"patients": [], "totalPages": 1})

        client = _make_client(handler, token="abc")

        result = await client.get(
            "/patients", params={"search": "Lopez", "status": None, "page": 1, "x": ""}
        )

        assert captured["auth"] == "Bearer abc"
        assert captured["params"] == {"search": "Lopez", "page": "1"}
        assert result["totalPages"] == 1

        await client.close()

    @pytest.mark.asyncio
    async def test_post_without_auth_sends_no_token(self) -> None:
        """Public endpoints (intake form submission) go out without a token."""
        captured: dict[str, object] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            captured["auth"] = request.headers.get("authorization")
            return httpx.Response(201, json={"message": "ok"})

        client = _make_client(handler, token="abc")

        await client.post("/patients/form-submission/t1", json_data={}, auth=False)

        assert captured["auth"] is None

        await client.close()

    @pytest.mark.asyncio
    async def test_401_with_credentials_logs_in_and_retries(self) -> None:
        """A 401 should trigger one re-login and one retry."""
        attempts = {"patients": 0, "login": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth/login":
                attempts["login"] += 1
                return httpx.Response(200, json=_login_response("fresh"))
            attempts["patients"] += 1
            if request.headers.get("authorization") != "Bearer fresh":
                return httpx.Response(401, json={"message": "Invalid token"})
            return httpx.Response(200, json={"patients": []})

        client = _make_client(handler, username="svc", password="pw", token="stale")

        result = await client.get("/patients")

        assert result == {"patients": []}
        assert attempts == {"patients": 2, "login": 1}

        await client.close()

    @pytest.mark.asyncio
    async def test_401_without_credentials_raises_auth_error(self) -> None:
        """Without credentials a 401 ends the session."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"message": "Token expired"})

        client = _make_client(handler, token="stale")

        with pytest.raises(OrenEMRAuthError, match="session has expired"):
            await client.get("/patients")

        await client.close()

    @pytest.mark.asyncio
    async def test_error_body_message_becomes_error_message(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Patient not found"})

        client = _make_client(handler, token="abc")

        with pytest.raises(OrenEMRAPIError) as excinfo:
            await client.get("/patients/nope")

        assert excinfo.value.status_code == 404
        assert excinfo.value.message == "Patient not found"
        assert str(excinfo.value) == "HTTP 404: Patient not found"

        await client.close()

    @pytest.mark.asyncio
    async def test_error_key_is_used_when_message_is_missing(self) -> None:
        """Some routes (reports) answer with {"error": ...}."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"error": "File not found"})

        client = _make_client(handler, token="abc")

        with pytest.raises(OrenEMRAPIError, match="File not found"):
            await client.post("/reports/email", json_data={"email": "a@b.c"})

        await client.close()

    @pytest.mark.asyncio
    async def test_plain_text_error_keeps_body_as_message(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="Internal Server Error")

        client = _make_client(handler, token="abc")

        with pytest.raises(OrenEMRAPIError, match="500"):
            await client.get("/billing")

        await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_server_raises_api_error_with_status_zero(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        client = _make_client(handler, token="abc")

        with pytest.raises(OrenEMRAPIError) as excinfo:
            await client.get("/patients")

        assert excinfo.value.status_code == 0
        assert excinfo.value.message == "Could not reach the clinic server."

        await client.close()

    @pytest.mark.asyncio
    async def test_empty_body_returns_empty_dict(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        client = _make_client(handler, token="abc")

        assert await client.delete("/tasks/t1") == {}

        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_response_returns_text_and_location(self) -> None:
        """Redirect-style answers (Google callback) come back as text/location."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                text="Found. Redirecting",
                headers={"content-type": "text/plain", "location": "/settings"},
            )

        client = _make_client(handler, token="abc")

        result = await client.get("/google-calendar/callback", params={"code": "c"})

        assert result == {"text": "Found. Redirecting", "location": "/settings"}

        await client.close()

    @pytest.mark.asyncio
    async def test_multipart_post_sends_files(self) -> None:
        captured: dict[str, object] = {}

        async def handler(request: httpx.Request) -> httpx.Response:
            captured["type"] = request.headers.get("content-type", "")
            captured["body"] = request.content
            return httpx.Response(201, json={"_id": "n1"})

        client = _make_client(handler, token="abc")

        await client.post(
            "/notes",
            data={"title": "Progress"},
            files=[("attachments", ("scan.pdf", b"%PDF-1.4", "application/pdf"))],
        )

        assert str(captured["type"]).startswith("multipart/form-data")
        assert b'name="attachments"; filename="scan.pdf"' in captured["body"]
        assert b"Progress" in captured["body"]

        await client.close()
