"""Tests for the customer login endpoints in backoffice_api/routers/customer_auth.py

Covers:
- POST /customer-auth/verify: success envelope, 401 token failures, 400 input failures
- POST /customer-auth/login-link: camelCase body fields, uniform answer
- GET /customer-auth/session and POST /customer-auth/logout: bearer parsing
- CORS headers on every response and OPTIONS short-circuit
- Generic 400 envelopes for validation, database and unexpected errors
- Writes are committed before the response is built
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest
from backoffice_core.errors import (
    AlreadyUsedError,
    DataIntegrityError,
    ExpiredError,
    InvalidOrExpiredError,
    MissingInputError,
)
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

_CUSTOMER: dict[str, Any] = {
    "id": "cust-1",
    "email": "jane@example.com",
    "full_name": "Jane Doe",
    "phone": None,
    "customer_type": "individual",
    "company_name": None,
}

_VERIFY_URL = "/api/v1/customer-auth/verify"


# ---------------------------------------------------------------------------
# POST /customer-auth/verify
# ---------------------------------------------------------------------------


class TestVerifyEndpoint:
    @pytest.mark.asyncio
    async def test_success(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.verify.return_value = {
            "session": {"token": "s" * 96, "expires_at": "2026-03-08T12:00:00+00:00"},
            "customer": _CUSTOMER,
        }

        resp = await client.post(
            _VERIFY_URL,
            json={"token": "abc123"},
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "portal-test"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["session"]["token"] == "s" * 96
        assert body["customer"] == _CUSTOMER

        mock_auth_service.verify.assert_awaited_once_with(
            "abc123",
            ip_address="203.0.113.7",
            user_agent="portal-test",
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            InvalidOrExpiredError("Invalid or expired login link. Please request a new one."),
            AlreadyUsedError("This login link has already been used. Please request a new one."),
            ExpiredError("This login link has expired. Please request a new one."),
        ],
    )
    async def test_token_failures_are_401(
        self, client: AsyncClient, mock_auth_service: AsyncMock, error: Exception
    ) -> None:
        mock_auth_service.verify.side_effect = error

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": error.message}

    @pytest.mark.asyncio
    async def test_missing_token_is_400(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.verify.side_effect = MissingInputError("Token is required")

        resp = await client.post(_VERIFY_URL, json={})

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Token is required"}
        mock_auth_service.verify.assert_awaited_once()
        assert mock_auth_service.verify.await_args.args == (None,)

    @pytest.mark.asyncio
    async def test_integrity_error_is_400(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.verify.side_effect = DataIntegrityError("Customer not found")

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 400
        assert resp.json()["error"] == "Customer not found"

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        resp = await client.post(
            _VERIFY_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert resp.status_code == 400
        assert resp.json()["success"] is False
        mock_auth_service.verify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_token_type_is_400(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        resp = await client.post(_VERIFY_URL, json={"token": 12345})

        assert resp.status_code == 400
        assert resp.json()["success"] is False

    @pytest.mark.asyncio
    async def test_database_error_is_generic_400(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.verify.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Internal database error"}

    @pytest.mark.asyncio
    async def test_session_row_committed_before_response(
        self, client: AsyncClient, mock_auth_service: AsyncMock, mock_session: AsyncMock
    ) -> None:
        mock_auth_service.verify.return_value = {
            "session": {"token": "s" * 96, "expires_at": "2026-03-08T12:00:00+00:00"},
            "customer": _CUSTOMER,
        }

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 200
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_commit_withholds_session_token(
        self, client: AsyncClient, mock_auth_service: AsyncMock, mock_session: AsyncMock
    ) -> None:
        mock_auth_service.verify.return_value = {
            "session": {"token": "s" * 96, "expires_at": "2026-03-08T12:00:00+00:00"},
            "customer": _CUSTOMER,
        }
        mock_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Internal database error"}
        assert "s" * 96 not in resp.text

    @pytest.mark.asyncio
    async def test_unexpected_error_is_400_envelope(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.verify.side_effect = RuntimeError("boom")

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 400
        assert resp.headers["content-type"].startswith("application/json")
        assert resp.json() == {"success": False, "error": "An unexpected error occurred"}
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "boom" not in resp.text


# ---------------------------------------------------------------------------
# POST /customer-auth/login-link
# ---------------------------------------------------------------------------


class TestLoginLinkEndpoint:
    @pytest.mark.asyncio
    async def test_accepts_camel_case_fields(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.issue_login_link.return_value = {
            "message": "If an account exists, a login link has been sent."
        }

        resp = await client.post(
            "/api/v1/customer-auth/login-link",
            json={"email": "jane@example.com", "quoteNumber": "Q-42", "submissionDate": "March 7, 2026"},
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "If an account exists, a login link has been sent.",
        }
        kwargs = mock_auth_service.issue_login_link.await_args.kwargs
        assert kwargs["quote_number"] == "Q-42"
        assert kwargs["submission_date"] == "March 7, 2026"

    @pytest.mark.asyncio
    async def test_missing_email(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.issue_login_link.side_effect = MissingInputError("Email is required")

        resp = await client.post("/api/v1/customer-auth/login-link", json={})

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Email is required"}

    @pytest.mark.asyncio
    async def test_failed_commit_is_reported(
        self, client: AsyncClient, mock_auth_service: AsyncMock, mock_session: AsyncMock
    ) -> None:
        mock_auth_service.issue_login_link.return_value = {
            "message": "If an account exists, a login link has been sent."
        }
        mock_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))

        resp = await client.post("/api/v1/customer-auth/login-link", json={"email": "jane@example.com"})

        assert resp.status_code == 400
        assert resp.json()["success"] is False


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


class TestSessionEndpoints:
    @pytest.mark.asyncio
    async def test_session_uses_bearer_token(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.resolve_session.return_value = _CUSTOMER

        resp = await client.get("/api/v1/customer-auth/session", headers={"Authorization": "Bearer tok-1"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "customer": _CUSTOMER}
        mock_auth_service.resolve_session.assert_awaited_once_with("tok-1")

    @pytest.mark.asyncio
    async def test_session_without_bearer(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.resolve_session.side_effect = InvalidOrExpiredError("Session is invalid or has expired.")

        resp = await client.get("/api/v1/customer-auth/session", headers={"Authorization": "Basic abc"})

        assert resp.status_code == 401
        mock_auth_service.resolve_session.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_logout_always_succeeds(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        mock_auth_service.logout.return_value = False

        resp = await client.post("/api/v1/customer-auth/logout", headers={"Authorization": "Bearer gone"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        mock_auth_service.logout.assert_awaited_once_with("gone")

    @pytest.mark.asyncio
    async def test_logout_commits_revocation(
        self, client: AsyncClient, mock_auth_service: AsyncMock, mock_session: AsyncMock
    ) -> None:
        mock_auth_service.logout.return_value = True

        resp = await client.post("/api/v1/customer-auth/logout", headers={"Authorization": "Bearer live"})

        assert resp.status_code == 200
        mock_session.commit.assert_awaited_once()


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


class TestCors:
    @pytest.mark.asyncio
    async def test_options_short_circuits(self, client: AsyncClient, mock_auth_service: AsyncMock) -> None:
        resp = await client.options(
            _VERIFY_URL,
            headers={"Origin": "https://portal.example", "Access-Control-Request-Method": "POST"},
        )

        assert resp.status_code == 200
        assert resp.text == "ok"
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["access-control-allow-headers"] == "authorization, x-client-info, apikey, content-type"
        mock_auth_service.verify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_responses_carry_cors_headers(
        self, client: AsyncClient, mock_auth_service: AsyncMock
    ) -> None:
        mock_auth_service.verify.side_effect = ExpiredError("This login link has expired. Please request a new one.")

        resp = await client.post(_VERIFY_URL, json={"token": "abc123"})

        assert resp.status_code == 401
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "x-trace-id" in resp.headers
        assert "x-correlation-id" in resp.headers
