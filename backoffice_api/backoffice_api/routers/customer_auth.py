"""Customer portal login endpoints.

- ``POST /customer-auth/login-link`` e-mails a single-use magic link.
- ``POST /customer-auth/verify`` exchanges the link's token for a session.
- ``GET /customer-auth/session`` resolves a ``Bearer`` session token.
- ``POST /customer-auth/logout`` revokes a session token.

All endpoints are public; the session endpoints authenticate with the
session token itself.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from backoffice_api.dependencies import CustomerAuthServiceDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customer-auth", tags=["customer-auth"])


def _get_client_ip(request: Request) -> str | None:
    """Extract the client IP, respecting X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        return None
    return credentials.strip()


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class VerifyRequest(BaseModel):
    """Request body for magic-link verification."""

    token: str | None = Field(default=None, description="Plaintext token from the login link.")


class LoginLinkRequest(BaseModel):
    """Request body for a login-link e-mail.

    ``quoteNumber`` / ``submissionDate`` are accepted as sent by the portal.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str | None = Field(default=None, description="Customer e-mail address.")
    quote_number: str | None = Field(default=None, alias="quoteNumber")
    submission_date: str | None = Field(default=None, alias="submissionDate")


class SessionInfo(BaseModel):
    token: str
    expires_at: str


class CustomerInfo(BaseModel):
    """Sanitized customer projection."""

    id: str
    email: str
    full_name: str | None = None
    phone: str | None = None
    customer_type: str
    company_name: str | None = None


class VerifyResponse(BaseModel):
    success: bool = True
    session: SessionInfo
    customer: CustomerInfo


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SessionResponse(BaseModel):
    success: bool = True
    customer: CustomerInfo


class LogoutResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/verify", response_model=VerifyResponse)
async def verify(
    body: VerifyRequest,
    request: Request,
    service: CustomerAuthServiceDep,
    session: SessionDep,
) -> dict[str, Any]:
    """Exchange a magic-link token for a 24 hour session."""
    result = await service.verify(
        body.token,
        ip_address=_get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )
    # The session token is only handed out once its row is durable.
    await session.commit()
    return {"success": True, **result}


@router.post("/login-link", response_model=MessageResponse)
async def request_login_link(
    body: LoginLinkRequest,
    request: Request,
    service: CustomerAuthServiceDep,
    session: SessionDep,
) -> dict[str, Any]:
    """Send a login link.  The answer does not reveal whether the account exists."""
    result = await service.issue_login_link(
        body.email,
        ip_address=_get_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
        quote_number=body.quote_number,
        submission_date=body.submission_date,
    )
    await session.commit()
    return {"success": True, **result}


@router.get("/session", response_model=SessionResponse)
async def current_session(request: Request, service: CustomerAuthServiceDep) -> dict[str, Any]:
    """Return the customer behind the bearer session token."""
    customer = await service.resolve_session(_bearer_token(request))
    return {"success": True, "customer": customer}


@router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request, service: CustomerAuthServiceDep, session: SessionDep) -> dict[str, Any]:
    """Revoke the bearer session token.  Unknown tokens succeed silently."""
    await service.logout(_bearer_token(request))
    await session.commit()
    return {"success": True}
