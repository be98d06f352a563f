"""Customer magic-link authentication.

Customers log in without a password: :meth:`CustomerAuthService.issue_login_link`
e-mails a single-use link, :meth:`CustomerAuthService.verify` exchanges the
link's token for a 24 hour session token, and the portal then presents that
session token as a bearer credential.

Only SHA-256 digests of tokens are stored.  Plaintext tokens leave this
module exactly once, in the e-mail or in the verify response, and are never
logged.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from backoffice_core.errors import (
    AlreadyUsedError,
    DataIntegrityError,
    ExpiredError,
    InvalidOrExpiredError,
    MissingInputError,
)
from backoffice_core.models.customer import CustomerProfile
from backoffice_core.state.repository import (
    CustomerRepository,
    LoginSessionRepository,
    as_utc,
    hash_token,
)
from backoffice_core.state.tables import SESSION_KIND_MAGIC_LINK, SESSION_KIND_SESSION
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice_api.services.mailer import BrevoMailer

logger = logging.getLogger(__name__)

TOKEN_REQUIRED = "Token is required"
EMAIL_REQUIRED = "Email is required"
INVALID_OR_EXPIRED_LINK = "Invalid or expired login link. Please request a new one."
LINK_ALREADY_USED = "This login link has already been used. Please request a new one."
LINK_EXPIRED = "This login link has expired. Please request a new one."
CUSTOMER_NOT_FOUND = "Customer not found"
SESSION_INVALID = "Session is invalid or has expired."
LOGIN_LINK_SENT = "If an account exists, a login link has been sent."

# Random bytes behind each token; hex encoding doubles the length.
MAGIC_LINK_TOKEN_BYTES = 32
SESSION_TOKEN_BYTES = 48


def generate_token(nbytes: int) -> str:
    """Return a cryptographically random lowercase hex token."""
    return secrets.token_hex(nbytes)


class CustomerAuthService:
    """Magic-link issuance, verification and session management.

    Parameters
    ----------
    session:
        An async database session.  The caller commits, except in
        :meth:`issue_login_link`, which commits before the e-mail goes out.
    mailer:
        Delivers login links.  ``None`` disables delivery entirely.
    site_url:
        Portal base URL that login links point at.
    magic_link_ttl, session_ttl:
        Lifetimes of the two token kinds.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        mailer: BrevoMailer | None = None,
        site_url: str = "https://portal.cethos.com",
        magic_link_ttl: timedelta = timedelta(minutes=15),
        session_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        self._session = session
        self._mailer = mailer
        self._site_url = site_url.rstrip("/")
        self._magic_link_ttl = magic_link_ttl
        self._session_ttl = session_ttl
        self._customers = CustomerRepository(session)
        self._logins = LoginSessionRepository(session)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    async def verify(
        self,
        token: str | None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """Exchange a magic-link token for a session.

        Returns a dict with ``session`` (``token``, ``expires_at``) and the
        sanitized ``customer`` projection.

        Raises
        ------
        MissingInputError
            If *token* is missing or blank.
        InvalidOrExpiredError
            If no magic link with this token exists.
        AlreadyUsedError
            If the link was consumed before, including by a concurrent
            request that won the race.
        ExpiredError
            If the link is past its expiry.
        DataIntegrityError
            If the link's customer no longer exists.
        """
        if token is None or not token.strip():
            raise MissingInputError(TOKEN_REQUIRED)

        link = await self._logins.get_by_token_hash(hash_token(token), kind=SESSION_KIND_MAGIC_LINK)
        if link is None:
            raise InvalidOrExpiredError(INVALID_OR_EXPIRED_LINK)

        # A link that is both used and expired reports "already used".
        if link.used_at is not None:
            raise AlreadyUsedError(LINK_ALREADY_USED)

        now = datetime.now(UTC)
        if as_utc(link.expires_at) < now:
            raise ExpiredError(LINK_EXPIRED)

        if not await self._logins.consume(link.id):
            logger.info("Magic link %s lost a concurrent verification", link.id)
            raise AlreadyUsedError(LINK_ALREADY_USED)

        customer = await self._customers.get_by_id(link.customer_id)
        if customer is None:
            logger.error("Magic link %s references missing customer %s", link.id, link.customer_id)
            raise DataIntegrityError(CUSTOMER_NOT_FOUND)

        await self._customers.touch_last_login(customer.id)

        session_token = generate_token(SESSION_TOKEN_BYTES)
        expires_at = now + self._session_ttl
        await self._logins.create(
            customer.id,
            hash_token(session_token),
            expires_at,
            kind=SESSION_KIND_SESSION,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        logger.info("Customer logged in via magic link: customer=%s", customer.id)

        return {
            "session": {
                "token": session_token,
                "expires_at": expires_at.isoformat(),
            },
            "customer": CustomerProfile.model_validate(customer).model_dump(),
        }

    # ------------------------------------------------------------------
    # Login link issuance
    # ------------------------------------------------------------------

    async def issue_login_link(
        self,
        email: str | None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
        quote_number: str | None = None,
        submission_date: str | None = None,
    ) -> dict[str, Any]:
        """Create a magic link for *email* and hand it to the mailer.

        The response is identical whether or not an account exists.
        Earlier unused links for the customer are invalidated first, so
        only the newest link works.  The new link is committed before the
        mailer sees it; delivery itself is best-effort.
        """
        if email is None or not email.strip():
            raise MissingInputError(EMAIL_REQUIRED)

        normalized = email.lower().strip()
        customer = await self._customers.get_by_email(normalized)
        if customer is None:
            logger.info("Login link requested for unknown email")
            return {"message": LOGIN_LINK_SENT}

        revoked = await self._logins.invalidate_unused(customer.id, kind=SESSION_KIND_MAGIC_LINK)
        if revoked:
            logger.info("Invalidated %d unused login link(s) for customer=%s", revoked, customer.id)

        token = generate_token(MAGIC_LINK_TOKEN_BYTES)
        await self._logins.create(
            customer.id,
            hash_token(token),
            datetime.now(UTC) + self._magic_link_ttl,
            kind=SESSION_KIND_MAGIC_LINK,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        await self._customers.mark_magic_link_sent(customer.id)
        # The link must be verifiable before it can reach an inbox.
        await self._session.commit()
        logger.info("Login link issued: customer=%s", customer.id)

        login_link = f"{self._site_url}/login/verify?token={token}"
        if self._mailer is not None:
            await self._mailer.send_login_link(
                email=customer.email,
                full_name=customer.full_name,
                login_link=login_link,
                quote_number=quote_number,
                submission_date=submission_date,
            )
        return {"message": LOGIN_LINK_SENT}

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def resolve_session(self, session_token: str | None) -> dict[str, Any]:
        """Return the customer projection behind a live session token."""
        if session_token is None or not session_token.strip():
            raise InvalidOrExpiredError(SESSION_INVALID)

        row = await self._logins.get_by_token_hash(hash_token(session_token), kind=SESSION_KIND_SESSION)
        if row is None or row.used_at is not None or as_utc(row.expires_at) < datetime.now(UTC):
            raise InvalidOrExpiredError(SESSION_INVALID)

        customer = await self._customers.get_by_id(row.customer_id)
        if customer is None:
            raise InvalidOrExpiredError(SESSION_INVALID)
        return CustomerProfile.model_validate(customer).model_dump()

    async def logout(self, session_token: str | None) -> bool:
        """Revoke a session.  Returns ``False`` for unknown or already revoked tokens."""
        if session_token is None or not session_token.strip():
            return False

        row = await self._logins.get_by_token_hash(hash_token(session_token), kind=SESSION_KIND_SESSION)
        if row is None:
            return False

        revoked = await self._logins.consume(row.id)
        if revoked:
            logger.info("Customer session revoked: customer=%s", row.customer_id)
        return revoked
