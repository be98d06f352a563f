"""Transactional e-mail delivery of login links through Brevo."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import httpx

logger = logging.getLogger(__name__)


def _long_date(value: datetime) -> str:
    """``October 19, 2026``."""
    return f"{value:%B} {value.day}, {value.year}"


class BrevoMailer:
    """Sends the login-link template through the Brevo SMTP API.

    Delivery is best-effort: :meth:`send_login_link` returns ``False``
    instead of raising, so that a mail outage never undoes the login
    link that was just stored.

    Parameters
    ----------
    api_key:
        Brevo API key.  When empty, nothing is sent.
    template_id:
        Brevo template with ``CUSTOMER_NAME``, ``LOGIN_LINK``,
        ``QUOTE_NUMBER`` and ``SUBMISSION_DATE`` params.
    sender_name, sender_email:
        The ``From`` identity.
    log_links:
        When no API key is configured, log the login link itself so local
        development can proceed without a mail provider.  Must stay off
        outside development.
    """

    def __init__(
        self,
        api_key: str,
        *,
        template_id: int = 20,
        sender_name: str = "Cethos Translation Services",
        sender_email: str = "donotreply@cethos.com",
        base_url: str = "https://api.brevo.com",
        timeout: float = 10.0,
        log_links: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._template_id = template_id
        self._sender = {"name": sender_name, "email": sender_email}
        self._log_links = log_links
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def send_login_link(
        self,
        *,
        email: str,
        full_name: str | None,
        login_link: str,
        quote_number: str | None = None,
        submission_date: str | None = None,
    ) -> bool:
        """Send the login-link e-mail.  Returns ``True`` if Brevo accepted it."""
        if not self.enabled:
            logger.warning("Brevo API key not set; login link for %s was not emailed", email)
            if self._log_links:
                logger.info("Login link (dev): %s", login_link)
            return False

        payload = {
            "to": [{"email": email, "name": full_name or email}],
            "sender": self._sender,
            "templateId": self._template_id,
            "params": {
                "CUSTOMER_NAME": full_name or "there",
                "LOGIN_LINK": login_link,
                "QUOTE_NUMBER": quote_number or "",
                "SUBMISSION_DATE": submission_date or _long_date(datetime.now(UTC)),
            },
        }

        try:
            response = await self._client.post(
                "/v3/smtp/email",
                json=payload,
                headers={"api-key": self._api_key},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Brevo returned %d for login link to %s: %s",
                exc.response.status_code,
                email,
                exc.response.text[:500],
            )
            return False
        except httpx.RequestError as exc:
            logger.error("Brevo request failed for %s: %s", email, exc)
            return False

        message_id = None
        try:
            message_id = response.json().get("messageId")
        except ValueError:
            logger.debug("Brevo response for %s was not JSON", email)
        logger.info("Login link email sent to %s (message_id=%s)", email, message_id)
        return True

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._owns_client:
            await self._client.aclose()
