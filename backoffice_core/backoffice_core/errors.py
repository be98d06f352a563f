"""Error taxonomy shared by the back-office services.

Every error carries a human-readable message (returned verbatim to the
caller in the ``error`` field of the JSON envelope) and the HTTP status
code the API layer should answer with.
"""

from __future__ import annotations


class BackofficeError(Exception):
    """Base class for all caller-visible service failures."""

    status_code: int = 400

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MissingInputError(BackofficeError):
    """The caller omitted a required field."""


class TokenRejectedError(BackofficeError):
    """A login token failed one of the lifecycle checks."""

    status_code = 401


class InvalidOrExpiredError(TokenRejectedError):
    """No token with the presented hash exists."""


class AlreadyUsedError(TokenRejectedError):
    """The token was consumed by an earlier verification."""


class ExpiredError(TokenRejectedError):
    """The token is past its ``expires_at``."""


class NotFoundError(BackofficeError):
    """No matching invoice (or order invoice) exists."""


class DataIntegrityError(BackofficeError):
    """A referenced row is missing; the data is inconsistent, not the request."""


class StorageFailureError(BackofficeError):
    """The blob store rejected or failed an upload.  Safe to retry."""
