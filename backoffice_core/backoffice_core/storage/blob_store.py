"""Blob store sinks for rendered invoice PDFs.

Two backends share the :class:`BlobStore` interface:

* :class:`LocalBlobStore` writes below a filesystem root (development,
  CLI rendering, tests).
* :class:`SupabaseBlobStore` uploads to an object-storage bucket over the
  Supabase Storage REST API with upsert semantics.

Keys are ``{customer_id}/{invoice_number}.pdf``.  Both components are
validated so a key can never escape its bucket or root directory.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

import httpx

from backoffice_core.errors import StorageFailureError

logger = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

UPLOAD_FAILED_MESSAGE = "Failed to upload PDF to storage"


def _validate_path_component(value: str, name: str) -> None:
    """Reject identifiers that contain path-separator or other unsafe chars.

    Raises
    ------
    ValueError
        If *value* contains characters outside ``[a-zA-Z0-9_-]``.
    """
    if not _SAFE_ID_RE.match(value):
        raise ValueError(f"Invalid {name}: contains unsafe characters")


def invoice_object_key(customer_id: str, invoice_number: str) -> str:
    """Build the storage key for an invoice PDF."""
    _validate_path_component(customer_id, "customer_id")
    _validate_path_component(invoice_number, "invoice_number")
    return f"{customer_id}/{invoice_number}.pdf"


class BlobStore(ABC):
    """Write-only object sink.  ``put`` overwrites an existing key."""

    @abstractmethod
    async def put(self, key: str, data: bytes, *, content_type: str = "application/pdf") -> str:
        """Store *data* under *key* and return the key.

        Raises
        ------
        StorageFailureError
            If the backend did not confirm the write.
        """

    async def close(self) -> None:  # noqa: B027
        """Release backend resources.  No-op by default."""


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalBlobStore(BlobStore):
    """Stores objects as files below *root*."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Resolve *key* below the root, rejecting traversal."""
        base_resolved = self._root.resolve()
        full_path = (base_resolved / key).resolve()
        if not full_path.is_relative_to(base_resolved) or full_path == base_resolved:
            raise ValueError("Path traversal detected")
        return full_path

    async def put(self, key: str, data: bytes, *, content_type: str = "application/pdf") -> str:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            logger.error("Local blob write failed for %s: %s", key, exc)
            raise StorageFailureError(UPLOAD_FAILED_MESSAGE) from exc
        logger.info("Stored blob: %s (%d bytes)", path, len(data))
        return key


# ---------------------------------------------------------------------------
# Supabase Storage
# ---------------------------------------------------------------------------


class SupabaseBlobStore(BlobStore):
    """Uploads objects to a Supabase Storage bucket.

    Parameters
    ----------
    base_url:
        Project URL, e.g. ``https://xyz.supabase.co``.
    service_role_key:
        Service-role key sent as both bearer token and ``apikey``.
    bucket:
        Target bucket name.
    timeout:
        Per-request timeout in seconds.
    client:
        Optional pre-built ``httpx.AsyncClient``; when given, the caller
        owns its lifecycle.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        bucket: str = "invoices",
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("Supabase URL is required for the supabase blob backend")
        self._bucket = bucket
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
        )
        self._headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(self, key: str, data: bytes, *, content_type: str = "application/pdf") -> str:
        headers = {
            **self._headers,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        path = f"/storage/v1/object/{self._bucket}/{key}"
        try:
            response = await self._client.post(path, content=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Storage upload returned %d for %s: %s",
                exc.response.status_code,
                key,
                exc.response.text[:500],
            )
            raise StorageFailureError(UPLOAD_FAILED_MESSAGE) from exc
        except httpx.RequestError as exc:
            logger.error("Storage upload failed for %s: %s", key, exc)
            raise StorageFailureError(UPLOAD_FAILED_MESSAGE) from exc
        logger.info("Uploaded blob %s/%s (%d bytes)", self._bucket, key, len(data))
        return key

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
