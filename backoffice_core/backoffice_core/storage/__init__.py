"""Blob store backends for rendered documents."""

from backoffice_core.storage.blob_store import (
    BlobStore,
    LocalBlobStore,
    SupabaseBlobStore,
    invoice_object_key,
)

__all__ = ["BlobStore", "LocalBlobStore", "SupabaseBlobStore", "invoice_object_key"]
