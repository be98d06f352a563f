"""FastAPI dependency injection for settings, database sessions and services."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Annotated

from backoffice_core.state.database import get_engine, session_factory
from backoffice_core.storage.blob_store import BlobStore, LocalBlobStore, SupabaseBlobStore
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backoffice_api.config import APISettings, BlobBackend, PlatformEnv, load_api_settings
from backoffice_api.services.customer_auth_service import CustomerAuthService
from backoffice_api.services.invoice_pdf_service import InvoicePdfService
from backoffice_api.services.mailer import BrevoMailer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_settings_cache: APISettings | None = None


def get_settings() -> APISettings:
    """Return the cached :class:`APISettings` singleton."""
    global _settings_cache  # noqa: PLW0603
    if _settings_cache is None:
        _settings_cache = load_api_settings()
    return _settings_cache


SettingsDep = Annotated[APISettings, Depends(get_settings)]

# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_engine(settings: APISettings) -> AsyncEngine:
    """Create and cache the global async engine."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = get_engine(settings.database_url)
    _session_factory = session_factory(_engine)
    return _engine


async def dispose_engine() -> None:
    """Dispose the global engine pool (call during shutdown)."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the global async session factory."""
    if _session_factory is None:
        raise RuntimeError(
            "Database engine has not been initialised. Ensure init_engine() is called during application startup."
        )
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one ``AsyncSession`` per request.

    Writing endpoints commit explicitly before they build a response, so a
    failed commit surfaces as an error instead of a 200.  Anything still
    pending when the request ends is discarded, and a service error raised
    after a partial write (for example a consumed login link whose
    customer is missing) rolls the whole request back.
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]

# ---------------------------------------------------------------------------
# Blob store
# ---------------------------------------------------------------------------

_blob_store: BlobStore | None = None


def build_blob_store(settings: APISettings) -> BlobStore:
    """Construct the blob store selected by ``blob_backend``."""
    if settings.blob_backend == BlobBackend.SUPABASE:
        return SupabaseBlobStore(
            settings.supabase_url,
            settings.supabase_service_role_key.get_secret_value(),
            bucket=settings.invoice_bucket,
        )
    return LocalBlobStore(settings.invoice_storage_path)


def init_blob_store(settings: APISettings) -> BlobStore:
    """Create and cache the global blob store."""
    global _blob_store  # noqa: PLW0603
    _blob_store = build_blob_store(settings)
    return _blob_store


async def dispose_blob_store() -> None:
    global _blob_store  # noqa: PLW0603
    if _blob_store is not None:
        await _blob_store.close()
        _blob_store = None


def get_blob_store() -> BlobStore:
    """Return the cached blob store singleton."""
    if _blob_store is None:
        raise RuntimeError(
            "Blob store has not been initialised. Ensure init_blob_store() is called during application startup."
        )
    return _blob_store


BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]

# ---------------------------------------------------------------------------
# Mailer
# ---------------------------------------------------------------------------

_mailer: BrevoMailer | None = None


def init_mailer(settings: APISettings) -> BrevoMailer:
    """Create and cache the global :class:`BrevoMailer`."""
    global _mailer  # noqa: PLW0603
    _mailer = BrevoMailer(
        settings.brevo_api_key.get_secret_value(),
        template_id=settings.brevo_template_id,
        sender_name=settings.mail_sender_name,
        sender_email=settings.mail_sender_email,
        base_url=settings.brevo_api_url,
        log_links=settings.platform_env == PlatformEnv.DEV,
    )
    return _mailer


async def dispose_mailer() -> None:
    """Close the mailer's underlying HTTP pool."""
    global _mailer  # noqa: PLW0603
    if _mailer is not None:
        await _mailer.close()
        _mailer = None


def get_mailer() -> BrevoMailer | None:
    """Return the cached mailer, or ``None`` before startup."""
    return _mailer


MailerDep = Annotated[BrevoMailer | None, Depends(get_mailer)]

# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def get_customer_auth_service(
    session: SessionDep,
    settings: SettingsDep,
    mailer: MailerDep,
) -> CustomerAuthService:
    return CustomerAuthService(
        session,
        mailer=mailer,
        site_url=settings.site_url,
        magic_link_ttl=timedelta(minutes=settings.magic_link_expiry_minutes),
        session_ttl=timedelta(hours=settings.session_ttl_hours),
    )


CustomerAuthServiceDep = Annotated[CustomerAuthService, Depends(get_customer_auth_service)]


def get_invoice_pdf_service(
    session: SessionDep,
    settings: SettingsDep,
    blob_store: BlobStoreDep,
) -> InvoicePdfService:
    return InvoicePdfService(
        session,
        blob_store,
        brand_name=settings.brand_name,
        support_email=settings.support_email,
    )


InvoicePdfServiceDep = Annotated[InvoicePdfService, Depends(get_invoice_pdf_service)]
