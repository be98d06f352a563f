"""Shared fixtures for back-office API tests.

Provides test settings, a mock database session, mock services, an
in-memory SQLite engine for service-level tests, and an async httpx
client bound to the FastAPI app.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from backoffice_core.state.sqlite_adapter import create_local_tables, get_local_engine
from backoffice_core.storage.blob_store import LocalBlobStore
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from backoffice_api.config import APISettings
from backoffice_api.dependencies import (
    get_blob_store,
    get_customer_auth_service,
    get_db_session,
    get_invoice_pdf_service,
    get_mailer,
    get_settings,
)
from backoffice_api.main import create_app
from backoffice_api.services.customer_auth_service import CustomerAuthService
from backoffice_api.services.invoice_pdf_service import InvoicePdfService
from backoffice_api.services.mailer import BrevoMailer

# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def test_settings(tmp_path) -> APISettings:
    """Return a settings object suitable for testing."""
    return APISettings(
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        platform_env="dev",
        cors_origins=["*"],
        site_url="https://portal.test",
        invoice_storage_path=str(tmp_path / "invoices"),
    )


# ---------------------------------------------------------------------------
# Mock database session
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_session() -> AsyncMock:
    """Return a mock AsyncSession.

    ``execute`` returns a result whose ``scalar_one_or_none()`` is ``None``
    and whose ``scalars().all()`` is ``[]``.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    result_mock = MagicMock()
    result_mock.scalar_one_or_none.return_value = None
    result_mock.scalars.return_value.all.return_value = []
    result_mock.scalars.return_value.first.return_value = None

    session.execute = AsyncMock(return_value=result_mock)
    return session


# ---------------------------------------------------------------------------
# Mock services
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_auth_service() -> AsyncMock:
    """A CustomerAuthService stand-in; tests set return values or side effects."""
    return AsyncMock(spec=CustomerAuthService)


@pytest.fixture()
def mock_pdf_service() -> AsyncMock:
    return AsyncMock(spec=InvoicePdfService)


@pytest.fixture()
def mock_mailer() -> AsyncMock:
    mailer = AsyncMock(spec=BrevoMailer)
    mailer.send_login_link = AsyncMock(return_value=True)
    mailer.enabled = True
    return mailer


# ---------------------------------------------------------------------------
# FastAPI client with mocked services
# ---------------------------------------------------------------------------


@pytest.fixture()
def app(
    test_settings: APISettings,
    mock_session: AsyncMock,
    mock_auth_service: AsyncMock,
    mock_pdf_service: AsyncMock,
):
    """Create a FastAPI app whose services are mocks."""
    application = create_app()

    async def _override_session():
        yield mock_session

    application.dependency_overrides[get_db_session] = _override_session
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_customer_auth_service] = lambda: mock_auth_service
    application.dependency_overrides[get_invoice_pdf_service] = lambda: mock_pdf_service
    return application


@pytest_asyncio.fixture()
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Yield an async httpx client bound to the test app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Real SQLite database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with every table created."""
    eng = get_local_engine(":memory:")
    await create_local_tables(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture()
def local_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs")


@pytest.fixture()
def sqlite_app(
    test_settings: APISettings,
    engine: AsyncEngine,
    local_store: LocalBlobStore,
    mock_mailer: AsyncMock,
):
    """Create a FastAPI app wired to real services over in-memory SQLite.

    Each request gets its own session; routers commit, errors roll back,
    like the production dependency.
    """
    application = create_app()
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async def _override_session():
        session = factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    application.dependency_overrides[get_db_session] = _override_session
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_blob_store] = lambda: local_store
    application.dependency_overrides[get_mailer] = lambda: mock_mailer
    return application


@pytest_asyncio.fixture()
async def sqlite_client(sqlite_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=sqlite_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

