"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests. Mocks all external providers.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.dialects.postgresql import JSONB

from leadsync.config import Settings
from leadsync.database import Base
import leadsync.models  # noqa: F401 - registers tables on Base.metadata
from leadsync.schemas.google_payloads import AppendResult, RefreshedToken
from leadsync.schemas.meta_payloads import FieldDatum, MetaLead
from leadsync.services.automation_store import AutomationStore
from leadsync.services.lead_processor import LeadEventProcessor
from leadsync.utils.encryption import CredentialVault

from factories import TEST_APP_SECRET, TEST_ENCRYPTION_KEY, TEST_VERIFY_TOKEN


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
async def db():
    """In-memory SQLite database for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        encryption_key=TEST_ENCRYPTION_KEY,
        meta_app_id="test_app_id",
        meta_app_secret=TEST_APP_SECRET,
        meta_webhook_verify_token=TEST_VERIFY_TOKEN,
        google_client_id="test_google_client",
        google_client_secret="test_google_secret",
    )


@pytest.fixture
def vault():
    return CredentialVault(TEST_ENCRYPTION_KEY)


@pytest.fixture
def store_factory(db):
    """Store factory bound to the test session."""
    @asynccontextmanager
    async def _factory():
        yield AutomationStore(db)
    return _factory


@pytest.fixture
def mock_meta():
    """Mock MetaGraphClient - prevents real Graph API calls in tests."""
    meta = AsyncMock()
    meta.get_lead = AsyncMock(return_value=MetaLead(
        id="L1",
        field_data=[FieldDatum(name="email", values=["a@b.com"])],
    ))
    meta.subscribe_page_to_webhook = AsyncMock(return_value=True)
    return meta


@pytest.fixture
def mock_sheets():
    """Mock GoogleSheetsClient - prevents real Google API calls in tests."""
    sheets = AsyncMock()
    sheets.append_row = AsyncMock(return_value=AppendResult(updated_rows=1))
    sheets.set_sheet_headers = AsyncMock(return_value=None)
    sheets.refresh_access_token = AsyncMock(return_value=RefreshedToken(
        access_token="refreshed-google-token",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    ))
    return sheets


@pytest.fixture
def processor(vault, mock_meta, mock_sheets, store_factory):
    return LeadEventProcessor(
        vault=vault,
        meta=mock_meta,
        sheets=mock_sheets,
        app_secret=TEST_APP_SECRET,
        store_factory=store_factory,
    )


