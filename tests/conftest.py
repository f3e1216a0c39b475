"""Shared test fixtures and configuration."""
import pytest
import os
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+1234567890")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from receptionist.main import app
from receptionist.db.database import Base
from receptionist.core.clock import FakeClock
from receptionist.core.config import Settings
from receptionist.core.dependencies import (
    create_call_session_manager,
    get_call_session_manager,
    get_completion_client,
)
from receptionist.services.business.models import PersonaContext
from receptionist.services.language.catalog import LanguageCatalog


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeCompletionClient:
    """Scripted completion client.

    Replies are consumed in order; an exception instance in the script is
    raised instead of returned. ``before_reply`` is awaited before each
    answer so tests can act while a completion is in flight.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []
        self.before_reply = None

    async def complete(self, instructions, turns, timeout=None):
        self.calls.append({"instructions": instructions, "turns": list(turns), "timeout": timeout})
        if self.before_reply is not None:
            await self.before_reply()
        reply = self.replies.pop(0) if self.replies else "Natuurlijk, waarmee kan ik u helpen?"
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(
        openai_api_key="test-key",
        twilio_phone_number="+1234567890",
        database_url=TEST_DATABASE_URL,
        enable_trial_restrictions=False,
        trial_duration_seconds=180.0,
        default_language="nl-NL",
    )


@pytest.fixture
def trial_settings(test_settings):
    """Settings with the one-trial-per-caller ledger enforced."""
    return test_settings.model_copy(update={"enable_trial_restrictions": True})


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def test_session_factory(test_db_engine):
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(test_session_factory):
    """Create test database session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def catalog():
    return LanguageCatalog(default_language="nl-NL")


@pytest.fixture
def completion_client():
    return FakeCompletionClient()


@pytest.fixture
def persona():
    return PersonaContext(
        business_name="Bakkerij Jansen",
        business_type="bakery",
        description="Family bakery selling bread, cakes and coffee.",
        opening_hours="Monday to Saturday 8:00-18:00",
        languages=["nl-NL", "en-US"],
        special_rules="Custom cakes need two days notice.",
    )


@pytest.fixture
def persona_payload():
    """The same persona as the setup wizard posts it."""
    return {
        "businessName": "Bakkerij Jansen",
        "businessType": "bakery",
        "description": "Family bakery selling bread, cakes and coffee.",
        "openingHours": "Monday to Saturday 8:00-18:00",
        "languages": ["nl-NL", "en-US"],
        "specialRules": "Custom cakes need two days notice.",
    }


@pytest.fixture
def session_manager(test_settings, completion_client, fake_clock, catalog):
    """Call engine with a fake completion client and a fake clock."""
    return create_call_session_manager(
        test_settings, completion_client, clock=fake_clock, catalog=catalog
    )


@pytest.fixture
def trial_session_manager(trial_settings, completion_client, fake_clock, catalog):
    return create_call_session_manager(
        trial_settings, completion_client, clock=fake_clock, catalog=catalog
    )


@pytest.fixture
def business_handle(session_manager, persona):
    """A finished setup the next inbound call is routed to."""
    return session_manager.business_sessions.create(persona)


@pytest.fixture
def admitted_session(session_manager, business_handle):
    """A live call, already greeted."""
    admission = session_manager.admit_call("CA_test_1", "+31600000001", "+31201234567")
    return admission.session


@pytest.fixture
def test_client(session_manager, completion_client):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_call_session_manager] = lambda: session_manager
    app.dependency_overrides[get_completion_client] = lambda: completion_client

    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()


@pytest.fixture
def trial_client(trial_session_manager, completion_client):
    """Test client whose call engine enforces one trial per caller."""
    app.dependency_overrides[get_call_session_manager] = lambda: trial_session_manager
    app.dependency_overrides[get_completion_client] = lambda: completion_client

    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()
