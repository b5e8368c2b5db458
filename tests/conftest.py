"""Shared test fixtures for laterstack tests."""

import json
import os

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Override settings before any laterstack imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("CLERK_SECRET_KEY", "sk_test")
os.environ.setdefault("AUTH_USER_HEADER", "X-User-Id")
os.environ["OTLP_ENDPOINT"] = ""

from laterstack.models import Base, User  # noqa: E402
from tests.factories import FakeExtractor, FakeIdentityService, StaticAnalyzer  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    """Create a file-backed SQLite engine so concurrent sessions behave like production."""
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'laterstack-test.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def session_factory(engine):
    """Create a session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def patched_db(engine, session_factory):
    """Point the module-level engine/session globals at the test database."""
    import laterstack.models.saved_item as saved_item_mod

    original_engine = saved_item_mod._engine
    original_factory = saved_item_mod._session_factory
    saved_item_mod._engine = engine
    saved_item_mod._session_factory = session_factory

    yield session_factory

    saved_item_mod._engine = original_engine
    saved_item_mod._session_factory = original_factory


@pytest.fixture
async def session(session_factory):
    """Create a database session for testing."""
    async with session_factory() as sess:
        yield sess


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def fake_identity() -> FakeIdentityService:
    identity = FakeIdentityService()
    identity.add_profile("user_alice", email="alice@example.com", name="Alice Liddell")
    identity.add_profile("user_bob", email="bob@example.com", name="Bob Builder")
    return identity


@pytest.fixture
def static_analyzer() -> StaticAnalyzer:
    return StaticAnalyzer()


@pytest.fixture
async def alice(patched_db) -> User:
    """A provisioned user with interests and the default reading speed."""
    async with patched_db() as sess:
        user = User(
            external_id="user_alice",
            email="alice@example.com",
            name="Alice Liddell",
            interests=json.dumps(["python", "databases"]),
            goals="Get better at backend engineering",
            reading_speed=250,
        )
        sess.add(user)
        await sess.commit()
        await sess.refresh(user)
    return user


@pytest.fixture
async def bob(patched_db) -> User:
    """A second provisioned user with no preferences."""
    async with patched_db() as sess:
        user = User(external_id="user_bob", email="bob@example.com", name="Bob Builder")
        sess.add(user)
        await sess.commit()
        await sess.refresh(user)
    return user
