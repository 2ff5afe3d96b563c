"""
Pytest configuration and fixtures for tests.
Provides scratch databases, profiles, services and an HTTP client.
"""
import pytest
from typing import AsyncGenerator, Awaitable, Callable
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from httpx import AsyncClient, ASGITransport

from dreamsocial.main import app
from dreamsocial.api.v1.social import limiter
from dreamsocial.core.database import get_session_factory
from dreamsocial.core.security import create_access_token
from dreamsocial.models import Base, Profile
from dreamsocial.services.relationship_cache import RelationshipCache
from dreamsocial.services.relationship_service import RelationshipService
from dreamsocial.services.directory_service import UserDirectoryService


# A file-backed SQLite database per test: every service call opens its own
# session, and an in-memory database would give each connection a fresh,
# empty schema.
@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'social.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def broken_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory for a database whose tables were never created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def service(session_factory) -> RelationshipService:
    """Relationship service on the test database."""
    return RelationshipService(session_factory)


@pytest.fixture
def broken_service(broken_session_factory) -> RelationshipService:
    """Relationship service whose every query fails."""
    return RelationshipService(broken_session_factory)


@pytest.fixture
def cache(service) -> RelationshipCache:
    """Empty relationship cache for a session."""
    return RelationshipCache(service)


@pytest.fixture
def directory(service) -> UserDirectoryService:
    """Directory service on the test database."""
    return UserDirectoryService(service)


@pytest.fixture
def make_profile(session_factory) -> Callable[..., Awaitable[Profile]]:
    """Factory inserting a profile row."""
    async def _make(user_id: str, username: str, display_name: str = None) -> Profile:
        profile = Profile(
            id=user_id,
            username=username,
            display_name=display_name or username.title(),
            avatar_url=f"https://cdn.example.com/avatars/{user_id}.png",
        )
        async with session_factory() as session:
            session.add(profile)
            await session.commit()
        return profile

    return _make


@pytest.fixture
async def alice(make_profile) -> Profile:
    return await make_profile("user-alice", "alice", "Alice Dreamer")


@pytest.fixture
async def bob(make_profile) -> Profile:
    return await make_profile("user-bob", "bob", "Bob Sleeper")


@pytest.fixture
async def carol(make_profile) -> Profile:
    return await make_profile("user-carol", "carol", "Carol Nightly")


def _bearer_headers(user_id: str) -> dict:
    token = create_access_token(data={"sub": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_for() -> Callable[[str], dict]:
    """Bearer headers for any signed-in user."""
    return _bearer_headers


@pytest.fixture
def auth_headers(alice) -> dict:
    """Authentication headers for alice."""
    return _bearer_headers(alice.id)


@pytest.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client pointed at the test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    # Clear overrides after test
    app.dependency_overrides.clear()
