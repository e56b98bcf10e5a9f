"""
Test infrastructure for the adboard API.

Strategy
--------
- SQLite in-memory via aiosqlite with StaticPool, so every session in a
  test talks to the same connection and therefore the same database.
- ``get_db`` is overridden with a session factory bound to that engine.
- Tables are created before and dropped after every test.
- Listing images go to a per-test ``tmp_path`` directory through an
  overridden ``get_asset_store``.
- Redis is disabled (``cache._redis = None``); the cache manager then
  treats every read as a miss and skips writes.
- Test users get cheap password hashes (1 000 PBKDF2 rounds); the
  iteration count travels with the hash so verification still works.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from adboard.cache import cache
from adboard.database import Base, get_db
from adboard.dependencies import get_asset_store
from adboard.main import app
from adboard.middleware import install_query_counter
from adboard.models import Role, User
from adboard.security import hash_password
from adboard.storage import AssetStore, StorageConfig

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "password123"
TEST_HASH_ROUNDS = 1_000

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


async def make_user(
    db: AsyncSession,
    email: str,
    role: Role = Role.USER,
    first_name: str = "Test",
    last_name: str = "User",
    phone: str | None = "+70000000000",
) -> User:
    """Insert a user whose password is ``TEST_PASSWORD``."""
    user = User(
        email=email,
        password_hash=hash_password(TEST_PASSWORD, iterations=TEST_HASH_ROUNDS),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def asset_store(tmp_path) -> AssetStore:
    return AssetStore(StorageConfig(base_url="/api/v1/ads/image", directory=tmp_path / "ads"))


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for seeding data and calling services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(asset_store: AssetStore) -> AsyncClient:
    cache._redis = None
    app.dependency_overrides[get_asset_store] = lambda: asset_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.pop(get_asset_store, None)


@pytest_asyncio.fixture
async def seeded_users(db_session: AsyncSession) -> dict[str, User]:
    """
    Three committed users: ``alice`` and ``bob`` (role USER) and
    ``admin`` (role ADMIN).
    """
    users = {
        "alice": await make_user(db_session, "alice@example.com", first_name="Alice", last_name="Smith"),
        "bob": await make_user(db_session, "bob@example.com", first_name="Bob", last_name="Jones"),
        "admin": await make_user(db_session, "admin@example.com", role=Role.ADMIN),
    }
    await db_session.commit()
    return users


@pytest.fixture
def user_factory(db_session: AsyncSession):
    """``await user_factory(email, role=...)`` inserts a user into ``db_session``."""

    async def _factory(email: str, **kwargs) -> User:
        return await make_user(db_session, email, **kwargs)

    return _factory
