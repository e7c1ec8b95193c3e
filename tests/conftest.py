"""
Pytest fixtures for registry tests.
"""

import os
import tempfile
import uuid
from datetime import timedelta
from typing import AsyncGenerator, Awaitable, Callable

# Point settings at a throwaway SQLite file before anything imports the app
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_tmp.name}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-0123456789")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from bluecarbon.database import build_engine, build_session_maker
from bluecarbon.kernel.identity import password
from bluecarbon.kernel.identity.password import hash_secret
from bluecarbon.kernel.identity.tokens import TokenService
from bluecarbon.kernel.models.base import Base
from bluecarbon.kernel.models.principal import Principal, Role
from bluecarbon.kernel.permissions.access_control import Caller

TEST_PASSWORD = "TestPassword123"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost so hashing does not dominate the run."""
    monkeypatch.setattr(password, "BCRYPT_ROUNDS", 4)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a file-backed SQLite engine with a fresh schema."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session factory bound to the test engine."""
    return build_session_maker(db_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def token_service() -> TokenService:
    """Token service with a fixed key and short TTL."""
    return TokenService(
        secret_key="test-secret-key-for-testing-only-0123456789",
        algorithm="HS256",
        default_ttl=timedelta(minutes=30),
    )


@pytest.fixture
def make_principal(db_session: AsyncSession) -> Callable[..., Awaitable[Principal]]:
    """Factory creating committed principals of a given role."""

    async def _make(role: Role, name: str = None, **attributes) -> Principal:
        name = name or f"{role.value}-{uuid.uuid4().hex[:6]}"
        principal = Principal(
            id=uuid.uuid4(),
            identity=f"{name}@example.com",
            secret_hash=hash_secret(TEST_PASSWORD),
            display_name=name.title(),
            role=role,
            **attributes,
        )
        db_session.add(principal)
        await db_session.commit()
        await db_session.refresh(principal)
        return principal

    return _make


@pytest_asyncio.fixture
async def alice(make_principal) -> Principal:
    """Submitter."""
    return await make_principal(Role.SUBMITTER, "alice", organization="Mangrove Trust", country="KE")


@pytest_asyncio.fixture
async def carol(make_principal) -> Principal:
    """A second submitter."""
    return await make_principal(Role.SUBMITTER, "carol")


@pytest_asyncio.fixture
async def bob(make_principal) -> Principal:
    """Reviewer."""
    return await make_principal(Role.REVIEWER, "bob")


@pytest_asyncio.fixture
async def admin(make_principal) -> Principal:
    """Administrator."""
    return await make_principal(Role.ADMINISTRATOR, "admin")


@pytest_asyncio.fixture
async def dave(make_principal) -> Principal:
    """Consumer."""
    return await make_principal(Role.CONSUMER, "dave")


@pytest.fixture
def as_caller() -> Callable[[Principal], Caller]:
    return Caller.from_principal
