import os
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Ensure critical settings exist before the app/config modules import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./dev.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-change-me-please-0123456789")
os.environ.setdefault("UPLOAD_DIR", "./test_uploads")

from app.models.participant import Participant
from app.models.program import Program, ProgramStatus
from app.models.user import Role, User
from app.utils.security import create_tokens, hash_password
from core.db import get_db
from core.db.base import Base
from core.db.session import enable_sqlite_foreign_keys
from main import app

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
event.listen(engine.sync_engine, "connect", enable_sqlite_foreign_keys)

TestSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create and drop all tables for each test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for testing."""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing."""

    async def override_get_db():
        async with TestSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def _make_user(
    db_session: AsyncSession, username: str, role: Role, password: str = "TestPass123"
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(password),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers(user: User) -> dict:
    access_token, _ = create_tokens(user.id, user.role.value, user.token_version)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a regular test user."""
    return await _make_user(db_session, "testuser", Role.USER)


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin test user."""
    return await _make_user(db_session, "admin", Role.ADMIN, password="AdminPass123")


@pytest.fixture
async def official_user(db_session: AsyncSession) -> User:
    """Create an SK official test user."""
    return await _make_user(db_session, "official", Role.SKOFFICIAL)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Create authentication headers for test user."""
    return _headers(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    """Create authentication headers for admin user."""
    return _headers(admin_user)


@pytest.fixture
def official_headers(official_user: User) -> dict:
    return _headers(official_user)


@pytest.fixture
async def test_program(db_session: AsyncSession) -> Program:
    """Create a program with a 10,000.00 budget."""
    return await Program.create_program(
        db_session,
        name="Basketball League",
        description="Inter-purok basketball league",
        date=date(2024, 5, 18),
        time="8:00 AM - 5:00 PM",
        location="Covered Court",
        budget=Decimal("10000.00"),
        status=ProgramStatus.ACTIVE,
    )


@pytest.fixture
async def second_program(db_session: AsyncSession) -> Program:
    return await Program.create_program(
        db_session,
        name="Coastal Clean-up",
        description="Shoreline clean-up drive",
        date=date(2024, 6, 8),
        time="6:00 AM - 10:00 AM",
        location="Shoreline",
        budget=Decimal("5000.00"),
        status=ProgramStatus.PLANNING,
    )


@pytest.fixture
async def make_participant(db_session: AsyncSession):
    """Factory fixture for participants; pass overrides for any field."""

    async def _make(**overrides) -> Participant:
        fields = {
            "first_name": "Maria",
            "last_name": "Santos",
            "age": 19,
            "contact": "09171234567",
            "address": "San Francisco",
        }
        fields.update(overrides)
        participant = Participant(**fields)
        db_session.add(participant)
        await db_session.commit()
        await db_session.refresh(participant)
        return participant

    return _make


@pytest.fixture
async def test_participant(make_participant) -> Participant:
    """A participant with a complete profile."""
    return await make_participant()


@pytest.fixture
async def user_participant(make_participant, test_user: User) -> Participant:
    """Complete participant profile owned by the test user."""
    return await make_participant(
        user_id=test_user.id,
        first_name="Juan",
        last_name="Dela Cruz",
        contact="09181234567",
        email=test_user.email,
    )
