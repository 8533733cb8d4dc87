"""Test configuration and fixtures."""

import os
from collections.abc import AsyncGenerator

import httpx
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backoffice.client.gateway import GatewayClient
from backoffice.client.session import Session
from backoffice.core.database import Base, get_db
from backoffice.core.permissions import Role
from backoffice.core.security import get_password_hash
from backoffice.models.course import Course
from backoffice.models.student import Student
from backoffice.models.user import User
from main import app

# SQLite file by default; point TEST_DATABASE_URL at a PostgreSQL database to
# run the suite against the production engine
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_backoffice.db"
)

# Create test engine with NullPool to avoid connection issues
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for tests."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def setup_database() -> AsyncGenerator[None, None]:
    """Create test database tables before each test that needs it."""
    app.dependency_overrides[get_db] = override_get_db

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def db(setup_database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(setup_database: None) -> AsyncGenerator[AsyncClient, None]:
    """Get async HTTP client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_user(db: AsyncSession) -> User:
    """Create an administrator for tests."""
    user = User(
        email="admin@example.com",
        password_hash=get_password_hash("password123"),
        first_name="Ada",
        last_name="Admin",
        role=Role.ADMIN.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    yield user


@pytest_asyncio.fixture
async def staff_user(db: AsyncSession) -> User:
    """Create a regular back-office user for tests."""
    user = User(
        email="staff@example.com",
        password_hash=get_password_hash("password123"),
        first_name="Sam",
        last_name="Staff",
        role=Role.USER.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    yield user


@pytest_asyncio.fixture
async def admin_token(client: AsyncClient, admin_user: User) -> str:
    """Get auth token for the administrator."""
    response = await client.post(
        "/api/auth/login",
        json={"email": "admin@example.com", "password": "password123"},
    )
    return response.json()["token"]


@pytest_asyncio.fixture
async def staff_token(client: AsyncClient, staff_user: User) -> str:
    """Get auth token for the regular user."""
    response = await client.post(
        "/api/auth/login",
        json={"email": "staff@example.com", "password": "password123"},
    )
    return response.json()["token"]


@pytest_asyncio.fixture
async def student(db: AsyncSession) -> Student:
    """Create a student for tests."""
    student = Student(
        last_name="Rakoto",
        first_name="Jean",
        email="jean.rakoto@example.com",
        phone="+261341234567",
        cin="101234567890",
    )
    db.add(student)
    await db.commit()
    await db.refresh(student)
    yield student


@pytest_asyncio.fixture
async def course(db: AsyncSession) -> Course:
    """Create a course for tests."""
    course = Course(
        name="Python Fundamentals",
        description="Introduction to Python",
        fee=500,
        duration_days=30,
    )
    db.add(course)
    await db.commit()
    await db.refresh(course)
    yield course


def auth_header(token: str) -> dict[str, str]:
    """Create authorization header."""
    return {"Authorization": f"Bearer {token}"}


class RecordingTransport(httpx.AsyncBaseTransport):
    """Transport wrapper remembering every request that reached the network."""

    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self.inner = inner
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return await self.inner.handle_async_request(request)


@pytest_asyncio.fixture
async def transport(setup_database: None) -> RecordingTransport:
    """In-process transport to the app, recording what reaches it."""
    return RecordingTransport(ASGITransport(app=app))


@pytest_asyncio.fixture
async def gateway(transport: RecordingTransport) -> AsyncGenerator[GatewayClient, None]:
    """Console gateway client talking to the app in-process, anonymous at first."""
    async with GatewayClient(Session(), base_url="http://test/api", transport=transport) as gw:
        yield gw
