"""Test configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date  # noqa: E402
from uuid import uuid4  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool, StaticPool  # noqa: E402

from stayhub.core.config import settings  # noqa: E402
from stayhub.core.database import Base  # noqa: E402
from stayhub.core.dependencies import get_db  # noqa: E402
from stayhub.models import *  # noqa: E402,F403 - Import all models
from stayhub.schemas.auth import Principal, UserRole  # noqa: E402
from stayhub.schemas.property import CreatePropertyRequest  # noqa: E402
from stayhub.services.booking_service import BookingService  # noqa: E402
from stayhub.services.property_service import PropertyService  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

STAY_CHECK_IN = date(2025, 12, 1)
STAY_CHECK_OUT = date(2025, 12, 5)


def _make_token(user_id, role: UserRole = UserRole.GUEST) -> str:
    """Sign a bearer token the API will accept."""
    return jwt.encode(
        {"sub": str(user_id), "role": role.value},
        settings.bearer_token_secret,
        algorithm=settings.bearer_token_algorithm
    )


def _auth_headers(user_id, role: UserRole = UserRole.GUEST) -> dict[str, str]:
    return {"Authorization": f"Bearer {_make_token(user_id, role)}"}


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def file_session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    Each session gets its own connection, so concurrent tasks run in separate
    transactions the way separate requests would.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'stayhub.db'}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from stayhub.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        request_validation_handler,
    )
    from stayhub.core.middleware import setup_middleware
    from stayhub.routers import booking, chat, health, metrics, payment, property
    from stayhub.services.connection_registry import ConnectionRegistry

    # Simplified test app without lifespan or tracing
    app = FastAPI(
        title="StayHub API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )
    app.state.connection_registry = ConnectionRegistry()

    setup_middleware(app, enable_logging=True)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(property.router)
    app.include_router(booking.router)
    app.include_router(payment.router)
    app.include_router(chat.router)
    app.include_router(metrics.router)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def host():
    return Principal(user_id=uuid4(), role=UserRole.HOST)


@pytest.fixture
def guest():
    return Principal(user_id=uuid4(), role=UserRole.GUEST)


@pytest.fixture
def stranger():
    return Principal(user_id=uuid4(), role=UserRole.GUEST)


@pytest.fixture
def sample_property_data():
    """Sample property data for testing."""
    return {
        "title": "Cabin by the Lake",
        "description": "Two bedrooms, wood stove, private dock",
        "city": "Bariloche",
        "country": "Argentina",
        "max_guests": 4,
        "price_per_night": "100.00",
    }


@pytest_asyncio.fixture
async def listed_property(test_session, host, sample_property_data):
    """A property at 100.00 per night owned by ``host``."""
    return await PropertyService(test_session).create_property(
        CreatePropertyRequest(**sample_property_data),
        host
    )


@pytest_asyncio.fixture
async def pending_booking(test_session, listed_property, guest):
    """Four nights, 2025-12-01 to 2025-12-05, booked by ``guest``."""
    return await BookingService(test_session).create_booking(
        property_id=listed_property.id,
        check_in=STAY_CHECK_IN,
        check_out=STAY_CHECK_OUT,
        guests=2,
        requester_id=guest.user_id
    )


@pytest.fixture
def auth_headers():
    """Build an ``Authorization`` header for a user id and role."""
    return _auth_headers
