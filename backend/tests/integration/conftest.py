"""
Integration Test Fixtures

Provides fixtures for integration tests that require a running PostgreSQL.
These fixtures set up real database connections and clean up after tests.

IMPORTANT: All integration tests use the TEST database only (via POSTGRES_TEST_* env vars).
The async_test_client fixture overrides get_db to ensure the production database is never touched.
A safety check fixture (verify_test_database) runs at session start to fail fast if
production credentials are detected.

When the test database is unreachable the whole integration session is skipped.

Note: studypulse.main imports are kept inside fixtures because they require
environment variables that are set up by the session-scoped fixtures
in the parent conftest.py.
"""

import os
from pathlib import Path
from typing import AsyncGenerator
from urllib.parse import quote_plus

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Load .env file FIRST, before reading any environment variables
_project_root = Path(__file__).parent.parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


# =============================================================================
# Safety Check - Runs before any integration tests
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def verify_test_database():
    """
    Safety check: Verify we're using test database credentials.

    Set ALLOW_PROD_DB_TESTS=1 to skip this check (for local development only).
    """
    if os.environ.get("ALLOW_PROD_DB_TESTS", "").lower() in ("1", "true", "yes"):
        return

    config = get_test_db_config()

    production_indicators = ["studypulse", "prod", "production"]
    for indicator in production_indicators:
        assert indicator not in config["db"].lower(), (
            f"SAFETY CHECK FAILED: Database name '{config['db']}' looks like production! "
            "Set POSTGRES_TEST_DB environment variable or ALLOW_PROD_DB_TESTS=1."
        )
        assert indicator not in config["user"].lower(), (
            f"SAFETY CHECK FAILED: Database user '{config['user']}' looks like production! "
            "Set POSTGRES_TEST_USER environment variable or ALLOW_PROD_DB_TESTS=1."
        )


# =============================================================================
# Database Configuration
# =============================================================================


def get_test_db_config() -> dict:
    """
    Get test database configuration from environment variables.

    Priority: POSTGRES_TEST_* > POSTGRES_* > defaults
    """
    return {
        "host": os.environ.get("POSTGRES_HOST", "localhost"),
        "port": os.environ.get("POSTGRES_PORT", "5432"),
        "user": os.environ.get(
            "POSTGRES_TEST_USER",
            os.environ.get("POSTGRES_USER", "testuser")
        ),
        "password": os.environ.get(
            "POSTGRES_TEST_PASSWORD",
            os.environ.get("POSTGRES_PASSWORD", "testpass")
        ),
        "db": os.environ.get(
            "POSTGRES_TEST_DB",
            os.environ.get("POSTGRES_DB", "testdb")
        ),
    }


def get_test_db_url(async_driver: bool = True) -> str:
    """Build database URL from test config environment variables."""
    config = get_test_db_config()
    encoded_password = quote_plus(config["password"])
    driver = "postgresql+asyncpg" if async_driver else "postgresql+psycopg2"
    return f"{driver}://{config['user']}:{encoded_password}@{config['host']}:{config['port']}/{config['db']}"


pytestmark = pytest.mark.integration

# Tables to clean (in order to respect foreign key constraints)
TABLES_TO_CLEAN = [
    "session_answers",
    "study_sessions",
    "notifications",
    "device_registrations",
    "learner_metrics",
    "learners",
]


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create database tables before any tests run.

    Uses synchronous SQLAlchemy to avoid event loop issues. Tables are
    dropped and recreated at the start of the session so the schema always
    matches the models.
    """
    from studypulse.db.base import Base
    from studypulse.db import models  # noqa: F401

    sync_engine = create_engine(get_test_db_url(async_driver=False))

    try:
        with sync_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as e:
        sync_engine.dispose()
        pytest.skip(f"Test database unavailable: {e.orig}")

    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)

    yield

    sync_engine.dispose()


async def _truncate(session: AsyncSession) -> None:
    await session.execute(
        text(f"TRUNCATE TABLE {', '.join(TABLES_TO_CLEAN)} RESTART IDENTITY CASCADE")
    )
    await session.commit()


@pytest_asyncio.fixture(scope="function")
async def clean_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session with cleaned tables for testing.

    Creates its own engine (one per test event loop) and truncates tables
    before and after each test.
    WARNING: This truncates tables! Only use for integration tests.
    """
    test_engine = create_async_engine(get_test_db_url(async_driver=True), echo=False)
    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_session_maker() as session:
        await _truncate(session)

        yield session

        await session.rollback()
        await _truncate(session)

    await test_engine.dispose()


@pytest_asyncio.fixture
async def async_test_client(clean_db: AsyncSession):
    """
    Create an async HTTP client configured to use the test database.

    Runs on the test's event loop so the asyncpg connection behind clean_db
    is reused safely. ASGITransport does not run the application lifespan
    (database init, scheduler start).
    """
    from studypulse.db.base import get_db
    from studypulse.main import app

    async def get_test_db():
        """Yield the test database session instead of production."""
        yield clean_db

    app.dependency_overrides[get_db] = get_test_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.pop(get_db, None)
