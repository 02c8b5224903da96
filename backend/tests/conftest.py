"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across unit and integration tests.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from dotenv import load_dotenv

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load .env file from project root BEFORE any fixtures run
# This ensures POSTGRES_TEST_* variables are available
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

SANTIAGO = ZoneInfo("America/Santiago")


# ============================================================================
# Environment Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment() -> Generator[None, None, None]:
    """
    Set up test environment variables before any tests run.

    This ensures tests run with predictable configuration, overriding
    any values from .env files to ensure test isolation.
    """
    original_env = os.environ.copy()

    test_env = {
        "POSTGRES_HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "POSTGRES_PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "POSTGRES_USER": os.environ.get("POSTGRES_TEST_USER", "testuser"),
        "POSTGRES_PASSWORD": os.environ.get("POSTGRES_TEST_PASSWORD", "testpass"),
        "POSTGRES_DB": os.environ.get("POSTGRES_TEST_DB", "testdb"),
        "PUSH_GATEWAY_URL": "https://push.test/send",
        "SCHEDULER_ENABLED": "false",
        "DEBUG": "true",
    }
    os.environ.update(test_env)

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ============================================================================
# Sample Configuration Data
# ============================================================================


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """
    Provide a sample YAML configuration for testing.

    This matches the structure of config/default.yaml.
    """
    return {
        "database": {
            "pool_size": 3,
            "max_overflow": 5,
            "pool_timeout": 10,
        },
        "notifications": {
            "reminder_title": "⏰ Study reminder",
            "test_title": "🎯 Test notification",
        },
    }


# ============================================================================
# Time Fixtures
# ============================================================================


@pytest.fixture
def local_tz() -> ZoneInfo:
    return SANTIAGO


@pytest.fixture
def frozen_clock():
    """
    Clock frozen at Wednesday 2025-03-05 09:00 local time (12:00 UTC).

    Tests advance it explicitly to simulate the passing of days.
    """
    from studypulse.services.clock import FrozenClock

    return FrozenClock(datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc), SANTIAGO)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_db_session() -> MagicMock:
    """
    Create a mock database session for unit testing.
    """
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.close = AsyncMock()
    mock.add = MagicMock()
    return mock


@pytest.fixture
def mock_sender() -> MagicMock:
    """PushSender double that accepts every message."""
    mock = MagicMock()
    mock.send = AsyncMock(return_value=True)
    return mock
