"""
Shared pytest fixtures for the Performance Observer test suite.

Fixtures follow the Arrange-Act-Assert (AAA) pattern and ensure test
isolation by providing a fresh database for each test.

Key Concepts Demonstrated:
- Fixture scopes (function, session)
- Fixture dependencies
- Test data factories built on Faker
- Database setup/teardown
- Bearer-token helpers for authenticated requests
"""

import itertools
import os
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import pytest
from faker import Faker

TEST_JWT_SECRET = "test-jwt-secret-key-for-local-tests-123456"

# Set testing environment before importing app
os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_JWT_SECRET_KEY"] = TEST_JWT_SECRET

from observer_app import create_app, db
from observer_app.models import BrowserMetrics, PerformanceTest, TestStatus


# Initialize Faker for generating test data
fake = Faker()

_user_counter = itertools.count(1000)


def create_test_token(
    user_id: int = 1,
    username: str = "test_user",
    secret: str = TEST_JWT_SECRET,
    expired: bool = False,
) -> str:
    """Create a signed HS256 test token with the required claims."""
    now = datetime.now(timezone.utc)
    expiry_time = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "user_id": int(user_id),
        "username": str(username),
        "iat": int(now.timestamp()),
        "exp": int(expiry_time.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict[str, str]:
    """Build JSON API headers with bearer token auth."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(scope="session")
def app():
    """
    Create application instance for the test session.

    The 'session' scope means the same app instance is reused for all
    tests.  Rate limiting is disabled by the testing configuration.

    Yields:
        Flask application instance configured for testing.
    """
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client for making HTTP requests.

    Yields:
        Flask test client for making HTTP requests.
    """
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Create a fresh database for each test.

    Creates all tables before the test and drops them afterwards, so no
    record or id leaks from one test into the next.

    Yields:
        The Flask-SQLAlchemy extension bound to the test app.
    """
    with app.app_context():
        db.create_all()
        yield db
        db.session.rollback()
        db.drop_all()


@pytest.fixture
def auth_required(app):
    """Switch the app into fail-closed mode for the duration of one test."""
    app.config["AUTH_REQUIRED"] = True
    yield
    app.config["AUTH_REQUIRED"] = False


# -----------------------------------------------------------------------------
# Test Data Factory Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def record_factory(db_session):
    """
    Factory fixture for persisted PerformanceTest rows.

    Example:
        def test_something(record_factory):
            record = record_factory(name="Login", response_time_ms=200)
            assert record.id is not None
    """

    def _create_record(
        name: str | None = None,
        device: str | None = None,
        platform: str = "Chrome / Windows",
        response_time_ms: int | None = None,
        cpu_usage_percent: float | None = None,
        memory_usage_mb: float | None = None,
        status: str = TestStatus.STABLE.value,
        notes: str | None = None,
        created_at: datetime | None = None,
        owner_id: int | None = None,
        browser_metrics: dict[str, Any] | None = None,
    ) -> PerformanceTest:
        record = PerformanceTest(
            name=name or fake.sentence(nb_words=3).rstrip("."),
            device=device or fake.random_element(["Desktop", "iPhone 15", "Pixel 8"]),
            platform=platform,
            response_time_ms=(
                response_time_ms if response_time_ms is not None else fake.random_int(50, 2000)
            ),
            cpu_usage_percent=(
                cpu_usage_percent if cpu_usage_percent is not None
                else float(fake.random_int(1, 100))
            ),
            memory_usage_mb=(
                memory_usage_mb if memory_usage_mb is not None
                else float(fake.random_int(64, 4096))
            ),
            status=status,
            notes=notes,
            created_at=created_at or datetime.now(timezone.utc),
            owner_id=owner_id,
        )
        if browser_metrics:
            record.browser_metrics = BrowserMetrics(**browser_metrics)
        db_session.session.add(record)
        db_session.session.commit()
        return record

    return _create_record


@pytest.fixture
def sample_records(record_factory) -> list[PerformanceTest]:
    """
    Three records over two days: Login (Stable, 200ms) and Checkout
    (Crash, 800ms) yesterday, Search (Lag, 450ms) today.
    """
    now = datetime.now(timezone.utc)
    yesterday = now - timedelta(days=1)
    return [
        record_factory(
            name="Login", device="Desktop", status=TestStatus.STABLE.value,
            response_time_ms=200, cpu_usage_percent=20.0, memory_usage_mb=256.0,
            created_at=yesterday.replace(hour=9, minute=0, second=0, microsecond=0),
        ),
        record_factory(
            name="Checkout", device="iPhone 15", status=TestStatus.CRASH.value,
            response_time_ms=800, cpu_usage_percent=90.0, memory_usage_mb=1024.0,
            notes="Crashed after payment step",
            created_at=yesterday.replace(hour=10, minute=0, second=0, microsecond=0),
        ),
        record_factory(
            name="Search", device="Pixel 8", status=TestStatus.LAG.value,
            response_time_ms=450, cpu_usage_percent=55.0, memory_usage_mb=512.0,
            created_at=now - timedelta(minutes=5),
        ),
    ]


@pytest.fixture
def token_for_user():
    """
    Return a factory that mints a valid token for a unique user id.

    Each call returns ``(token, {"id": ..., "username": ...})``.
    """

    def _factory() -> tuple[str, dict]:
        user_id = next(_user_counter)
        username = f"observer_user_{user_id}"
        token = create_test_token(user_id=user_id, username=username)
        return token, {"id": user_id, "username": username}

    return _factory


# -----------------------------------------------------------------------------
# Test Data Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture
def valid_test_data() -> dict[str, Any]:
    """
    Provide a valid POST /api/tests payload.

    Returns:
        Dictionary with every required field and one browser metric.
    """
    return {
        "name": "Homepage load",
        "device": "Desktop",
        "platform": "Chrome 120 / Windows 11",
        "response_time_ms": 320,
        "cpu_usage_percent": 35.5,
        "memory_usage_mb": 512,
        "status": TestStatus.STABLE.value,
        "notes": "Baseline run",
        "browser_metrics": {"page_load_time_ms": 1200, "cumulative_layout_shift": 0.05},
    }
