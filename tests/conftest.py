"""
Shared pytest fixtures for the Performance Test Service test suite.

Provides the Flask application, test client, database session, JWT
headers for ordinary and elevated users, a Faker-backed factory for test
records, and a temporary report home for metric log files.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from faker import Faker

from shared.test_helpers import TEST_PUBLIC_KEY, auth_headers, create_test_token, write_metric_log

# Set testing environment before importing the app
os.environ["FLASK_ENV"] = "testing"
os.environ["TEST_JWT_PUBLIC_KEY"] = TEST_PUBLIC_KEY

from perftest_app import create_app, db
from perftest_app.cache import cache
from perftest_app.models import PerfTest, PerfTestStatus
from perftest_app.store import PerfTestStore

fake = Faker()

ADMIN_USER_ID = 99


# -----------------------------------------------------------------------------
# Application Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture(scope="session")
def app():
    """Create the Flask app once for the whole session using 'testing' config."""
    application = create_app("testing")
    yield application


@pytest.fixture(scope="function")
def client(app):
    """Provide a fresh Flask test client for each test."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture(scope="function")
def db_session(app):
    """
    Provide a clean database and an empty record cache for each test.

    Tables are created before the test and dropped afterwards; the cache
    is cleared on both sides so snapshots never outlive their rows.
    """
    with app.app_context():
        db.create_all()
        cache.clear()
        yield db
        db.session.rollback()
        db.drop_all()
        cache.clear()


@pytest.fixture
def report_home(app, tmp_path) -> Path:
    """Point ``PERFTEST_HOME`` at a temporary directory for one test."""
    original = app.config["PERFTEST_HOME"]
    app.config["PERFTEST_HOME"] = str(tmp_path)
    yield tmp_path
    app.config["PERFTEST_HOME"] = original


@pytest.fixture
def store(db_session, report_home) -> PerfTestStore:
    """A store over the app cache, rooted at the temporary report home."""
    return PerfTestStore(cache, report_home)


@pytest.fixture
def metric_log_factory(report_home):
    """
    Factory that writes a metric log where the service will look for it.

    ``_write(test_id, metric, lines)`` stores ``lines`` under
    ``<home>/perftest/<test_id>/report/<metric>.data``.
    """

    def _write(test_id: int, metric: str, lines: list[str], **kwargs: Any) -> Path:
        path = report_home / "perftest" / str(test_id) / "report" / f"{metric.lower()}.data"
        return write_metric_log(path, lines, **kwargs)

    return _write


# -----------------------------------------------------------------------------
# Authentication Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def api_headers() -> dict[str, str]:
    """Headers for user_one (id 1), an ordinary user."""
    return auth_headers(create_test_token(user_id=1, username="user_one", role="U"))


@pytest.fixture
def second_user_headers() -> dict[str, str]:
    """Headers for user_two (id 2), used in tenant-isolation tests."""
    return auth_headers(create_test_token(user_id=2, username="user_two", role="U"))


@pytest.fixture
def admin_headers() -> dict[str, str]:
    """Headers for an administrator who may see every owner's tests."""
    return auth_headers(create_test_token(user_id=ADMIN_USER_ID, username="admin", role="A"))


# -----------------------------------------------------------------------------
# Data Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def perf_test_factory(db_session):
    """
    Factory fixture that inserts PerfTest rows directly.

    Rows bypass the store, so the cache is not touched; the ``db_session``
    fixture clears it between tests.
    """

    def _create_perf_test(
        *,
        created_by: int = 1,
        test_name: str | None = None,
        description: str | None = None,
        status: str = PerfTestStatus.SAVED.value,
        created_at: datetime | None = None,
        agent_count: int | None = 1,
        vuser_per_agent: int | None = 10,
    ) -> PerfTest:
        perf_test = PerfTest(
            created_by=created_by,
            test_name=test_name or fake.sentence(nb_words=3),
            description=description or fake.paragraph(),
            status=status,
            agent_count=agent_count,
            vuser_per_agent=vuser_per_agent,
            created_at=created_at or datetime.now(timezone.utc),
        )
        db_session.session.add(perf_test)
        db_session.session.commit()
        return perf_test

    return _create_perf_test


@pytest.fixture
def sample_perf_test(perf_test_factory) -> PerfTest:
    """A single SAVED test owned by user_id=1 with predictable values."""
    return perf_test_factory(
        created_by=1,
        test_name="Checkout Soak",
        description="Soak test of the checkout flow",
    )


@pytest.fixture
def multiple_perf_tests(perf_test_factory) -> list[PerfTest]:
    """
    Five tests for user_id=1 in different statuses with increasing age.

    Created oldest first so ordering assertions are deterministic.
    """
    base = datetime.now(timezone.utc) - timedelta(hours=5)
    specs = [
        ("Login Baseline", PerfTestStatus.FINISHED),
        ("Search Spike", PerfTestStatus.READY),
        ("Checkout Stress", PerfTestStatus.TESTING),
        ("Catalog Endurance", PerfTestStatus.FINISHED),
        ("Cart 100% Ramp", PerfTestStatus.SAVED),
    ]
    return [
        perf_test_factory(
            created_by=1,
            test_name=name,
            description=f"{name} scenario",
            status=status.value,
            created_at=base + timedelta(hours=offset),
        )
        for offset, (name, status) in enumerate(specs)
    ]


@pytest.fixture
def valid_perf_test_data() -> dict[str, Any]:
    """A complete, valid create payload."""
    return {
        "test_name": "Nightly Regression",
        "description": "Full regression load profile",
        "agent_count": 2,
        "vuser_per_agent": 50,
        "duration_seconds": 600,
        "target_hosts": "api.internal,db.internal",
        "script_name": "regression.py",
    }
