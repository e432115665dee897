"""
Performance test store.

Wraps the SQLAlchemy session with the operations the API needs: paged
listing through an explicit ``PerfTestPredicate``, create/update/delete,
status transitions, the scheduler lookups (next candidate, running tests)
and resolution of a test's metric logs for the report sampler.

Single-test lookups and the running list are served cache-aside from the
Flask-Caching ``cache``; every write clears it before returning.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from flask import current_app
from flask_caching import Cache
from sqlalchemy import select

from . import db
from .cache import RUNNING_KEY, cache, perf_test_key
from .filters import PerfTestPredicate, empty_predicate
from .models import PerfTest, PerfTestStatus
from .report import ReportLocator, sample

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = frozenset(
    {"created_at", "updated_at", "test_name", "status", "started_at", "finished_at", "id"}
)


@dataclass
class PerfTestPage:
    """One page of a listing, with items already serialised."""

    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 10
    pages: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "perftests": self.items,
            "count": len(self.items),
            "total": self.total,
            "page": self.page,
            "per_page": self.per_page,
            "pages": self.pages,
        }


class PerfTestStore:
    """Data access for ``PerfTest`` records and their report files."""

    def __init__(self, record_cache: Cache, home: str | Path) -> None:
        self.cache = record_cache
        self.locator = ReportLocator(home)

    @classmethod
    def for_current_app(cls) -> "PerfTestStore":
        """Build a store bound to the active app's cache and home directory."""
        return cls(cache, current_app.config["PERFTEST_HOME"])

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def list_perf_tests(
        self,
        predicate: PerfTestPredicate | None = None,
        *,
        page: int = 1,
        per_page: int = 10,
        sort: str = "created_at",
        order: str = "desc",
    ) -> PerfTestPage:
        """
        Return one page of tests matching *predicate*.

        Unknown sort fields fall back to ``created_at``; ties are broken by
        id in the same direction so paging is stable.
        """
        stmt = (predicate or empty_predicate()).apply(select(PerfTest))

        column = getattr(PerfTest, sort if sort in SORTABLE_FIELDS else "created_at")
        if order == "asc":
            stmt = stmt.order_by(column.asc(), PerfTest.id.asc())
        else:
            stmt = stmt.order_by(column.desc(), PerfTest.id.desc())

        pagination = db.paginate(stmt, page=page, per_page=per_page, error_out=False)
        return PerfTestPage(
            items=[perf_test.to_dict() for perf_test in pagination.items],
            total=pagination.total or 0,
            page=pagination.page,
            per_page=pagination.per_page,
            pages=pagination.pages,
        )

    def get_perf_test(self, test_id: int) -> dict[str, Any] | None:
        """Return a snapshot of the test, served from the cache when present."""
        snapshot = self.cache.get(perf_test_key(test_id))
        if snapshot is not None:
            return snapshot

        perf_test = db.session.get(PerfTest, test_id)
        if perf_test is None:
            return None
        snapshot = perf_test.to_dict()
        self.cache.set(perf_test_key(test_id), snapshot)
        return snapshot

    def get_perf_test_candidate(self) -> dict[str, Any] | None:
        """Return the oldest ``READY`` test, the next one to run, or ``None``."""
        stmt = (
            select(PerfTest)
            .where(PerfTest.status == PerfTestStatus.READY.value)
            .order_by(PerfTest.created_at.asc(), PerfTest.id.asc())
            .limit(1)
        )
        perf_test = db.session.scalar(stmt)
        return perf_test.to_dict() if perf_test else None

    def get_testing_perf_tests(self) -> list[dict[str, Any]]:
        """Return all tests currently in ``TESTING`` status, oldest first."""
        running = self.cache.get(RUNNING_KEY)
        if running is not None:
            return running

        stmt = (
            select(PerfTest)
            .where(PerfTest.status == PerfTestStatus.TESTING.value)
            .order_by(PerfTest.created_at.asc(), PerfTest.id.asc())
        )
        running = [perf_test.to_dict() for perf_test in db.session.scalars(stmt)]
        self.cache.set(RUNNING_KEY, running)
        return running

    # -----------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------

    def create_perf_test(self, owner_id: int, data: dict[str, Any]) -> dict[str, Any]:
        """
        Create a test owned by *owner_id*.

        An initial status other than ``SAVED`` goes through the same
        timestamp rules as a later status change.
        """
        status = PerfTestStatus(data.get("status") or PerfTestStatus.SAVED.value)
        perf_test = PerfTest(created_by=owner_id).merge(data)
        perf_test.change_status(status)
        db.session.add(perf_test)
        db.session.commit()
        self.cache.clear()
        logger.info("Created perftest id=%s for user_id=%s", perf_test.id, owner_id)
        return perf_test.to_dict()

    def update_perf_test(self, test_id: int, data: dict[str, Any]) -> dict[str, Any] | None:
        """Merge the non-null fields of *data* into the test; ``None`` if absent."""
        perf_test = db.session.get(PerfTest, test_id)
        if perf_test is None:
            return None
        perf_test.merge(data)
        db.session.commit()
        self.cache.clear()
        logger.info("Updated perftest id=%s", test_id)
        return perf_test.to_dict()

    def update_status(
        self, test_id: int, status: PerfTestStatus | str
    ) -> dict[str, Any] | None:
        """
        Move the test to *status*; ``None`` if the test does not exist.

        Entering ``TESTING`` stamps ``started_at``; entering a terminal
        status stamps ``finished_at``.

        Raises:
            ValueError: If *status* is not a ``PerfTestStatus`` value.
        """
        new_status = PerfTestStatus(status)
        perf_test = db.session.get(PerfTest, test_id)
        if perf_test is None:
            return None

        previous = perf_test.status
        perf_test.change_status(new_status)
        db.session.commit()
        self.cache.clear()
        logger.info("Perftest id=%s status %s -> %s", test_id, previous, new_status.value)
        return perf_test.to_dict()

    def delete_perf_test(self, test_id: int) -> bool:
        perf_test = db.session.get(PerfTest, test_id)
        if perf_test is None:
            return False
        db.session.delete(perf_test)
        db.session.commit()
        self.cache.clear()
        logger.info("Deleted perftest id=%s", test_id)
        return True

    # -----------------------------------------------------------------
    # Report files
    # -----------------------------------------------------------------

    def perf_test_directory(self, test_id: int) -> Path:
        return self.locator.perf_test_directory(test_id)

    def locate(self, test_id: int, metric: str) -> Path:
        """Return the path of the metric log for *test_id*."""
        return self.locator.metric_file(test_id, metric)

    def get_report_data(
        self,
        test_id: int,
        metric: str,
        display_width: int,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> list[str]:
        """
        Return the downsampled lines of one metric log.

        Raises the ``perftest_app.report`` errors unchanged.
        """
        path = self.locate(test_id, metric)
        return sample(path, display_width, cancel_event=cancel_event, timeout=timeout)
