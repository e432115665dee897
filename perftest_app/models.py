"""
Database Models for the Performance Test Service.

Defines the SQLAlchemy ORM model for a performance test definition and the
enumeration of its lifecycle statuses.  Each test is owned by exactly one
user via ``created_by``; ordinary users only ever see their own tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from . import db


class PerfTestStatus(str, Enum):
    """
    Lifecycle statuses of a performance test.

    Inherits from ``str`` so members compare equal to the raw strings stored
    in the database column and serialise directly to JSON.
    """

    SAVED = "SAVED"
    READY = "READY"
    TESTING = "TESTING"
    FINISHED = "FINISHED"
    STOP_ON_ERROR = "STOP_ON_ERROR"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        """True once the test can no longer produce new samples."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {PerfTestStatus.FINISHED, PerfTestStatus.STOP_ON_ERROR, PerfTestStatus.CANCELED}
)


class PerfTest(db.Model):
    """
    Performance test definition owned by a single user.

    Attributes:
        id: Auto-incrementing primary key.  Also names the test's working
            directory on disk.
        created_by: ID of the owning user (from the JWT).  Indexed for fast
            per-owner listing.
        test_name: Short name of the test (max 200 characters).
        description: Optional free text.
        status: Current lifecycle status (see ``PerfTestStatus``).
        agent_count: Number of load-generating agents.
        vuser_per_agent: Virtual users spawned per agent.
        duration_seconds: Planned run time, when the test is time bound.
        run_count: Planned iterations per virtual user, when count bound.
        target_hosts: Comma separated hosts under test.
        script_name: Name of the load script the agents execute.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC, auto-updated).
        started_at: When the test entered ``TESTING``.
        finished_at: When the test reached a terminal status.
    """

    __tablename__ = "perf_tests"

    id: int = db.Column(db.Integer, primary_key=True)
    created_by: int = db.Column(db.Integer, nullable=False, index=True)
    test_name: str = db.Column(db.String(200), nullable=False)
    description: str | None = db.Column(db.Text, nullable=True)
    status: str = db.Column(
        db.String(30),
        nullable=False,
        default=PerfTestStatus.SAVED.value,
        index=True,
    )
    agent_count: int | None = db.Column(db.Integer, nullable=True)
    vuser_per_agent: int | None = db.Column(db.Integer, nullable=True)
    duration_seconds: int | None = db.Column(db.Integer, nullable=True)
    run_count: int | None = db.Column(db.Integer, nullable=True)
    target_hosts: str | None = db.Column(db.Text, nullable=True)
    script_name: str | None = db.Column(db.String(255), nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    started_at: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    finished_at: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)

    # Fields a client may change through create/update; status has its own
    # transition call so timestamps stay consistent.
    MERGEABLE_FIELDS = (
        "test_name",
        "description",
        "agent_count",
        "vuser_per_agent",
        "duration_seconds",
        "run_count",
        "target_hosts",
        "script_name",
    )

    @staticmethod
    def _to_utc_iso(value: datetime | None) -> str | None:
        """
        Convert a datetime to a UTC ISO-8601 string.

        SQLite drops timezone information, so values read back may be naive
        even though they were written in UTC.  Naive values are assumed UTC.
        """
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        return value.isoformat()

    def merge(self, changes: dict[str, Any]) -> "PerfTest":
        """
        Copy the non-null mergeable values of *changes* onto this record.

        Keys outside ``MERGEABLE_FIELDS`` and ``None`` values are ignored, so
        a partial payload never blanks out existing configuration.

        Returns:
            ``self``, to allow chaining.
        """
        for field in self.MERGEABLE_FIELDS:
            value = changes.get(field)
            if value is not None:
                setattr(self, field, value)
        return self

    def change_status(self, status: PerfTestStatus) -> None:
        """
        Set *status* and stamp the lifecycle timestamps it implies.

        Entering ``TESTING`` sets ``started_at`` and clears ``finished_at``;
        entering a terminal status sets ``finished_at``.
        """
        now = datetime.now(timezone.utc)
        if status is PerfTestStatus.TESTING:
            self.started_at = now
            self.finished_at = None
        elif status.is_terminal:
            self.finished_at = now
        self.status = status.value

    def to_dict(self) -> dict[str, Any]:
        """Serialise the test to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "created_by": self.created_by,
            "test_name": self.test_name,
            "description": self.description,
            "status": self.status,
            "agent_count": self.agent_count,
            "vuser_per_agent": self.vuser_per_agent,
            "duration_seconds": self.duration_seconds,
            "run_count": self.run_count,
            "target_hosts": self.target_hosts,
            "script_name": self.script_name,
            "created_at": self._to_utc_iso(self.created_at),
            "updated_at": self._to_utc_iso(self.updated_at),
            "started_at": self._to_utc_iso(self.started_at),
            "finished_at": self._to_utc_iso(self.finished_at),
        }

    def __repr__(self) -> str:
        return f"<PerfTest {self.id}: {self.test_name} [{self.status}]>"
