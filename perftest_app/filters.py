"""
Composable filter predicates for listing performance tests.

A ``PerfTestPredicate`` is an immutable bundle of SQLAlchemy ``WHERE``
clauses.  Predicates combine with ``&`` and are applied to a ``select``
statement by the store, so callers build the filter explicitly instead of
the store inspecting roles or request state.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Select, or_
from sqlalchemy.sql.elements import ColumnElement

from .models import PerfTest, PerfTestStatus


@dataclass(frozen=True)
class PerfTestPredicate:
    """Conjunction of SQL clauses over ``PerfTest`` rows."""

    clauses: tuple[ColumnElement[bool], ...] = ()

    def __and__(self, other: "PerfTestPredicate") -> "PerfTestPredicate":
        return PerfTestPredicate(self.clauses + other.clauses)

    def apply(self, stmt: Select) -> Select:
        """Return *stmt* narrowed by every clause of this predicate."""
        if not self.clauses:
            return stmt
        return stmt.where(*self.clauses)


def empty_predicate() -> PerfTestPredicate:
    """A predicate that matches every test."""
    return PerfTestPredicate()


def created_by(user_id: int) -> PerfTestPredicate:
    return PerfTestPredicate((PerfTest.created_by == user_id,))


def status_in(*statuses: PerfTestStatus) -> PerfTestPredicate:
    return PerfTestPredicate((PerfTest.status.in_([s.value for s in statuses]),))


def name_or_description_like(query: str | None) -> PerfTestPredicate:
    """
    Case-insensitive substring match on test name or description.

    ``%`` and ``_`` in *query* are matched literally.  A blank query yields
    the empty predicate.
    """
    if query is None or not query.strip():
        return empty_predicate()
    text = query.strip()
    return PerfTestPredicate(
        (
            or_(
                PerfTest.test_name.icontains(text, autoescape=True),
                PerfTest.description.icontains(text, autoescape=True),
            ),
        )
    )


def build_list_predicate(
    *,
    restrict_to_owner: int | None = None,
    finished_only: bool = False,
    query: str | None = None,
) -> PerfTestPredicate:
    """
    Build the predicate used by the paged test listing.

    Args:
        restrict_to_owner: When set, only tests created by this user match.
            The caller decides this from the requester's role.
        finished_only: Keep only tests in ``FINISHED`` status.
        query: Optional free-text search over name and description.
    """
    predicate = empty_predicate()
    if restrict_to_owner is not None:
        predicate = predicate & created_by(restrict_to_owner)
    if finished_only:
        predicate = predicate & status_in(PerfTestStatus.FINISHED)
    return predicate & name_or_description_like(query)
