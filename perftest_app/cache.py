"""
Record cache for performance test lookups.

The store reads single tests and the running list cache-aside through
``cache`` and clears it after every write it commits.  Values are stored
as serialised snapshots (plain dicts), never as ORM instances.
"""

from __future__ import annotations

from flask_caching import Cache

cache = Cache()

KEY_PREFIX = "perftest"
RUNNING_KEY = f"{KEY_PREFIX}:running"


def perf_test_key(test_id: int) -> str:
    """Cache key of the snapshot for one test."""
    return f"{KEY_PREFIX}:{test_id}"
