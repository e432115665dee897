"""
Production-like mixed-traffic Locust scenario.

The weight distribution (total weight 10) is:

- **70 % reads** - list/search (4) + get single test (2) + running view (1)
- **20 % writes** - create (1) + update (1)
- **10 % deletes** - delete with pool replenishment (1)
"""

from __future__ import annotations

from locust import between, tag, task

from tests.performance.scenarios.base import PerfTestWorkflowUser


@tag("mixed")
class MixedTrafficUser(PerfTestWorkflowUser):
    """Read-heavy browsing of perftest definitions with occasional edits."""

    wait_time = between(1, 3)

    @task(3)
    def list_perf_tests(self) -> None:
        self._list_perf_tests()

    @task(1)
    def search_perf_tests(self) -> None:
        """Search by name, the second most common listing."""
        self._list_perf_tests(query="perf")

    @task(2)
    def get_perf_test(self) -> None:
        self._get_perf_test()

    @task(1)
    def list_running(self) -> None:
        self._list_running()

    @task(1)
    def create_perf_test(self) -> None:
        self._create_perf_test()

    @task(1)
    def update_perf_test(self) -> None:
        self._update_perf_test()

    @task(1)
    def delete_perf_test(self) -> None:
        self._delete_perf_test()
