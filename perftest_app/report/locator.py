"""
Filesystem layout of per-test working directories.

Every test owns ``<home>/perftest/<test_id>/``; the metric logs written by
the load generators live in its ``report`` sub-directory, one
``<metric>.data`` file per metric with the metric name lower-cased.
"""

from __future__ import annotations

from pathlib import Path

from .errors import InvalidParameter

DATA_FILE_EXTENSION = ".data"
PERFTEST_DIR_NAME = "perftest"
REPORT_DIR_NAME = "report"


class ReportLocator:
    """Resolve test ids and metric names into paths under a home directory."""

    def __init__(self, home: str | Path) -> None:
        self.home = Path(home)

    def perf_test_directory(self, test_id: int) -> Path:
        if isinstance(test_id, bool) or not isinstance(test_id, int) or test_id <= 0:
            raise InvalidParameter(f"Test id must be a positive integer, got {test_id!r}")
        return self.home / PERFTEST_DIR_NAME / str(test_id)

    def report_directory(self, test_id: int) -> Path:
        return self.perf_test_directory(test_id) / REPORT_DIR_NAME

    def metric_file(self, test_id: int, metric: str) -> Path:
        """
        Return the log path of *metric* for *test_id*.

        The metric name is case-folded.  Names that are blank or would
        escape the report directory are rejected.
        """
        name = (metric or "").strip().lower()
        if not name or name in {".", ".."} or "/" in name or "\\" in name or "\x00" in name:
            raise InvalidParameter(f"Invalid metric name: {metric!r}")
        return self.report_directory(test_id) / f"{name}{DATA_FILE_EXTENSION}"
