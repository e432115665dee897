"""Errors raised while producing a metric report."""

from __future__ import annotations


class ReportError(Exception):
    """Base class for every report failure.  None of them are retried."""

    status_code = 500


class InvalidParameter(ReportError, ValueError):
    """A caller-supplied argument (width, test id, metric name) is unusable."""

    status_code = 400


class LogUnavailable(ReportError):
    """The metric log does not exist or cannot be opened for reading."""

    status_code = 404


class ReadFailure(ReportError):
    """An I/O error interrupted one of the passes over the metric log."""

    status_code = 500


class Cancelled(ReportError):
    """The caller cancelled the scan or its time budget ran out."""

    status_code = 504
