"""Metric report sampling: locating metric logs and downsampling them."""

from .errors import Cancelled, InvalidParameter, LogUnavailable, ReadFailure, ReportError
from .locator import ReportLocator
from .sampler import sample

__all__ = [
    "Cancelled",
    "InvalidParameter",
    "LogUnavailable",
    "ReadFailure",
    "ReportError",
    "ReportLocator",
    "sample",
]
