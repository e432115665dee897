"""
Positional downsampling of metric logs for chart rendering.

A metric log is an append-only text file with one sample per line.  The
sampler turns a log of any length into roughly ``width // 10`` lines by
keeping the first line of every window of ``interval`` lines:

1. count the lines present up to the byte length observed on open,
2. derive ``interval = line_count // point_count`` (0 behaves as 1),
3. stream the same byte range again and keep every ``interval``-th line.

Both passes stop at the length observed on open, so a log that is still
being written by a running test yields a consistent result.  Skipped
samples are not averaged; the chart shows the first sample of each window.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Union

from .errors import Cancelled, InvalidParameter, LogUnavailable, ReadFailure

logger = logging.getLogger(__name__)

# One chart point per this many display width units.
POINT_WIDTH_UNITS = 10
READ_CHUNK_SIZE = 64 * 1024

LogSource = Union[str, os.PathLike, BinaryIO]
CancelCheck = Callable[[], None]


def _never_cancelled() -> None:
    return None


def cancellation_check(
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> CancelCheck:
    """
    Build the callable polled between reads.

    The returned function raises ``Cancelled`` once *cancel_event* is set or
    *timeout* seconds have passed since this function was called.
    """
    if cancel_event is None and timeout is None:
        return _never_cancelled

    deadline = None if timeout is None else time.monotonic() + timeout

    def check() -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled("Report sampling was cancelled")
        if deadline is not None and time.monotonic() >= deadline:
            raise Cancelled(f"Report sampling exceeded {timeout} seconds")

    return check


def target_point_count(display_width: int) -> int:
    """
    Derive the number of chart points for a display width.

    Raises:
        InvalidParameter: If *display_width* is not an integer or is too
            small to hold a single point.
    """
    if isinstance(display_width, bool) or not isinstance(display_width, int):
        raise InvalidParameter(f"Display width must be an integer, got {display_width!r}")
    if display_width <= 0:
        raise InvalidParameter(f"Display width must be positive, got {display_width}")
    point_count = display_width // POINT_WIDTH_UNITS
    if point_count < 1:
        raise InvalidParameter(
            f"Display width {display_width} is narrower than one point "
            f"({POINT_WIDTH_UNITS} units)"
        )
    return point_count


def compute_interval(line_count: int, point_count: int) -> int:
    """Return the stride between kept lines; never less than 1."""
    if point_count < 1:
        raise InvalidParameter(f"Point count must be positive, got {point_count}")
    return max(line_count // point_count, 1)


@contextmanager
def open_log(source: LogSource) -> Iterator[BinaryIO]:
    """
    Yield a readable binary handle for *source*.

    Paths are opened read-only and closed on exit.  An already-open handle
    is yielded as is and left open for its owner.
    """
    if hasattr(source, "read"):
        yield source
        return

    path = Path(source)
    if not path.is_file():
        raise LogUnavailable(f"Metric log {path} does not exist or is not a regular file")
    try:
        log = path.open("rb")
    except OSError as exc:
        raise LogUnavailable(f"Metric log {path} cannot be opened: {exc}") from exc
    with log:
        yield log


def observed_size(log: BinaryIO) -> int:
    """Return the current byte length of *log* and rewind it."""
    try:
        log.seek(0, os.SEEK_END)
        size = log.tell()
        log.seek(0)
    except OSError as exc:
        raise ReadFailure(f"Unable to determine metric log length: {exc}") from exc
    return size


def count_lines(log: BinaryIO, size: int, check: CancelCheck = _never_cancelled) -> int:
    """
    Count the lines within the first *size* bytes of *log*.

    Every ``\\n`` ends a line; trailing bytes without a terminator count as
    one more line, the way a writer caught mid-line would leave them.  An
    empty range has zero lines.
    """
    count = 0
    last_byte = b""
    remaining = size
    try:
        log.seek(0)
        while remaining > 0:
            check()
            chunk = log.read(min(READ_CHUNK_SIZE, remaining))
            if not chunk:
                break
            count += chunk.count(b"\n")
            last_byte = chunk[-1:]
            remaining -= len(chunk)
    except OSError as exc:
        raise ReadFailure(f"Failed while counting metric log lines: {exc}") from exc

    if last_byte and last_byte != b"\n":
        count += 1
    return count


def _strip_terminator(raw: bytes) -> bytes:
    if raw.endswith(b"\n"):
        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
    return raw


def select_lines(
    log: BinaryIO,
    size: int,
    interval: int,
    check: CancelCheck = _never_cancelled,
    encoding: str = "utf-8",
) -> Iterator[str]:
    """
    Yield the first line of every window of *interval* lines.

    Reads from the start of *log* and stops after *size* bytes.  Lines are
    yielded without their terminator.
    """
    interval = max(interval, 1)
    current = 0
    remaining = size
    try:
        log.seek(0)
        while remaining > 0:
            check()
            raw = log.readline(remaining)
            if not raw:
                break
            remaining -= len(raw)
            if current == 0:
                yield _strip_terminator(raw).decode(encoding, errors="replace")
            current += 1
            if current >= interval:
                current = 0
    except OSError as exc:
        raise ReadFailure(f"Failed while reading metric log samples: {exc}") from exc


def sample(
    source: LogSource,
    display_width: int,
    *,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
    encoding: str = "utf-8",
) -> list[str]:
    """
    Downsample a metric log to about ``display_width // 10`` lines.

    Args:
        source: Path to the log, or an open seekable binary handle.
        display_width: Chart width in pixels or columns.
        cancel_event: Optional event; setting it aborts the scan.
        timeout: Optional time budget in seconds for the whole call.
        encoding: Text encoding of the log.  Undecodable bytes are replaced.

    Returns:
        The kept lines in file order.  An existing empty log gives ``[]``.

    Raises:
        InvalidParameter: *display_width* yields fewer than one point.
            Raised before the log is touched.
        LogUnavailable: The log is missing, not a regular file, or
            unreadable.
        ReadFailure: An I/O error occurred during either pass.
        Cancelled: *cancel_event* was set or *timeout* elapsed.
    """
    point_count = target_point_count(display_width)
    check = cancellation_check(cancel_event, timeout)

    with open_log(source) as log:
        size = observed_size(log)
        line_count = count_lines(log, size, check)
        interval = compute_interval(line_count, point_count)
        logger.debug(
            "Sampling %s: bytes=%s lines=%s points=%s interval=%s",
            getattr(log, "name", "<stream>"),
            size,
            line_count,
            point_count,
            interval,
        )
        return list(select_lines(log, size, interval, check, encoding))
