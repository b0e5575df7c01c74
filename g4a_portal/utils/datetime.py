# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for the G4A School Portal.

All timestamps are timezone-aware UTC. Elapsed durations are measured on
the monotonic clock so wall-clock adjustments never produce negative values.

Usage:
------
    from g4a_portal.utils.datetime import utc_now

    created_at = Column(DateTime(timezone=True), default=utc_now)
"""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def monotonic_millis() -> float:
    """Monotonic clock reading in milliseconds."""
    return time.monotonic() * 1000


def elapsed_millis(start: float | None, end: float | None = None) -> int:
    """Compute a non-negative elapsed duration in milliseconds.

    Args:
        start: Monotonic start reading from monotonic_millis(), or None.
        end: Monotonic end reading. Defaults to now.

    Returns:
        Whole milliseconds between start and end, 0 when start is None.
    """
    if start is None:
        return 0
    if end is None:
        end = monotonic_millis()
    return max(0, int(end - start))


def format_iso(dt: datetime) -> str:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format. Naive values are treated as UTC.

    Returns:
        ISO 8601 formatted string.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()
