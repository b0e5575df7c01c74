# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for the G4A School Portal.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime and duration helpers
"""

from g4a_portal.utils.datetime import (
    elapsed_millis,
    epoch_millis,
    format_iso,
    monotonic_millis,
    utc_now,
)
from g4a_portal.utils.logging import bind_context, clear_context, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "epoch_millis",
    "monotonic_millis",
    "elapsed_millis",
    "format_iso",
]
