"""G4A School Portal Backend.

Multi-tenant school management platform. Every tenant (a school) owns an
isolated PostgreSQL database that is provisioned through a chain of
in-process tenant lifecycle events.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
