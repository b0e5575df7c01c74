# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Run the API server: ``python -m g4a_portal``."""

import uvicorn

from g4a_portal.core.config import get_settings


def main() -> None:
    """Start uvicorn with the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "g4a_portal.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
