"""
Hearth - main entry point.

    hearth-api                      # console script
    uvicorn hearth.main:app         # any ASGI server
"""

from __future__ import annotations

import uvicorn

from hearth.api.app import create_app
from hearth.config import get_settings

app = create_app()


def main():
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "hearth.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
