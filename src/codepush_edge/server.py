"""Process entry point: ``codepush-edge`` or ``python -m codepush_edge.server``."""

from __future__ import annotations

import uvicorn

from codepush_edge.app import create_app
from codepush_edge.config import Settings
from codepush_edge.logging_config import setup_logging


def main() -> None:
    # Config errors surface here, before the listener starts.
    settings = Settings()
    setup_logging(settings.logging)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
