"""Application entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from cellar.api import create_app
from cellar.config import load_settings

LOGGER = logging.getLogger(__name__)


def main() -> None:
    """Load settings and serve the gateway."""

    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())
    # httpx logs full request URLs at INFO, and Gemini carries its key in the query string.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    app = create_app(settings)
    LOGGER.info("Serving assistant gateway on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
