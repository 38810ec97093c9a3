"""Application entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from mojo.api import create_app
from mojo.config import load_settings

logging.basicConfig(level=logging.INFO)
LOGGER = logging.getLogger(__name__)


def main() -> None:
    """Load settings and serve the chat API."""

    settings = load_settings()
    app = create_app(settings)
    try:
        uvicorn.run(app, host=settings.host, port=settings.port)
    except KeyboardInterrupt:
        pass
    LOGGER.info("Server stopped")


if __name__ == "__main__":
    main()
