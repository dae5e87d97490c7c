"""Entry point for running the application directly."""

import logging

import uvicorn

from shaman.app import create_app
from shaman.core.config import Settings, get_settings
from shaman.core.tls import load_certificate

logger = logging.getLogger("shaman")


def serve_options(settings: Settings) -> dict:
    """Return uvicorn options; the only place plaintext and TLS diverge."""
    options = {
        "host": settings.api_host,
        "port": settings.api_port,
        "log_level": "warning",
    }

    if settings.insecure:
        logger.info(f"Shaman listening at http://{settings.api_listen}")
        return options

    options.update(load_certificate(settings))
    logger.info(f"Shaman listening at https://{settings.api_listen}")

    return options


def main():
    """Run the application."""
    settings = get_settings()

    options = serve_options(settings)

    uvicorn.run(create_app(settings), **options)


if __name__ == "__main__":
    main()
