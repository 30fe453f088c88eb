"""
Hi Town Reddit Bot - Main Entry Point

Configures logging from the environment and serves the bot protocol
over HTTP until interrupted.
"""
from aiohttp import web

from hitown_reddit_bot.config import Settings
from hitown_reddit_bot.server import SERVER_VERSION, create_app
from hitown_reddit_bot.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> None:
    """
    Main entry point.

    Initializes:
        1. Settings from environment variables
        2. Structured logging
        3. The aiohttp application (bot, registry and Reddit client
           are built on startup)
    """
    settings = Settings.from_env()
    setup_logging(level=settings.log_level, environment=settings.environment)

    logger.info(
        "server_starting",
        version=SERVER_VERSION,
        environment=settings.environment,
        log_level=settings.log_level,
        host=settings.host,
        port=settings.port,
        reddit_credentials_configured=bool(
            settings.reddit_client_id and settings.reddit_client_secret
        ),
    )

    app = create_app(settings)

    try:
        # Blocks until SIGINT/SIGTERM; cleanup closes the HTTP session
        web.run_app(app, host=settings.host, port=settings.port, access_log=None, print=None)
    finally:
        logger.info("server_shutdown_complete")


if __name__ == "__main__":
    main()
