"""
Entrypoint: load .env and config.yaml, configure logging, serve the API
"""

import logging
import sys

import structlog
import uvicorn
from dotenv import load_dotenv

from crawler.config import load_config
from server.app import create_app


def configure_logging(level: str = "INFO", development: bool = False):
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = structlog.dev.ConsoleRenderer() if development else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def main():
    load_dotenv()

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as e:
        print(f"Fatal error during startup: {e}")
        sys.exit(1)

    configure_logging(config.log_level, development=config.server.is_development)
    logger = structlog.get_logger(__name__)
    logger.info(
        "starting_server",
        host=config.server.host,
        port=config.server.port,
        environment=config.server.environment,
        target=config.fetcher.base_url,
    )

    app = create_app(config)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
