"""Service entry point."""

import contextlib
import logging

import uvicorn

from upbit_autotrader.api.app import create_app
from upbit_autotrader.config import Config
from upbit_autotrader.logging import setup_logging


def main() -> None:
    """Application entry point."""
    config = Config.from_env()
    logger = setup_logging(config.log.level, log_to_file=config.log.log_to_file)

    mode = "DRY RUN" if config.engine.test_mode else "LIVE"
    logger.info(
        f"Starting Upbit auto trader on {config.server.host}:{config.server.port} "
        f"(default mode: {mode})"
    )

    app = create_app(config)
    # uvicorn installs its own SIGINT/SIGTERM handlers; lifespan stops the sessions
    with contextlib.suppress(KeyboardInterrupt):
        uvicorn.run(
            app,
            host=config.server.host,
            port=config.server.port,
            log_level=logging.getLevelName(logging.getLogger("upbit_autotrader").level).lower(),
        )


if __name__ == "__main__":
    main()
