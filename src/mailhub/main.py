"""Application entry point for the mailhub backend server."""

import structlog

from mailhub.app import App
from mailhub.config import Config
from mailhub.errors import KeySetupError
from mailhub.logging import setup_logging
from mailhub.web.runner import run_server

logger = structlog.get_logger(__name__)


def main() -> None:
    config = Config()
    setup_logging(config.debug)
    try:
        app = App(config)
    except KeySetupError:
        # Refuse to run without signing capability
        logger.exception("startup_aborted", key_path=config.dkim_private_key_path)
        raise SystemExit(1) from None
    run_server(app, config)


if __name__ == "__main__":
    main()
