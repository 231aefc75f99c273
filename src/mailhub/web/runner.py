"""Uvicorn server runner with custom configuration."""

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from mailhub.app import App
from mailhub.config import Config
from mailhub.web.server import create_asgi_app


def run_server(app: App, config: Config) -> None:
    """Run the HTTP + Socket.IO application under Uvicorn."""
    asgi_app = create_asgi_app(app, config)

    log_config = LOGGING_CONFIG.copy()
    log_config["formatters"]["access"]["fmt"] = '%(asctime)s - "%(request_line)s" %(status_code)s'
    log_config["formatters"]["default"]["fmt"] = "%(asctime)s - %(levelname)s - %(message)s"

    # Socket.IO needs a single worker, connection state lives in this process
    uvicorn.run(asgi_app, host=config.host, port=config.port, log_config=log_config, access_log=True, workers=1)
