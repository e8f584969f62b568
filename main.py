"""Entry point for the task log service."""

import logging
import sys

from tasklog.app import build_service, create_app
from tasklog.config import load_config
from tasklog.errors import StoreError


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    config = load_config()
    logging.getLogger().setLevel(config.log_level)

    service = build_service(config)
    try:
        service.initialize()
    except StoreError as e:
        logger.critical("Failed to create log file: %s", e)
        sys.exit(1)

    app = create_app(config, service)
    logger.info("Server running on http://localhost:%d", config.port)
    logger.info("Serving static files from %s", config.public_dir)
    logger.info("Using log file at %s", service.store.path)
    app.run(host=config.host, port=config.port, threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
