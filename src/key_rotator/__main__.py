# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Run the key rotator proxy with uvicorn.

    python -m key_rotator

Reads a .env file from the working directory if present, then the
process environment. Exits with status 1 if the configuration is
unusable, before any request is accepted.
"""

import logging
import sys

import uvicorn
from dotenv import load_dotenv

from .core.config import ConfigLoader
from .core.constants import LIB_LOGGER_NAME
from .core.errors import ConfigurationError
from .server.app import create_app

lib_logger = logging.getLogger(LIB_LOGGER_NAME)


def main() -> int:
    load_dotenv()
    loader = ConfigLoader()

    try:
        settings = loader.load_server_settings()
        logging.basicConfig(
            level=settings.log_level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        config = loader.load_rotator_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        lib_logger.critical(f"FATAL: Failed to initialize configuration: {e}")
        lib_logger.critical("Please ensure the API_KEYS environment variable is set.")
        return 1

    app = create_app(config, settings)
    lib_logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    lib_logger.info(f"API available under {settings.api_prefix or '/'}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
