"""Process entry point: ``python -m test_api``."""

from __future__ import annotations

import sys

from loguru import logger

from test_api.agent import AgentConfigError
from test_api.config import get_settings
from test_api.lifecycle import ServerStartupError, run
from test_api.log import setup_logging


def main() -> int:
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting Test Backend...")

    try:
        run(settings)
    except AgentConfigError as e:
        logger.critical("Failed to initialize agent client: {}", e)
        return 1
    except ServerStartupError as e:
        logger.critical("Server failed to start: {}", e)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
