"""Run the user API locally with uvicorn."""

import os

import uvicorn
from loguru import logger

from user_api.core.config import get_settings
from user_api.core.logging import setup_logging


def main() -> None:
    """Serve the local development app."""
    settings = get_settings()
    setup_logging(settings)

    port = int(os.environ.get("PORT", settings.api_port))

    # Route uvicorn's own loggers through loguru
    log_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "handlers": {
            "default": {
                "class": "user_api.core.logging.InterceptHandler",
            },
        },
        "loggers": {
            name: {"handlers": ["default"], "level": "INFO", "propagate": False}
            for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
        },
    }

    logger.info(
        "Starting Uvicorn on http://{}:{} (reload: {})",
        settings.api_host,
        port,
        settings.debug,
    )
    uvicorn.run(
        "user_api.api.main:app",
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=log_config,
    )


if __name__ == "__main__":
    main()
