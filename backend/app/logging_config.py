"""Logging setup for the API process."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger.

    Handlers attach to the "app" logger so every module logger created
    with logging.getLogger(__name__) inherits them. Calling this twice does
    not add duplicate handlers.
    """
    logger = logging.getLogger("app")
    logger.setLevel(level)

    if logger.hasHandlers():
        logger.handlers.clear()

    # Uvicorn configures the root logger separately
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    return logger
