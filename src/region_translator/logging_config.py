import logging
import os
import sys

LOG_LEVEL_ENV = "RT_LOG_LEVEL"


def setup_logging(name: str = "region_translator", level: int | str | None = None) -> logging.Logger:
    """Attach a stdout handler to the package logger (once).

    Level comes from the argument, then ``RT_LOG_LEVEL``, then INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers if called more than once
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        logger.addHandler(handler)

    return logger
