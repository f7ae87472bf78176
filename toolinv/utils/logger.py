"""
Logging for the tool inventory service.

Every module logs under the ``toolinv`` namespace through a single stdout
handler. The level comes from LOG_LEVEL (default INFO); uvicorn's own loggers
are left alone.
"""
import logging
import os
import sys
from typing import Optional

PACKAGE_LOGGER = "toolinv"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Set the package log level and attach the stdout handler once."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        package_logger.addHandler(handler)

    # Records stop here; the root logger would print them twice under uvicorn
    package_logger.propagate = False
    return package_logger


logger = configure_logging()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Module logger, e.g. ``get_logger("inventory.normalizer")`` -> ``toolinv.inventory.normalizer``."""
    if name:
        return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
    return logger
