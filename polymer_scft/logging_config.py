# polymer_scft/logging_config.py
# Console and file output for the solver's log records
import logging
import sys
from typing import Optional, Union

from polymer_scft.errors import InvalidArgument

PACKAGE_LOGGER = "polymer_scft"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"


def resolve_level(level: Union[int, str]) -> int:
    """Accept a level number or a name such as "debug" or "INFO"."""
    if isinstance(level, bool):
        raise InvalidArgument(f"Invalid logging level: {level!r}")
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        number = logging.getLevelName(level.strip().upper())
        if isinstance(number, int):
            return number
    raise InvalidArgument(f"Invalid logging level: {level!r}")


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Send the package's log records to stdout and, optionally, to log_file.

    Calling it again replaces the handlers of the previous call, so a
    driver script may reconfigure after reading its parameter file.
    Returns the package logger.
    """
    level = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s at level %s", log_file or "stdout", logging.getLevelName(level))
    return logger
