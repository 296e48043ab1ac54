"""Sommelier custom logger."""

import logging
import os
import sys
from pathlib import Path

_log_levels = {
    0: logging.NOTSET,  # no logging
    1: logging.INFO,  # default logging level, prints INFO and above
    2: logging.DEBUG,  # debug logging level, prints DEBUG and above
}


def _parse_level(value: str) -> int:
    value = value.strip()
    if value.isdigit():
        return _log_levels.get(int(value), logging.INFO)
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def _get_package_from_path(pathname: str | Path) -> Path | None:
    """
    Extract the absolute path to the `sommelier` package directory from a given path.
    If the package is not on the path, return None.
    """
    pathname = Path(pathname).absolute()
    if pathname == Path("/"):
        return None
    if pathname.name == "sommelier":
        return pathname
    return _get_package_from_path(pathname.parent)


class PackagePathFilter(logging.Filter):
    """Custom filter to add the package relative path to the log record."""

    def filter(self, record):
        pathname = Path(record.pathname)
        package_path = _get_package_from_path(pathname)
        if package_path:
            record.relativepath = pathname.relative_to(package_path)
        else:
            record.relativepath = pathname.name
        return True


class CustomFormatter(logging.Formatter):
    """Colourised formatter: the record header is coloured by level, the source location in yellow."""

    reset = "\x1b[0m"
    location_color = "\x1b[33;20m"
    level_colors = {
        logging.DEBUG: "\x1b[36;20m",
        logging.INFO: "\x1b[32;20m",
        logging.WARNING: "\x1b[33;20m",
        logging.ERROR: "\x1b[31;20m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    header = "[%(asctime)s-%(name)s-%(levelname)s]"
    location = "(%(relativepath)s:%(funcName)s:%(lineno)d)"
    date_format = "%Y-%m-%d %H:%M:%S"

    def __init__(self):
        super().__init__()
        self._formatters = {
            level: logging.Formatter(
                f"{color}{self.header}{self.reset} %(message)s {self.location_color}{self.location}{self.reset}",
                datefmt=self.date_format,
            )
            for level, color in self.level_colors.items()
        }

    def format(self, record):
        formatter = self._formatters.get(record.levelno, self._formatters[logging.INFO])
        return formatter.format(record)


def build_logger(key: str) -> logging.Logger:
    """
    Returns the custom logger with the specified key.
    The default log level is `INFO`, change it via the `KEY_LOGLEVEL` env variable,
    either 0/1/2 or a level name such as `DEBUG`.
    """
    _logger = logging.getLogger(key)
    _logger.setLevel(_parse_level(os.environ.get(f"{key}_LOGLEVEL", "1")))
    # the logger may be rebuilt on reimport, keep a single handler
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(CustomFormatter())
        handler.addFilter(PackagePathFilter())
        _logger.addHandler(handler)

    return _logger


# exported module logger
logger = build_logger("SOMMELIER")
