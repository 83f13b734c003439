import logging
import os
from typing import Optional


_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _coerce_level(value: Optional[str]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.WARNING)
    if isinstance(value, int):
        return value
    return logging.WARNING


def get_logger(name: str) -> logging.Logger:
    """Return a `live_query` logger with consistent formatting.

    - Honors LIVE_QUERY_LOG_LEVEL (default WARNING) and LIVE_QUERY_LOG_FILE.
    - Handlers are attached once per logger name.
    """
    logger = logging.getLogger(f"live_query.{name}")
    if getattr(logger, "_live_query_configured", False):
        return logger

    level = _coerce_level(os.environ.get("LIVE_QUERY_LOG_LEVEL", "WARNING"))
    logger.setLevel(level)

    fmt = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(formatter)
    logger.addHandler(sh)

    log_file = os.environ.get("LIVE_QUERY_LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except OSError:
            logger.warning("LIVE_QUERY_LOG_FILE could not be opened; continuing without file logging")
        else:
            fh.setLevel(level)
            fh.setFormatter(formatter)
            logger.addHandler(fh)

    # Host applications configure the root logger themselves.
    logger.propagate = False
    setattr(logger, "_live_query_configured", True)
    return logger
