"""
VaultDecipher — Logging
Configured once by main.cli before anything else runs.
"""
import logging
import sys
import time

LOG_FORMAT = "[%(asctime)s %(levelname)s %(name)s] - %(message)s"


def init_logger(debug: bool = False, utc: bool = False, name: str = "") -> logging.Logger:
    """
    Initialise process-wide logging and return the application logger.

    debug  DEBUG level for our own loggers, INFO otherwise.
    utc    timestamps in UTC (suffixed Z) instead of local time with offset.
    """
    formatter = logging.Formatter(
        LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%SZ" if utc else "%Y-%m-%dT%H:%M:%S%z",
    )
    if utc:
        formatter.converter = time.gmtime

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # httpx logs every request at INFO, too noisy unless debugging
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if debug else logging.WARNING)

    return logging.getLogger(name)
