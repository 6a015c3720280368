"""
logging_config.py - Engine Log Output
======================================
Every engine module logs to `logging.getLogger(__name__)`, so all of them
sit under the "drip" logger. This attaches handlers to that one logger:

  INFO    : network ready / generated (once per run)
  WARNING : clamped add_fluid, one-sided adjacency in input records
  DEBUG   : per-transfer cache repairs, clamps inside the injector

Frame summaries are printed by main.py, not logged. Without a call here
the engine stays quiet apart from warnings.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Route "drip" log records to stdout and, optionally, a file.

    Args:
        level    : Threshold for both handlers, eg logging.DEBUG
        log_file : Also write the log here (truncated on each call)

    Returns the configured "drip" logger.
    """
    logger = logging.getLogger("drip")
    logger.setLevel(level)

    # One viewer session can start several runs; replace, never stack
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging to %s", log_file or "stdout")
    return logger
