"""
Logging utilities for internal use.
Usage:
    from sqltrace.internal.logger import get_logger
    log = get_logger(__name__)

Every logger returned by ``get_logger`` is rate limited per call site: a given
name/level/pathname/lineno emits at most one record every ``SQLTRACE_LOGGING_RATE``
seconds (60 by default, ``0`` disables the limit). The number of skipped records
is reported on the next emitted one::

    WARNING could not parse DSN for driver 'psycopg2', [3 skipped]
"""

import collections
import logging
import time
from typing import DefaultDict
from typing import Tuple

from sqltrace.settings import config


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve or create a ``Logger`` instance with consistent behavior for internal use.

    Configure all loggers with a rate limiter filter to prevent excessive logging.
    """
    logger = logging.getLogger(name)
    # addFilter will only add the filter if it is not already present
    logger.addFilter(log_filter)
    logger.propagate = True
    return logger


# Class used for keeping track of a log lines current time bucket and the number of log lines skipped
class LoggingBucket:
    def __init__(self, bucket: float, skipped: int):
        self.bucket = bucket
        self.skipped = skipped

    def __repr__(self):
        return f"LoggingBucket({self.bucket}, {self.skipped})"

    def is_sampled(self, record: logging.LogRecord, rate: float) -> bool:
        """
        Determine if the log line should be sampled based on the rate limit.
        """
        current = time.monotonic()
        if current - self.bucket >= rate:
            self.bucket = current
            record.skipped = self.skipped
            self.skipped = 0
            return True
        self.skipped += 1
        return False


_MINF = float("-inf")

_buckets: DefaultDict[Tuple[str, int, str, int], LoggingBucket] = collections.defaultdict(
    lambda: LoggingBucket(_MINF, 0)
)


def log_filter(record: logging.LogRecord) -> bool:
    """
    Function used to determine if a log record should be outputted or not (True = output, False = skip).

    This function will:
      - Rate limit log records based on the logger name, record level, filename, and line number
      - Append the number of skipped records to the message of the next emitted one
    """
    rate = config._logging_rate
    logger = logging.getLogger(record.name)
    # If the logger is set to debug, then do not apply any limits to any log
    if not rate or logger.getEffectiveLevel() == logging.DEBUG:
        return True

    key = (record.name, record.levelno, record.pathname, record.lineno)
    if not _buckets[key].is_sampled(record, rate):
        return False

    skipped = getattr(record, "skipped", 0)
    if skipped:
        record.msg = "{}, [{} skipped]".format(record.msg, skipped)
    return True
