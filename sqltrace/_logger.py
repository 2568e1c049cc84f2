import logging
from logging.handlers import RotatingFileHandler
from os import path
from typing import Optional

from sqltrace.settings import config


def configure_sqltrace_logger():
    # type: () -> None
    """Configures sqltrace log levels and file paths.

    Customization is possible with the environment variables:
        ``SQLTRACE_DEBUG``, ``SQLTRACE_LOG_FILE_LEVEL``, and ``SQLTRACE_LOG_FILE``

    By default sqltrace loggers inherit from the root logger and no logs are written to a file.

    When SQLTRACE_DEBUG has been enabled the ``sqltrace`` logger is set to DEBUG. When
    SQLTRACE_LOG_FILE is set, logs are also routed to a rotating file using the level in
    SQLTRACE_LOG_FILE_LEVEL.
    """
    sqltrace_logger = logging.getLogger("sqltrace")
    if config._debug:
        sqltrace_logger.setLevel(logging.DEBUG)

    _add_file_handler(
        logger=sqltrace_logger,
        log_path=config._log_file,
        log_level=getattr(logging, config._log_file_level),
        max_file_bytes=config._log_file_size_bytes,
    )


def _add_file_handler(
    logger: logging.Logger,
    log_path: Optional[str],
    log_level: int,
    max_file_bytes: int,
) -> Optional[RotatingFileHandler]:
    if log_path is None:
        return None

    log_path = path.abspath(log_path)
    handler = RotatingFileHandler(filename=log_path, mode="a", maxBytes=max_file_bytes, backupCount=1)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] [%(filename)s:%(lineno)d] - %(message)s")
    )
    logger.addHandler(handler)
    logger.debug("sqltrace logs will be routed to %s", log_path)
    return handler
