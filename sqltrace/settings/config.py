import typing as t

from envier import En
from envier import validators


class Config(En):
    """Global configuration for sqltrace.

    Every value can be set through the environment, e.g. ``SQLTRACE_SERVICE=orders-db``,
    or by passing a ``source`` mapping when building a new instance::

        >>> cfg = Config(source={"SQLTRACE_STRICT_DSN": "true"})
        >>> cfg.strict_dsn
        True
    """

    __prefix__ = "sqltrace"

    _tracing_enabled = En.v(bool, "enabled", default=True)
    service = En.v(t.Optional[str], "service", default=None)

    # Whether a DSN that cannot be parsed fails the opening of a traced handle.
    # When disabled the handle is opened without connection metadata.
    strict_dsn = En.v(bool, "strict_dsn", default=False)

    _buffer_size = En.v(
        int,
        "buffer_size",
        default=10000,
        help="Maximum number of finished spans kept in memory until the next flush",
        validator=validators.range(1, 1 << 24),
    )

    _debug = En.v(bool, "debug", default=False)
    _log_file = En.v(t.Optional[str], "log_file", default=None)
    _log_file_level = En.v(
        str,
        "log_file_level",
        default="DEBUG",
        parser=str.upper,
        validator=validators.choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]),
    )
    _log_file_size_bytes = En.v(int, "log_file_size_bytes", default=15 << 20)
    _logging_rate = En.v(int, "logging_rate", default=60)


config = Config()
