import pytest

from sqltrace.settings.config import Config


def test_defaults():
    config = Config(source={})
    assert config._tracing_enabled is True
    assert config.service is None
    assert config.strict_dsn is False
    assert config._buffer_size == 10000
    assert config._debug is False
    assert config._log_file is None
    assert config._log_file_level == "DEBUG"
    assert config._logging_rate == 60


def test_from_environment():
    config = Config(
        source={
            "SQLTRACE_ENABLED": "false",
            "SQLTRACE_SERVICE": "orders-db",
            "SQLTRACE_STRICT_DSN": "true",
            "SQLTRACE_BUFFER_SIZE": "500",
            "SQLTRACE_DEBUG": "1",
            "SQLTRACE_LOG_FILE": "/tmp/sqltrace.log",
            "SQLTRACE_LOG_FILE_LEVEL": "warning",
            "SQLTRACE_LOGGING_RATE": "0",
        }
    )
    assert config._tracing_enabled is False
    assert config.service == "orders-db"
    assert config.strict_dsn is True
    assert config._buffer_size == 500
    assert config._debug is True
    assert config._log_file == "/tmp/sqltrace.log"
    assert config._log_file_level == "WARNING"
    assert config._logging_rate == 0


@pytest.mark.parametrize(
    "env",
    [
        {"SQLTRACE_BUFFER_SIZE": "0"},
        {"SQLTRACE_LOG_FILE_LEVEL": "verbose"},
    ],
)
def test_invalid_values(env):
    with pytest.raises(ValueError):
        Config(source=env)
