from ._logger import configure_sqltrace_logger
from .settings import config


# configure sqltrace logger before other modules log
configure_sqltrace_logger()  # noqa: E402

from .trace import Context  # noqa: E402
from .trace import Pin  # noqa: E402
from .trace import Tracer  # noqa: E402
from .trace import tracer  # noqa: E402
from .version import __version__  # noqa: E402


__all__ = [
    "Context",
    "Pin",
    "Tracer",
    "config",
    "tracer",
    "__version__",
]
