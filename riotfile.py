# type: ignore
import logging
from typing import List  # noqa
from typing import Tuple  # noqa

from riot import Venv


logger = logging.getLogger(__name__)
latest = ""


SUPPORTED_PYTHON_VERSIONS: List[Tuple[int, int]] = [
    (3, 8),
    (3, 9),
    (3, 10),
    (3, 11),
    (3, 12),
    (3, 13),
]  # type: List[Tuple[int, int]]


def version_to_str(version: Tuple[int, int]) -> str:
    """Convert a Python version tuple to a string

    >>> version_to_str((3, 8))
    '3.8'
    >>> version_to_str((3, ))
    '3'
    """
    return ".".join(str(p) for p in version)


def select_pys(min_version: str = "3.8", max_version: str = "3.13") -> List[str]:
    """Helper to select python versions from the list of versions we support

    >>> select_pys(min_version="3.12")
    ['3.12', '3.13']
    """
    min_v = tuple(int(p) for p in min_version.split("."))
    max_v = tuple(int(p) for p in max_version.split("."))
    return [version_to_str(v) for v in SUPPORTED_PYTHON_VERSIONS if min_v <= v <= max_v]


venv = Venv(
    pkgs={
        "mock": latest,
        "pytest": latest,
        "coverage": latest,
        "pytest-cov": latest,
    },
    env={
        "SQLTRACE_LOGGING_RATE": "0",
    },
    venvs=[
        Venv(
            name="tracer",
            command="pytest -v {cmdargs} tests/tracer/",
            pys=select_pys(),
            pkgs={"pytest-randomly": latest},
        ),
        Venv(
            name="dbapi",
            command="pytest {cmdargs} tests/contrib/dbapi/",
            pys=select_pys(),
        ),
    ],
)
