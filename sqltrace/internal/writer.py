import abc
import json
import sys
from typing import List
from typing import Optional
from typing import TextIO

from sqltrace._trace.span import Span
from sqltrace.internal.logger import get_logger


log = get_logger(__name__)


class TraceWriter(metaclass=abc.ABCMeta):
    """Sink receiving the finished spans of one trace at a time.

    Sending traces to a collection backend is left to the implementations.
    """

    @abc.abstractmethod
    def write(self, spans=None):
        # type: (Optional[List[Span]]) -> None
        pass

    def flush_queue(self):
        # type: () -> None
        pass

    def stop(self, timeout=None):
        # type: (Optional[float]) -> None
        pass


class NoopWriter(TraceWriter):
    def write(self, spans=None):
        # type: (Optional[List[Span]]) -> None
        pass


class LogWriter(TraceWriter):
    """Write each trace as one JSON line on ``out``."""

    def __init__(
        self,
        out=sys.stdout,  # type: TextIO
    ):
        # type: (...) -> None
        self.out = out

    def write(self, spans=None):
        # type: (Optional[List[Span]]) -> None
        if not spans:
            return

        encoded = json.dumps({"traces": [[span.to_dict() for span in spans]]})
        self.out.write(encoded + "\n")
        self.out.flush()

    def flush_queue(self):
        # type: () -> None
        self.out.flush()
