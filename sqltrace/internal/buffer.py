import threading
from typing import List

import attr

from sqltrace._trace.span import Span


class BufferFull(Exception):
    pass


@attr.s
class SpanBuffer(object):
    """A thread-safe buffer collecting finished spans until the tracer flushes them.

    Appending never blocks on I/O: when the buffer holds ``max_size`` spans,
    :class:`BufferFull` is raised and the caller decides what to drop.

    :param max_size: The maximum number of spans held by the buffer.
    """

    max_size = attr.ib(type=int)
    _lock = attr.ib(init=False, factory=threading.Lock, repr=False)
    _spans = attr.ib(init=False, factory=list, repr=False, type=List[Span])

    def __len__(self):
        return len(self._spans)

    def put(self, span):
        # type: (Span) -> None
        """Append a finished span to the buffer."""
        with self._lock:
            if len(self._spans) >= self.max_size:
                raise BufferFull(self.max_size)
            self._spans.append(span)

    def get(self):
        # type: () -> List[Span]
        """Return the buffered spans in finish order.

        The buffer is cleared in the process.
        """
        with self._lock:
            spans, self._spans = self._spans, []
        return spans
