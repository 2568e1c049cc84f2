import sys
import time
import traceback
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Union

from sqltrace.constants import ERROR_MSG
from sqltrace.constants import ERROR_STACK
from sqltrace.constants import ERROR_TYPE
from sqltrace.internal.logger import get_logger
from sqltrace.internal.rand import rand64bits


log = get_logger(__name__)

NumericType = Union[int, float]


class Span(object):
    """A timed, tagged record of one traced operation.

    Spans are created open and closed once with :meth:`finish`. They are also
    context managers, which guarantees they are finished on every exit path::

        with tracer.start_span("postgres.query", resource=query) as span:
            cursor.execute(query)
    """

    __slots__ = [
        "name",
        "service",
        "resource",
        "span_type",
        "trace_id",
        "span_id",
        "parent_id",
        "start_ns",
        "duration_ns",
        "error",
        "_meta",
        "_metrics",
        "_on_finish_callbacks",
    ]

    def __init__(
        self,
        name,  # type: str
        service=None,  # type: Optional[str]
        resource=None,  # type: Optional[str]
        span_type=None,  # type: Optional[str]
        trace_id=None,  # type: Optional[int]
        span_id=None,  # type: Optional[int]
        parent_id=None,  # type: Optional[int]
        start=None,  # type: Optional[float]
        on_finish=None,  # type: Optional[List[Callable[[Span], None]]]
    ):
        # type: (...) -> None
        """
        Create a new span. Call `finish` once the traced operation is over.

        :param str name: the name of the traced operation.
        :param str service: the service name
        :param str resource: the resource name, defaults to the operation name
        :param str span_type: the span type
        :param int trace_id: the id of this trace's root span, a new trace is started if omitted
        :param int span_id: the id of this span, generated if omitted
        :param int parent_id: the id of this span's parent, ``None`` for a trace root
        :param float start: the start time of the span in seconds since the epoch
        :param list on_finish: callables invoked with the span once it is finished
        """
        self.name = name
        self.service = service
        self.resource = resource or name
        self.span_type = span_type

        self.span_id = span_id or rand64bits()
        self.trace_id = trace_id or self.span_id
        self.parent_id = parent_id

        self.start_ns = time.time_ns() if start is None else int(start * 1e9)
        self.duration_ns = None  # type: Optional[int]
        self.error = 0

        self._meta = {}  # type: Dict[str, str]
        self._metrics = {}  # type: Dict[str, NumericType]
        self._on_finish_callbacks = on_finish or []

    @property
    def start(self):
        # type: () -> float
        """The start timestamp in seconds."""
        return self.start_ns / 1e9

    @property
    def duration(self):
        # type: () -> Optional[float]
        """The span duration in seconds, ``None`` while the span is open."""
        if self.duration_ns is None:
            return None
        return self.duration_ns / 1e9

    @property
    def finished(self):
        # type: () -> bool
        return self.duration_ns is not None

    def finish(self, finish_time=None):
        # type: (Optional[float]) -> None
        """Mark the end time of the span and submit it to the tracer.
        Finishing an already finished span has no effect.

        :param float finish_time: the end time of the span in seconds, defaults to now.
        """
        if self.finished:
            log.debug("span %r has already been finished", self)
            return

        ft = time.time_ns() if finish_time is None else int(finish_time * 1e9)
        # be defensive so we don't die if start isn't set
        self.duration_ns = ft - (self.start_ns or ft)

        for cb in self._on_finish_callbacks:
            cb(self)

    def set_tag(self, key, value=None):
        # type: (str, Any) -> None
        """Set a tag on the span. Numbers go to the metrics, anything else is stored as a string."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            self.set_metric(key, value)
            return

        try:
            self._meta[key] = str(value)
        except Exception:
            log.warning("error setting tag %s, ignoring it", key, exc_info=True)
            return
        self._metrics.pop(key, None)

    def set_tag_str(self, key, value):
        # type: (str, str) -> None
        """Set a string tag. Unlike ``set_tag`` numeric-looking strings are never turned into metrics."""
        self._meta[key] = value

    def set_tags(self, tags):
        # type: (Optional[Mapping[str, Any]]) -> None
        """Set a dictionary of tags on the span. Tags already present are overridden."""
        if not tags:
            return
        for k, v in tags.items():
            if v is None:
                continue
            self.set_tag_str(k, str(v))

    def get_tag(self, key):
        # type: (str) -> Optional[str]
        """Return the given tag or None if it doesn't exist."""
        return self._meta.get(key, None)

    def get_tags(self):
        # type: () -> Dict[str, str]
        """Return all tags."""
        return self._meta.copy()

    def set_metric(self, key, value):
        # type: (str, NumericType) -> None
        try:
            value = float(value)
        except (ValueError, TypeError):
            log.debug("ignoring not number metric %s:%s", key, value)
            return
        self._meta.pop(key, None)
        self._metrics[key] = value

    def get_metric(self, key):
        # type: (str) -> Optional[NumericType]
        return self._metrics.get(key)

    def get_metrics(self):
        # type: () -> Dict[str, NumericType]
        return self._metrics.copy()

    def set_exc_info(self, exc_type, exc_val, exc_tb):
        # type: (Any, Any, Any) -> None
        """Tag the span with an error tuple as from `sys.exc_info()`."""
        if not (exc_type and exc_val and exc_tb):
            return  # nothing to do

        self.error = 1

        tb = "".join(traceback.format_exception(exc_type, exc_val, exc_tb, limit=20))
        self._meta[ERROR_MSG] = str(exc_val)
        self._meta[ERROR_TYPE] = "%s.%s" % (exc_type.__module__, exc_type.__name__)
        self._meta[ERROR_STACK] = tb

    def set_traceback(self):
        # type: () -> None
        """Tag the span with the current exception, if any."""
        self.set_exc_info(*sys.exc_info())

    def to_dict(self):
        # type: () -> Dict[str, Any]
        d = {
            "trace_id": self.trace_id,
            "parent_id": self.parent_id,
            "span_id": self.span_id,
            "service": self.service,
            "resource": self.resource,
            "name": self.name,
            "error": self.error,
            "start": self.start_ns,
            "duration": self.duration_ns,
        }
        if self.span_type:
            d["type"] = self.span_type
        if self._meta:
            d["meta"] = self.get_tags()
        if self._metrics:
            d["metrics"] = self.get_metrics()
        return d

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type:
                self.set_exc_info(exc_type, exc_val, exc_tb)
        finally:
            self.finish()

    def __repr__(self):
        return "<Span(id=%s,trace_id=%s,parent_id=%s,name=%s,resource=%s)>" % (
            self.span_id,
            self.trace_id,
            self.parent_id,
            self.name,
            self.resource,
        )
