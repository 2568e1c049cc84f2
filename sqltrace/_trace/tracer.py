from collections import OrderedDict
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional

from sqltrace._trace.context import Context
from sqltrace._trace.span import Span
from sqltrace.internal.buffer import BufferFull
from sqltrace.internal.buffer import SpanBuffer
from sqltrace.internal.logger import get_logger
from sqltrace.internal.writer import LogWriter
from sqltrace.internal.writer import TraceWriter
from sqltrace.settings import config


log = get_logger(__name__)


class Tracer(object):
    """
    Tracer is used to create, buffer and write spans.

        >>> from sqltrace.trace import tracer
        >>> with tracer.start_span("app.request") as span:
        ...     pass

    Finished spans are kept in memory and handed to the writer, one trace at a
    time, when :meth:`flush` is called.
    """

    def __init__(
        self,
        writer=None,  # type: Optional[TraceWriter]
        enabled=None,  # type: Optional[bool]
        buffer_size=None,  # type: Optional[int]
    ):
        # type: (...) -> None
        self._writer = writer if writer is not None else LogWriter()
        self.enabled = config._tracing_enabled if enabled is None else enabled
        self._buffer = SpanBuffer(max_size=buffer_size or config._buffer_size)

    @property
    def writer(self):
        # type: () -> TraceWriter
        return self._writer

    def start_span(
        self,
        name,  # type: str
        context=None,  # type: Optional[Context]
        service=None,  # type: Optional[str]
        resource=None,  # type: Optional[str]
        span_type=None,  # type: Optional[str]
        tags=None,  # type: Optional[Mapping[str, str]]
    ):
        # type: (...) -> Span
        """Return a new open span.

        If ``context`` carries an ambient span, the new span is its child and shares
        its trace id, otherwise it is the root of a new trace. The span must be
        finished, preferably by using it as a context manager.

        :param str name: the name of the operation being traced.
        :param Context context: the caller's context holding an optional parent span.
        :param str service: the name of the service being traced. Inherited from the parent if omitted.
        :param str resource: an optional name of the resource being tracked.
        :param str span_type: an optional operation type.
        :param dict tags: base tags copied onto the span.
        """
        parent = context.span if context is not None else None
        if parent is not None:
            trace_id = parent.trace_id
            parent_id = parent.span_id  # type: Optional[int]
            if service is None:
                service = parent.service
        else:
            trace_id = None
            parent_id = None

        span = Span(
            name,
            service=service,
            resource=resource,
            span_type=span_type,
            trace_id=trace_id,
            parent_id=parent_id,
            on_finish=[self._on_span_finish],
        )
        span.set_tags(tags)
        return span

    def trace(self, name, context=None, service=None, resource=None, span_type=None):
        # type: (str, Optional[Context], Optional[str], Optional[str], Optional[str]) -> Span
        """Alias of :meth:`start_span` for use as a context manager."""
        return self.start_span(name, context=context, service=service, resource=resource, span_type=span_type)

    def _on_span_finish(self, span):
        # type: (Span) -> None
        if not self.enabled:
            return
        try:
            self._buffer.put(span)
        except BufferFull:
            log.warning(
                "span buffer full (%d spans), dropping span %s; call flush() more often or raise SQLTRACE_BUFFER_SIZE",
                self._buffer.max_size,
                span.name,
            )

    def pop(self):
        # type: () -> List[Span]
        """Remove and return every finished span, in finish order."""
        return self._buffer.get()

    def pop_traces(self):
        # type: () -> List[List[Span]]
        """Remove and return every finished span grouped by trace id.

        Traces are ordered by their first finished span and spans keep their finish order.
        """
        traces = OrderedDict()  # type: Dict[int, List[Span]]
        for span in self._buffer.get():
            traces.setdefault(span.trace_id, []).append(span)
        return list(traces.values())

    def flush(self):
        # type: () -> None
        """Write every buffered trace to the writer."""
        for trace in self.pop_traces():
            try:
                self._writer.write(spans=trace)
            except Exception:
                log.error("failed to write trace of %d spans", len(trace), exc_info=True)
        self._writer.flush_queue()

    def shutdown(self, timeout=None):
        # type: (Optional[float]) -> None
        """Flush the remaining spans and stop the writer."""
        self.flush()
        self._writer.stop(timeout)

    def __repr__(self):
        return "%s(enabled=%s, writer=%r)" % (self.__class__.__name__, self.enabled, self._writer)
