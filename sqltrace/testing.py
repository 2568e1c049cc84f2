"""
Helpers for testing code instrumented with sqltrace.
"""
from typing import List
from typing import Optional

from sqltrace._trace.span import Span
from sqltrace._trace.tracer import Tracer
from sqltrace.internal.writer import TraceWriter


class DummyWriter(TraceWriter):
    """DummyWriter is a small fake writer capturing traces in memory. not thread-safe."""

    def __init__(self):
        self.spans = []  # type: List[Span]
        self.traces = []  # type: List[List[Span]]

    def write(self, spans=None):
        # type: (Optional[List[Span]]) -> None
        if spans:
            # the writer receives a single trace per call, keep the grouping
            self.spans += spans
            self.traces.append(list(spans))

    def pop(self):
        # type: () -> List[Span]
        s = self.spans
        self.spans = []
        self.traces = []
        return s

    def pop_traces(self):
        # type: () -> List[List[Span]]
        traces = self.traces
        self.traces = []
        self.spans = []
        return traces


class DummyTracer(Tracer):
    """
    DummyTracer is an enabled tracer which uses the DummyWriter
    """

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("writer", DummyWriter())
        kwargs.setdefault("enabled", True)
        super(DummyTracer, self).__init__(*args, **kwargs)

    def pop_written(self):
        # type: () -> List[Span]
        """Flush the tracer and return every written span."""
        self.flush()
        return self.writer.pop()

    def pop_written_traces(self):
        # type: () -> List[List[Span]]
        """Flush the tracer and return the written traces."""
        self.flush()
        return self.writer.pop_traces()


def copy_span(span):
    # type: (Span) -> Span
    """Return an open copy of ``span``, with the same name, service, resource, type,
    tags and metrics. The copy has its own ids and is not attached to a trace.
    """
    s = Span(
        span.name,
        service=span.service,
        resource=span.resource,
        span_type=span.span_type,
    )
    s.set_tags(span.get_tags())
    for k, v in span.get_metrics().items():
        s.set_metric(k, v)
    s.error = span.error
    return s


def assert_span_matches(expected, actual):
    # type: (Span, Span) -> None
    """Assert ``actual`` has the name, service, resource, type, error status and tags of ``expected``."""
    assert actual.name == expected.name, "name: %r != %r" % (actual.name, expected.name)
    assert actual.service == expected.service, "service: %r != %r" % (actual.service, expected.service)
    assert actual.resource == expected.resource, "resource: %r != %r" % (actual.resource, expected.resource)
    assert actual.span_type == expected.span_type, "span_type: %r != %r" % (actual.span_type, expected.span_type)
    assert actual.error == expected.error, "error: %r != %r" % (actual.error, expected.error)
    assert actual.get_tags() == expected.get_tags(), "meta: %r != %r" % (actual.get_tags(), expected.get_tags())
