from sqltrace._trace.context import Context
from sqltrace._trace.context import context_with_span
from sqltrace._trace.context import span_from_context
from sqltrace._trace.pin import Pin
from sqltrace._trace.span import Span
from sqltrace._trace.tracer import Tracer


# a global tracer instance, used by traced handles opened without an explicit tracer
tracer = Tracer()

__all__ = [
    "Context",
    "Pin",
    "Span",
    "Tracer",
    "context_with_span",
    "span_from_context",
    "tracer",
]
