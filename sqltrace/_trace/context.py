from typing import Optional

from sqltrace._trace.span import Span


class Context(object):
    """
    Context carries the ambient span of a logical operation from the caller
    down to the traced database calls. It is immutable: ``with_span`` returns a
    new context and leaves the original untouched, so a context can be shared
    between threads and stored on long-lived objects such as transactions.

        >>> parent = tracer.start_span("web.request")
        >>> ctx = Context().with_span(parent)
        >>> db.query("SELECT 1", context=ctx)  # traced as a child of ``parent``
    """

    __slots__ = ["_span"]

    def __init__(self, span=None):
        # type: (Optional[Span]) -> None
        self._span = span

    @property
    def span(self):
        # type: () -> Optional[Span]
        """The ambient span, or ``None`` when new spans should start a new trace."""
        return self._span

    @property
    def trace_id(self):
        # type: () -> Optional[int]
        return self._span.trace_id if self._span is not None else None

    @property
    def span_id(self):
        # type: () -> Optional[int]
        return self._span.span_id if self._span is not None else None

    def with_span(self, span):
        # type: (Optional[Span]) -> Context
        """Return a copy of this context carrying ``span`` as the ambient span."""
        return self.__class__(span)

    def __eq__(self, other):
        if isinstance(other, Context):
            return self._span is other._span
        return False

    def __hash__(self):
        return hash(id(self._span))

    def __repr__(self):
        return "Context(trace_id=%s, span_id=%s)" % (self.trace_id, self.span_id)


def context_with_span(ctx, span):
    # type: (Optional[Context], Span) -> Context
    """Return a new context derived from ``ctx`` carrying ``span``."""
    return (ctx or Context()).with_span(span)


def span_from_context(ctx):
    # type: (Optional[Context]) -> Optional[Span]
    """Return the ambient span of ``ctx``, tolerating a missing context."""
    if ctx is None:
        return None
    return ctx.span
