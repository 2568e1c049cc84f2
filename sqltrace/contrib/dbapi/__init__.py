"""
Tracing for PEP 249 (DB-API 2.0) database handles.

Open a traced handle from a driver and a DSN; every ping, query, prepare,
statement execution and transaction operation made through it is recorded as
a span tagged with the connection's user, database, application, host and
port::

    import psycopg2

    from sqltrace.contrib.dbapi import open_traced
    from sqltrace.trace import Context

    db = open_traced(psycopg2, "dbname=city user=reader host=localhost", service="city-db")
    rows = db.query("SELECT id, name FROM city").fetchall()

    # nest database spans under a span of the application
    with tracer.start_span("web.request") as request_span:
        ctx = Context().with_span(request_span)
        with db.begin(context=ctx) as tx:
            tx.execute("INSERT INTO city(name) VALUES (%s)", ("Paris",), context=ctx)

Commit and rollback spans have the same parent as the begin span of their
transaction. Errors raised by the driver are recorded on the span and re-raised
unchanged.
"""
from types import MappingProxyType
from typing import Any
from typing import Dict
from typing import Optional

import wrapt

from sqltrace._trace.context import Context
from sqltrace._trace.pin import Pin
from sqltrace._trace.tracer import Tracer
from sqltrace.ext import SpanTypes
from sqltrace.ext import db
from sqltrace.ext import sql
from sqltrace.internal.logger import get_logger
from sqltrace.settings import config

from .driver import Driver
from .dsn import DriverFamily
from .dsn import DSNParseError
from .dsn import normalize


log = get_logger(__name__)

__all__ = [
    "Driver",
    "DSNParseError",
    "TracedDB",
    "TracedStatement",
    "TracedTransaction",
    "open_traced",
    "traced_connection",
]


class _TracedObject(wrapt.ObjectProxy):
    """Base of the traced proxies: holds the pin and creates one span per call."""

    def __init__(self, wrapped, pin, name, context=None):
        # type: (Any, Pin, str, Optional[Context]) -> None
        super(_TracedObject, self).__init__(wrapped)
        pin.onto(self)
        self._self_sqltrace_name = name
        self._self_context = context

    @property
    def sqltrace_name(self):
        # type: () -> str
        return self._self_sqltrace_name

    def _trace_method(self, method, operation, resource, extra_tags, context, *args, **kwargs):
        """
        Internal function to trace the call to the underlying driver method
        :param method: The callable to be wrapped
        :param operation: The traced operation, suffix of the span name.
        :param resource: The sql query, or the label of the operation.
        :param extra_tags: A dict of tags to store into the span's meta, they override the connection tags
        :param context: The caller's context, the span is a child of its ambient span
        :param args: The args that will be passed as positional args to the wrapped method
        :param kwargs: The args that will be passed as kwargs to the wrapped method
        :return: The result of the wrapped method invocation
        """
        pin = Pin.get_from(self)
        if not pin or not pin.enabled():
            return method(*args, **kwargs)

        with pin.tracer.start_span(
            "{}.{}".format(self._self_sqltrace_name, operation.value),
            context=context if context is not None else self._self_context,
            service=pin.service,
            resource=resource,
            span_type=SpanTypes.SQL,
            tags=pin.tags,
        ) as s:
            s.set_tags(extra_tags)
            result = method(*args, **kwargs)

            row_count = getattr(result, "rowcount", None)
            if isinstance(row_count, int) and row_count >= 0:
                s.set_metric(db.ROWCOUNT, row_count)
            return result

    def _child_pin(self):
        # type: () -> Pin
        pin = Pin.get_from(self)
        return pin.clone() if pin is not None else Pin()


class TracedDB(_TracedObject):
    """TracedDB wraps an open DB-API connection with tracing code.

    Attributes not traced here are forwarded to the connection.
    """

    def __init__(self, conn, driver, pin):
        # type: (Any, Driver, Pin) -> None
        super(TracedDB, self).__init__(conn, pin, _get_vendor(driver))
        self._self_driver = driver

    @property
    def driver(self):
        # type: () -> Driver
        return self._self_driver

    def ping(self, context=None):
        # type: (Optional[Context]) -> None
        """Check the connection is alive."""
        return self._trace_method(
            self._self_driver.ping, sql.Operation.PING, sql.PING_RESOURCE, None, context, self.__wrapped__
        )

    def query(self, query, params=None, context=None):
        """Run a statement returning rows and return the cursor holding them."""
        return self._trace_method(
            self._self_driver.query,
            sql.Operation.QUERY,
            query,
            {sql.QUERY: query},
            context,
            self.__wrapped__,
            query,
            params,
        )

    def execute(self, query, params=None, context=None):
        """Run a statement and return its cursor."""
        return self._trace_method(
            self._self_driver.execute,
            sql.Operation.EXEC,
            query,
            {sql.QUERY: query},
            context,
            self.__wrapped__,
            query,
            params,
        )

    def prepare(self, query, context=None):
        # type: (str, Optional[Context]) -> TracedStatement
        """Prepare a statement, executed later with :meth:`TracedStatement.execute`."""
        stmt = self._trace_method(
            self._self_driver.prepare,
            sql.Operation.PREPARE,
            query,
            {sql.QUERY: query},
            context,
            self.__wrapped__,
            query,
        )
        return TracedStatement(stmt, self._child_pin(), self._self_sqltrace_name, query)

    def begin(self, context=None):
        # type: (Optional[Context]) -> TracedTransaction
        """Start a transaction.

        The spans of the operations made on the returned transaction share the
        parent of the begin span, i.e. the ambient span of ``context``.
        """
        tx = self._trace_method(
            self._self_driver.begin, sql.Operation.BEGIN, sql.BEGIN_RESOURCE, None, context, self.__wrapped__
        )
        return TracedTransaction(tx, self._child_pin(), self._self_sqltrace_name, context)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.__wrapped__.close()


class TracedStatement(_TracedObject):
    """TracedStatement wraps a prepared statement. Its spans use the prepared query as resource.

    The wrapped statement may be any object with ``execute``, ``query`` and ``close``
    methods, such as a server-side prepared statement returned by a driver.
    """

    def __init__(self, stmt, pin, name, query, context=None):
        # type: (Any, Pin, str, str, Optional[Context]) -> None
        super(TracedStatement, self).__init__(stmt, pin, name, context)
        self._self_query = query

    
    def query_text(self):
        # type: () -> str
        return self._self_query

    def execute(self, params=None, context=None):
        query = self._self_query
        return self._trace_method(
            self.__wrapped__.execute, sql.Operation.EXEC, query, {sql.QUERY: query}, context, params
        )

    def query(self, params=None, context=None):
        query = self._self_query
        return self._trace_method(
            self.__wrapped__.query, sql.Operation.QUERY, query, {sql.QUERY: query}, context, params
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.__wrapped__.close()


class TracedTransaction(_TracedObject):
    """TracedTransaction wraps a transaction started by :meth:`TracedDB.begin`.

    Used as a context manager, the transaction is committed when the block
    succeeds and rolled back when it raises.
    """

    def execute(self, query, params=None, context=None):
        return self._trace_method(
            self.__wrapped__.execute, sql.Operation.EXEC, query, {sql.QUERY: query}, context, query, params
        )

    def query(self, query, params=None, context=None):
        return self._trace_method(
            self.__wrapped__.query, sql.Operation.QUERY, query, {sql.QUERY: query}, context, query, params
        )

    def prepare(self, query, context=None):
        # type: (str, Optional[Context]) -> TracedStatement
        stmt = self._trace_method(
            self.__wrapped__.prepare, sql.Operation.PREPARE, query, {sql.QUERY: query}, context, query
        )
        return TracedStatement(
            stmt,
            self._child_pin(),
            self._self_sqltrace_name,
            query,
            context if context is not None else self._self_context,
        )

    def commit(self):
        return self._trace_method(
            self.__wrapped__.commit, sql.Operation.COMMIT, sql.COMMIT_RESOURCE, None, self._self_context
        )

    def rollback(self):
        return self._trace_method(
            self.__wrapped__.rollback, sql.Operation.ROLLBACK, sql.ROLLBACK_RESOURCE, None, self._self_context
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.__wrapped__.done:
            return
        if exc_type is None:
            self.commit()
            return
        # the exception raised in the block is the one that propagates
        try:
            self.rollback()
        except Exception:
            log.warning("rollback failed after %s in transaction block", exc_type.__name__, exc_info=True)


def open_traced(driver, dsn, service=None, tracer=None):
    # type: (Any, str, Optional[str], Optional[Tracer]) -> TracedDB
    """Open a connection with ``driver`` and return it traced.

    :param driver: a :class:`Driver`, or a DB-API module wrapped in one
    :param str dsn: the connection string, also parsed for the connection tags
    :param str service: the service of the spans, defaults to ``SQLTRACE_SERVICE`` or the database vendor
    :param Tracer tracer: the tracer creating the spans, defaults to the global tracer
    :raises DSNParseError: if the DSN is malformed and ``SQLTRACE_STRICT_DSN`` is enabled
    """
    if not isinstance(driver, Driver):
        driver = Driver(driver)

    tags = _connection_tags(driver, dsn)
    conn = driver.open(dsn)
    return _traced(conn, driver, tags, service, tracer)


def traced_connection(conn, driver, dsn, service=None, tracer=None):
    # type: (Any, Any, str, Optional[str], Optional[Tracer]) -> TracedDB
    """Return an already open connection traced. See :func:`open_traced` for the parameters."""
    if not isinstance(driver, Driver):
        driver = Driver(driver)
    return _traced(conn, driver, _connection_tags(driver, dsn), service, tracer)


def _traced(conn, driver, tags, service, tracer):
    # type: (Any, Driver, Dict[str, str], Optional[str], Optional[Tracer]) -> TracedDB
    pin = Pin(
        service=service or config.service or _get_vendor(driver),
        tags=MappingProxyType(tags),
        tracer=tracer,
    )
    return TracedDB(conn, driver, pin)


def _connection_tags(driver, dsn):
    # type: (Driver, str) -> Dict[str, str]
    try:
        return normalize(driver.name, dsn)
    except DSNParseError:
        if config.strict_dsn:
            raise
        log.warning("could not parse DSN of driver %r, spans will have no connection tags", driver.name, exc_info=True)
        return {}


def _get_vendor(driver):
    # type: (Driver) -> str
    """Return the vendor (e.g postgres, mysql) of the given driver."""
    family = DriverFamily.from_driver(driver.name)
    if family is not DriverFamily.UNKNOWN:
        return family.value
    return sql.normalize_vendor(driver.name.lstrip("*").split(".")[0])
