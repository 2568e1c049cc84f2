"""
A sequence of checks verifying the tracing of a :class:`sqltrace.contrib.dbapi.TracedDB`.

The checks need a ``city(id, name, population)`` table, an expected span template
carrying the service, span type and connection tags of the handle, and a
:class:`TestDB` capturing the written traces::

    test_db = TestDB("postgres", "city-db", psycopg2, "dbname=city user=reader")
    expected = Span("postgres.query", service="city-db", span_type="sql")
    expected.set_tags({"db.name": "city", "db.user": "reader"})
    all_sql_tests(test_db, expected)

Each check works on a copy of the template, so the statement tag of one step never
leaks into the next.
"""
from sqltrace._trace.context import Context
from sqltrace._trace.span import Span
from sqltrace.ext import sql
from sqltrace.testing import DummyTracer
from sqltrace.testing import assert_span_matches
from sqltrace.testing import copy_span

from . import open_traced


CITY_QUERY = "SELECT id, name, population FROM city LIMIT 5"
CITY_INSERT = "INSERT INTO city(name) VALUES('New York')"

# placeholder of the first statement parameter, per PEP 249 paramstyle
_PLACEHOLDERS = {
    "qmark": "?",
    "numeric": ":1",
    "named": ":name",
    "format": "%s",
    "pyformat": "%s",
}


class TestDB(object):
    """A traced handle wired to a tracer capturing its traces in memory."""

    # not a test class, even though its name starts with Test
    __test__ = False

    def __init__(self, name, service, driver, dsn):
        self.name = name
        self.service = service
        self.tracer = DummyTracer()
        self.db = open_traced(driver, dsn, service=service, tracer=self.tracer)

    @property
    def paramstyle(self):
        return getattr(self.db.driver.module, "paramstyle", "qmark")

    def flush_traces(self):
        self.tracer.flush()
        return self.tracer.writer.pop_traces()

    def close(self):
        self.db.close()


def all_sql_tests(test_db, expected_span):
    # type: (TestDB, Span) -> None
    """Apply the whole sequence of checks on ``test_db``."""
    check_db(test_db, expected_span)
    check_statement(test_db, expected_span)
    check_transaction(test_db, expected_span)


def expect(test_db, template, operation, resource, query=None):
    # type: (TestDB, Span, sql.Operation, str, str) -> Span
    """Return the span expected for ``operation`` from the template."""
    span = copy_span(template)
    span.name = "{}.{}".format(test_db.name, operation.value)
    span.resource = resource
    if query is not None:
        span.set_tag_str(sql.QUERY, query)
    return span


def _single_span(test_db):
    # type: (TestDB) -> Span
    traces = test_db.flush_traces()
    assert len(traces) == 1, traces
    spans = traces[0]
    assert len(spans) == 1, spans
    return spans[0]


def check_db(test_db, expected_span):
    # type: (TestDB, Span) -> None
    db = test_db.db

    db.ping()
    actual = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.PING, sql.PING_RESOURCE), actual)
    assert actual.parent_id is None

    cursor = db.query(CITY_QUERY)
    try:
        cursor.fetchall()
    finally:
        cursor.close()
    actual = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.QUERY, CITY_QUERY, CITY_QUERY), actual)


def check_statement(test_db, expected_span):
    # type: (TestDB, Span) -> None
    placeholder = _PLACEHOLDERS.get(test_db.paramstyle, "?")
    query = "INSERT INTO city(name) VALUES({})".format(placeholder)
    params = {"name": "New York"} if test_db.paramstyle == "named" else ("New York",)

    stmt = test_db.db.prepare(query)
    actual = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.PREPARE, query, query), actual)

    stmt.execute(params)
    actual = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.EXEC, query, query), actual)


def check_transaction(test_db, expected_span):
    # type: (TestDB, Span) -> None
    db = test_db.db

    tx = db.begin()
    begin = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.BEGIN, sql.BEGIN_RESOURCE), begin)

    tx.rollback()
    rollback = _single_span(test_db)
    assert_span_matches(expect(test_db, expected_span, sql.Operation.ROLLBACK, sql.ROLLBACK_RESOURCE), rollback)
    # siblings, both trace roots
    assert begin.parent_id is None and rollback.parent_id is None
    assert begin.trace_id != rollback.trace_id

    parent = test_db.tracer.start_span("test.parent", service="test", resource="parent")
    ctx = Context().with_span(parent)

    tx = db.begin(context=ctx)
    tx.execute(CITY_INSERT, context=ctx)
    tx.commit()

    traces = test_db.flush_traces()
    assert len(traces) == 1, traces
    spans = traces[0]
    assert len(spans) == 3, spans

    assert_span_matches(expect(test_db, expected_span, sql.Operation.BEGIN, sql.BEGIN_RESOURCE), spans[0])
    assert_span_matches(expect(test_db, expected_span, sql.Operation.EXEC, CITY_INSERT, CITY_INSERT), spans[1])
    assert_span_matches(expect(test_db, expected_span, sql.Operation.COMMIT, sql.COMMIT_RESOURCE), spans[2])
    for span in spans:
        assert span.trace_id == parent.trace_id
        assert span.parent_id == parent.span_id

    parent.finish()
    test_db.flush_traces()
