"""
Adapter giving any PEP 249 module the operations traced by :mod:`sqltrace.contrib.dbapi`:
open, ping, query, prepare, exec, begin, commit and rollback.

    >>> import sqlite3
    >>> driver = Driver(sqlite3)
    >>> conn = driver.open(":memory:")
    >>> driver.query(conn, "SELECT 1").fetchall()
    [(1,)]

Subclasses adapt drivers whose connect function does not take the DSN as its
only argument, or that support server-side prepared statements.
"""
from typing import Any
from typing import Optional


class Driver(object):
    """Wraps a DB-API 2.0 module.

    :param module: the DB-API module (``sqlite3``, ``psycopg2``, ``pymysql``...)
    :param name: the driver name used to select the DSN grammar, defaults to the module name
    """

    def __init__(self, module, name=None):
        # type: (Any, Optional[str]) -> None
        self.module = module
        self._name = name

    @property
    def name(self):
        # type: () -> str
        if self._name:
            return self._name
        return getattr(self.module, "__name__", None) or self.module.__class__.__name__

    def open(self, dsn):
        """Open a new connection."""
        return self.module.connect(dsn)

    def ping(self, conn):
        """Check the connection is alive. Uses the connection's own ``ping`` when it has one."""
        ping = getattr(conn, "ping", None)
        if callable(ping):
            ping()
            return
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT 1")
            cursor.fetchall()
        finally:
            cursor.close()

    def execute(self, conn, query, params=None):
        """Execute ``query`` on a new cursor and return the cursor."""
        cursor = conn.cursor()
        try:
            if params is None:
                cursor.execute(query)
            else:
                cursor.execute(query, params)
        except BaseException:
            cursor.close()
            raise
        return cursor

    def query(self, conn, query, params=None):
        """Execute a statement returning rows and return the cursor to read them from."""
        return self.execute(conn, query, params)

    def prepare(self, conn, query):
        """Return a statement bound to ``conn`` and ``query``."""
        return Statement(self, conn, query)

    def begin(self, conn):
        """Start a transaction.

        DB-API connections open transactions implicitly, a ``begin`` method is
        only called for the connections providing one.
        """
        begin = getattr(conn, "begin", None)
        if callable(begin):
            begin()
        return Transaction(self, conn)

    def commit(self, conn):
        conn.commit()

    def rollback(self, conn):
        conn.rollback()

    def __repr__(self):
        return "%s(name=%r)" % (self.__class__.__name__, self.name)


class Statement(object):
    """A statement prepared on a connection, executed with different parameters."""

    __slots__ = ["driver", "conn", "query_text", "closed"]

    def __init__(self, driver, conn, query):
        # type: (Driver, Any, str) -> None
        self.driver = driver
        self.conn = conn
        self.query_text = query
        self.closed = False

    def execute(self, params=None):
        self._check_open()
        return self.driver.execute(self.conn, self.query_text, params)

    def query(self, params=None):
        self._check_open()
        return self.driver.query(self.conn, self.query_text, params)

    def close(self):
        self.closed = True

    def _check_open(self):
        if self.closed:
            error_cls = getattr(self.driver.module, "ProgrammingError", RuntimeError)
            raise error_cls("cannot execute a closed statement")


class Transaction(object):
    """A transaction opened on a connection. Statements run on the same connection."""

    __slots__ = ["driver", "conn", "done"]

    def __init__(self, driver, conn):
        # type: (Driver, Any) -> None
        self.driver = driver
        self.conn = conn
        self.done = False

    def execute(self, query, params=None):
        return self.driver.execute(self.conn, query, params)

    def query(self, query, params=None):
        return self.driver.query(self.conn, query, params)

    def prepare(self, query):
        return self.driver.prepare(self.conn, query)

    def commit(self):
        self.driver.commit(self.conn)
        self.done = True

    def rollback(self):
        self.driver.rollback(self.conn)
        self.done = True
