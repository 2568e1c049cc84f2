"""
Connection string (DSN) parsing.

Each driver family has its own DSN grammar. :func:`normalize` picks the grammar
from the driver name, extracts the raw attributes and keeps only those that map
to a connection tag::

    >>> normalize("psycopg2", "dbname=city user=reader host=localhost port=5432 password=secret")
    {'db.name': 'city', 'db.user': 'reader', 'out.host': 'localhost', 'out.port': '5432'}

Drivers of an unknown family produce no tags. When an attribute appears twice in
one DSN the last occurrence wins, as it does for libpq.
"""
import re
from typing import Callable
from typing import Dict
from urllib.parse import parse_qsl
from urllib.parse import unquote
from urllib.parse import urlsplit

from sqltrace.ext import StrEnum
from sqltrace.ext import db
from sqltrace.ext import net


# raw DSN attribute name -> span tag
TAG_KEYS = {
    "user": db.USER,
    "application_name": db.APPLICATION,
    "dbname": db.NAME,
    "host": net.TARGET_HOST,
    "port": net.TARGET_PORT,
}

_POSTGRES_DRIVERS = frozenset(["pq", "psycopg", "psycopg2", "pg8000", "asyncpg", "pgx"])

_MYSQL_DEFAULT_PORT = "3306"
_MYSQL_DEFAULT_ADDR = "127.0.0.1:" + _MYSQL_DEFAULT_PORT


class DSNParseError(ValueError):
    """Raised when the DSN of a supported driver family is malformed."""


class DriverFamily(StrEnum):
    POSTGRES = "postgres"
    MYSQL = "mysql"
    UNKNOWN = "unknown"

    @classmethod
    def from_driver(cls, driver_name):
        # type: (str) -> DriverFamily
        """Return the family of a driver from its name.

        Names may be module names (``psycopg2``, ``pymysql``), dotted type names
        (``mysql.connector``) or pointer-style type names (``*pq.Driver``).
        """
        if not driver_name:
            return cls.UNKNOWN
        name = driver_name.lstrip("*").lower()
        root = re.split(r"[.\-_]", name, maxsplit=1)[0]
        if root in _POSTGRES_DRIVERS or "postgres" in root:
            return cls.POSTGRES
        if "mysql" in root:
            return cls.MYSQL
        return cls.UNKNOWN

    def parse(self, dsn):
        # type: (str) -> Dict[str, str]
        """Return the raw attributes of ``dsn`` using this family's grammar."""
        return _PARSERS[self](dsn)


def normalize(driver_name, dsn):
    # type: (str, str) -> Dict[str, str]
    """Return the connection tags found in ``dsn``.

    :raises DSNParseError: if the driver family is supported and ``dsn`` is malformed.
    """
    raw = DriverFamily.from_driver(driver_name).parse(dsn or "")
    return normalize_attributes(raw)


def normalize_attributes(raw):
    # type: (Dict[str, str]) -> Dict[str, str]
    """Map raw DSN attributes to their tag, dropping the unknown ones."""
    return {TAG_KEYS[k]: v for k, v in raw.items() if k in TAG_KEYS}


# key = value, where value is either a single quoted string or a run of non
# blank characters. Backslash escapes any character in both forms.
_PG_PAIR = re.compile(
    r"""
    \s*(?P<key>[^\s=]+)\s*=\s*
    (?P<value>'(?:[^'\\]|\\.)*'|(?!')(?:[^\s\\]|\\.)*)
    """,
    re.VERBOSE | re.DOTALL,
)
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


def parse_postgres(dsn):
    # type: (str) -> Dict[str, str]
    """
    Return a dictionary of the components of a postgres DSN, in either the
    key/value or the URL form.

    >>> parse_postgres("user=dog port=1543 dbname=dogdata")
    {'user': 'dog', 'port': '1543', 'dbname': 'dogdata'}
    >>> parse_postgres("postgres://dog@localhost:1543/dogdata?sslmode=disable")
    {'user': 'dog', 'host': 'localhost', 'port': '1543', 'dbname': 'dogdata', 'sslmode': 'disable'}
    """
    if dsn.startswith(("postgres://", "postgresql://")):
        return _parse_url(dsn, with_params=True)
    return _parse_postgres_pairs(dsn)


def _parse_postgres_pairs(dsn):
    # type: (str) -> Dict[str, str]
    attrs = {}  # type: Dict[str, str]
    pos, end = 0, len(dsn)
    while pos < end:
        if dsn[pos:].isspace():
            break
        m = _PG_PAIR.match(dsn, pos)
        if m is None:
            raise DSNParseError("malformed connection string near %r" % dsn[pos:])
        pos = m.end()
        if pos < end and not dsn[pos].isspace():
            raise DSNParseError("missing separator after value of %r" % m.group("key"))

        value = m.group("value")
        if value.startswith("'"):
            value = value[1:-1]
        attrs[m.group("key")] = _ESCAPE.sub(r"\1", value)
    return attrs


def _parse_url(dsn, with_params):
    # type: (str, bool) -> Dict[str, str]
    # urlsplit rejects malformed bracketed hosts, the port is checked on access
    try:
        parts = urlsplit(dsn)
        port = parts.port
    except ValueError as e:
        raise DSNParseError("invalid URL %r: %s" % (dsn, e))

    attrs = {}  # type: Dict[str, str]
    if parts.username:
        attrs["user"] = unquote(parts.username)
    if parts.password:
        attrs["password"] = unquote(parts.password)
    if parts.hostname:
        attrs["host"] = unquote(parts.hostname)
    if port is not None:
        attrs["port"] = str(port)
    dbname = parts.path.lstrip("/")
    if dbname:
        attrs["dbname"] = unquote(dbname)
    if with_params:
        for k, v in parse_qsl(parts.query, keep_blank_values=True):
            attrs[k] = v
    return attrs


def parse_mysql(dsn):
    # type: (str) -> Dict[str, str]
    """
    Return a dictionary of the components of a MySQL DSN, written either as
    ``[user[:password]@][net[(addr)]]/dbname[?params]`` or as a ``mysql://`` URL.
    Query parameters are not part of the result. A TCP address without a port
    gets the default MySQL port, an empty address is ``127.0.0.1:3306``.

    >>> parse_mysql("dog:secret@tcp(db.local:3307)/dogdata?parseTime=true")
    {'user': 'dog', 'password': 'secret', 'host': 'db.local', 'port': '3307', 'dbname': 'dogdata'}
    """
    if "://" in dsn:
        return _parse_url(dsn, with_params=False)
    if not dsn:
        return {}

    # the password may contain slashes, the database name may not
    slash = dsn.rfind("/")
    if slash < 0:
        raise DSNParseError("invalid DSN: missing the slash separating the database name")

    attrs = {}  # type: Dict[str, str]
    head, dbname = dsn[:slash], dsn[slash + 1 :].partition("?")[0]

    at = head.rfind("@")
    if at >= 0:
        user, _, password = head[:at].partition(":")
        if user:
            attrs["user"] = user
        if password:
            attrs["password"] = password
        head = head[at + 1 :]

    protocol, addr = head, ""
    paren = head.find("(")
    if paren >= 0:
        if not head.endswith(")"):
            raise DSNParseError("invalid DSN: did you forget to escape a param value?")
        protocol, addr = head[:paren], head[paren + 1 : -1]

    if protocol == "unix":
        if addr:
            attrs["host"] = addr
    else:
        # tcp is the default protocol
        host, port = _split_host_port(addr or _MYSQL_DEFAULT_ADDR)
        attrs["host"] = host
        attrs["port"] = port or _MYSQL_DEFAULT_PORT

    if dbname:
        attrs["dbname"] = dbname
    return attrs


def _split_host_port(addr):
    # type: (str) -> tuple
    if addr.startswith("["):
        host, sep, rest = addr[1:].partition("]")
        if not sep:
            raise DSNParseError("invalid address %r: missing ']'" % addr)
        port = rest[1:] if rest.startswith(":") else ""
    else:
        host, _, port = addr.rpartition(":") if ":" in addr else (addr, "", "")
    if port and not port.isdigit():
        raise DSNParseError("invalid port in address %r" % addr)
    return host, port


def _parse_unknown(dsn):
    # type: (str) -> Dict[str, str]
    return {}


_PARSERS = {
    DriverFamily.POSTGRES: parse_postgres,
    DriverFamily.MYSQL: parse_mysql,
    DriverFamily.UNKNOWN: _parse_unknown,
}  # type: Dict[DriverFamily, Callable[[str], Dict[str, str]]]
