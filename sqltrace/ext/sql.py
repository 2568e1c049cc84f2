from . import StrEnum


# tags
QUERY = "sql.query"  # the query text


class Operation(StrEnum):
    """Operations of a traced database handle, used as the suffix of the span name."""

    PING = "ping"
    QUERY = "query"
    PREPARE = "prepare"
    EXEC = "exec"
    BEGIN = "begin"
    ROLLBACK = "rollback"
    COMMIT = "commit"


# resources of the operations that carry no statement text
PING_RESOURCE = "Ping"
BEGIN_RESOURCE = "Begin"
ROLLBACK_RESOURCE = "Rollback"
COMMIT_RESOURCE = "Commit"


def normalize_vendor(vendor):
    # type: (str) -> str
    """Return a canonical name for a type of database."""
    if not vendor:
        return "db"  # should this ever happen?
    elif "sqlite" in vendor:
        return "sqlite"
    elif "postgres" in vendor or vendor in ("psycopg", "psycopg2", "pg8000", "asyncpg", "pq"):
        return "postgres"
    elif "mysql" in vendor.lower():
        return "mysql"
    else:
        return vendor
