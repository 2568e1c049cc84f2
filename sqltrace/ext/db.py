"""
Database connection tags.
"""

NAME = "db.name"  # the database name (eg: dbname for pgsql)
USER = "db.user"  # the user connecting to the db
APPLICATION = "db.application"  # the application name announced to the server
ROWCOUNT = "db.rowcount"  # the rowcount of a query
