"""
Database-specific exception classes.

Driver exceptions never leak out of a terminal operation directly; they are
translated into one of the categories below with the driver error chained
as ``__cause__``.
"""
import re
import sqlite3

import psycopg
import pymysql

CONNECTION_LOST_PATTERNS = [
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'server has gone away',
    r'lost connection',
    r'eof detected',
    r'broken pipe',
    # Network issues
    r'could not connect',
    r"can't connect",
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'unable to open database',
    r'too many connections',
]

_CONNECTION_LOST_REGEX = re.compile('|'.join(CONNECTION_LOST_PATTERNS), re.IGNORECASE)

# CR_CONNECTION_ERROR, CR_CONN_HOST_ERROR, CR_SERVER_GONE_ERROR,
# CR_SERVER_LOST, CR_SERVER_LOST_EXTENDED
MYSQL_CONNECTION_ERROR_CODES = {2002, 2003, 2006, 2013, 2055}


class DatabaseError(Exception):
    """Base class for all simpledb errors.
    """


class ConnectionError(DatabaseError):
    """Error establishing or maintaining a database connection.
    """


class StatementError(DatabaseError):
    """Malformed SQL, parameter-count mismatch or backend-reported failure.
    """


class QueryConsumedError(StatementError):
    """Query builder used again after a terminal operation.
    """


class MappingError(DatabaseError):
    """Matched column value cannot be coerced to the destination type.
    """


class TransactionError(DatabaseError):
    """Invalid transaction state transition.
    """


DbConnectionError = (
    pymysql.err.InterfaceError,
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.InterfaceError,
    ConnectionError,
    )

IntegrityError = (
    pymysql.err.IntegrityError,
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    pymysql.err.ProgrammingError,
    psycopg.ProgrammingError,
    sqlite3.ProgrammingError,
    sqlite3.OperationalError,
    StatementError,
    )

# Every error a supported driver can raise from connect or execute
DriverError = (
    pymysql.err.Error,
    psycopg.Error,
    sqlite3.Error,
    )


def is_connection_error(exc: BaseException) -> bool:
    """Check if a driver exception means the connection is unusable.

    Returns True for:
    - Driver interface errors (closed or broken connection objects)
    - MySQL client errors for unreachable or vanished servers
    - PostgreSQL operational errors raised by a broken connection
    - Messages matching the connection-drop patterns

    Syntax errors, constraint violations and other statement failures
    return False even though some drivers raise them as OperationalError.

    :param exc: The exception to check.
    :returns: True if the error belongs to the connection category.
    """
    if isinstance(exc, (pymysql.err.InterfaceError, psycopg.InterfaceError,
                        sqlite3.InterfaceError)):
        return True

    if isinstance(exc, pymysql.err.OperationalError) and exc.args:
        if exc.args[0] in MYSQL_CONNECTION_ERROR_CODES:
            return True

    if isinstance(exc, psycopg.OperationalError):
        conn = getattr(getattr(exc, 'pgconn', None), 'status', None)
        if conn is not None and conn != psycopg.pq.ConnStatus.OK:
            return True

    return bool(_CONNECTION_LOST_REGEX.search(str(exc)))


def translate_error(exc: Exception, sql: str | None = None) -> ConnectionError | StatementError:
    """Map a driver exception onto the simpledb taxonomy.

    The caller is expected to ``raise translate_error(exc) from exc``.
    Bound parameter values are never included in the message.
    """
    if is_connection_error(exc):
        return ConnectionError(str(exc))
    if sql is None:
        return StatementError(str(exc))
    return StatementError(f'{exc}\nSQL: {sql}')
