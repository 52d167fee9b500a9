"""
SQLite-specific strategy implementation.

SQLite has no server, no port and no session time zone, so most of the
connection descriptor is ignored. Declared column types drive conversion:
- DATE / DATETIME / TIMESTAMP columns are parsed as ISO 8601
- BIT / BOOLEAN columns are surfaced as flags

A ``:memory:`` database is private to each connection, so contexts only
share data when the database is a file.
"""
import datetime
import logging
import sqlite3
from typing import TYPE_CHECKING, Any

import dateutil.parser
import sqlalchemy as sa
from simpledb.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from simpledb.options import DatabaseOptions

logger = logging.getLogger(__name__)


def convert_date(val: bytes) -> datetime.date | str:
    """Convert ISO 8601 date string to date object.

    SQLite does not enforce declared types, so stored text that is not
    ISO 8601 (epoch numbers, free text) is returned as decoded text.
    """
    text = val.decode()
    try:
        return dateutil.parser.isoparse(text).date()
    except ValueError:
        logger.debug(f'Keeping non-ISO date value as text: {text!r}')
        return text


def convert_datetime(val: bytes) -> datetime.datetime | str:
    """Convert ISO 8601 datetime string to datetime object, else the text."""
    text = val.decode()
    try:
        return dateutil.parser.isoparse(text)
    except ValueError:
        logger.debug(f'Keeping non-ISO datetime value as text: {text!r}')
        return text


def convert_flag(val: bytes) -> bool:
    """Convert a stored flag to bool.

    Integers arrive as their decimal text, so b'0' is false; anything
    else non-empty follows the first-byte rule.
    """
    if not val:
        return False
    if val.isdigit():
        return int(val) != 0
    return val[0] != 0


def adapt_datetime(val: datetime.datetime) -> str:
    return val.isoformat(' ')


def adapt_date(val: datetime.date) -> str:
    return val.isoformat()


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    paramstyle = 'qmark'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite.

        Contexts may be released from a thread other than the one that
        opened them, so the same-thread check is turned off.
        """
        connect_args: dict[str, Any] = {
            'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            'check_same_thread': False,
        }
        if options.timeout:
            connect_args['timeout'] = options.timeout
        return {'connect_args': connect_args}

    def register_type_adapters(self) -> None:
        """Register adapters and converters for SQLite.

        Registration is process-wide in the sqlite3 module.
        """
        # Adapters (Python -> SQLite)
        sqlite3.register_adapter(datetime.datetime, adapt_datetime)
        sqlite3.register_adapter(datetime.date, adapt_date)

        # Converters (SQLite -> Python)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('timestamp', convert_datetime)
        sqlite3.register_converter('bit', convert_flag)
        sqlite3.register_converter('boolean', convert_flag)

    def configure_connection(self, raw_conn: Any, options: 'DatabaseOptions') -> None:
        """Register converters and enable autocommit.
        """
        self.register_type_adapters()
        self.enable_autocommit(raw_conn)

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']
