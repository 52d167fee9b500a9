"""
Base strategy interface for driver-specific behavior.

Defines the abstract base class that all driver strategy implementations
must inherit from. A strategy covers what differs between DBAPI drivers:
connection URL and engine arguments, session setup, autocommit toggling,
paramstyle and generated-key retrieval. SQL text itself is passed through
as written.
"""
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from simpledb.sql import standardize_placeholders

if TYPE_CHECKING:
    from simpledb.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for driver-specific operations.
    """

    default_port: int = 0
    paramstyle: str = 'qmark'

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier.
        """

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL.

        Args:
            options: DatabaseOptions holding the connection descriptor

        Returns
            sa.URL: URL passed to ``sqlalchemy.create_engine``
        """

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return extra SQLAlchemy create_engine kwargs.
        """
        return {}

    @abstractmethod
    def configure_connection(self, raw_conn: Any, options: 'DatabaseOptions') -> None:
        """Prepare a freshly opened driver connection.

        Every connection starts in autocommit mode, so implementations must
        leave it with autocommit enabled.

        Args:
            raw_conn: The driver connection (not wrapped)
            options: DatabaseOptions the connection was opened with
        """

    @abstractmethod
    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @abstractmethod
    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode on a raw database connection.

        Args:
            raw_conn: The raw DBAPI connection (not wrapped)
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def standardize_sql(self, sql: str) -> str:
        """Convert ``?`` markers to this driver's paramstyle.

        Args:
            sql: SQL string written with ``?`` markers

        Returns
            str: SQL string ready for ``cursor.execute``
        """
        return standardize_placeholders(sql, self.paramstyle)

    def generated_key(self, cursor: Any) -> int:
        """Return the key generated by the last INSERT, or 0.

        A statement with a RETURNING clause yields its first column;
        otherwise the cursor's ``lastrowid`` is used.
        """
        if cursor.description is not None:
            row = cursor.fetchone()
            if row is None or row[0] is None:
                return 0
            return int(row[0])
        if not cursor.rowcount or cursor.rowcount < 0:
            return 0
        return int(getattr(cursor, 'lastrowid', None) or 0)

    def is_closed(self, raw_conn: Any) -> bool:
        """Whether the driver connection can no longer be used.
        """
        if getattr(raw_conn, 'closed', False):
            return True
        return getattr(raw_conn, 'open', True) is False

    def is_flag_column(self, description_item: Any) -> bool:
        """Whether a result column holds a single-bit flag.

        Flag columns are surfaced as booleans instead of byte sequences.
        """
        return False
