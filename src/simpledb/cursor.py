"""
Cursor wrapper used by every terminal operation.

Implements the subset of Python DB-API 2.0 (PEP-249) the query builder
needs, adding:
- positional marker validation and paramstyle conversion
- driver error translation
- per-context timing and optional SQL echo
"""
import logging
import time
from functools import wraps
from typing import Any

from simpledb.exceptions import DriverError, StatementError, translate_error
from simpledb.sql import count_placeholders
from simpledb.types import Column, RawRow, RowAdapter
from simpledb.types import columns_from_cursor_description

logger = logging.getLogger(__name__)

sql_logger = logging.getLogger('simpledb.sql')


def dumpsql(func):
    """Decorator for logging SQL queries and timing them."""
    @wraps(func)
    def wrapper(self, operation: str, params: tuple = (), *args: Any, **kwargs: Any):
        if self.echo:
            sql_logger.info(f'== rawSql ==\n{operation}')
        start = time.time()
        logger.debug(f'SQL:\n{operation}\nparams: {len(params)}')
        try:
            return func(self, operation, params, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}')
            raise
        finally:
            elapsed = time.time() - start
            self.context.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Cursor bound to one ConnectionContext.

    SQL passed to `execute` uses ``?`` markers; the strategy converts them
    to the driver's paramstyle.
    """

    def __init__(self, cursor: Any, context: Any, strategy: Any, echo: bool = False) -> None:
        self.dbapi_cursor = cursor
        self.context = context
        self.strategy = strategy
        self.echo = echo
        self._columns: list[Column] | None = None

    def __enter__(self) -> 'Cursor':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def description(self) -> list[tuple] | None:
        """Column descriptions for last query."""
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        """Number of rows affected by last operation, 0 when unknown."""
        rowcount = self.dbapi_cursor.rowcount
        if rowcount is None or rowcount < 0:
            return 0
        return rowcount

    def close(self) -> None:
        """Close cursor."""
        self.dbapi_cursor.close()

    @dumpsql
    def execute(self, operation: str, params: tuple = ()) -> int:
        """Execute one statement.

        Raises
            StatementError: Marker/parameter count mismatch or a failure
                reported by the backend
            ConnectionError: The connection was lost
        """
        expected = count_placeholders(operation)
        if expected != len(params):
            raise StatementError(
                f'Parameter count mismatch: SQL needs {expected} '
                f'but {len(params)} were provided\nSQL: {operation}'
            )

        self._columns = None
        try:
            self.dbapi_cursor.execute(self.strategy.standardize_sql(operation), tuple(params))
        except DriverError as exc:
            raise translate_error(exc, operation) from exc
        return self.rowcount

    def columns(self) -> list[Column]:
        """Columns of the current result set."""
        if self._columns is None:
            self._columns = columns_from_cursor_description(self.description, self.strategy)
        return self._columns

    def fetchone(self) -> tuple | None:
        """Fetch next row."""
        if self.description is None:
            return None
        try:
            return self.dbapi_cursor.fetchone()
        except DriverError as exc:
            raise translate_error(exc) from exc

    def fetchall(self) -> list[tuple]:
        """Fetch all remaining rows."""
        if self.description is None:
            return []
        try:
            return self.dbapi_cursor.fetchall()
        except DriverError as exc:
            raise translate_error(exc) from exc

    def fetch_rawrows(self) -> list[RawRow]:
        """Fetch all remaining rows as RawRow dictionaries."""
        columns = self.columns()
        return [RowAdapter(columns, row).to_dict() for row in self.fetchall()]

    def fetch_values(self) -> list[Any]:
        """Fetch the first column of every remaining row."""
        columns = self.columns()
        return [RowAdapter(columns, row).get_value() for row in self.fetchall()]

    def fetch_value(self) -> Any:
        """Fetch the first column of the next row, or None."""
        row = self.fetchone()
        if row is None:
            return None
        return RowAdapter(self.columns(), row).get_value()

    def generated_key(self) -> int:
        """Key generated by the last INSERT, or 0."""
        try:
            return self.strategy.generated_key(self.dbapi_cursor)
        except DriverError as exc:
            raise translate_error(exc) from exc
