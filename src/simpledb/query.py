"""
Query builder and terminal operations.

A `Sql` object collects SQL fragments and positional parameters and is
consumed by exactly one terminal operation:

    db.gen_sql() → append / append_in → insert | update | delete | select_*

Fragments are joined with a single space and use ``?`` as the parameter
marker on every backend.
"""
import datetime
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TypeVar

from simpledb.cursor import Cursor
from simpledb.exceptions import QueryConsumedError
from simpledb.mapping import map_row, map_rows
from simpledb.sql import expand_placeholder
from simpledb.types import RawRow, as_boolean, as_datetime, as_long, as_string

if TYPE_CHECKING:
    from simpledb.client import SimpleDb

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Sql:
    """Single-use builder for one parameterized statement.

    Examples
        >>> sql = Sql(None).append('SELECT * FROM article WHERE id > ?', 0)
        >>> sql.append_in('AND id IN (?)', 1, 2, 3).sql
        'SELECT * FROM article WHERE id > ? AND id IN (?, ?, ?)'
        >>> sql.params
        (0, 1, 2, 3)
    """

    def __init__(self, db: 'SimpleDb') -> None:
        self._db = db
        self._fragments: list[str] = []
        self._params: list[Any] = []
        self._consumed = False

    def __repr__(self) -> str:
        return f'Sql({self.sql!r}, params={len(self._params)})'

    @property
    def sql(self) -> str:
        """The assembled statement text."""
        return ' '.join(self._fragments)

    @property
    def params(self) -> tuple:
        """The bound parameters, in marker order."""
        return tuple(self._params)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _check_open(self) -> None:
        if self._consumed:
            raise QueryConsumedError(f'Query already executed: {self.sql}')

    def append(self, fragment: str, *params: Any) -> 'Sql':
        """Append a fragment and its parameters."""
        self._check_open()
        self._fragments.append(fragment)
        self._params.extend(params)
        return self

    def append_in(self, fragment: str, *values: Any) -> 'Sql':
        """Append a fragment whose single marker stands for a list of values.

        The marker is expanded to one marker per value. A single list or
        tuple argument is taken as the values. With no values the fragment
        is appended unchanged and no parameter is added.

        Raises
            StatementError: The fragment does not hold exactly one marker
        """
        self._check_open()
        if len(values) == 1 and isinstance(values[0], (list, tuple)):
            values = tuple(values[0])
        if not values:
            self._fragments.append(fragment)
            return self
        self._fragments.append(expand_placeholder(fragment, len(values)))
        self._params.extend(values)
        return self

    @contextmanager
    def _execute(self) -> Iterator[Cursor]:
        """Consume the builder and run it on the calling context's connection."""
        self._check_open()
        self._consumed = True
        with self._db.cursor() as cursor:
            cursor.execute(self.sql, self.params)
            yield cursor

    def insert(self) -> int:
        """Execute an INSERT and return the generated key, or 0."""
        with self._execute() as cursor:
            return cursor.generated_key()

    def update(self) -> int:
        """Execute an UPDATE and return the affected row count."""
        with self._execute() as cursor:
            return cursor.rowcount

    def delete(self) -> int:
        """Execute a DELETE and return the affected row count."""
        with self._execute() as cursor:
            return cursor.rowcount

    def select_rows(self, cls: type[T] | None = None) -> list[RawRow] | list[T]:
        """Return every row, as RawRow or mapped onto ``cls``."""
        with self._execute() as cursor:
            rows = cursor.fetch_rawrows()
        logger.debug(f'Query returned {len(rows)} rows')
        if cls is None:
            return rows
        return map_rows(rows, cls)

    def select_row(self, cls: type[T] | None = None) -> RawRow | T | None:
        """Return the first row, or None when there is none."""
        rows = self.select_rows()
        if not rows:
            return None
        if cls is None:
            return rows[0]
        return map_row(rows[0], cls)

    def _select_value(self) -> Any:
        with self._execute() as cursor:
            return cursor.fetch_value()

    def select_long(self) -> int | None:
        """First column of the first row as int; None for no row or NULL."""
        return as_long(self._select_value())

    def select_longs(self) -> list[int]:
        """First column of every row as int; NULL reads as 0."""
        with self._execute() as cursor:
            values = cursor.fetch_values()
        return [0 if value is None else as_long(value) for value in values]

    def select_string(self) -> str | None:
        """First column of the first row as text; None for no row or NULL."""
        return as_string(self._select_value())

    def select_boolean(self) -> bool | None:
        """First column of the first row as bool; None for no row or NULL."""
        return as_boolean(self._select_value())

    def select_datetime(self) -> datetime.datetime | None:
        """First column of the first row as datetime; None for no row or NULL."""
        return as_datetime(self._select_value())
