"""
Database handle.

`SimpleDb` is created once per process (or test run) and shared by every
thread. Each thread, or each context chosen by ``context_key``, gets its
own connection on first use.

Testing notes:

Unit tests of code built on the handle can pass a ``context_key`` that
returns a fixed key, so that every call shares one context, or swap
`SimpleDb.cursor` for a fake cursor with ``mocker.patch.object``.
"""
import logging
from collections.abc import Callable, Hashable
from dataclasses import fields
from typing import Any

from simpledb.connection import ConnectionContext, ContextTable
from simpledb.connection import current_thread_key
from simpledb.cursor import Cursor
from simpledb.options import DatabaseOptions
from simpledb.query import Sql
from simpledb.transaction import Transaction, TransactionManager
from simpledb.transaction import TransactionState

logger = logging.getLogger(__name__)


class SimpleDb:
    """Handle holding connection options and the per-context connections.

    Examples
        db = SimpleDb(DatabaseOptions(drivername='sqlite', database='app.db'))
        db.run('CREATE TABLE article (id INTEGER PRIMARY KEY, title TEXT)')
        key = db.gen_sql().append('INSERT INTO article (title) VALUES (?)', 't').insert()
        title = db.gen_sql().append('SELECT title FROM article WHERE id = ?', key).select_string()
    """

    def __init__(self, options: DatabaseOptions,
                 context_key: Callable[[], Hashable] = current_thread_key) -> None:
        self.options = options
        self._dev_mode = options.dev_mode
        self.contexts = ContextTable(options, context_key=context_key)
        self.transactions = TransactionManager(self.contexts)

    def __repr__(self) -> str:
        return f'SimpleDb({self.options.drivername}, contexts={len(self.contexts)})'

    def __enter__(self) -> 'SimpleDb':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_all()

    @property
    def dev_mode(self) -> bool:
        """Echo each statement to the ``simpledb.sql`` logger before execution."""
        return self._dev_mode

    @dev_mode.setter
    def dev_mode(self, value: bool) -> None:
        self._dev_mode = bool(value)

    def set_dev_mode(self, value: bool) -> None:
        self.dev_mode = value

    def context(self) -> ConnectionContext:
        """The calling context's ConnectionContext, created on demand."""
        return self.contexts.acquire()

    def cursor(self) -> Cursor:
        """Cursor on the calling context's connection, opening it if needed."""
        return self.context().cursor(echo=self._dev_mode)

    def gen_sql(self) -> Sql:
        """Start a new statement."""
        return Sql(self)

    def run(self, sql: str, *params: Any) -> None:
        """Execute a statement, typically DDL, discarding any result."""
        self.gen_sql().append(sql, *params).update()

    def transaction_state(self) -> TransactionState:
        return self.transactions.state()

    def start_transaction(self) -> None:
        """Begin a transaction on the calling context's connection.

        Raises
            TransactionError: The context is already in a transaction
        """
        self.transactions.start_transaction()

    def commit(self) -> None:
        """Commit the calling context's transaction and return to autocommit."""
        self.transactions.commit()

    def rollback(self) -> None:
        """Roll back the calling context's transaction and return to autocommit."""
        self.transactions.rollback()

    def transaction(self) -> Transaction:
        """Context manager committing on success and rolling back on error.

        Examples
            with db.transaction():
                db.gen_sql().append('UPDATE article SET title = ?', 'x').update()
        """
        return Transaction(self.transactions)

    def close(self) -> None:
        """Close the calling context's connection, if any."""
        self.contexts.release()

    def close_all(self) -> None:
        """Close every context's connection."""
        self.contexts.close_all()


def connect(options: DatabaseOptions | dict[str, Any] | None = None,
            context_key: Callable[[], Hashable] = current_thread_key,
            **kw: Any) -> SimpleDb:
    """Create a database handle.

    Args:
        options: Can be:
                - DatabaseOptions object
                - Dictionary of options
                - None, with options given as keyword arguments
        context_key: Callable returning the key of the calling context
        **kw: Additional keyword arguments to override options

    Returns
        SimpleDb handle; no connection is opened until first use
    """
    if isinstance(options, DatabaseOptions):
        overrides = {f.name: kw.pop(f.name) for f in fields(options) if f.name in kw}
        if overrides:
            options = DatabaseOptions.from_dict({
                **{f.name: getattr(options, f.name) for f in fields(options)},
                **overrides,
            })
    else:
        options = DatabaseOptions.from_dict(options or {}, **kw)
    return SimpleDb(options, context_key=context_key)
