"""
Connection handling with SQLAlchemy.

This module provides:
1. A process-wide engine registry keyed by connection options
2. `ConnectionContext`, one lazily opened DBAPI connection per logical
   execution context, with call counting and timing
3. `ContextTable`, the explicit mapping of context keys to contexts

Engines use `NullPool`, so closing a context closes its driver connection.
Connections are never closed implicitly: not when a thread exits and not
when a context is garbage collected.
"""
import atexit
import itertools
import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from simpledb.cursor import Cursor
from simpledb.exceptions import ConnectionError, DatabaseError, DriverError
from simpledb.exceptions import translate_error
from simpledb.options import DatabaseOptions
from simpledb.strategy import DatabaseStrategy, get_strategy

__all__ = [
    'ConnectionContext',
    'ContextTable',
    'current_thread_key',
    'get_engine_for_options',
    'dispose_all_engines',
]

logger = logging.getLogger(__name__)

# Thread-safe engine registry
_engine_registry: dict[str, Engine] = {}
_engine_registry_lock = threading.RLock()


def get_engine_for_options(options: DatabaseOptions, engine_factory=sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Get or create a SQLAlchemy engine for the given options.

    Args:
        options: DatabaseOptions object
        engine_factory: Function to create engines (defaults to sqlalchemy.create_engine)
        **kwargs: Additional arguments passed to engine factory

    Returns
        sqlalchemy.engine.Engine: SQLAlchemy engine
    """
    strategy = get_strategy(options.drivername)
    url = strategy.build_connection_url(options)

    engine_kwargs: dict[str, Any] = {'echo': False, 'poolclass': NullPool}
    engine_kwargs.update(strategy.get_engine_kwargs(options))
    engine_kwargs.update(kwargs)

    key = f'{url.render_as_string(hide_password=False)}_{sorted(engine_kwargs.items(), key=str)}'

    with _engine_registry_lock:
        if key in _engine_registry:
            logger.debug(f'Using existing engine for {options.drivername}')
            return _engine_registry[key]

        engine = engine_factory(url, **engine_kwargs)
        _engine_registry[key] = engine
        logger.debug(f'Created new engine for {options.drivername}')
        return engine


def dispose_all_engines() -> None:
    """Dispose all engines in the registry."""
    with _engine_registry_lock:
        for engine in _engine_registry.values():
            engine.dispose()
        _engine_registry.clear()
        logger.debug('All database engines disposed')


# Register cleanup function to run at program exit
atexit.register(dispose_all_engines)

# Per-thread context keys. Unlike thread idents they are never reused.
_thread_keys = threading.local()
_key_counter = itertools.count(1)
_key_counter_lock = threading.Lock()


def current_thread_key() -> int:
    """Key of the calling thread, unique for the life of the process."""
    key = getattr(_thread_keys, 'key', None)
    if key is None:
        with _key_counter_lock:
            key = next(_key_counter)
        _thread_keys.key = key
    return key


class ConnectionContext:
    """Holds at most one open connection for one execution context.

    The connection is opened on first use and kept until `close` is
    called. Execution statistics are tracked across its lifetime.
    """

    def __init__(self, key: Hashable, options: DatabaseOptions) -> None:
        self.key = key
        self.options = options
        self.strategy: DatabaseStrategy = get_strategy(options.drivername)
        self.sa_connection = None
        self.in_transaction = False
        self.calls = 0
        self.time = 0

    @property
    def driver_connection(self) -> Any:
        """The unwrapped driver connection, or None when not open."""
        if self.sa_connection is None:
            return None
        return self.sa_connection.driver_connection

    @property
    def is_open(self) -> bool:
        conn = self.driver_connection
        return conn is not None and not self.strategy.is_closed(conn)

    def connect(self) -> Any:
        """Return the open driver connection, opening it if needed.

        A connection found closed while outside a transaction is replaced.

        Raises
            ConnectionError: The backend cannot be reached
        """
        if self.is_open:
            return self.driver_connection
        if self.sa_connection is not None:
            if self.in_transaction:
                raise ConnectionError(f'Connection lost during transaction in context {self.key}')
            self._discard()

        engine = get_engine_for_options(self.options)
        try:
            self.sa_connection = engine.raw_connection()
        except (sa.exc.DBAPIError, *DriverError) as exc:
            raise ConnectionError(f'Cannot connect to {self.options.drivername} database: {exc}') from exc

        try:
            self.strategy.configure_connection(self.driver_connection, self.options)
        except DriverError as exc:
            self._discard()
            raise translate_error(exc) from exc

        logger.debug(f'Opened {self.strategy.dialect_name} connection for context {self.key}')
        return self.driver_connection

    def cursor(self, echo: bool = False) -> Cursor:
        """Get a wrapped cursor on this context's connection."""
        conn = self.connect()
        try:
            dbapi_cursor = conn.cursor()
        except DriverError as exc:
            raise translate_error(exc) from exc
        return Cursor(dbapi_cursor, self, self.strategy, echo=echo)

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics

        Args:
            elapsed: Time in seconds that the query took to execute
        """
        self.time += elapsed
        self.calls += 1

    def set_autocommit(self, enabled: bool) -> None:
        conn = self.connect()
        try:
            if enabled:
                self.strategy.enable_autocommit(conn)
            else:
                self.strategy.disable_autocommit(conn)
        except DriverError as exc:
            raise translate_error(exc) from exc

    def commit(self) -> None:
        try:
            self.driver_connection.commit()
        except DriverError as exc:
            raise translate_error(exc) from exc

    def rollback(self) -> None:
        try:
            self.driver_connection.rollback()
        except DriverError as exc:
            raise translate_error(exc) from exc

    def _discard(self) -> None:
        """Drop a connection reference without talking to the backend."""
        sa_connection, self.sa_connection = self.sa_connection, None
        self.in_transaction = False
        if sa_connection is None:
            return
        try:
            sa_connection.invalidate()
        except DriverError as exc:
            logger.debug(f'Error discarding connection for context {self.key}: {exc}')

    def close(self) -> None:
        """Close the connection; pending transaction work is discarded.

        After closing, logs statistics about query execution.
        """
        if self.sa_connection is None:
            return
        sa_connection, self.sa_connection = self.sa_connection, None
        self.in_transaction = False
        try:
            sa_connection.close()
        except DriverError as exc:
            raise translate_error(exc) from exc
        logger.debug(f'Context {self.key} closed: {self.calls} queries in {self.time:.2f}s '
                     f'(avg: {self.time/max(1, self.calls):.3f}s per query)')


class ContextTable:
    """Mapping of context key to ConnectionContext.

    The table lock guards insertion and removal only; a context is used by
    its owner alone, so execution is never serialized.
    """

    def __init__(self, options: DatabaseOptions,
                 context_key: Callable[[], Hashable] = current_thread_key) -> None:
        self.options = options
        self.context_key = context_key
        self._contexts: dict[Hashable, ConnectionContext] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._contexts

    def current_key(self) -> Hashable:
        return self.context_key()

    def acquire(self, key: Hashable | None = None) -> ConnectionContext:
        """Get the context for ``key`` (default: the calling context), creating it.
        """
        if key is None:
            key = self.current_key()
        with self._lock:
            context = self._contexts.get(key)
            if context is None:
                context = ConnectionContext(key, self.options)
                self._contexts[key] = context
                logger.debug(f'Created connection context {key}')
            return context

    def get(self, key: Hashable | None = None) -> ConnectionContext | None:
        """Get the context for ``key`` without creating it."""
        if key is None:
            key = self.current_key()
        with self._lock:
            return self._contexts.get(key)

    def release(self, key: Hashable | None = None) -> None:
        """Close and forget the context for ``key``. Unknown keys are ignored.
        """
        if key is None:
            key = self.current_key()
        with self._lock:
            context = self._contexts.pop(key, None)
        if context is not None:
            context.close()

    def close_all(self) -> None:
        """Close every context in the table.

        Every context is closed even if some fail; the first failure is
        raised afterwards.
        """
        with self._lock:
            contexts = list(self._contexts.values())
            self._contexts.clear()
        first_error = None
        for context in contexts:
            try:
                context.close()
            except DatabaseError as exc:
                logger.warning(f'Error closing context {context.key}: {exc}')
                first_error = first_error or exc
        if first_error is not None:
            raise first_error
        logger.debug(f'Closed {len(contexts)} connection contexts')
