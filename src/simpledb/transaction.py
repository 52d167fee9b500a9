"""
Transaction handling for connection contexts.

Each context moves between two states:

    AUTOCOMMIT --start_transaction--> IN_TRANSACTION --commit/rollback--> AUTOCOMMIT

Statement failures never roll back on their own; the caller decides. The
`Transaction` context manager is the opt-in form that commits on success
and rolls back on an exception.
"""
import logging
from enum import Enum
from typing import Any

from simpledb.connection import ContextTable
from simpledb.exceptions import TransactionError

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    AUTOCOMMIT = 'autocommit'
    IN_TRANSACTION = 'in_transaction'


class TransactionManager:
    """Begin, commit and roll back work on the calling context's connection.
    """

    def __init__(self, contexts: ContextTable) -> None:
        self.contexts = contexts

    def state(self) -> TransactionState:
        """Transaction state of the calling context."""
        context = self.contexts.get()
        if context is not None and context.in_transaction:
            return TransactionState.IN_TRANSACTION
        return TransactionState.AUTOCOMMIT

    def start_transaction(self) -> None:
        """Open the context's connection if needed and disable autocommit.

        Raises
            TransactionError: The context is already in a transaction
        """
        context = self.contexts.acquire()
        if context.in_transaction:
            raise TransactionError(f'Context {context.key} is already in a transaction')
        context.set_autocommit(False)
        context.in_transaction = True
        logger.debug(f'Started transaction for context {context.key}')

    def commit(self) -> None:
        """Commit and return to autocommit. No-op without an open connection.
        """
        context = self.contexts.get()
        if context is None or context.sa_connection is None:
            return
        try:
            context.commit()
            logger.debug(f'Committed transaction for context {context.key}')
        finally:
            self._finish(context)

    def rollback(self) -> None:
        """Roll back and return to autocommit. No-op without an open connection.
        """
        context = self.contexts.get()
        if context is None or context.sa_connection is None:
            return
        try:
            context.rollback()
            logger.debug(f'Rolled back transaction for context {context.key}')
        finally:
            self._finish(context)

    def _finish(self, context: Any) -> None:
        try:
            if context.sa_connection is not None:
                context.set_autocommit(True)
        finally:
            context.in_transaction = False


class Transaction:
    """Context manager for running multiple statements in a transaction.

    Nested transactions within the same context are not supported.

    Examples
        with Transaction(manager):
            db.gen_sql().append('DELETE FROM article WHERE id = ?', 1).delete()
            db.gen_sql().append('UPDATE article SET title = ?', 'x').update()
    """

    def __init__(self, manager: TransactionManager) -> None:
        self.manager = manager

    def __enter__(self) -> 'Transaction':
        self.manager.start_transaction()
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        if exc_type is not None:
            logger.warning('Rolling back the current transaction')
            self.manager.rollback()
        else:
            self.manager.commit()
