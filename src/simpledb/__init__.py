"""
Minimal database access layer for MySQL, PostgreSQL and SQLite.

Statements are composed with a single-use builder and executed on a
connection owned by the calling thread (or context):

    db = simpledb.connect(drivername='sqlite', database='app.db')
    rows = db.gen_sql().append('SELECT * FROM article WHERE id > ?', 0).select_rows()
"""
__version__ = '0.1.0'

from simpledb.client import SimpleDb, connect
from simpledb.connection import ConnectionContext, ContextTable
from simpledb.connection import dispose_all_engines
from simpledb.exceptions import ConnectionError, DatabaseError
from simpledb.exceptions import DbConnectionError, IntegrityError, MappingError
from simpledb.exceptions import ProgrammingError, QueryConsumedError
from simpledb.exceptions import StatementError, TransactionError
from simpledb.mapping import map_row, map_rows
from simpledb.options import DatabaseOptions
from simpledb.query import Sql
from simpledb.transaction import Transaction, TransactionManager
from simpledb.transaction import TransactionState
from simpledb.types import Column, RawRow

__all__ = [
    'SimpleDb',
    'connect',
    'ConnectionContext',
    'ContextTable',
    'dispose_all_engines',
    'DatabaseOptions',
    'Sql',
    'Transaction',
    'TransactionManager',
    'TransactionState',
    'Column',
    'RawRow',
    'map_row',
    'map_rows',
    'DatabaseError',
    'ConnectionError',
    'StatementError',
    'QueryConsumedError',
    'MappingError',
    'TransactionError',
    'DbConnectionError',
    'IntegrityError',
    'ProgrammingError',
]
