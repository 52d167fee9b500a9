"""
PostgreSQL-specific strategy implementation (psycopg 3 driver).

Generated keys are read from ``INSERT ... RETURNING`` rows since psycopg
does not report a last row id.
"""
import logging
from typing import TYPE_CHECKING, Any

import psycopg
import sqlalchemy as sa
from simpledb.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from simpledb.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    default_port = 5432
    paramstyle = 'format'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {'sslmode': 'require' if options.ssl else 'disable'}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query,
        )

    def configure_connection(self, raw_conn: Any, options: 'DatabaseOptions') -> None:
        """Enable autocommit and set the session time zone and encoding.
        """
        if raw_conn.info.transaction_status != psycopg.pq.TransactionStatus.IDLE:
            raw_conn.rollback()
        self.enable_autocommit(raw_conn)
        with raw_conn.cursor() as cursor:
            cursor.execute("SELECT set_config('client_encoding', 'UTF8', false)")
            if options.timezone:
                cursor.execute("SELECT set_config('TimeZone', %s, false)", (options.timezone,))
                logger.debug(f'Session time zone set to {options.timezone}')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'database']
