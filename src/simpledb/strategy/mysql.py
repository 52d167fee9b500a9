"""
MySQL-specific strategy implementation (PyMySQL driver).

Handles:
- Connection descriptor defaults (port 3306, utf8mb4, SSL disabled)
- Session time zone on connect
- Autocommit through PyMySQL's ``autocommit()`` method
- BIT columns surfaced as flags
"""
import logging
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from pymysql.constants import FIELD_TYPE
from simpledb.strategy.base import DatabaseStrategy, register_strategy

if TYPE_CHECKING:
    from simpledb.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    default_port = 3306
    paramstyle = 'pyformat'

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL."""
        return sa.URL.create(
            drivername='mysql+pymysql',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query={'charset': options.charset},
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        connect_args: dict[str, Any] = {}
        if options.ssl:
            connect_args['ssl'] = {'check_hostname': True}
        else:
            connect_args['ssl_disabled'] = True
        if options.timeout:
            connect_args['connect_timeout'] = options.timeout
        return {'connect_args': connect_args}

    def configure_connection(self, raw_conn: Any, options: 'DatabaseOptions') -> None:
        """Enable autocommit and set the session time zone.
        """
        self.enable_autocommit(raw_conn)
        if options.timezone:
            with raw_conn.cursor() as cursor:
                cursor.execute('SET time_zone = %s', (options.timezone,))
            logger.debug(f'Session time zone set to {options.timezone}')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for MySQL.
        """
        raw_conn.autocommit(True)

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for MySQL.
        """
        raw_conn.autocommit(False)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'database']

    def is_flag_column(self, description_item: Any) -> bool:
        """BIT columns come back from PyMySQL as byte strings.
        """
        return description_item[1] == FIELD_TYPE.BIT
