import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Self

from simpledb.strategy import get_available_dialects, get_strategy_class
from simpledb.strategy import is_supported_dialect

__all__ = [
    'DatabaseOptions',
]

logger = logging.getLogger(__name__)

_TRUE_STRINGS = {'1', 'true', 'yes', 'on'}


@dataclass
class DatabaseOptions:
    """Options

    supported driver names: `mysql`, `postgresql`, `sqlite`

    Connection defaults follow the driver: port 0 resolves to 3306 for
    MySQL and 5432 for PostgreSQL. ``timezone`` is applied as the session
    time zone on every new connection; set it to None to keep the server
    setting (the default). ``dev_mode`` echoes each statement before execution.
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    ssl: bool = False
    timezone: str | None = None
    charset: str = 'utf8mb4'
    timeout: int = 0
    dev_mode: bool = False

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            available = get_available_dialects()
            raise ValueError(f'drivername must be one of: {available}')
        strategy_cls = get_strategy_class(self.drivername)
        strategy_cls.validate_options(self)
        if not self.port:
            self.port = strategy_cls.default_port

    @classmethod
    def from_dict(cls, values: dict[str, Any], **kw: Any) -> Self:
        """Build options from a mapping, ignoring unknown keys.
        """
        names = {f.name for f in fields(cls)}
        merged = {**values, **kw}
        unknown = set(merged) - names
        if unknown:
            logger.debug(f'Ignoring unknown options: {sorted(unknown)}')
        return cls(**{k: v for k, v in merged.items() if k in names})

    @classmethod
    def from_env(cls, prefix: str = 'SIMPLEDB_', **kw: Any) -> Self:
        """Load options from environment variables, falling back to defaults.

        Recognized variables are the upper-cased field names with ``prefix``,
        e.g. SIMPLEDB_HOSTNAME, SIMPLEDB_PORT, SIMPLEDB_DEV_MODE.
        Keyword arguments override the environment.
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = os.getenv(f'{prefix}{f.name.upper()}')
            if raw is None:
                continue
            if f.name in {'port', 'timeout'}:
                values[f.name] = int(raw)
            elif f.name in {'ssl', 'dev_mode'}:
                values[f.name] = raw.strip().lower() in _TRUE_STRINGS
            elif f.name == 'timezone' and not raw.strip():
                values[f.name] = None
            else:
                values[f.name] = raw
        return cls.from_dict(values, **kw)
