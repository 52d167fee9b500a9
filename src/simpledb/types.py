"""
Consolidated type handling for query results.

This module provides:
- to_canonical: Fold driver values into the canonical value set
- as_long / as_float / as_string / as_boolean / as_datetime: Scalar readers
- Column: Column metadata from cursor descriptions
- RowAdapter: Convert driver rows to RawRow dictionaries

Canonical values are None, int, float, str, bool, datetime.datetime and
bytes. Every raw driver value passes through `to_canonical` before it is
handed to a caller or to the record mapper.
"""
import datetime
import decimal
import logging
import math
import uuid
from typing import Any, Self

import dateutil.parser
from simpledb.exceptions import MappingError

logger = logging.getLogger(__name__)

RawRow = dict[str, Any]

TRUE_STRINGS: set[str] = {'1', 'true', 't', 'yes', 'y', 'on'}
FALSE_STRINGS: set[str] = {'0', 'false', 'f', 'no', 'n', 'off'}


def flag_to_bool(value: bytes | bytearray | memoryview) -> bool:
    """True iff the first byte is non-zero; an empty sequence is False.
    """
    data = bytes(value)
    return len(data) > 0 and data[0] != 0


def _convert_decimal(value: decimal.Decimal) -> int | float:
    if value.is_finite() and value.as_tuple().exponent >= 0:
        return int(value)
    return float(value)


def to_canonical(value: Any, flag: bool = False) -> Any:
    """Convert a driver value to its canonical representation.

    Args:
        value: Value as returned by the DBAPI cursor
        flag: The column holds a single-bit flag

    Returns
        None, int, float, str, bool, datetime.datetime or bytes
    """
    if value is None:
        return None

    if isinstance(value, (bytes, bytearray, memoryview)):
        if flag:
            return flag_to_bool(value)
        return bytes(value)

    if isinstance(value, (bool, int, float, str)):
        return value

    if isinstance(value, datetime.datetime):
        return value

    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())

    if isinstance(value, decimal.Decimal):
        return _convert_decimal(value)

    if isinstance(value, (datetime.time, datetime.timedelta, uuid.UUID)):
        return str(value)

    return value


def _mapping_error(value: Any, target: str) -> MappingError:
    return MappingError(f'Cannot convert {type(value).__name__} value {value!r} to {target}')


def as_long(value: Any) -> int | None:
    """Read a value as a 64-bit integer; None stays None.

    Floats and decimals are truncated toward zero, numeric strings are
    parsed and byte strings are read as big-endian bit fields.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise _mapping_error(value, 'long')
        return int(value)
    if isinstance(value, decimal.Decimal):
        if not value.is_finite():
            raise _mapping_error(value, 'long')
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return as_long(float(text))
        except ValueError:
            raise _mapping_error(value, 'long') from None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return int.from_bytes(bytes(value), 'big')
    raise _mapping_error(value, 'long')


def as_float(value: Any) -> float | None:
    """Read a value as a float; None stays None.
    """
    if value is None:
        return None
    if isinstance(value, (bool, int, float, decimal.Decimal)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            raise _mapping_error(value, 'float') from None
    raise _mapping_error(value, 'float')


def as_boolean(value: Any) -> bool | None:
    """Read a value as a boolean; None stays None.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, decimal.Decimal)):
        return value != 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        try:
            return float(text) != 0
        except ValueError:
            raise _mapping_error(value, 'boolean') from None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return flag_to_bool(value)
    raise _mapping_error(value, 'boolean')


def as_string(value: Any) -> str | None:
    """Read a value as text; None stays None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, datetime.datetime):
        return value.isoformat(' ')
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode('utf-8')
        except UnicodeDecodeError:
            raise _mapping_error(value, 'string') from None
    return str(value)


def as_datetime(value: Any) -> datetime.datetime | None:
    """Read a value as a date-time; None stays None.

    Dates are folded to midnight and ISO 8601 strings are parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, str):
        try:
            return dateutil.parser.isoparse(value.strip())
        except ValueError:
            raise _mapping_error(value, 'datetime') from None
    raise _mapping_error(value, 'datetime')


# Column - Metadata from cursor descriptions

class Column:
    """Result column metadata."""

    def __init__(self, name: str, type_code: Any = None, is_flag: bool = False):
        self.name = name
        self.type_code = type_code
        self.is_flag = is_flag

    @classmethod
    def from_cursor_description(cls, description_item: Any, strategy: Any) -> Self:
        """Create a Column from cursor description item."""
        return cls(
            name=str(description_item[0]),
            type_code=description_item[1] if len(description_item) > 1 else None,
            is_flag=strategy.is_flag_column(description_item),
        )

    def __repr__(self) -> str:
        return f'Column(name={self.name!r}, type_code={self.type_code!r}, is_flag={self.is_flag})'


def columns_from_cursor_description(description: Any, strategy: Any) -> list[Column]:
    """Create Column objects from cursor description."""
    if description is None:
        return []
    return [Column.from_cursor_description(desc, strategy) for desc in description]


# Row Adapters - Convert driver rows to RawRow dictionaries

class RowAdapter:
    """Convert a driver row tuple into a RawRow."""

    def __init__(self, columns: list[Column], row: Any):
        self.columns = columns
        self.row = row

    def to_dict(self) -> RawRow:
        """Convert row to an ordered dictionary keyed by column label."""
        return {
            col.name: to_canonical(value, col.is_flag)
            for col, value in zip(self.columns, self.row)
        }

    def get_value(self, index: int = 0) -> Any:
        """Get the canonical value of one column, by position."""
        return to_canonical(self.row[index], self.columns[index].is_flag)
