"""
Map RawRow dictionaries onto caller-defined record types.

A record type is either

- a dataclass, whose fields are matched by exact name against column
  labels, or
- any class exposing a ``from_row(row)`` classmethod, which is handed the
  RawRow untouched.

For dataclasses a `RecordMapping` descriptor is built once per type from
the declared fields and their resolved annotations and then reused for
every row.

Examples
    @dataclass
    class Article:
        id: int | None = None
        title: str | None = None
        isBlind: bool = False

    article = map_row({'id': 1, 'title': 't', 'extra': 0}, Article)
"""
import dataclasses
import datetime
import decimal
import logging
import types
from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

from simpledb.exceptions import MappingError
from simpledb.types import RawRow, as_boolean, as_datetime, as_float, as_long
from simpledb.types import as_string

logger = logging.getLogger(__name__)

T = TypeVar('T')

_ZERO_VALUES: dict[type, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
}


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    raise MappingError(f'Cannot convert {type(value).__name__} value {value!r} to bytes')


def _as_date(value: Any) -> datetime.date:
    return as_datetime(value).date()


def _as_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, bool):
        raise MappingError(f'Cannot convert bool value {value!r} to decimal')
    try:
        return decimal.Decimal(str(value))
    except decimal.InvalidOperation:
        raise MappingError(f'Cannot convert {type(value).__name__} value {value!r} to decimal') from None


_COERCERS: dict[type, Callable[[Any], Any]] = {
    bool: as_boolean,
    int: as_long,
    float: as_float,
    str: as_string,
    bytes: _as_bytes,
    datetime.datetime: as_datetime,
    datetime.date: _as_date,
    decimal.Decimal: _as_decimal,
}


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Split ``X | None`` into (X, True); other annotations pass through.
    """
    if get_origin(annotation) in {Union, types.UnionType}:
        args = get_args(annotation)
        if type(None) in args:
            rest = [a for a in args if a is not type(None)]
            if len(rest) == 1:
                return rest[0], True
            return Union[tuple(rest)], True
    return annotation, annotation is Any


@dataclasses.dataclass(frozen=True, slots=True)
class FieldRule:
    """How one record field is filled from a row."""
    name: str
    annotation: Any
    nullable: bool
    init: bool
    coerce: Callable[[Any], Any] | None
    default: Any
    default_factory: Any

    def zero(self) -> Any:
        """Value for a field that received nothing from the row."""
        if self.default is not dataclasses.MISSING:
            return self.default
        if self.default_factory is not dataclasses.MISSING:
            return self.default_factory()
        return _ZERO_VALUES.get(self.annotation)

    def convert(self, value: Any) -> Any:
        if self.coerce is None:
            return value
        return self.coerce(value)


class RecordMapping:
    """Per-type descriptor listing field rules for a dataclass.
    """

    def __init__(self, record_type: type, rules: list[FieldRule]) -> None:
        self.record_type = record_type
        self.rules = rules

    @classmethod
    def build(cls, record_type: type) -> 'RecordMapping':
        """Collect field rules from the dataclass declaration.
        """
        try:
            hints = get_type_hints(record_type)
        except (NameError, TypeError) as exc:
            raise MappingError(f'Cannot resolve annotations of {record_type.__name__}: {exc}') from exc

        rules = []
        for field in dataclasses.fields(record_type):
            annotation, nullable = _unwrap_optional(hints.get(field.name, Any))
            rules.append(FieldRule(
                name=field.name,
                annotation=annotation,
                nullable=nullable,
                init=field.init,
                coerce=_COERCERS.get(annotation),
                default=field.default,
                default_factory=field.default_factory,
            ))
        logger.debug(f'Built record mapping for {record_type.__name__}: {[r.name for r in rules]}')
        return cls(record_type, rules)

    def populate(self, row: RawRow) -> Any:
        """Create one record from a RawRow.

        Unknown columns are ignored. A NULL column leaves a non-nullable
        field at its default.
        """
        kwargs: dict[str, Any] = {}
        late: dict[str, Any] = {}

        for rule in self.rules:
            target = kwargs if rule.init else late
            if rule.name not in row:
                if rule.init:
                    target[rule.name] = rule.zero()
                continue

            value = row[rule.name]
            if value is None:
                if rule.nullable:
                    target[rule.name] = None
                elif rule.init:
                    target[rule.name] = rule.zero()
                continue

            try:
                target[rule.name] = rule.convert(value)
            except MappingError as exc:
                raise MappingError(
                    f'Cannot map column {rule.name!r} onto '
                    f'{self.record_type.__name__}.{rule.name}: {exc}'
                ) from exc

        record = self.record_type(**kwargs)
        for name, value in late.items():
            object.__setattr__(record, name, value)
        return record


@lru_cache(maxsize=128)
def get_mapping(record_type: type) -> RecordMapping:
    """Get the cached mapping descriptor for a dataclass type."""
    return RecordMapping.build(record_type)


def map_row(row: RawRow, record_type: type[T]) -> T:
    """Map one RawRow onto ``record_type``.

    Raises
        MappingError: If the type is not mappable or a matched column
            cannot be coerced to its field type
    """
    from_row = getattr(record_type, 'from_row', None)
    if callable(from_row):
        return from_row(row)

    if not (isinstance(record_type, type) and dataclasses.is_dataclass(record_type)):
        raise MappingError(
            f'{record_type!r} is not mappable: expected a dataclass '
            'or a class with a from_row() classmethod'
        )
    return get_mapping(record_type).populate(row)


def map_rows(rows: list[RawRow], record_type: type[T]) -> list[T]:
    """Map every RawRow onto ``record_type``, preserving order."""
    return [map_row(row, record_type) for row in rows]
