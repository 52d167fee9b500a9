"""
Positional placeholder handling.

SQL is written with ``?`` markers regardless of backend. This module
tokenizes the text once so that markers inside string literals and quoted
identifiers are never touched:

    SQL → Tokenize → Count / Expand IN markers → Standardize for driver

Main entry points:
- `count_placeholders()` - Number of markers awaiting a bound value
- `expand_placeholder()` - Replace the single marker of an IN fragment
- `standardize_placeholders()` - Convert ``?`` to the driver paramstyle
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

from simpledb.exceptions import StatementError

PLACEHOLDER = '?'


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    COMMENT = auto()
    PLACEHOLDER = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^'\\]|''|\\.)*')
    |(?P<ident>"(?:[^"]|"")*"|`(?:[^`]|``)*`)
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('ident'):
            ttype = TokenType.QUOTED_IDENTIFIER
        elif match.group('comment'):
            ttype = TokenType.COMMENT
        else:
            ttype = TokenType.PLACEHOLDER

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def count_placeholders(sql: str | None) -> int:
    """Count the positional markers outside literals, identifiers and comments.
    """
    if not sql or PLACEHOLDER not in sql:
        return 0
    return sum(1 for t in tokenize_sql(sql) if t.type == TokenType.PLACEHOLDER)


def make_placeholders(count: int) -> str:
    """Return ``count`` comma-joined markers, e.g. ``?, ?, ?``.
    """
    return ', '.join([PLACEHOLDER] * count)


def expand_placeholder(fragment: str, count: int) -> str:
    """Replace the single marker in ``fragment`` with ``count`` markers.

    >>> expand_placeholder('id IN (?)', 3)
    'id IN (?, ?, ?)'

    Raises
        StatementError: If the fragment does not hold exactly one marker
    """
    tokens = tokenize_sql(fragment)
    markers = [t for t in tokens if t.type == TokenType.PLACEHOLDER]
    if len(markers) != 1:
        raise StatementError(
            f'IN fragment must contain exactly one {PLACEHOLDER!r} marker, '
            f'found {len(markers)}: {fragment}'
        )
    marker = markers[0]
    return fragment[:marker.start] + make_placeholders(count) + fragment[marker.end:]


def standardize_placeholders(sql: str, paramstyle: str = 'qmark') -> str:
    """Convert ``?`` markers to the driver paramstyle.

    For ``format``/``pyformat`` drivers every literal ``%`` is doubled,
    including inside string literals, because the driver interpolates the
    whole statement text.

    >>> standardize_placeholders("select * from t where a = ? and b like 'x%'", 'format')
    "select * from t where a = %s and b like 'x%%'"
    """
    if not sql or paramstyle == 'qmark':
        return sql

    if paramstyle not in {'format', 'pyformat'}:
        raise ValueError(f'Unsupported paramstyle: {paramstyle}')

    if PLACEHOLDER not in sql and '%' not in sql:
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.PLACEHOLDER:
            result.append('%s')
        else:
            result.append(token.text.replace('%', '%%'))
    return ''.join(result)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
