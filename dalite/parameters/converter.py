"""Placeholder rewriting from ``@name`` to driver-native parameter styles.

Callers write every statement with ``@name`` placeholders. Each placeholder
whose name is bound is rewritten to the driver's paramstyle. String literals,
quoted identifiers, dollar-quoted bodies and comments are copied verbatim,
as are ``@name`` tokens with no bound value (MySQL user variables) and
``@@`` system variables.
"""

import re
from collections.abc import Collection
from typing import Final

from dalite.parameters.types import ParameterStyle

__all__ = ("convert_placeholders", "extract_placeholder_names")


_QUOTED_PATTERNS: Final = r"""
    (?P<squote>'(?:[^'\\]|\\.|'')*') |
    (?P<dquote>"(?:[^"\\]|\\.|"")*") |
    (?P<backtick>`[^`]*`) |
"""
_BRACKET_PATTERN: Final = r"""
    (?P<bracket>\[[^\]\r\n]*\]) |
"""
_TOKEN_PATTERNS: Final = r"""
    (?P<dollar_quoted_string>\$(?P<dollar_quote_tag_inner>\w*)\$[\s\S]*?\$(?P=dollar_quote_tag_inner)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?\*/) |
    (?P<system_variable>@@\w+) |
    (?P<named_at>@(?P<at_name>[A-Za-z_]\w*))
"""

# ``[...]`` is an identifier quote only on SQL Server; elsewhere it
# is an array constructor or subscript whose placeholders must be rewritten.
_PLACEHOLDER_REGEX: Final = re.compile(_QUOTED_PATTERNS + _TOKEN_PATTERNS, re.VERBOSE)
_BRACKETED_PLACEHOLDER_REGEX: Final = re.compile(_QUOTED_PATTERNS + _BRACKET_PATTERN + _TOKEN_PATTERNS, re.VERBOSE)


def _scanner(bracket_identifiers: bool) -> "re.Pattern[str]":
    return _BRACKETED_PLACEHOLDER_REGEX if bracket_identifiers else _PLACEHOLDER_REGEX


def _placeholder(name: str, style: ParameterStyle) -> str:
    if style is ParameterStyle.NAMED_PYFORMAT:
        return f"%({name})s"
    if style is ParameterStyle.NAMED_COLON:
        return f":{name}"
    if style is ParameterStyle.QMARK:
        return "?"
    return f"@{name}"


def extract_placeholder_names(sql: str, *, bracket_identifiers: bool = False) -> "list[str]":
    """Return every ``@name`` placeholder outside literals and comments, in order of appearance."""
    scanner = _scanner(bracket_identifiers)
    return [match.group("at_name") for match in scanner.finditer(sql) if match.group("named_at")]


def convert_placeholders(
    sql: str, names: "Collection[str]", style: ParameterStyle, *, bracket_identifiers: bool = False
) -> "tuple[str, list[str]]":
    """Rewrite bound ``@name`` placeholders into ``style``.

    Name matching is case-insensitive; the rewritten placeholder uses the
    spelling of the bound name. For :attr:`ParameterStyle.NAMED_PYFORMAT`
    every literal ``%`` is doubled, because pyformat drivers interpolate the
    whole statement text once parameters are supplied.

    Args:
        sql: Statement text using ``@name`` placeholders.
        names: Names of the bound parameters.
        style: Target driver paramstyle.
        bracket_identifiers: Treat ``[...]`` as a quoted identifier and copy it
            verbatim, as SQL Server does.

    Returns:
        The rewritten statement and the bound names it references. For
        :attr:`ParameterStyle.QMARK` the list has one entry per placeholder,
        in order, so repeated names appear repeatedly; otherwise each name
        appears once in order of first use.
    """
    lookup = {name.lower(): name for name in names}
    escape_percent = style is ParameterStyle.NAMED_PYFORMAT
    pieces: list[str] = []
    used: list[str] = []
    position = 0

    def _copy(text: str) -> None:
        pieces.append(text.replace("%", "%%") if escape_percent else text)

    for match in _scanner(bracket_identifiers).finditer(sql):
        _copy(sql[position : match.start()])
        position = match.end()
        bound_name = lookup.get(match.group("at_name").lower()) if match.group("named_at") else None
        if bound_name is None:
            _copy(match.group(0))
            continue
        pieces.append(_placeholder(bound_name, style))
        if style is ParameterStyle.QMARK or bound_name not in used:
            used.append(bound_name)
    _copy(sql[position:])
    return "".join(pieces), used
