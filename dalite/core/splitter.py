"""Split a multi-statement script into individual statements.

Tokenization is delegated to sqlglot so semicolons inside string literals,
quoted identifiers and comments never split a statement. ``BEGIN ... END`` and
``CASE ... END`` bodies are kept whole.
"""

from functools import lru_cache
from typing import Final

from sqlglot import Dialect
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from dalite.exceptions import InvalidArgumentError

__all__ = ("split_sql_script",)

_BLOCK_STARTERS: Final = frozenset({TokenType.BEGIN, TokenType.CASE})
_TRANSACTION_WORDS: Final = frozenset({"TRANSACTION", "TRAN", "WORK", "DISTRIBUTED"})


def _opens_block(tokens: list, position: int) -> bool:
    token = tokens[position]
    if token.token_type is TokenType.CASE:
        return True
    following = tokens[position + 1] if position + 1 < len(tokens) else None
    if following is None or following.token_type is TokenType.SEMICOLON:
        return False
    return following.text.upper() not in _TRANSACTION_WORDS


@lru_cache(maxsize=128)
def split_sql_script(script: str, dialect: "str | None" = None) -> "tuple[str, ...]":
    """Split ``script`` on top-level statement terminators.

    Args:
        script: One or more statements.
        dialect: sqlglot dialect name used for tokenization.

    Raises:
        InvalidArgumentError: If the script cannot be tokenized.

    Returns:
        The non-empty statements, without their terminating semicolons.
    """
    try:
        tokens = Dialect.get_or_raise(dialect).tokenize(script)
    except TokenError as exc:
        msg = f"Unable to split SQL script: {exc}"
        raise InvalidArgumentError(msg) from exc

    statements: list[str] = []
    depth = 0
    start = 0
    has_content = False
    for position, token in enumerate(tokens):
        if token.token_type is TokenType.SEMICOLON and depth == 0:
            if has_content:
                statements.append(script[start : token.start].strip())
            start = token.end + 1
            has_content = False
            continue
        has_content = True
        if token.token_type in _BLOCK_STARTERS and _opens_block(tokens, position):
            depth += 1
        elif token.token_type is TokenType.END and depth > 0:
            depth -= 1

    if has_content:
        tail = script[start:].strip()
        if tail:
            statements.append(tail)
    return tuple(statements)
