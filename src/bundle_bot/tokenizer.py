"""Tokenizer for administrator commands."""

from __future__ import annotations

_QUOTES = frozenset({'"', "“", "”"})


def tokenize(text: str) -> list[str]:
    """Split ``text`` on whitespace, keeping double-quoted segments together.

    Apostrophes are ordinary characters because order ids contain them
    (``FY'S-123456``). Curly double quotes from phone keyboards count as
    quotes. An unterminated quote runs to the end of the input.

    >>> tokenize('update FY\\'S-1 CANCELLED "No stock"')
    ['update', "FY'S-1", 'CANCELLED', 'No stock']
    """

    tokens: list[str] = []
    current: list[str] = []
    in_quotes = False
    quoted = False

    for char in text:
        if char in _QUOTES:
            in_quotes = not in_quotes
            quoted = True
            continue
        if char.isspace() and not in_quotes:
            if current or quoted:
                tokens.append("".join(current))
            current = []
            quoted = False
            continue
        current.append(char)

    if current or quoted:
        tokens.append("".join(current))
    return tokens
