"""Minimal CSV splitting for the import endpoint.

Lines are split on line breaks, then on commas, and every field is trimmed.
Quoted fields are NOT supported: a comma or newline inside a value always
splits it.
"""

from __future__ import annotations

import re

from cashledger.app.core.errors import EmptyInputError

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def parse_csv(text: str) -> list[list[str]]:
    """Return the non-blank lines of *text* as lists of trimmed fields.

    Raises :class:`EmptyInputError` when no line survives.
    """
    rows: list[list[str]] = []
    for line in _LINE_BREAK.split(text.lstrip("\ufeff")):
        if not line.strip():
            continue
        rows.append([field.strip() for field in line.split(",")])
    if not rows:
        raise EmptyInputError()
    return rows
