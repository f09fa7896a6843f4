"""Statement normalizer: strip comments, collapse whitespace, split on ';'.

Purely lexical. Quoted string literals are not recognised, so a ';' or a
comment marker inside a literal is treated like real syntax.
"""

from __future__ import annotations

import re

_LINE_COMMENT = re.compile(r"--[^\r\n]*")
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)

# A token, a line break, then an uppercase letter: treat the break as a
# statement boundary for submissions that omit semicolons.
_NEWLINE_BOUNDARY = re.compile(r"([^;\s])\s*\n\s*([A-Z])")

_WHITESPACE = re.compile(r"\s+")


def normalize_sql(raw: str) -> str:
    """Remove comments and collapse whitespace, keeping original casing."""
    text = _LINE_COMMENT.sub("", raw)
    text = _BLOCK_COMMENT.sub("", text)
    text = _NEWLINE_BOUNDARY.sub(r"\1; \2", text)
    return _WHITESPACE.sub(" ", text).strip()


def split_statements(raw: str) -> list[str]:
    """Normalize, upper-case and split into non-empty statements, in order."""
    normalized = normalize_sql(raw).upper()
    return [s.strip() for s in normalized.split(";") if s.strip()]
