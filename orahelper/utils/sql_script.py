"""
SQL*Plus-style script splitting for the ``orahelper run`` command.

Rules:
  - A line holding only ``/`` ends the current statement.
  - Outside PL/SQL, a line ending in ``;`` ends the statement; the ``;`` is
    dropped because Oracle rejects it on plain SQL.
  - A statement starting with ``BEGIN``, ``DECLARE`` or ``CREATE [OR
    REPLACE] PROCEDURE|FUNCTION|PACKAGE|TRIGGER|TYPE`` is PL/SQL: its
    semicolons are kept and only ``/`` ends it.
  - Blank lines and ``--`` comment lines between statements are ignored.
  - Text left over at end of file is the last statement.
"""

from __future__ import annotations

import re
from typing import Iterable

_PLSQL_START_RE = re.compile(
    r"^\s*(BEGIN|DECLARE|CREATE\s+(OR\s+REPLACE\s+)?"
    r"(PROCEDURE|FUNCTION|PACKAGE|TRIGGER|TYPE)\b)",
    re.IGNORECASE,
)


def split_statements(lines: Iterable[str]) -> list[str]:
    """Split script ``lines`` into executable statements, in order."""
    statements: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        text = "\n".join(buffer).strip()
        if text:
            statements.append(text)
        buffer.clear()

    for raw in lines:
        line = raw.rstrip("\r\n")
        stripped = line.strip()

        if not buffer and (not stripped or stripped.startswith("--")):
            continue

        if stripped == "/":
            flush()
            continue

        buffer.append(line)
        in_plsql = bool(_PLSQL_START_RE.match(buffer[0]))
        if not in_plsql and stripped.endswith(";"):
            buffer[-1] = line.rstrip()[:-1]
            flush()

    flush()
    return statements
