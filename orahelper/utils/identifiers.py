"""
Identifier helpers for SQL that cannot use bind variables.

Sequence names in ``SELECT seq.NEXTVAL FROM DUAL`` have to be interpolated
into the statement text.  ``validate_identifier`` is the only gate those
names pass through; it rejects rather than rewrites, so a typo surfaces as
an error instead of silently querying a different object.

Usage:
    from orahelper.utils.identifiers import validate_identifier

    validate_identifier("sales.order_seq")   # → "sales.order_seq"
    validate_identifier("x; drop table t")   # ValueError
"""

from __future__ import annotations

import re

from orahelper.configs.config import ORACLE_MAX_IDENTIFIER_LEN_EXTENDED

_IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_$#]*$")


def validate_identifier(raw: str, allow_qualified: bool = True) -> str:
    """
    Check that ``raw`` is a plain (unquoted) Oracle identifier.

    Args:
        raw:             Candidate name, e.g. ``"ORDER_SEQ"`` or ``"SALES.ORDER_SEQ"``.
        allow_qualified: Accept a single ``SCHEMA.NAME`` qualifier.

    Returns:
        The stripped identifier, case preserved.

    Raises:
        ValueError: If ``raw`` is blank, too long, or contains anything other
                    than identifier characters.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("Identifier must be a non-empty string.")

    name = raw.strip()
    parts = name.split(".")
    if len(parts) > (2 if allow_qualified else 1):
        raise ValueError(f"Too many qualifiers in identifier {raw!r}.")

    for part in parts:
        if not _IDENTIFIER_RE.match(part):
            raise ValueError(f"Invalid Oracle identifier {raw!r}.")
        if len(part) > ORACLE_MAX_IDENTIFIER_LEN_EXTENDED:
            raise ValueError(
                f"Identifier part {part!r} exceeds "
                f"{ORACLE_MAX_IDENTIFIER_LEN_EXTENDED} characters."
            )
    return name
