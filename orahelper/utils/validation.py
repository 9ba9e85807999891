"""
Validation helpers for command descriptors and batch inputs.

These functions are called when descriptors are built and when a batch run
starts, so malformed input is rejected before any Oracle connection is made.

All functions raise the appropriate exception on failure rather than returning
a boolean; callers are expected to let exceptions propagate.
"""

from __future__ import annotations

import re
from typing import Iterable

from orahelper.configs.exceptions import BindError

# Unquoted Oracle bind names: a letter, then letters, digits, _, $ or #.
_BIND_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_$#]*$")


def normalize_bind_name(name: str) -> str:
    """
    Strip the leading ``:`` from a bind name and check it is well formed.

    Args:
        name: Bind name as written by the caller (``":ID"`` or ``"ID"``).

    Returns:
        The bind name without the colon, case preserved.

    Raises:
        BindError: If ``name`` is not a string or not a valid Oracle bind name.
    """
    if not isinstance(name, str):
        raise BindError(f"Bind name must be a string, got {type(name).__name__}.")
    bare = name[1:] if name.startswith(":") else name
    if not _BIND_NAME_RE.match(bare):
        raise BindError(f"Invalid bind name {name!r}.", parameter=name)
    return bare


def validate_unique_parameter_names(names: Iterable[str]) -> None:
    """
    Assert that no two parameters bind to the same Oracle variable.

    Names are compared without the leading colon and case-insensitively.

    Raises:
        BindError: On the first duplicate found.
    """
    seen: set[str] = set()
    for name in names:
        key = normalize_bind_name(name).upper()
        if key in seen:
            raise BindError(f"Duplicate bind name {name!r}.", parameter=name)
        seen.add(key)


def validate_chunk_size(chunk_size: int) -> None:
    """
    Assert that ``chunk_size`` is a positive integer.

    Raises:
        ValueError: If ``chunk_size`` is not an int >= 1.
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise ValueError(f"chunk_size must be an integer, got {chunk_size!r}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
