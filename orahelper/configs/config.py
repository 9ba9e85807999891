"""
Helper configuration.

All tuneable constants live here. Import from this module everywhere;
never hardcode chunk sizes, session settings, or Oracle limits inline.

Usage:
    from orahelper.configs.config import HelperConfig
    cfg = HelperConfig()                    # defaults + environment
    cfg = HelperConfig(chunk_size=500)

Environment overrides (optional) can be loaded via .env / os.environ before
constructing the config object; this module does not load .env itself.

Session locale settings are applied per connection with ``ALTER SESSION``
statements (see ``session_sql``).  Nothing here touches the process
environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from orahelper.configs.exceptions import DBConnectionError


DEFAULT_CHUNK_SIZE: int = 5000
"""Descriptors committed per transaction by the batch executor."""

ORACLE_MAX_IDENTIFIER_LEN_EXTENDED: int = 128
"""Max identifier length for Oracle >= 12.2 with COMPATIBLE >= 12.2."""


def _optional_path(env_key: str) -> Path | None:
    raw = os.environ.get(env_key)
    return Path(raw) if raw else None


@dataclass(slots=True)
class HelperConfig:
    """
    Runtime configuration for ``OracleHelper`` and ``OracleDriver``.

    Attributes:
        dsn: Oracle DSN string (``host:port/service_name``).
        user: Oracle username.
        password: Oracle password.
        chunk_size: Descriptors per transaction in ``execute_batch``.
        nls_language: Session ``NLS_LANGUAGE``; empty leaves the server default.
        nls_territory: Session ``NLS_TERRITORY``; empty leaves the server default.
        nls_date_format: Session ``NLS_DATE_FORMAT``.
        nls_timestamp_format: Session ``NLS_TIMESTAMP_FORMAT``.
        error_dir: Directory for the append-only failure log.  ``None``
            disables the file and failures only go to ``logging``.
    """

    dsn: str = field(default_factory=lambda: os.environ.get("DB_DSN", ""))
    user: str = field(default_factory=lambda: os.environ.get("DB_USER", ""))
    password: str = field(
        default_factory=lambda: os.environ.get("DB_PASSWORD", ""), repr=False
    )
    chunk_size: int = field(
        default_factory=lambda: int(
            os.environ.get("BATCH_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))
        )
    )
    nls_language: str = field(
        default_factory=lambda: os.environ.get("NLS_LANGUAGE", "")
    )
    nls_territory: str = field(
        default_factory=lambda: os.environ.get("NLS_TERRITORY", "")
    )
    nls_date_format: str = field(
        default_factory=lambda: os.environ.get(
            "NLS_DATE_FORMAT", "YYYY-MM-DD HH24:MI:SS"
        )
    )
    nls_timestamp_format: str = field(
        default_factory=lambda: os.environ.get(
            "NLS_TIMESTAMP_FORMAT", "YYYY-MM-DD HH24:MI:SS.FF6"
        )
    )
    error_dir: Path | None = field(default_factory=lambda: _optional_path("ERROR_DIR"))

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

    def session_sql(self) -> list[str]:
        """
        Return the ``ALTER SESSION`` statements to run on every new connection.

        Empty settings are omitted so the server default applies.  Single
        quotes in values are doubled.
        """
        settings = [
            ("NLS_LANGUAGE", self.nls_language),
            ("NLS_TERRITORY", self.nls_territory),
            ("NLS_DATE_FORMAT", self.nls_date_format),
            ("NLS_TIMESTAMP_FORMAT", self.nls_timestamp_format),
        ]
        return [
            f"ALTER SESSION SET {name} = '{value.replace(chr(39), chr(39) * 2)}'"
            for name, value in settings
            if value
        ]

    def require_credentials(self) -> None:
        """
        Raise ``DBConnectionError`` if any of dsn/user/password is missing.
        """
        missing = [
            key
            for key, value in (
                ("DB_DSN", self.dsn),
                ("DB_USER", self.user),
                ("DB_PASSWORD", self.password),
            )
            if not value
        ]
        if missing:
            raise DBConnectionError(
                f"Missing required connection setting(s): {', '.join(missing)}"
            )
