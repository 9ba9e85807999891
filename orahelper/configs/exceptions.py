"""
Custom exceptions for the Oracle helper and its batch executor.

Hierarchy:
    OraHelperError
    ├── BindError             Parameter binding is malformed (bad name, missing type).
    ├── ExecutionError        Oracle rejected the statement.
    │   └── PolicyViolation   MUST_AFFECT_ROWS requested but zero rows were affected.
    ├── TransactionError      Begin/commit/rollback could not be honored; fatal to a run.
    └── DBConnectionError     Connection could not be opened, configured or kept; fatal.

``BindError``, ``ExecutionError`` and ``PolicyViolation`` are per-command
failures and are subject to the command's ``on_failure`` policy inside a
batch.  ``TransactionError`` and ``DBConnectionError`` always propagate.
"""

from __future__ import annotations


class OraHelperError(Exception):
    """Base class for all helper errors."""


class BindError(OraHelperError):
    """
    Raised when a command's parameters cannot be bound.

    Args:
        message: Human-readable description of the failure.
        parameter: Name of the offending parameter, if known.
    """

    def __init__(self, message: str, parameter: str | None = None) -> None:
        super().__init__(message)
        self.parameter = parameter

    def __str__(self) -> str:
        base = super().__str__()
        if self.parameter:
            return f"{base} | parameter={self.parameter}"
        return base


class ExecutionError(OraHelperError):
    """
    Raised when Oracle rejects a statement or procedure call.

    Args:
        message: Oracle error message (or a description of the failure).
        code: Oracle error code string such as ``"ORA-00001"``.
        sql: The SQL text or procedure name that failed.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        sql: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.sql = sql

    def __str__(self) -> str:
        base = super().__str__()
        parts = []
        if self.code:
            parts.append(f"code={self.code}")
        if self.sql:
            parts.append(f"sql={self.sql!r}")
        if parts:
            return f"{base} | {' '.join(parts)}"
        return base


class PolicyViolation(ExecutionError):
    """Raised when a MUST_AFFECT_ROWS command affected no rows."""

    def __init__(self, sql: str) -> None:
        super().__init__(
            "Command was required to affect rows but affected none.",
            code=None,
            sql=sql,
        )


class TransactionError(OraHelperError):
    """
    Raised when a transaction could not be begun, committed or rolled back.

    Args:
        message: Human-readable description.
        action: ``"begin"``, ``"commit"`` or ``"rollback"``.
    """

    def __init__(self, message: str, action: str | None = None) -> None:
        super().__init__(message)
        self.action = action

    def __str__(self) -> str:
        base = super().__str__()
        if self.action:
            return f"{base} | action={self.action}"
        return base


class DBConnectionError(OraHelperError, ConnectionError):
    """
    Raised when a connection cannot be opened, its session configured, or
    it is lost while a command runs.

    Args:
        message: Human-readable description.
        dsn: The DSN that was being connected to, if known.
    """

    def __init__(self, message: str, dsn: str | None = None) -> None:
        super().__init__(message)
        self.dsn = dsn

    def __str__(self) -> str:
        base = super().__str__()
        if self.dsn:
            return f"{base} | dsn={self.dsn}"
        return base
