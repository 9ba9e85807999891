"""
Abstract base class for database drivers.

The batch executor and ``OracleHelper`` work exclusively against ``Driver``
so the executor's transaction logic can be exercised with a recording
driver in tests and with ``OracleDriver`` in production.

Usage:
    driver = OracleDriver(config)
    conn = driver.open_connection()
    try:
        tx = driver.begin_transaction(conn)
        cmd = driver.prepare(sql, CommandKind.STATEMENT, params, conn, tx)
        rows = driver.execute(cmd)
        driver.commit(tx)
    finally:
        driver.close(conn)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

from orahelper.models.commands import CommandKind, Parameter


@dataclass
class Transaction:
    """
    Handle for one open transaction on a connection.

    Attributes:
        connection: The connection the transaction lives on.
        resolved:   True once committed or rolled back.
    """

    connection: Any
    resolved: bool = False


@dataclass
class PreparedCommand:
    """
    A command bound to a connection (and optionally a transaction).

    Attributes:
        text:        SQL text or procedure name.
        kind:        ``CommandKind``.
        handle:      Driver-specific statement handle (a cursor for Oracle).
        binds:       Named-bind dict passed to the driver.
        transaction: Enclosing transaction, or ``None`` for a standalone call.
        out_values:  Populated by ``Driver.execute`` for OUT / IN_OUT binds.
    """

    text: str
    kind: CommandKind
    handle: Any = None
    binds: dict[str, Any] = field(default_factory=dict)
    transaction: Transaction | None = None
    out_values: dict[str, Any] = field(default_factory=dict)


class Driver(ABC):
    """
    Capability contract the executor needs from a database backend.

    ``prepare`` raises ``BindError``; ``execute`` raises ``BindError`` or
    ``ExecutionError``; ``begin_transaction``, ``commit`` and ``rollback``
    raise ``TransactionError``; ``open_connection`` raises
    ``DBConnectionError``.
    """

    @abstractmethod
    def open_connection(self) -> Any:
        """Open and return a new connection with session settings applied."""

    @abstractmethod
    def begin_transaction(self, connection: Any) -> Transaction:
        """Start a transaction on ``connection``."""

    @abstractmethod
    def prepare(
        self,
        text: str,
        kind: CommandKind,
        parameters: Sequence[Parameter],
        connection: Any,
        transaction: Transaction | None = None,
    ) -> PreparedCommand:
        """Bind ``text``, ``kind`` and ``parameters`` to a new command handle."""

    @abstractmethod
    def execute(self, command: PreparedCommand) -> int:
        """
        Run a prepared command and return the affected row count.

        The command handle is released before returning.
        """

    @abstractmethod
    def fetch(self, command: PreparedCommand) -> Iterator[dict[str, Any]]:
        """
        Run a prepared query and yield one ``dict`` per row, keyed by
        column name.  The command handle is released when the iterator ends.
        """

    @abstractmethod
    def commit(self, transaction: Transaction) -> None:
        """Commit ``transaction``."""

    @abstractmethod
    def rollback(self, transaction: Transaction) -> None:
        """Roll back ``transaction``."""

    @abstractmethod
    def close(self, connection: Any) -> None:
        """Release ``connection``."""

    # ── context manager ──────────────────────────────────────────────────

    @contextmanager
    def session(self) -> Iterator[Any]:
        """Open a connection for the duration of a ``with`` block."""
        connection = self.open_connection()
        try:
            yield connection
        finally:
            self.close(connection)
