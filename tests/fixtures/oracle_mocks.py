"""
Reusable fake database objects for orahelper unit tests.

Provides:
  - ``FakeVar``: stands in for an ``oracledb`` bind variable.
  - ``FakeCursor``: tracks executed SQL and procedure calls, returns
      configurable row counts, query rows or errors.
  - ``FakeConnection``: provides ``FakeCursor``, tracks commits/rollbacks/closes.
  - ``RecordingDriver``: a ``Driver`` that records every call in order and
      keeps committed and pending writes apart, so
      rollbacks are observable.

The real ``oracledb`` package is installed for tests; ``FakeConnection``
replaces a live connection only, by patching ``oracledb.connect`` with
pytest's ``monkeypatch``.

Usage in test files::

    import sys, pathlib
    sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))
    from tests.fixtures.oracle_mocks import RecordingDriver

    driver = RecordingDriver(script={"BAD": ExecutionError("boom")})
"""

from __future__ import annotations

from typing import Any, Iterator, Sequence

from orahelper.drivers.base import Driver, PreparedCommand, Transaction
from orahelper.models.commands import CommandKind, Parameter, ParameterDirection


# ---------------------------------------------------------------------------
# DB-API style fakes (for OracleDriver tests)
# ---------------------------------------------------------------------------

class FakeVar:
    """Output bind variable; procedure fakes write through ``setvalue``."""

    def __init__(self, db_type: object) -> None:
        self.db_type = db_type
        self.value: Any = None

    def setvalue(self, pos: int, value: Any) -> None:
        self.value = value

    def getvalue(self, pos: int = 0) -> Any:
        return self.value


class FakeCursor:
    """
    Fake Oracle cursor.

    Args:
        responses: Maps SQL text (or procedure name) to an int row count, a
                   list of row tuples for queries, or an exception to raise.
        columns:   Column names reported in ``description`` for queries.
        out_values: Values written into OUT variables by ``callproc``.

    Attributes:
        executed:  List of ``(sql, binds)`` tuples, in call order.
        callprocs: List of ``(name, keyword_parameters)`` tuples.
        closed:    True once close() has been called.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        columns: Sequence[str] = ("COL1",),
        out_values: dict[str, Any] | None = None,
    ) -> None:
        self.responses = responses or {}
        self.columns = list(columns)
        self.out_values = out_values or {}
        self.executed: list[tuple[str, Any]] = []
        self.callprocs: list[tuple[str, dict]] = []
        self.rowcount: int = 0
        self.description: list[tuple] | None = None
        self._rows: list[tuple] = []
        self.closed: bool = False

    def _respond(self, key: str) -> None:
        response = self.responses.get(key, 1)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, list):
            self._rows = list(response)
            self.description = [(c, None, None, None, None, None, None) for c in self.columns]
            self.rowcount = 0
        else:
            self._rows = []
            self.description = None
            self.rowcount = response

    def execute(self, sql: str, binds=None) -> None:
        if self.closed:
            raise RuntimeError("FakeCursor: execute() called on closed cursor.")
        self.executed.append((sql, binds))
        self._respond(sql)

    def callproc(self, name: str, parameters=None, keyword_parameters=None) -> list:
        if self.closed:
            raise RuntimeError("FakeCursor: callproc() called on closed cursor.")
        self.callprocs.append((name, dict(keyword_parameters or {})))
        self._respond(name)
        for key, var in (keyword_parameters or {}).items():
            if isinstance(var, FakeVar) and key in self.out_values:
                var.setvalue(0, self.out_values[key])
        return []

    def var(self, db_type: object) -> FakeVar:
        return FakeVar(db_type)

    def __iter__(self) -> Iterator[tuple]:
        return iter(self._rows)

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeConnection:
    """
    Fake Oracle connection.  Every ``cursor()`` call returns a new
    ``FakeCursor`` sharing the same responses; all are kept in ``cursors``.
    """

    def __init__(self, **cursor_kwargs) -> None:
        self.cursor_kwargs = cursor_kwargs
        self.cursors: list[FakeCursor] = []
        self.autocommit: bool = True
        self.committed: int = 0
        self.rolled_back: int = 0
        self.closed: bool = False
        self.commit_error: BaseException | None = None

    def cursor(self) -> FakeCursor:
        cur = FakeCursor(**self.cursor_kwargs)
        self.cursors.append(cur)
        return cur

    def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.committed += 1

    def rollback(self) -> None:
        self.rolled_back += 1

    def close(self) -> None:
        self.closed = True

    @property
    def executed_sql(self) -> list[str]:
        return [sql for cur in self.cursors for sql, _ in cur.executed]


# ---------------------------------------------------------------------------
# RecordingDriver (for executor and helper tests)
# ---------------------------------------------------------------------------

class RecordingDriver(Driver):
    """
    In-memory ``Driver`` that records calls and simulates transactions.

    Args:
        script:        Maps descriptor text to the affected row count to
                       return, or an exception for ``execute`` to raise.
                       Unlisted text affects 1 row.
        query_results: Maps SQL text to a list of row dicts for ``fetch``.
        commit_error:  Raised by ``commit`` when set.
        rollback_error: Raised by ``rollback`` when set.

    Attributes:
        events:     Ordered log: ``"open"``, ``"begin"``, ``"exec:<text>"``,
                    ``"commit"``, ``"rollback"``, ``"close"``.
        executed:   Texts passed to ``execute``, in order.
        committed:  Texts whose transaction committed (the visible store).
        pending:    Texts executed in the open transaction.
        transactions_opened / connections_opened / connections_closed.
    """

    def __init__(
        self,
        script: dict[str, Any] | None = None,
        query_results: dict[str, list[dict]] | None = None,
        commit_error: BaseException | None = None,
        rollback_error: BaseException | None = None,
    ) -> None:
        self.script = script or {}
        self.query_results = query_results or {}
        self.commit_error = commit_error
        self.rollback_error = rollback_error
        self.events: list[str] = []
        self.executed: list[str] = []
        self.prepared: list[PreparedCommand] = []
        self.committed: list[str] = []
        self.pending: list[str] = []
        self.transactions_opened = 0
        self.connections_opened = 0
        self.connections_closed = 0

    def open_connection(self):
        self.connections_opened += 1
        self.events.append("open")
        return object()

    def begin_transaction(self, connection) -> Transaction:
        self.transactions_opened += 1
        self.events.append("begin")
        self.pending = []
        return Transaction(connection=connection)

    def prepare(
        self,
        text: str,
        kind: CommandKind,
        parameters: Sequence[Parameter],
        connection,
        transaction: Transaction | None = None,
    ) -> PreparedCommand:
        command = PreparedCommand(
            text=text,
            kind=kind,
            binds={p.key: p.value for p in parameters},
            transaction=transaction,
            out_values={
                p.key: None
                for p in parameters
                if p.direction is not ParameterDirection.IN
            },
        )
        self.prepared.append(command)
        return command

    def execute(self, command: PreparedCommand) -> int:
        self.events.append(f"exec:{command.text}")
        self.executed.append(command.text)
        response = self.script.get(command.text, 1)
        if isinstance(response, BaseException):
            raise response
        self.pending.append(command.text)
        command.out_values = {name: f"out:{name}" for name in command.out_values}
        return response

    def fetch(self, command: PreparedCommand) -> Iterator[dict[str, Any]]:
        self.events.append(f"fetch:{command.text}")
        response = self.query_results.get(command.text, [])
        if isinstance(response, BaseException):
            raise response
        yield from response

    def commit(self, transaction: Transaction) -> None:
        self.events.append("commit")
        if self.commit_error is not None:
            raise self.commit_error
        self.committed.extend(self.pending)
        self.pending = []
        transaction.resolved = True

    def rollback(self, transaction: Transaction) -> None:
        self.events.append("rollback")
        if self.rollback_error is not None:
            raise self.rollback_error
        self.pending = []
        transaction.resolved = True

    def close(self, connection) -> None:
        self.connections_closed += 1
        self.events.append("close")

    @property
    def commits(self) -> int:
        return self.events.count("commit")

    @property
    def rollbacks(self) -> int:
        return self.events.count("rollback")


def out_param(name: str, db_type: str = "NUMBER") -> Parameter:
    """Shorthand for an OUT parameter."""
    return Parameter(name, direction=ParameterDirection.OUT, db_type=db_type)
