"""
OracleHelper: one-call execution surface over a ``Driver``.

Each call opens its own short-lived connection, except ``execute_reader``
whose connection lives until the returned iterator is exhausted or closed,
and ``execute_sqls_tran`` which holds one connection for the whole batch.

Errors propagate as the typed exceptions in ``orahelper.configs.exceptions``.

Usage::

    helper = OracleHelper(HelperConfig())
    rows = helper.query("SELECT id, name FROM users WHERE id = :id", {"id": 7})
    total = helper.query_scalar("SELECT COUNT(*) FROM users")

    result = helper.execute_sqls_tran([
        CommandDescriptor.statement("INSERT INTO t (id) VALUES (:id)", {"id": 1}),
        CommandDescriptor.statement("UPDATE t SET x = 1 WHERE id = :id", {"id": 1},
                                    effect_policy=EffectPolicy.MUST_AFFECT_ROWS),
    ])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from orahelper.configs.config import HelperConfig
from orahelper.configs.exceptions import OraHelperError, TransactionError
from orahelper.drivers.base import Driver
from orahelper.loaders.batch_exec import BatchResult, ChunkExecutor, execute_batch
from orahelper.loaders.error_logging import FailureLog, FailureSink
from orahelper.models.commands import CommandDescriptor, CommandKind, Parameter
from orahelper.utils.identifiers import validate_identifier

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | Iterable[Parameter] | None


@dataclass
class ProcedureResult:
    """Affected row count and OUT / IN_OUT values of a procedure call."""
    affected: int
    out_values: dict[str, Any] = field(default_factory=dict)


def get_page_row_num_sql(data_sql: str, start_row_num: int, end_row_num: int) -> str:
    """Wrap ``data_sql`` to return rows ``start_row_num + 1`` .. ``end_row_num`` by ROWNUM."""
    return (
        "select * from (select ROWNUM rowno,z_.* from ({0}) z_ "
        "where ROWNUM <= {2}) where rowno > {1}"
    ).format(data_sql, int(start_row_num), int(end_row_num))


def get_row_limit_sql(data_sql: str, row_limit: int) -> str:
    """Wrap ``data_sql`` to return at most ``row_limit`` rows."""
    return "select * from ({0}) where rownum<={1}".format(data_sql, int(row_limit))


class OracleHelper:
    """
    Uniform execution surface: query, scalar, reader, non-query, procedure
    and transactional batch.

    Args:
        config:     Helper configuration; defaults to the environment.
        driver:     Driver to use; defaults to ``OracleDriver(config)``.
        on_failure: Failure sink for batches; defaults to ``FailureLog``
                    writing to ``config.error_dir``.
    """

    database_type = "Oracle"

    def __init__(
        self,
        config: HelperConfig | None = None,
        driver: Driver | None = None,
        on_failure: FailureSink | None = None,
    ) -> None:
        self.config = config if config is not None else HelperConfig()
        if driver is None:
            from orahelper.drivers.oracle import OracleDriver
            driver = OracleDriver(self.config)
        self.driver = driver
        self.on_failure = on_failure or FailureLog(self.config.error_dir)

    # ── queries ──────────────────────────────────────────────────────────

    def query(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Run ``sql`` and return every row as a ``dict`` keyed by column name."""
        descriptor = CommandDescriptor.statement(sql, params)
        with self.driver.session() as conn:
            command = self.driver.prepare(
                descriptor.text, descriptor.kind, descriptor.parameters, conn
            )
            return list(self.driver.fetch(command))

    def query_scalar(self, sql: str, params: Params = None) -> Any:
        """Return the first column of the first row, or ``None`` if there is none."""
        descriptor = CommandDescriptor.statement(sql, params)
        with self.driver.session() as conn:
            command = self.driver.prepare(
                descriptor.text, descriptor.kind, descriptor.parameters, conn
            )
            rows = self.driver.fetch(command)
            try:
                first = next(rows, None)
            finally:
                rows.close()
        if not first:
            return None
        return next(iter(first.values()))

    def execute_reader(self, sql: str, params: Params = None) -> Iterator[dict[str, Any]]:
        """
        Lazily yield rows of ``sql``.

        The connection is opened on first iteration and closed when the
        iterator is exhausted, closed, or garbage collected.
        """
        descriptor = CommandDescriptor.statement(sql, params)
        with self.driver.session() as conn:
            command = self.driver.prepare(
                descriptor.text, descriptor.kind, descriptor.parameters, conn
            )
            yield from self.driver.fetch(command)

    # ── single commands ──────────────────────────────────────────────────

    def execute_non_query(self, descriptor: CommandDescriptor) -> int:
        """Execute one descriptor in its own transaction; return affected rows."""
        return self._execute_in_transaction(descriptor).affected

    def execute_sql_tran(self, descriptor: CommandDescriptor) -> int:
        """Alias of ``execute_non_query``: one command, commit or roll back."""
        return self.execute_non_query(descriptor)

    def execute_procedure(self, name: str, params: Params = None) -> ProcedureResult:
        """Call stored procedure ``name`` and commit."""
        return self._execute_in_transaction(CommandDescriptor.procedure(name, params))

    def execute_procedure_tran(self, name: str, params: Params = None) -> ProcedureResult:
        """Alias of ``execute_procedure``: the call is always transactional."""
        return self.execute_procedure(name, params)

    def _execute_in_transaction(self, descriptor: CommandDescriptor) -> ProcedureResult:
        with self.driver.session() as conn:
            executor = ChunkExecutor(self.driver, conn, self.on_failure)
            tx = self.driver.begin_transaction(conn)
            outcome = executor.execute_one(descriptor, tx)
            if outcome.failed:
                try:
                    self.driver.rollback(tx)
                except TransactionError as e:
                    raise e from outcome.error
                raise outcome.error
            self.driver.commit(tx)
        return ProcedureResult(affected=outcome.affected, out_values=outcome.out_values)

    # ── batches ──────────────────────────────────────────────────────────

    def execute_sqls_tran(
        self,
        descriptors: Iterable[CommandDescriptor],
        chunk_size: int | None = None,
    ) -> BatchResult:
        """Run ``descriptors`` through the chunked transactional executor."""
        return execute_batch(
            self.driver,
            descriptors,
            chunk_size=chunk_size if chunk_size is not None else self.config.chunk_size,
            on_failure=self.on_failure,
        )

    # ── paging ───────────────────────────────────────────────────────────

    get_page_row_num_sql = staticmethod(get_page_row_num_sql)
    get_row_limit_sql = staticmethod(get_row_limit_sql)

    # ── metadata ─────────────────────────────────────────────────────────

    def test_connection(self) -> bool:
        """Return True if ``select 1 from dual`` answers 1."""
        try:
            value = self.query_scalar("select 1 from dual")
        except OraHelperError as e:
            logger.warning("Connection test failed: %s", e)
            return False
        return str(value) == "1"

    def get_curr_val(self, sequence_name: str) -> int:
        """Current value of ``sequence_name`` in this session; 0 for a blank name."""
        return self._sequence_value(sequence_name, "currval")

    def get_next_val(self, sequence_name: str) -> int:
        """Next value of ``sequence_name``; 0 for a blank name."""
        return self._sequence_value(sequence_name, "nextval")

    def _sequence_value(self, sequence_name: str, pseudo_column: str) -> int:
        if not sequence_name or not sequence_name.strip():
            return 0
        name = validate_identifier(sequence_name)
        value = self.query_scalar(f"select {name}.{pseudo_column} from dual")
        if value is None or not str(value).strip():
            return 0
        return int(value)

    def table_exists(self, table_name: str) -> bool:
        """True if ``ALL_TABLES`` lists ``table_name`` (exact, case-sensitive match)."""
        if not table_name or not table_name.strip():
            return False
        count = self.query_scalar(
            "SELECT count(*) FROM All_Tables WHERE table_name = :table_name",
            {"table_name": table_name},
        )
        return int(count or 0) > 0
