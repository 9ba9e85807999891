"""
Chunked transactional batch execution (The Heavy Lift).

Runs an ordered queue of ``CommandDescriptor`` objects over one connection,
in chunks of at most ``chunk_size`` descriptors, each chunk under its own
transaction.

Key behaviours:
  - One connection is opened for the whole run and closed in a ``finally``.
    An empty queue opens nothing and returns ``(0, COMPLETED)``.
  - Descriptors execute in submission order, within and across chunks.
  - Empty descriptor text is skipped without touching the driver.
  - ``MUST_AFFECT_ROWS`` with zero affected rows is a ``PolicyViolation``,
    handled exactly like a driver error.
  - A failure on a ``CONTINUE_CHUNK`` descriptor is reported to the failure
    sink and contributes zero rows; the chunk carries on.
  - A failure on an ``ABORT_CHUNK`` descriptor is reported, the chunk rolls
    back, its partial count is discarded and the run stops with
    ``ABORTED``.  ``BatchResult.remaining`` holds the unconsumed tail (the
    failed chunk is consumed, not retried).
  - ``TransactionError`` and ``DBConnectionError`` propagate to the caller,
    as does any other unexpected exception.  Whatever the error, an
    open chunk gets a best-effort rollback first.

Usage::

    from orahelper.loaders.batch_exec import execute_batch

    result = execute_batch(driver, descriptors, chunk_size=1000)
    total, outcome = result
    if outcome is RunOutcome.ABORTED:
        resubmit(result.remaining)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator

from orahelper.configs.config import DEFAULT_CHUNK_SIZE
from orahelper.configs.exceptions import (
    BindError,
    ExecutionError,
    PolicyViolation,
    TransactionError,
)
from orahelper.drivers.base import Driver, Transaction
from orahelper.loaders.error_logging import FailureLog, FailureSink
from orahelper.loaders.policy import Decision, evaluate
from orahelper.loaders.scheduler import Chunk, ExecutionRun, RunState
from orahelper.models.commands import CommandDescriptor, EffectPolicy
from orahelper.models.outcome import ExecOutcome
from orahelper.utils.validation import validate_chunk_size

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result objects
# ---------------------------------------------------------------------------

class RunOutcome(str, Enum):
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class ChunkResult:
    """
    Outcome of one chunk's transaction.

    Attributes:
        committed: True if the transaction committed.
        affected:  Rows affected by the chunk; 0 when rolled back.
        failure:   The outcome that aborted the chunk, if any.
        absorbed:  Number of CONTINUE_CHUNK failures swallowed in the chunk.
    """
    committed: bool
    affected: int = 0
    failure: ExecOutcome | None = None
    absorbed: int = 0


@dataclass
class BatchResult:
    """
    Summary of an ``execute_batch`` call.

    Unpacks as ``(total_affected, outcome)``.

    Attributes:
        total_affected:   Rows affected by committed chunks only.
        outcome:          ``RunOutcome.COMPLETED`` or ``RunOutcome.ABORTED``.
        remaining:        Descriptors never consumed; resubmit these to retry.
        failure:          Outcome that aborted the run, or ``None``.
        chunks_committed: Number of chunks that committed.
        absorbed:         CONTINUE_CHUNK failures swallowed across the run,
                          including any in a chunk that later rolled back.
    """
    total_affected: int = 0
    outcome: RunOutcome = RunOutcome.COMPLETED
    remaining: tuple[CommandDescriptor, ...] = ()
    failure: ExecOutcome | None = None
    chunks_committed: int = 0
    absorbed: int = 0

    @property
    def completed(self) -> bool:
        return self.outcome is RunOutcome.COMPLETED

    def __iter__(self) -> Iterator[Any]:
        yield self.total_affected
        yield self.outcome


# ---------------------------------------------------------------------------
# Transactional executor
# ---------------------------------------------------------------------------

class ChunkExecutor:
    """
    Executes chunks on one open connection, one transaction per chunk.

    Args:
        driver:     Driver that owns ``connection``.
        connection: Open connection, held for the whole run.
        on_failure: Sink that receives every failed descriptor.
    """

    def __init__(self, driver: Driver, connection, on_failure: FailureSink) -> None:
        self.driver = driver
        self.connection = connection
        self.on_failure = on_failure

    def run_chunk(self, chunk: Chunk) -> ChunkResult:
        """
        Execute ``chunk`` atomically.

        Raises:
            TransactionError:  If begin, commit or rollback fails.
            DBConnectionError: If the connection is lost mid-chunk.
        """
        tx = self.driver.begin_transaction(self.connection)
        try:
            affected, absorbed, failure = self._run_items(chunk, tx)
        except BaseException:
            self._rollback_after_error(tx)
            raise

        if failure is not None:
            self.driver.rollback(tx)
            return ChunkResult(committed=False, failure=failure, absorbed=absorbed)

        try:
            self.driver.commit(tx)
        except TransactionError:
            self._rollback_after_error(tx)
            raise
        return ChunkResult(committed=True, affected=affected, absorbed=absorbed)

    def execute_one(
        self,
        descriptor: CommandDescriptor,
        transaction: Transaction | None,
        position: int | None = None,
    ) -> ExecOutcome:
        """Prepare and execute one descriptor, folding any failure into the outcome."""
        if descriptor.is_empty:
            return ExecOutcome.skipped(position)

        try:
            command = self.driver.prepare(
                descriptor.text,
                descriptor.kind,
                descriptor.parameters,
                self.connection,
                transaction,
            )
            affected = self.driver.execute(command)
        except (BindError, ExecutionError) as e:
            return ExecOutcome.failure(e, position)

        if descriptor.effect_policy is EffectPolicy.MUST_AFFECT_ROWS and affected == 0:
            return ExecOutcome.failure(PolicyViolation(descriptor.text), position)
        return ExecOutcome.success(affected, command.out_values, position)

    def _run_items(
        self,
        chunk: Chunk,
        tx: Transaction,
    ) -> tuple[int, int, ExecOutcome | None]:
        affected = 0
        absorbed = 0
        for offset, descriptor in enumerate(chunk):
            outcome = self.execute_one(descriptor, tx, chunk.start + offset)
            if not outcome.failed:
                affected += outcome.affected
                continue

            self.on_failure(descriptor, outcome)
            if evaluate(descriptor, outcome) is Decision.ABORT_CHUNK:
                return affected, absorbed, outcome
            absorbed += 1
        return affected, absorbed, None

    def _rollback_after_error(self, tx: Transaction) -> None:
        if tx.resolved:
            return
        try:
            self.driver.rollback(tx)
        except TransactionError as e:
            logger.error("Rollback after unexpected error also failed: %s", e)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def execute_batch(
    driver: Driver,
    queue: Iterable[CommandDescriptor],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_failure: FailureSink | None = None,
) -> BatchResult:
    """
    Execute ``queue`` in transactional chunks and return the aggregate result.

    Args:
        driver:     Driver used to open the run's connection.
        queue:      Ordered descriptors.  Copied; the caller's collection is
                    never mutated.
        chunk_size: Maximum descriptors per transaction.
        on_failure: Sink for failed descriptors.  Defaults to a
                    ``FailureLog`` that only writes to ``logging``.

    Returns:
        ``BatchResult``; unpacks as ``(total_affected, outcome)``.

    Raises:
        TypeError:         If ``queue`` is ``None``.
        ValueError:        If ``chunk_size`` is not a positive integer.
        DBConnectionError: If the connection cannot be opened or is lost.
        TransactionError:  If a begin, commit or rollback fails.
    """
    validate_chunk_size(chunk_size)
    run = ExecutionRun.start(queue)

    if run.is_drained:
        logger.info("Empty batch: nothing to execute.")
        return _to_result(run.complete(), absorbed=0)

    sink = on_failure if on_failure is not None else FailureLog()
    absorbed = 0

    logger.info(
        "Executing %d command(s) in chunks of %d.", len(run.queue), chunk_size,
    )
    with driver.session() as connection:
        executor = ChunkExecutor(driver, connection, sink)
        while True:
            chunk = run.next_chunk(chunk_size)
            if chunk is None:
                break

            result = executor.run_chunk(chunk)
            absorbed += result.absorbed
            if not result.committed:
                run = run.abort(chunk, result.failure)
                logger.error(
                    "Chunk %d rolled back; run aborted with %d command(s) unconsumed.",
                    chunk.number, len(run.remaining),
                )
                break

            run = run.advance(chunk, result.affected)
            logger.debug(
                "Chunk %d committed: %d command(s), %d row(s).",
                chunk.number, len(chunk), result.affected,
            )

    logger.info(
        "Batch %s: %d row(s) affected over %d committed chunk(s).",
        run.state.value, run.total_affected, run.chunks_committed,
    )
    return _to_result(run, absorbed)


def _to_result(run: ExecutionRun, absorbed: int) -> BatchResult:
    outcome = RunOutcome.ABORTED if run.state is RunState.ABORTED else RunOutcome.COMPLETED
    return BatchResult(
        total_affected=run.total_affected,
        outcome=outcome,
        remaining=run.remaining,
        failure=run.failure,
        chunks_committed=run.chunks_committed,
        absorbed=absorbed,
    )
