"""
Scheduling and policy: test_scheduler_policy.py

scheduler.py:
  - start() copies the queue into a tuple; None raises TypeError
  - next_chunk() peeks min(N, remaining) without consuming
  - advance() consumes the chunk, accumulates rows, DRAINING → COMPLETED
  - abort() consumes the chunk, keeps the total, state ABORTED
  - Chunks must be resolved in order; finished runs refuse more chunks
  - complete() on an empty run; refuses when descriptors remain

policy.py:
  - evaluate(): success/skip → CONTINUE; failure → on_failure policy
  - accumulate(): committed adds, rolled back adds nothing, negative rejected
"""

from __future__ import annotations

import pytest

import sys, pathlib
_root = str(pathlib.Path(__file__).parent.parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

from orahelper.configs.exceptions import BindError, ExecutionError, PolicyViolation
from orahelper.loaders.policy import Decision, accumulate, evaluate
from orahelper.loaders.scheduler import Chunk, ExecutionRun, RunState
from orahelper.models.commands import CommandDescriptor, FailurePolicy
from orahelper.models.outcome import ExecOutcome, OutcomeKind


def make_queue(n: int) -> list[CommandDescriptor]:
    return [CommandDescriptor.statement(f"q{i}") for i in range(n)]


# ============================================================================
# ExecutionRun
# ============================================================================

class TestExecutionRun:
    def test_start_is_idle_and_owns_a_copy(self):
        queue = make_queue(3)
        run = ExecutionRun.start(queue)
        queue.clear()

        assert run.state is RunState.IDLE
        assert len(run.queue) == 3
        assert isinstance(run.queue, tuple)

    def test_start_none_rejected(self):
        with pytest.raises(TypeError):
            ExecutionRun.start(None)

    def test_next_chunk_does_not_consume(self):
        run = ExecutionRun.start(make_queue(5))

        first = run.next_chunk(2)
        again = run.next_chunk(2)

        assert first == again
        assert [d.text for d in first] == ["q0", "q1"]
        assert run.cursor == 0
        assert len(run.remaining) == 5

    def test_last_chunk_is_short(self):
        run = ExecutionRun.start(make_queue(5))
        run = run.advance(run.next_chunk(3), 3)

        chunk = run.next_chunk(3)

        assert len(chunk) == 2
        assert (chunk.start, chunk.end) == (3, 5)
        assert chunk.number == 2

    def test_advance_accumulates_and_transitions(self):
        run = ExecutionRun.start(make_queue(4))

        run = run.advance(run.next_chunk(2), 5)
        assert run.state is RunState.DRAINING
        assert run.total_affected == 5

        run = run.advance(run.next_chunk(2), 1)
        assert run.state is RunState.COMPLETED
        assert run.total_affected == 6
        assert run.chunks_committed == 2
        assert run.next_chunk(2) is None

    def test_abort_keeps_total_and_tail(self):
        run = ExecutionRun.start(make_queue(6))
        run = run.advance(run.next_chunk(2), 2)
        failure = ExecOutcome.failure(ExecutionError("boom"), position=3)

        run = run.abort(run.next_chunk(2), failure)

        assert run.state is RunState.ABORTED
        assert run.total_affected == 2
        assert [d.text for d in run.remaining] == ["q4", "q5"]
        assert run.failure is failure
        assert run.next_chunk(2) is None

    def test_out_of_order_chunk_rejected(self):
        run = ExecutionRun.start(make_queue(4))
        stale = Chunk(items=run.queue[2:], start=2, number=1)

        with pytest.raises(ValueError):
            run.advance(stale, 1)

    def test_finished_run_refuses_advance(self):
        run = ExecutionRun.start(make_queue(1))
        chunk = run.next_chunk(1)
        done = run.advance(chunk, 1)

        with pytest.raises(ValueError):
            done.advance(chunk, 1)

    def test_complete_empty_run(self):
        run = ExecutionRun.start([]).complete()
        assert run.state is RunState.COMPLETED
        assert run.total_affected == 0

    def test_complete_with_remaining_rejected(self):
        with pytest.raises(ValueError):
            ExecutionRun.start(make_queue(1)).complete()

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            ExecutionRun.start(make_queue(1)).next_chunk(0)


# ============================================================================
# evaluate / accumulate
# ============================================================================

class TestEvaluate:
    hard = CommandDescriptor.statement("x")
    soft = CommandDescriptor.statement("x", on_failure=FailurePolicy.CONTINUE_CHUNK)

    def test_success_continues(self):
        assert evaluate(self.hard, ExecOutcome.success(3)) is Decision.CONTINUE

    def test_skip_continues(self):
        assert evaluate(self.hard, ExecOutcome.skipped()) is Decision.CONTINUE

    @pytest.mark.parametrize("error", [
        BindError("bad"),
        ExecutionError("boom", code="ORA-00001"),
        PolicyViolation("update t"),
    ])
    def test_failure_follows_policy(self, error):
        outcome = ExecOutcome.failure(error)
        assert evaluate(self.hard, outcome) is Decision.ABORT_CHUNK
        assert evaluate(self.soft, outcome) is Decision.CONTINUE


class TestOutcome:
    def test_failure_kinds(self):
        assert ExecOutcome.failure(BindError("b")).kind is OutcomeKind.BIND_ERROR
        assert ExecOutcome.failure(ExecutionError("e")).kind is OutcomeKind.EXECUTION_ERROR
        assert ExecOutcome.failure(PolicyViolation("s")).kind is OutcomeKind.POLICY_VIOLATION

    def test_failure_has_no_rows(self):
        assert ExecOutcome.failure(ExecutionError("e")).affected == 0

    def test_error_code(self):
        outcome = ExecOutcome.failure(ExecutionError("e", code="ORA-00942"))
        assert outcome.error_code == "ORA-00942"

    def test_non_command_error_rejected(self):
        from orahelper.configs.exceptions import TransactionError
        with pytest.raises(TypeError):
            ExecOutcome.failure(TransactionError("t"))


class TestAccumulate:
    def test_committed_adds(self):
        assert accumulate(10, 5, committed=True) == 15

    def test_rolled_back_adds_nothing(self):
        assert accumulate(10, 5, committed=False) == 10

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            accumulate(0, -1, committed=True)
