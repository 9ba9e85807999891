"""
Chunk scheduling over an owned, immutable execution run.

``ExecutionRun`` takes a tuple copy of the caller's queue and tracks
progress with an index cursor, so the caller's list is never mutated and
what the caller passed in never aliases what is being consumed.

A chunk is a prefix of the remaining queue.  It is only consumed once its
transaction has resolved:

    run = ExecutionRun.start(queue)
    chunk = run.next_chunk(5000)      # peek, nothing consumed yet
    ...                               # execute under one transaction
    run = run.advance(chunk, rows)    # committed: consume and accumulate
    run = run.abort(chunk, failure)   # rolled back: consume, total unchanged, stop

State machine::

    IDLE -> DRAINING -> COMPLETED
                    \\-> ABORTED

``DRAINING`` self-loops per committed chunk while the queue is non-empty.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from orahelper.loaders.policy import accumulate
from orahelper.models.commands import CommandDescriptor
from orahelper.models.outcome import ExecOutcome
from orahelper.utils.validation import validate_chunk_size


class RunState(str, Enum):
    IDLE = "idle"
    DRAINING = "draining"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class Chunk:
    """
    A bounded prefix of the remaining queue.

    Attributes:
        items:  Descriptors in submission order.
        start:  Index of the first item within the run's queue.
        number: 1-based chunk sequence number within the run.
    """

    items: tuple[CommandDescriptor, ...]
    start: int
    number: int

    @property
    def end(self) -> int:
        """Index one past the last item within the run's queue."""
        return self.start + len(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(self.items)


@dataclass(frozen=True, slots=True)
class ExecutionRun:
    """
    Immutable progress of one batch run.

    Attributes:
        queue:            Owned copy of every descriptor submitted.
        cursor:           Index of the first unconsumed descriptor.
        total_affected:   Rows affected by committed chunks only.
        chunks_committed: Number of chunks that committed.
        state:            ``RunState``.
        failure:          Outcome that aborted the run, if any.
    """

    queue: tuple[CommandDescriptor, ...]
    cursor: int = 0
    total_affected: int = 0
    chunks_committed: int = 0
    state: RunState = RunState.IDLE
    failure: ExecOutcome | None = None

    @classmethod
    def start(cls, queue: Iterable[CommandDescriptor]) -> "ExecutionRun":
        """
        Take ownership of ``queue`` and return an ``IDLE`` run.

        Raises:
            TypeError: If ``queue`` is ``None``.  An absent queue is a caller
                       bug, not an empty batch.
        """
        if queue is None:
            raise TypeError("queue must be a sequence of CommandDescriptor, got None.")
        return cls(queue=tuple(queue))

    @property
    def remaining(self) -> tuple[CommandDescriptor, ...]:
        """Descriptors not yet consumed by a resolved chunk."""
        return self.queue[self.cursor:]

    @property
    def is_drained(self) -> bool:
        return self.cursor >= len(self.queue)

    @property
    def is_finished(self) -> bool:
        return self.state in (RunState.COMPLETED, RunState.ABORTED)

    def next_chunk(self, chunk_size: int) -> Chunk | None:
        """
        Return the next ``min(chunk_size, remaining)`` descriptors, or ``None``
        when the queue is drained or the run has finished.

        Nothing is consumed; call ``advance`` or ``abort`` with the chunk once
        its transaction resolves.
        """
        validate_chunk_size(chunk_size)
        if self.is_finished or self.is_drained:
            return None
        end = min(self.cursor + chunk_size, len(self.queue))
        return Chunk(
            items=self.queue[self.cursor:end],
            start=self.cursor,
            number=self.chunks_committed + 1,
        )

    def advance(self, chunk: Chunk, affected: int) -> "ExecutionRun":
        """Consume a committed chunk and add its rows to the total."""
        self._check_next(chunk)
        cursor = chunk.end
        state = RunState.COMPLETED if cursor >= len(self.queue) else RunState.DRAINING
        return dataclasses.replace(
            self,
            cursor=cursor,
            total_affected=accumulate(self.total_affected, affected, committed=True),
            chunks_committed=self.chunks_committed + 1,
            state=state,
        )

    def abort(self, chunk: Chunk, failure: ExecOutcome) -> "ExecutionRun":
        """Consume a rolled-back chunk and stop the run; the total is unchanged."""
        self._check_next(chunk)
        return dataclasses.replace(
            self,
            cursor=chunk.end,
            state=RunState.ABORTED,
            failure=failure,
        )

    def complete(self) -> "ExecutionRun":
        """Mark a drained run as ``COMPLETED`` (used for an empty queue)."""
        if not self.is_drained:
            raise ValueError("Cannot complete a run with unconsumed descriptors.")
        if self.state is RunState.ABORTED:
            raise ValueError("Cannot complete an aborted run.")
        return dataclasses.replace(self, state=RunState.COMPLETED)

    def _check_next(self, chunk: Chunk) -> None:
        if self.is_finished:
            raise ValueError(f"Run is already {self.state.value}.")
        if chunk.start != self.cursor:
            raise ValueError(
                f"Chunk starts at {chunk.start} but the run cursor is at {self.cursor}."
            )
