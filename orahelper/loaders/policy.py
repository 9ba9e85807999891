"""
Failure policy evaluation and result accumulation.

Both functions are pure so the abort/continue decision and the running
total can be tested without a connection or a transaction.

Decision table for ``evaluate``:

    outcome                 on_failure        decision
    ----------------------  ----------------  -----------
    SUCCESS / SKIPPED       (any)             CONTINUE
    any failure kind        CONTINUE_CHUNK    CONTINUE
    any failure kind        ABORT_CHUNK       ABORT_CHUNK
"""

from __future__ import annotations

from enum import Enum

from orahelper.models.commands import CommandDescriptor, FailurePolicy
from orahelper.models.outcome import ExecOutcome


class Decision(str, Enum):
    CONTINUE = "continue"
    ABORT_CHUNK = "abort_chunk"


def evaluate(descriptor: CommandDescriptor, outcome: ExecOutcome) -> Decision:
    """Decide whether ``outcome`` must abort the chunk ``descriptor`` ran in."""
    if not outcome.failed:
        return Decision.CONTINUE
    if descriptor.on_failure is FailurePolicy.CONTINUE_CHUNK:
        return Decision.CONTINUE
    return Decision.ABORT_CHUNK


def accumulate(total: int, chunk_affected: int, committed: bool) -> int:
    """
    Add a chunk's affected-row sum to the running total.

    A chunk that did not commit contributes nothing, whatever it executed
    before rolling back.
    """
    if not committed:
        return total
    if chunk_affected < 0:
        raise ValueError(f"chunk_affected must be >= 0, got {chunk_affected}")
    return total + chunk_affected
