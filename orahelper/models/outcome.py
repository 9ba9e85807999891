"""
Result-style outcome of executing a single command descriptor.

The batch executor never lets a per-command failure escape as an exception.
Each execution is folded into an ``ExecOutcome`` (success with a row count,
or failure with a kind and the original error) and the failure policy
evaluator decides what to do with it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from orahelper.configs.exceptions import (
    BindError,
    ExecutionError,
    OraHelperError,
    PolicyViolation,
)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    BIND_ERROR = "bind_error"
    EXECUTION_ERROR = "execution_error"
    POLICY_VIOLATION = "policy_violation"


@dataclass(frozen=True, slots=True)
class ExecOutcome:
    """
    Outcome of one descriptor execution.

    Attributes:
        kind:       ``OutcomeKind``.
        affected:   Rows affected; always 0 for failures and skips.
        error:      The ``OraHelperError`` behind a failure, else ``None``.
        out_values: OUT / IN_OUT parameter values keyed by bind name.
        position:   0-based index of the descriptor within the run.
    """

    kind: OutcomeKind
    affected: int = 0
    error: OraHelperError | None = None
    out_values: dict[str, Any] = field(default_factory=dict)
    position: int | None = None

    @property
    def failed(self) -> bool:
        return self.kind in (
            OutcomeKind.BIND_ERROR,
            OutcomeKind.EXECUTION_ERROR,
            OutcomeKind.POLICY_VIOLATION,
        )

    @property
    def error_code(self) -> str | None:
        return getattr(self.error, "code", None)

    @classmethod
    def success(
        cls,
        affected: int,
        out_values: dict[str, Any] | None = None,
        position: int | None = None,
    ) -> "ExecOutcome":
        return cls(
            OutcomeKind.SUCCESS,
            affected=affected,
            out_values=dict(out_values or {}),
            position=position,
        )

    @classmethod
    def skipped(cls, position: int | None = None) -> "ExecOutcome":
        return cls(OutcomeKind.SKIPPED, position=position)

    @classmethod
    def failure(
        cls,
        error: OraHelperError,
        position: int | None = None,
    ) -> "ExecOutcome":
        """Classify ``error`` into the matching failure kind."""
        if isinstance(error, PolicyViolation):
            kind = OutcomeKind.POLICY_VIOLATION
        elif isinstance(error, BindError):
            kind = OutcomeKind.BIND_ERROR
        elif isinstance(error, ExecutionError):
            kind = OutcomeKind.EXECUTION_ERROR
        else:
            raise TypeError(
                f"{type(error).__name__} is not a per-command failure."
            )
        return cls(kind, error=error, position=position)
