"""
Command descriptors: the immutable unit of work for the helper and the
batch executor.

Parameter: one named bind (name, value, direction, optional db type label).
CommandDescriptor: SQL text or procedure name, its parameters, and the
    policies that decide what a failure means inside a batch.

Named bind strategy
-------------------
All parameters bind by name, never by position.  ``":ID"`` and ``"id"``
refer to the same Oracle bind variable, so names are compared without the
leading colon and case-insensitively when checking for duplicates.

Descriptors are frozen.  Build them up front, hand the list to
``execute_batch`` and do not expect them to be mutated or retried.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from orahelper.utils.validation import validate_unique_parameter_names


class CommandKind(str, Enum):
    STATEMENT = "statement"
    STORED_PROCEDURE = "stored_procedure"


class ParameterDirection(str, Enum):
    IN = "in"
    OUT = "out"
    IN_OUT = "in_out"


class EffectPolicy(str, Enum):
    """Whether a successful execution must have touched at least one row."""

    ANY_RESULT = "any_result"
    MUST_AFFECT_ROWS = "must_affect_rows"


class FailurePolicy(str, Enum):
    """What a failed command does to the chunk it runs in."""

    ABORT_CHUNK = "abort_chunk"
    CONTINUE_CHUNK = "continue_chunk"


@dataclass(frozen=True, slots=True)
class Parameter:
    """
    A single named bind.

    Attributes:
        name:      Bind name, with or without the leading ``:``.
        value:     Value bound for IN and IN_OUT parameters.
        direction: ``ParameterDirection``; OUT and IN_OUT need ``db_type``.
        db_type:   Oracle type label (``"VARCHAR2"``, ``"NUMBER"``, ...) used to
                   allocate an output variable.  Ignored for IN parameters.
    """

    name: str
    value: Any = None
    direction: ParameterDirection = ParameterDirection.IN
    db_type: str | None = None

    @property
    def key(self) -> str:
        """Bind name without the leading colon, uppercased."""
        return self.name.lstrip(":").upper()


def _coerce_parameters(
    parameters: Mapping[str, Any] | Iterable[Parameter] | None,
) -> tuple[Parameter, ...]:
    if parameters is None:
        return ()
    if isinstance(parameters, Mapping):
        return tuple(Parameter(name, value) for name, value in parameters.items())
    return tuple(parameters)


@dataclass(frozen=True, slots=True)
class CommandDescriptor:
    """
    Immutable description of one SQL operation.

    Attributes:
        text:          SQL text, or the procedure name for STORED_PROCEDURE.
                       Empty text is allowed; the executor skips it.
        kind:          ``CommandKind``.
        parameters:    Ordered tuple of ``Parameter``.  A mapping is accepted
                       and converted to IN parameters.
        effect_policy: ``EffectPolicy``.
        on_failure:    ``FailurePolicy``.

    Raises:
        BindError: If two parameters share a bind name.
    """

    text: str
    kind: CommandKind = CommandKind.STATEMENT
    parameters: tuple[Parameter, ...] = field(default=())
    effect_policy: EffectPolicy = EffectPolicy.ANY_RESULT
    on_failure: FailurePolicy = FailurePolicy.ABORT_CHUNK

    def __post_init__(self) -> None:
        if self.text is None:
            raise TypeError("CommandDescriptor.text must be a string, got None.")
        params = _coerce_parameters(self.parameters)
        validate_unique_parameter_names([p.name for p in params])
        # Frozen dataclass; store the normalized tuple in place.
        object.__setattr__(self, "parameters", params)

    @classmethod
    def statement(
        cls,
        text: str,
        parameters: Mapping[str, Any] | Iterable[Parameter] | None = None,
        *,
        effect_policy: EffectPolicy = EffectPolicy.ANY_RESULT,
        on_failure: FailurePolicy = FailurePolicy.ABORT_CHUNK,
    ) -> "CommandDescriptor":
        return cls(
            text=text,
            kind=CommandKind.STATEMENT,
            parameters=parameters,
            effect_policy=effect_policy,
            on_failure=on_failure,
        )

    @classmethod
    def procedure(
        cls,
        name: str,
        parameters: Mapping[str, Any] | Iterable[Parameter] | None = None,
        *,
        effect_policy: EffectPolicy = EffectPolicy.ANY_RESULT,
        on_failure: FailurePolicy = FailurePolicy.ABORT_CHUNK,
    ) -> "CommandDescriptor":
        return cls(
            text=name,
            kind=CommandKind.STORED_PROCEDURE,
            parameters=parameters,
            effect_policy=effect_policy,
            on_failure=on_failure,
        )

    @property
    def is_empty(self) -> bool:
        """True if there is nothing to execute."""
        return not self.text
