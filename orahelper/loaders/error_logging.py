"""
Failure logging for the batch executor.

Every failed command in a batch is reported twice: once through the
``logging`` module and, when ``error_dir`` is configured, once as a line in
a single append-only ``.log`` file.  Absorbed (continue) failures are
logged at WARNING, failures that abort a chunk at ERROR.

Log format (one line per failure)::

    2024-01-15T09:30:00 | policy=continue | kind=execution_error | position=42 | ora_code=ORA-00001 | sql=INSERT INTO ... | msg=unique constraint ...

The log file is named ``orahelper_failures.log`` and is appended to on
every run, never truncated.

Usage::

    from orahelper.loaders.error_logging import FailureLog

    sink = FailureLog(error_dir=config.error_dir)
    execute_batch(driver, queue, on_failure=sink)
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from orahelper.models.commands import CommandDescriptor, FailurePolicy
from orahelper.models.outcome import ExecOutcome

logger = logging.getLogger(__name__)

LOG_FILENAME = "orahelper_failures.log"

FailureSink = Callable[[CommandDescriptor, ExecOutcome], None]
"""Receives every failed descriptor together with its outcome."""


def log_failure(
    descriptor: CommandDescriptor,
    outcome: ExecOutcome,
    error_dir: Path | str,
) -> Path:
    """
    Append one failure line to the log file.

    Args:
        descriptor: The command that failed.
        outcome:    Its failure outcome.
        error_dir:  Directory where the log file lives.  Created if absent.

    Returns:
        Path to the log file that was written.
    """
    error_dir = Path(error_dir)
    error_dir.mkdir(parents=True, exist_ok=True)

    log_path = error_dir / LOG_FILENAME
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    policy = "continue" if descriptor.on_failure is FailurePolicy.CONTINUE_CHUNK else "abort"
    message = str(outcome.error).strip() if outcome.error else ""

    line = (
        f"{timestamp} | "
        f"policy={policy} | "
        f"kind={outcome.kind.value} | "
        f"position={outcome.position} | "
        f"ora_code={outcome.error_code or _extract_ora_code(message)} | "
        f"sql={_one_line(descriptor.text)} | "
        f"msg={_one_line(message)}\n"
    )
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(line)

    return log_path


def _extract_ora_code(message: str) -> str:
    """
    Extract the ORA-XXXXX code from an Oracle error message string.

    Returns ``'ORA-UNKNOWN'`` if no code is found.
    """
    match = re.search(r"ORA-\d+", message)
    return match.group(0) if match else "ORA-UNKNOWN"


def _one_line(text: str) -> str:
    return " ".join(text.split())


def count_errors_in_log(error_dir: Path | str) -> int:
    """
    Count the number of failure lines in the log file.

    Returns 0 if the log file does not exist.
    """
    log_path = Path(error_dir) / LOG_FILENAME
    if not log_path.exists():
        return 0
    with open(log_path, encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())


class FailureLog:
    """
    Default failure sink: ``logging`` plus the optional log file.

    Args:
        error_dir: Directory for ``orahelper_failures.log``; ``None`` logs
                   through ``logging`` only.
    """

    def __init__(self, error_dir: Path | str | None = None) -> None:
        self.error_dir = Path(error_dir) if error_dir is not None else None

    def __call__(self, descriptor: CommandDescriptor, outcome: ExecOutcome) -> None:
        if descriptor.on_failure is FailurePolicy.CONTINUE_CHUNK:
            logger.warning(
                "Absorbed %s at position %s: %s",
                outcome.kind.value, outcome.position, outcome.error,
            )
        else:
            logger.error(
                "Aborting chunk on %s at position %s: %s",
                outcome.kind.value, outcome.position, outcome.error,
            )
        if self.error_dir is not None:
            log_failure(descriptor, outcome, self.error_dir)
