"""
Oracle driver built on python-oracledb.

``oracledb`` is imported at module level; if it is not installed this
module will fail loudly on import with a clear ``ModuleNotFoundError``.
Install it with:  pip install oracledb

Every new connection gets the session settings from
``HelperConfig.session_sql()`` (NLS language, territory, date formats)
applied with ``ALTER SESSION``.  Nothing is written to the process
environment.

Usage:
    from orahelper.drivers.oracle import OracleDriver, connect

    # One-shot connection
    conn = connect(HelperConfig())
    conn.close()

    # Through the driver contract (auto-closes)
    driver = OracleDriver(HelperConfig())
    with driver.session() as conn:
        cmd = driver.prepare("SELECT 1 FROM DUAL", CommandKind.STATEMENT, (), conn)
        rows = list(driver.fetch(cmd))
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Sequence

import oracledb  # hard import, fails loudly if python-oracledb is not installed

from orahelper.configs.config import HelperConfig
from orahelper.configs.exceptions import (
    BindError,
    DBConnectionError,
    ExecutionError,
    OraHelperError,
    TransactionError,
)
from orahelper.drivers.base import Driver, PreparedCommand, Transaction
from orahelper.loaders.binds import build_binds, read_out_values
from orahelper.models.commands import CommandKind, Parameter

logger = logging.getLogger(__name__)

_ORA_CODE_RE = re.compile(r"(?:ORA|DPY|PLS)-\d+")

# Errors raised for a malformed binding rather than a rejected statement.
_BIND_ERROR_CODES = frozenset({
    "ORA-01006",  # bind variable does not exist
    "ORA-01008",  # not all variables bound
    "ORA-01036",  # illegal variable name/number
    "DPY-4008",   # no bind placeholder named
    "DPY-4010",   # bind variable not provided
})

# Errors meaning the connection itself is gone; never a per-command failure.
_CONNECTION_LOST_CODES = frozenset({
    "ORA-00028",  # your session has been killed
    "ORA-01012",  # not logged on
    "ORA-03113",  # end-of-file on communication channel
    "ORA-03114",  # not connected to ORACLE
    "ORA-03135",  # connection lost contact
    "DPY-1001",   # not connected to database
    "DPY-4011",   # the database or network closed the connection
})


def error_code(exc: Exception) -> str:
    """
    Return the Oracle error code (``ORA-00001``, ``DPY-4008``) for ``exc``.

    Uses ``full_code`` from the ``oracledb`` error object when present and
    falls back to scanning the message.  Returns ``'ORA-UNKNOWN'`` if no
    code is found.
    """
    arg = exc.args[0] if exc.args else None
    code = getattr(arg, "full_code", None)
    if code:
        return code
    match = _ORA_CODE_RE.search(str(exc))
    return match.group(0) if match else "ORA-UNKNOWN"


def translate_error(exc: Exception, sql: str) -> OraHelperError:
    """
    Map an ``oracledb.Error`` raised by a statement to a helper error.

    Connection loss becomes ``DBConnectionError`` so it ends the run instead
    of going through the descriptor's failure policy.
    """
    arg = exc.args[0] if exc.args else None
    message = str(getattr(arg, "message", None) or exc).strip()
    code = error_code(exc)
    if code in _CONNECTION_LOST_CODES:
        return DBConnectionError(f"Connection lost ({code}): {message} | sql={sql!r}")
    if code in _BIND_ERROR_CODES:
        return BindError(f"{message} | sql={sql!r}")
    return ExecutionError(message, code=code, sql=sql)


def connect(config: HelperConfig, apply_session_settings: bool = True, **kwargs):
    """
    Open a new ``oracledb`` connection and apply session settings.

    Args:
        config:                 Supplies dsn, credentials and NLS settings.
        apply_session_settings: If True, run ``config.session_sql()``
                                immediately after connecting.
        **kwargs:               Forwarded to ``oracledb.connect()``.

    Returns:
        An open ``oracledb.Connection`` with ``autocommit`` off.

    Raises:
        DBConnectionError: If credentials are missing, or the connection or
                           session setup fails.
    """
    config.require_credentials()
    try:
        conn = oracledb.connect(
            dsn=config.dsn, user=config.user, password=config.password, **kwargs
        )
    except oracledb.Error as e:
        raise DBConnectionError(
            f"Failed to connect to Oracle: {e}", dsn=config.dsn
        ) from e

    conn.autocommit = False
    if apply_session_settings:
        _apply_session(conn, config.session_sql())
    return conn


def _apply_session(conn, statements: list[str]) -> None:
    """Execute session-level SQL on an open connection."""
    try:
        with conn.cursor() as cur:
            for stmt in statements:
                cur.execute(stmt)
    except oracledb.Error as e:
        conn.close()
        raise DBConnectionError(f"Failed to apply session settings: {e}") from e


def _close_cursor(cursor) -> None:
    # A dead connection also fails cursor.close(); keep the original error.
    try:
        cursor.close()
    except oracledb.Error as e:
        logger.warning("Failed to close cursor: %s", e)


class OracleDriver(Driver):
    """
    ``Driver`` implementation on python-oracledb.

    Args:
        config: Connection and session configuration.  Defaults to a
                ``HelperConfig`` read from the environment.
    """

    def __init__(self, config: HelperConfig | None = None) -> None:
        self.config = config if config is not None else HelperConfig()

    def open_connection(self):
        return connect(self.config)

    def begin_transaction(self, connection) -> Transaction:
        # Oracle opens a transaction implicitly on the first DML statement;
        # beginning one only needs autocommit off.
        try:
            connection.autocommit = False
        except oracledb.Error as e:
            raise TransactionError(f"Failed to begin transaction: {e}", action="begin") from e
        return Transaction(connection=connection)

    def prepare(
        self,
        text: str,
        kind: CommandKind,
        parameters: Sequence[Parameter],
        connection,
        transaction: Transaction | None = None,
    ) -> PreparedCommand:
        try:
            cursor = connection.cursor()
        except oracledb.Error as e:
            raise translate_error(e, text) from e

        try:
            binds, out_vars = build_binds(cursor, parameters)
        except BindError:
            cursor.close()
            raise

        command = PreparedCommand(
            text=text,
            kind=kind,
            handle=cursor,
            binds=binds,
            transaction=transaction,
        )
        command.out_values = out_vars
        return command

    def execute(self, command: PreparedCommand) -> int:
        cursor = command.handle
        out_vars = command.out_values
        try:
            if command.kind is CommandKind.STORED_PROCEDURE:
                cursor.callproc(command.text, keyword_parameters=command.binds)
            else:
                cursor.execute(command.text, command.binds)
            affected = cursor.rowcount or 0
            command.out_values = read_out_values(out_vars)
        except oracledb.Error as e:
            raise translate_error(e, command.text) from e
        finally:
            _close_cursor(cursor)
        return max(affected, 0)

    def fetch(self, command: PreparedCommand) -> Iterator[dict[str, Any]]:
        cursor = command.handle
        try:
            cursor.execute(command.text, command.binds)
            columns = [d[0] for d in cursor.description or ()]
            for row in cursor:
                yield dict(zip(columns, row))
        except oracledb.Error as e:
            raise translate_error(e, command.text) from e
        finally:
            _close_cursor(cursor)

    def commit(self, transaction: Transaction) -> None:
        try:
            transaction.connection.commit()
        except oracledb.Error as e:
            raise TransactionError(f"Commit failed: {e}", action="commit") from e
        transaction.resolved = True

    def rollback(self, transaction: Transaction) -> None:
        try:
            transaction.connection.rollback()
        except oracledb.Error as e:
            raise TransactionError(f"Rollback failed: {e}", action="rollback") from e
        transaction.resolved = True

    def close(self, connection) -> None:
        try:
            connection.close()
        except oracledb.Error as e:
            logger.warning("Failed to close Oracle connection: %s", e)
