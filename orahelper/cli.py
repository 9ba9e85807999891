"""
orahelper: Oracle batch execution CLI

Credentials and settings come from environment variables, optionally loaded
from a ``.env`` file in the working directory:

    DB_DSN            Oracle DSN string  (e.g. localhost:1521/XEPDB1)
    DB_USER           Oracle username
    DB_PASSWORD       Oracle password
    BATCH_CHUNK_SIZE  Optional: override default chunk size (5000)
    NLS_LANGUAGE      Optional: session NLS_LANGUAGE
    NLS_TERRITORY     Optional: session NLS_TERRITORY
    ERROR_DIR         Optional: directory for orahelper_failures.log

Commands:
    ping      Open a connection and run ``select 1 from dual``.
    run       Execute a SQL script as one chunked transactional batch.

Usage examples:
    orahelper ping
    orahelper run --script migrations/001_seed.sql --chunk-size 1000
    orahelper run --script cleanup.sql --continue-on-error --dry-run

Exit codes:
    0  Success
    1  Batch aborted, or connection test failed
    2  Configuration / argument error
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from orahelper.configs.config import HelperConfig
from orahelper.configs.exceptions import DBConnectionError, TransactionError
from orahelper.helper import OracleHelper
from orahelper.loaders.batch_exec import BatchResult
from orahelper.loaders.scheduler import ExecutionRun
from orahelper.models.commands import CommandDescriptor, EffectPolicy, FailurePolicy
from orahelper.utils.sql_script import split_statements


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        level=level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Config: env vars (optionally from .env) + CLI overrides
# ---------------------------------------------------------------------------

def _build_config(args: argparse.Namespace) -> HelperConfig:
    """
    Priority order for each setting:
      1. CLI flag (--chunk-size, --error-dir)
      2. Environment variable
      3. HelperConfig default
    """
    config = HelperConfig()
    overrides: dict = {}
    if getattr(args, "chunk_size", None) is not None:
        overrides["chunk_size"] = args.chunk_size
    if getattr(args, "error_dir", None):
        overrides["error_dir"] = Path(args.error_dir)
    return dataclasses.replace(config, **overrides) if overrides else config


def _load_descriptors(args: argparse.Namespace) -> list[CommandDescriptor]:
    with open(args.script, encoding="utf-8") as f:
        statements = split_statements(f)

    effect = EffectPolicy.MUST_AFFECT_ROWS if args.must_affect_rows else EffectPolicy.ANY_RESULT
    on_failure = (
        FailurePolicy.CONTINUE_CHUNK if args.continue_on_error else FailurePolicy.ABORT_CHUNK
    )
    return [
        CommandDescriptor.statement(sql, effect_policy=effect, on_failure=on_failure)
        for sql in statements
    ]


# ---------------------------------------------------------------------------
# Result printer
# ---------------------------------------------------------------------------

def _print_result(result: BatchResult) -> None:
    if result.completed:
        print("\n✓ COMPLETED")
    else:
        print("\n✗ ABORTED")
        if result.failure is not None:
            print(f"  Position : {result.failure.position}")
            print(f"  Reason   : {result.failure.error}")
        print(f"  Unrun    : {len(result.remaining)} command(s)")
    print(f"  Rows     : {result.total_affected}")
    print(f"  Chunks   : {result.chunks_committed} committed")
    if result.absorbed:
        print(f"  Absorbed : {result.absorbed} failure(s)")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------

def _cmd_ping(args: argparse.Namespace) -> int:
    helper = OracleHelper(_build_config(args))
    if helper.test_connection():
        print("✓ Connection OK")
        return 0
    print("✗ Connection failed", file=sys.stderr)
    return 1


def _cmd_run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    descriptors = _load_descriptors(args)

    if args.dry_run:
        run = ExecutionRun.start(descriptors)
        number = 0
        while True:
            chunk = run.next_chunk(config.chunk_size)
            if chunk is None:
                break
            number += 1
            print(f"Chunk {number}: commands {chunk.start + 1}-{chunk.end}")
            run = run.advance(chunk, 0)
        print(f"{len(descriptors)} command(s), {number} chunk(s). Nothing executed.")
        return 0

    result = OracleHelper(config).execute_sqls_tran(descriptors)
    _print_result(result)
    return 0 if result.completed else 1


# ---------------------------------------------------------------------------
# Argument parser (importable for tests)
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orahelper",
        description="Chunked transactional batch execution against Oracle",
        epilog=(
            "Credentials (DB_DSN, DB_USER, DB_PASSWORD) are read from environment\n"
            "variables or a .env file."
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    def _config_args(p):
        p.add_argument("--chunk-size", type=int, default=None, dest="chunk_size")
        p.add_argument("--error-dir",  default=None, dest="error_dir")

    p_ping = sub.add_parser("ping", help="Test the Oracle connection")
    _config_args(p_ping)

    p_run = sub.add_parser("run", help="Execute a SQL script as a batch")
    _config_args(p_run)
    p_run.add_argument("--script", required=True)
    p_run.add_argument("--continue-on-error", action="store_true", dest="continue_on_error")
    p_run.add_argument("--must-affect-rows",  action="store_true", dest="must_affect_rows")
    p_run.add_argument("--dry-run",           action="store_true", dest="dry_run")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    handlers = {"ping": _cmd_ping, "run": _cmd_run}
    try:
        return handlers[args.command](args)
    except DBConnectionError as e:
        print(f"ERROR: cannot connect: {e}", file=sys.stderr)
        return 2
    except (ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except TransactionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
