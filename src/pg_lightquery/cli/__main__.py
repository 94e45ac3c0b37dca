"""
Command-line entry point for pg-lightquery.

Usage:
    python -m pg_lightquery.cli <command> [options]

Available commands:
    ddl     - Print CREATE TABLE statements for configured tables
    select  - Preview (or run) the SELECT a filter map compiles to

Examples:
    # DDL for every table in the configured YAML file
    python -m pg_lightquery.cli ddl

    # DDL for one table from an explicit file
    python -m pg_lightquery.cli ddl --config config/tables.yml --table users

    # Preview a filtered select
    python -m pg_lightquery.cli select --table users --filter '{"name.like": "%Doe%"}' --allowed id,name,email

    # Run it against DATABASE_URL
    python -m pg_lightquery.cli select --table users --filter '{"id": 1}' --execute
"""

import argparse
import json
import sys
from typing import List, Optional

from pg_lightquery.config import get_settings
from pg_lightquery.exceptions import LightQueryError
from pg_lightquery.infrastructure.schema import (
    TableRegistry,
    generate_schema_ddl,
    load_registry,
)
from pg_lightquery.utils.logging import get_logger

logger = get_logger(__name__)


def _load(config_path: Optional[str]) -> TableRegistry:
    return load_registry(config_path or get_settings().tables_config)


def _parse_allowed(raw: str):
    if raw.strip() == "*":
        return "*"
    return [part.strip() for part in raw.split(",") if part.strip()]


def _run_ddl(args: argparse.Namespace) -> int:
    registry = _load(args.config)
    names = args.table or registry.names()
    schemas = [registry.get(name) for name in names]
    print(generate_schema_ddl(schemas, if_not_exists=not args.no_if_not_exists))
    return 0


def _run_select(args: argparse.Namespace) -> int:
    from pg_lightquery.infrastructure.table import TableOperations

    registry = _load(args.config)
    filters = json.loads(args.filter) if args.filter else {}
    if not isinstance(filters, dict):
        print("--filter must be a JSON object", file=sys.stderr)
        return 2

    gateway = None
    if args.execute:
        from pg_lightquery.io.executor import PostgresGateway

        gateway = PostgresGateway()

    table = TableOperations(registry.get(args.table), gateway=gateway)
    result = table.select(filters, _parse_allowed(args.allowed))
    if not args.execute:
        print(json.dumps(result.query.to_dict(), default=str, indent=2))
        return 0

    try:
        rows = result.execute()
    finally:
        gateway.close()
    print(json.dumps(rows, default=str, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point with subcommand routing.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        prog="pg_lightquery.cli",
        description="pg-lightquery CLI - schema DDL and query previews",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        help="Path to the tables YAML file (defaults to PGLQ_TABLES_CONFIG)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
        required=True,
        help="Command to execute",
    )

    ddl_parser = subparsers.add_parser(
        "ddl",
        help="Print CREATE TABLE statements",
        description="Generate CREATE TABLE statements for configured tables",
    )
    ddl_parser.add_argument(
        "--table", action="append", help="Table to include (repeatable; default all)"
    )
    ddl_parser.add_argument(
        "--no-if-not-exists",
        action="store_true",
        help="Omit IF NOT EXISTS from the statements",
    )

    select_parser = subparsers.add_parser(
        "select",
        help="Preview the SQL a filter map compiles to",
        description="Compile a JSON filter map into a parameterized SELECT",
    )
    select_parser.add_argument("--table", required=True, help="Registered table name")
    select_parser.add_argument("--filter", default="{}", help="Filter map as a JSON object")
    select_parser.add_argument(
        "--allowed", default="*", help="Comma-separated allow-list, or '*' (default)"
    )
    select_parser.add_argument(
        "--execute", action="store_true", help="Run the query against DATABASE_URL"
    )

    args = parser.parse_args(argv)

    try:
        if args.command == "ddl":
            return _run_ddl(args)
        if args.command == "select":
            return _run_select(args)
    except (LightQueryError, KeyError, json.JSONDecodeError) as exc:
        logger.error("cli.command.failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
