"""
Permissions admin tool.
Runs migrations, exports and imports schemes, and resets the built-in roles.

    python -m teamperms.scripts.permissions_cli migrate
    python -m teamperms.scripts.permissions_cli export --output schemes.jsonl
    python -m teamperms.scripts.permissions_cli import --input schemes.jsonl
    python -m teamperms.scripts.permissions_cli reset
"""

import argparse
import logging
import sys

from fastapi import HTTPException
from supabase import Client

from teamperms.database.supabase_client import get_service_supabase
from teamperms.modules.permissions.exporter import SchemeExporter
from teamperms.modules.permissions.importer import SchemeImporter
from teamperms.modules.permissions.migrations import MigrationRunner

logging.basicConfig(level=logging.INFO, stream=sys.stderr)
logger = logging.getLogger(__name__)


def migrate(supabase: Client, args) -> int:
    applied = MigrationRunner(supabase).run_migrations()
    logger.info(f"Applied {len(applied)} migrations: {', '.join(applied) or 'none'}")
    return 0


def export(supabase: Client, args) -> int:
    exporter = SchemeExporter(supabase)
    if args.output:
        with open(args.output, "wb") as sink:
            count = exporter.export_permissions(sink)
    else:
        count = exporter.export_permissions(sys.stdout.buffer)
        sys.stdout.flush()
    logger.info(f"Exported {count} schemes")
    return 0


def import_(supabase: Client, args) -> int:
    importer = SchemeImporter(supabase)
    if args.input:
        with open(args.input, "rb") as source:
            summary = importer.import_permissions(source)
    else:
        summary = importer.import_permissions(sys.stdin.buffer)
    logger.info(f"Imported {summary.created} schemes, skipped {summary.skipped}")
    return 0


def reset(supabase: Client, args) -> int:
    if not args.confirm:
        logger.error("Resetting permissions overwrites built-in roles; pass --confirm to proceed")
        return 1
    MigrationRunner(supabase).reset_permissions_system()
    logger.info("Permissions system reset")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="permissions_cli", description="Manage permission schemes and roles")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("migrate", help="Run pending permission migrations").set_defaults(handler=migrate)

    export_parser = commands.add_parser("export", help="Export schemes as JSON lines")
    export_parser.add_argument("--output", help="File to write (default: stdout)")
    export_parser.set_defaults(handler=export)

    import_parser = commands.add_parser("import", help="Import schemes from a permissions export")
    import_parser.add_argument("--input", help="File to read (default: stdin)")
    import_parser.set_defaults(handler=import_)

    reset_parser = commands.add_parser("reset", help="Reset built-in roles to default permissions")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm the reset")
    reset_parser.set_defaults(handler=reset)

    return parser


def main(argv=None, supabase: Client = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        supabase = supabase or get_service_supabase()
        return args.handler(supabase, args)
    except HTTPException as e:
        logger.error(f"{args.command} failed: {e.detail}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
