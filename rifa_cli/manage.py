from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path

from fastapi.encoders import jsonable_encoder

from rifa.core.config import db_configured
from rifa.core.logging import configure_logging
from rifa.cqrs.queries import purchases as purchases_queries
from rifa.services.migrations import apply_schema


def _require_db() -> None:
    if not db_configured():
        raise RuntimeError("DB_HOST, DB_NAME, DB_USER and DB_PASSWORD must be set")


def _migrate(_: argparse.Namespace) -> int:
    _require_db()
    apply_schema()
    print("Schema is up to date")
    return 0


def _export(args: argparse.Namespace) -> int:
    _require_db()
    raffle_id = uuid.UUID(args.raffle_id)
    document = json.dumps(jsonable_encoder(purchases_queries.export_raffle(raffle_id)), indent=2)
    if args.output == "-":
        print(document)
        return 0
    output = Path(args.output or purchases_queries.export_filename(raffle_id))
    output.write_text(document + "\n")
    print(f"Exported raffle {raffle_id} to {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="RifaPix maintenance commands")
    commands = parser.add_subparsers(dest="command", required=True)

    migrate = commands.add_parser("migrate", help="Create or update the database schema")
    migrate.set_defaults(func=_migrate)

    export = commands.add_parser("export", help="Export a raffle with masked CPFs as JSON")
    export.add_argument("raffle_id")
    export.add_argument(
        "-o", "--output", help="Destination file, '-' for stdout (default: raffle_<id>_export.json)"
    )
    export.set_defaults(func=_export)
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
