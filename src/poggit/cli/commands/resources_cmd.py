from __future__ import annotations

import argparse

from rich.table import Table

from poggit.application.services.project_service import ProjectService
from poggit.cli.context import CLIContext
from poggit.core.time import now_unix, unix_to_iso
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("resources", help="List stored resources")
    parser.add_argument("--limit", type=int, default=50)
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()

    repo = ResourceRepo(ctx.paths.db_path)
    resources = repo.list(limit=args.limit)
    now = now_unix()

    table = Table(title=f"Resources ({len(resources)})")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("MIME Type")
    table.add_column("Created")
    table.add_column("Expires")

    for r in resources:
        expires = unix_to_iso(r.expires_at)
        if r.is_expired(now):
            expires = f"[red]{expires}[/red]"
        table.add_row(str(r.id), r.type, r.mime_type, unix_to_iso(r.created_at), expires)

    ctx.console.print(table)
    return 0
