from __future__ import annotations

import argparse

from rich.table import Table

from poggit.application.services.project_service import ProjectService
from poggit.cli.context import CLIContext
from poggit.core.errors import PoggitError
from poggit.core.time import unix_to_iso
from poggit.domain.catalog import CATEGORIES, PERMISSIONS, ReleaseStage
from poggit.infrastructure.db.repos.release_repo import ReleaseRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("releases", help="List submitted releases")
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument(
        "--min-stage",
        choices=[stage.name.lower() for stage in ReleaseStage],
        default="draft",
    )
    parser.set_defaults(handler=run_list)

    show = subparsers.add_parser("release", help="Show one release with its dependencies and metadata")
    show.add_argument("release_id", type=int)
    show.set_defaults(handler=run_show)


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()

    repo = ReleaseRepo(ctx.paths.db_path)
    releases = repo.list(limit=args.limit, min_stage=ReleaseStage[args.min_stage.upper()])

    table = Table(title=f"Releases ({len(releases)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Stage")
    table.add_column("Project")
    table.add_column("Created")
    table.add_column("Summary", overflow="fold")

    for r in releases:
        table.add_row(
            str(r.release_id),
            r.name,
            r.version,
            r.stage.human_name,
            str(r.project_id),
            unix_to_iso(r.creation),
            r.short_desc,
        )

    ctx.console.print(table)
    return 0


def run_show(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()

    detail = ReleaseRepo(ctx.paths.db_path).get_detail(args.release_id)
    if detail is None:
        raise PoggitError(f"Release not found: {args.release_id}")
    release = detail.release
    flags = release.release_flags

    table = Table(title=f"{release.name} v{release.version}")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Stage", release.stage.human_name)
    table.add_row("Summary", release.short_desc)
    table.add_row("Build / project", f"{release.build_id} / {release.project_id}")
    table.add_row("Artifact resource", str(release.artifact))
    table.add_row("License", release.license)
    table.add_row("Pre-release", "yes" if flags.pre_release else "no")
    table.add_row("Categories", ", ".join(CATEGORIES.get(c, str(c)) for c in detail.categories))
    table.add_row("Keywords", ", ".join(detail.keywords))
    table.add_row("API", ", ".join(f"{s.since} - {s.till}" for s in detail.spoons))
    table.add_row("Permissions", ", ".join(PERMISSIONS[p][0] for p in detail.permissions if p in PERMISSIONS))
    ctx.console.print(table)

    if detail.dependencies:
        deps = Table(title="Dependencies")
        deps.add_column("Name")
        deps.add_column("Version")
        deps.add_column("Release")
        deps.add_column("Hard")
        for dep in detail.dependencies:
            deps.add_row(
                dep.name,
                dep.version,
                str(dep.dependency_release_id) if dep.dependency_release_id is not None else "-",
                "yes" if dep.is_hard else "no",
            )
        ctx.console.print(deps)
    return 0
