from __future__ import annotations

import argparse
from pathlib import Path

from rich.table import Table

from poggit.application.services.artifact_service import ArtifactRepackagingService
from poggit.application.services.build_service import BuildService
from poggit.application.services.project_service import ProjectService
from poggit.cli.context import CLIContext
from poggit.domain.models.build import Repo
from poggit.infrastructure.db.repos.build_repo import BuildRepo
from poggit.infrastructure.db.repos.resource_repo import ResourceRepo
from poggit.infrastructure.resources.store import ResourceStore


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("build", help="Manage build artifacts available for release")
    build_sub = parser.add_subparsers(dest="build_command", required=True)

    add = build_sub.add_parser("add", help="Register a built plugin phar as a build")
    add.add_argument("artifact", type=Path, help="Path to the built .phar")
    add.add_argument("--repo-id", type=int, required=True, help="GitHub repository id")
    add.add_argument("--repo", required=True, help="Repository full name, e.g. owner/name")
    add.add_argument("--project", required=True, help="Project name within the repository")
    add.add_argument("--path", default="", help="Project path inside the repository, e.g. plugins/Foo/")
    add.add_argument("--sha", required=True, help="Commit sha the artifact was built from")
    add.set_defaults(handler=run_add)


def run_add(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()

    owner, _, name = str(args.repo).partition("/")
    if not owner or not name:
        ctx.console.print("[red]--repo must look like owner/name[/red]")
        return 2

    store = ResourceStore(ctx.paths.resource_dir, ResourceRepo(ctx.paths.db_path))
    service = BuildService(
        build_repo=BuildRepo(ctx.paths.db_path),
        resource_store=store,
        artifacts=ArtifactRepackagingService(store),
    )
    result = service.register_build(
        args.artifact,
        repo=Repo(repo_id=args.repo_id, owner=owner, name=name),
        project_name=args.project,
        project_path=args.path,
        sha=args.sha,
    )

    table = Table(title="Registered Build")
    table.add_column("Field")
    table.add_column("Value", overflow="fold")
    table.add_row("Build ID", str(result.build.build_id))
    table.add_row("Project ID", str(result.build.project_id))
    table.add_row("Internal #", str(result.build.internal))
    table.add_row("Artifact resource", str(result.build.resource_id))
    table.add_row("plugin.yml name", result.plugin_name or "-")
    table.add_row("plugin.yml version", result.plugin_version or "-")
    ctx.console.print(table)
    return 0
