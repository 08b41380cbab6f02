from __future__ import annotations

import argparse
from pathlib import Path

from rich.panel import Panel

from poggit.application.services.project_service import ProjectService
from poggit.application.services.release_submission_service import create_submission_service
from poggit.application.services.release_validation_service import SubmissionContext
from poggit.cli.context import CLIContext
from poggit.core.config import load_github_settings
from poggit.core.errors import ConfigurationError
from poggit.infrastructure.github.client import GitHubClient
from poggit.infrastructure.importers.submission_json import load_submission_from_json


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("submit", help="Submit a plugin release from a JSON document")
    parser.add_argument("file", type=Path, help="Submission JSON file")
    parser.add_argument("--token", help="GitHub access token (default: POGGIT_GITHUB_TOKEN)")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()

    settings = load_github_settings()
    token = args.token or settings.token
    if not token:
        raise ConfigurationError("A GitHub access token is required: pass --token or set POGGIT_GITHUB_TOKEN")

    document = load_submission_from_json(args.file.expanduser().resolve())
    github = GitHubClient(settings)
    try:
        service = create_submission_service(ctx.paths.db_path, ctx.paths.resource_dir, github)
        result = service.submit(document, SubmissionContext(access_token=token))
    finally:
        github.close()

    for warning in result.warnings:
        ctx.console.print(f"[yellow]Warning[/yellow] {warning}")
    ctx.console.print(
        Panel.fit(
            f"Release ID: {result.release_id}\n"
            f"Plugin: {result.name} v{result.version}\n"
            f"Stage: {result.stage.human_name}\n"
            f"Artifact resource: {result.artifact_resource_id}",
            title="Release Submitted",
        )
    )
    return 0
