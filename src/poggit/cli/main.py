from __future__ import annotations

import argparse
import logging
from pathlib import Path

from rich.console import Console

from poggit.cli.commands import (
    build_cmd,
    doctor_cmd,
    init_cmd,
    releases_cmd,
    resources_cmd,
    submit_cmd,
    web_cmd,
)
from poggit.cli.context import CLIContext
from poggit.core.config import load_paths
from poggit.core.errors import PoggitError
from poggit.core.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="poggit",
        description="Poggit plugin release CLI",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root to use for .poggit data (default: current working directory)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)

    subparsers = parser.add_subparsers(dest="command", required=True)
    init_cmd.register(subparsers)
    build_cmd.register(subparsers)
    submit_cmd.register(subparsers)
    releases_cmd.register(subparsers)
    resources_cmd.register(subparsers)
    doctor_cmd.register(subparsers)
    web_cmd.register(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    console = Console()

    paths = load_paths(args.project_root)
    ctx = CLIContext(paths=paths, console=console)

    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 2

    try:
        return handler(args, ctx)
    except PoggitError as exc:
        logger.error(str(exc))
        return 1
