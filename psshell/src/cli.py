"""Command-line front end for psshell."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, List

from core.command_runner import ProcessRunner, SubprocessRunner

from .context import Console, Context, DryRunProcessRunner
from .engine import PowerShellEngine
from .runner import EXIT_CONFIG_ERROR, CommandRunner
from .settings import LOG_LEVELS, load_settings, resolve_config_path


def _parse_arguments(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="psshell",
        description="Run one PowerShell command without an interactive shell",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to a .toml, .json or .yaml settings file")
    parser.add_argument(
        "--command",
        "-e",
        default=None,
        help="Command text to run instead of prompting for it")
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Exit without waiting for a key press")
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Show the engine invocation without starting it")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (maps to debug)")
    parser.add_argument(
        "--log",
        "-l",
        choices=list(LOG_LEVELS),
        default=None,
        help="Set log level (default: from settings, else error)")
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(list(sys.argv[1:] if argv is None else argv))

    # Explicit --log wins, then --verbose; settings decide otherwise
    cli_level = args.log or ("debug" if args.verbose else None)
    console = Console(level=cli_level or "error", dry_run=args.dry_run)

    config_path = resolve_config_path(args.config)
    try:
        settings = load_settings(config_path, console)
    except Exception as e:
        console.error(f"Failed to load config: {e}")
        return EXIT_CONFIG_ERROR

    settings = settings.with_overrides(log_level=cli_level)
    console = Console(level=settings.log_level, dry_run=args.dry_run)
    if config_path is not None:
        console.info(f"Using configuration from {config_path}")

    runner: ProcessRunner
    if args.dry_run:
        runner = DryRunProcessRunner(console)
    else:
        runner = SubprocessRunner()

    ctx = Context(settings=settings, console=console)
    engine = PowerShellEngine(settings.executables, settings.engine_args, runner, console)
    return CommandRunner(ctx, engine, command=args.command, wait=not args.no_wait).run()
