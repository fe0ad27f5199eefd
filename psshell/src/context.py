"""
Context and Console classes for psshell.
"""
import sys
from dataclasses import dataclass, field
from typing import Sequence, TextIO

from core.command_runner import ProcessResult, ProcessRunner

from .settings import Settings


class Console:
    """Simple diagnostic log handler with configurable log level.

    Levels: none < error < info < debug
    Default: 'error'
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "info": 2,
        "debug": 3,
    }

    def __init__(self, level: str = "error", dry_run: bool = False):
        self.level_name = level
        self.level = self.LEVELS.get(level, 0)
        self.dry_run = dry_run

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=sys.stderr)

    def dry(self, message: str) -> None:
        if self.dry_run:
            print(f"[DRY] {message}")

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")


class DryRunProcessRunner(ProcessRunner):
    """Process runner that prints engine invocations instead of starting them."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def run(self, command: Sequence[str]) -> ProcessResult:
        self.console.dry(self.format_command(command))
        return ProcessResult(command=command, returncode=0, stdout="", stderr="")


@dataclass
class Context:
    settings: Settings
    console: Console
    stdin: TextIO = field(default_factory=lambda: sys.stdin)
    stdout: TextIO = field(default_factory=lambda: sys.stdout)
    stderr: TextIO = field(default_factory=lambda: sys.stderr)
