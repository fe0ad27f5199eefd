"""Utilities for starting external engine processes with optional dry-run support."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence
import shlex
import subprocess


@dataclass
class ProcessResult:
    """Represents the outcome of a finished engine process."""

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str


class ProcessRunner:
    """Abstract process runner interface."""

    def run(self, command: Sequence[str]) -> ProcessResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)


class SubprocessRunner(ProcessRunner):
    """Process runner backed by :mod:`subprocess`; blocks until the process exits."""

    def run(self, command: Sequence[str]) -> ProcessResult:
        process = subprocess.run(
            list(command),
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
        return ProcessResult(
            command=command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
        )


class RecordingProcessRunner(ProcessRunner):
    """Process runner that records invocations and replays canned results."""

    def __init__(self, results: Iterable[ProcessResult] | None = None) -> None:
        self.invocations: List[List[str]] = []
        self._results: List[ProcessResult] = list(results or [])

    def run(self, command: Sequence[str]) -> ProcessResult:
        self.invocations.append(list(command))
        if self._results:
            return self._results.pop(0)
        return ProcessResult(command=command, returncode=0, stdout="", stderr="")


__all__ = [
    "ProcessResult",
    "ProcessRunner",
    "RecordingProcessRunner",
    "SubprocessRunner",
]
