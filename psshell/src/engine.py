"""
PowerShell engine adapter.

A session wraps one PowerShell executable resolved from ``PATH``. Each
command runs in a fresh engine process started through the shared
:class:`core.command_runner.ProcessRunner`. The user's text is handed over
base64-encoded and compiled by the engine with ``[scriptblock]::Create``, so
psshell never looks inside the command language. Every pipeline output
object comes back as one tagged line holding the JSON encoding of its
``ToString()`` form.
"""
from __future__ import annotations

import base64
import json
import shutil
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from core.command_runner import ProcessRunner

ITEM_PREFIX = "##psshell-item "

_WRAPPER_TEMPLATE = """\
$ProgressPreference = 'SilentlyContinue'
if ($PSStyle) {{ $PSStyle.OutputRendering = 'PlainText' }}
[Console]::OutputEncoding = New-Object System.Text.UTF8Encoding $false
$psshellSource = [System.Text.Encoding]::UTF8.GetString([System.Convert]::FromBase64String('{source}'))
try {{
    $psshellBlock = [scriptblock]::Create($psshellSource)
    & $psshellBlock | ForEach-Object {{
        if ($null -eq $_) {{ $psshellText = '' }} else {{ $psshellText = $_.ToString() }}
        [Console]::Out.WriteLine('{prefix}' + (ConvertTo-Json -Compress -InputObject $psshellText))
    }}
}} catch {{
    [Console]::Error.WriteLine($_.ToString())
    exit 1
}}
# Non-terminating errors leave $? false; they must not fail the command
exit 0
"""


class EngineError(Exception):
    """Base class for engine failures."""


class EngineUnavailableError(EngineError):
    """No usable scripting engine was found on this host."""


class SessionClosedError(EngineError):
    """A command was submitted to a session that was already closed."""


@runtime_checkable
class Stringable(Protocol):
    def to_text(self) -> str: ...


@dataclass(frozen=True)
class TextItem:
    """Result item carrying the engine's string form of one output object."""

    text: str

    def to_text(self) -> str:
        return self.text

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class ExecutionSucceeded:
    # None means the engine produced no result container at all
    items: Optional[Tuple[Stringable, ...]]


@dataclass(frozen=True)
class ExecutionFailed:
    error: str


ExecutionOutcome = Union[ExecutionSucceeded, ExecutionFailed]


class Session(Protocol):
    def execute(self, command: str) -> ExecutionOutcome: ...

    def close(self) -> None: ...


class EngineFactory(Protocol):
    def open_session(self) -> Session: ...


def build_wrapper_script(command: str) -> str:
    """Return the PowerShell script that runs ``command`` and tags its output."""
    source = base64.b64encode(command.encode("utf-8")).decode("ascii")
    return _WRAPPER_TEMPLATE.format(source=source, prefix=ITEM_PREFIX)


def encode_script(script: str) -> str:
    """Encode ``script`` for ``-EncodedCommand`` (base64 of UTF-16LE)."""
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def parse_items(stdout: str) -> Tuple[Tuple[TextItem, ...], List[str]]:
    """Split engine stdout into result items and untagged host lines."""
    items: List[TextItem] = []
    host_lines: List[str] = []
    for raw in stdout.splitlines():
        line = raw.lstrip("\ufeff")
        if not line.startswith(ITEM_PREFIX):
            if line.strip():
                host_lines.append(line)
            continue
        payload = line[len(ITEM_PREFIX):]
        try:
            value = json.loads(payload)
        except json.JSONDecodeError:
            items.append(TextItem(payload))
            continue
        items.append(TextItem(value if isinstance(value, str) else str(value)))
    return tuple(items), host_lines


class PowerShellSession:
    """One execution context bound to a resolved PowerShell executable."""

    def __init__(
        self,
        executable: str,
        engine_args: Sequence[str],
        runner: ProcessRunner,
        console=None,
    ) -> None:
        self.executable = executable
        self.engine_args = list(engine_args)
        self.runner = runner
        self.console = console
        self.closed = False

    def __enter__(self) -> "PowerShellSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def build_command(self, command: str) -> List[str]:
        return [
            self.executable,
            *self.engine_args,
            "-EncodedCommand",
            encode_script(build_wrapper_script(command)),
        ]

    def execute(self, command: str) -> ExecutionOutcome:
        if self.closed:
            raise SessionClosedError("Session is closed")

        argv = self.build_command(command)
        if self.console:
            self.console.debug(f"Executing via {self.executable}: {command!r}")
        try:
            result = self.runner.run(argv)
        except OSError as e:
            return ExecutionFailed(f"Could not start {self.executable}: {e}")

        items, host_lines = parse_items(result.stdout)
        if self.console:
            for line in host_lines:
                self.console.debug(f"host: {line}")

        stderr = result.stderr.strip()
        if result.returncode != 0:
            return ExecutionFailed(
                stderr or f"{self.executable} exited with status {result.returncode}"
            )
        if stderr and self.console:
            self.console.error(stderr)
        return ExecutionSucceeded(items)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.console:
            self.console.debug(f"Closed session for {self.executable}")


class PowerShellEngine:
    """Opens :class:`PowerShellSession` objects for the first executable found."""

    def __init__(
        self,
        executables: Sequence[str],
        engine_args: Sequence[str],
        runner: ProcessRunner,
        console=None,
    ) -> None:
        self.executables = list(executables)
        self.engine_args = list(engine_args)
        self.runner = runner
        self.console = console

    def find_executable(self) -> Optional[str]:
        for candidate in self.executables:
            path = shutil.which(candidate)
            if path:
                return path
        return None

    def open_session(self) -> PowerShellSession:
        executable = self.find_executable()
        if executable is None:
            raise EngineUnavailableError(
                f"none of {', '.join(self.executables)} found on PATH"
            )
        if self.console:
            self.console.info(f"Using engine: {executable}")
        return PowerShellSession(executable, self.engine_args, self.runner, self.console)
