"""
Single-shot command runner: read one command, execute it, print the results.
"""
from typing import Optional

from .context import Context
from .engine import (
    EngineFactory,
    EngineUnavailableError,
    ExecutionFailed,
    ExecutionOutcome,
    ExecutionSucceeded,
)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_ENGINE_UNAVAILABLE = 69  # sysexits EX_UNAVAILABLE


class CommandRunner:
    """Runs exactly one command through a session opened from ``factory``."""

    def __init__(
        self,
        ctx: Context,
        factory: EngineFactory,
        command: Optional[str] = None,
        wait: bool = True,
    ):
        self.ctx = ctx
        self.factory = factory
        self.command = command
        self.wait = wait

    def _write(self, text: str) -> None:
        self.ctx.stdout.write(text)
        self.ctx.stdout.flush()

    def _read_line(self) -> str:
        # End of input reads as an empty line
        line = self.ctx.stdin.readline()
        return line.rstrip("\r\n")

    def read_command(self) -> str:
        if self.command is not None:
            return self.command
        self._write(self.ctx.settings.prompt)
        return self._read_line()

    def execute(self, command: str) -> Optional[ExecutionOutcome]:
        """Open a session, run ``command`` and close the session.

        Returns None when the engine is unavailable.
        """
        try:
            session = self.factory.open_session()
        except EngineUnavailableError as e:
            self.ctx.console.error(f"Failed to open session: {e}")
            print(f"Engine unavailable: {e}", file=self.ctx.stderr)
            return None

        try:
            return session.execute(command)
        except Exception as e:
            self.ctx.console.debug(f"Session raised {type(e).__name__}")
            return ExecutionFailed(str(e) or type(e).__name__)
        finally:
            session.close()

    def render(self, outcome: ExecutionOutcome) -> None:
        if isinstance(outcome, ExecutionFailed):
            print(f"Error: {outcome.error}", file=self.ctx.stderr)
            return
        if isinstance(outcome, ExecutionSucceeded) and outcome.items:
            for item in outcome.items:
                print(item.to_text(), file=self.ctx.stdout)
        self.ctx.stdout.flush()

    def pause(self) -> None:
        if not self.wait:
            return
        self._write(self.ctx.settings.exit_prompt)
        self._read_line()

    def run(self) -> int:
        command = self.read_command()
        self.ctx.console.debug(f"Command: {command!r}")

        outcome = self.execute(command)
        if outcome is None:
            self.pause()
            return EXIT_ENGINE_UNAVAILABLE

        self.render(outcome)
        self.pause()
        return EXIT_OK
