"""
Tests for the PowerShell engine adapter.
"""

import base64
import json
import unittest
from unittest.mock import MagicMock, patch

from core.command_runner import ProcessResult, RecordingProcessRunner
from psshell.src.context import Console
from psshell.src.engine import (
    ITEM_PREFIX,
    EngineUnavailableError,
    ExecutionFailed,
    ExecutionSucceeded,
    PowerShellEngine,
    PowerShellSession,
    SessionClosedError,
    Stringable,
    TextItem,
    build_wrapper_script,
    encode_script,
    parse_items,
)


def item_line(text):
    return ITEM_PREFIX + json.dumps(text)


class TestWrapperScript(unittest.TestCase):
    def test_command_is_embedded_as_base64(self):
        script = build_wrapper_script("Get-Date | Select-Object -First 1")
        expected = base64.b64encode(b"Get-Date | Select-Object -First 1").decode("ascii")
        self.assertIn(f"FromBase64String('{expected}')", script)
        self.assertIn("[scriptblock]::Create", script)
        self.assertIn(ITEM_PREFIX, script)
        self.assertNotIn("Get-Date", script)

    def test_exit_status_is_set_by_wrapper(self):
        lines = build_wrapper_script("Write-Error warning; 'after'").strip().splitlines()

        self.assertEqual(lines[-1], "exit 0")
        body = "\n".join(lines)
        try_at = body.index("try {")
        catch_at = body.index("} catch {")
        self.assertLess(try_at, body.index("[scriptblock]::Create"))
        self.assertLess(body.index("& $psshellBlock"), catch_at)
        self.assertIn("[Console]::Error.WriteLine($_.ToString())", body[catch_at:])
        self.assertIn("exit 1", body[catch_at:])

    def test_encode_script_uses_utf16le(self):
        encoded = encode_script("1 + 1")
        self.assertEqual(base64.b64decode(encoded).decode("utf-16-le"), "1 + 1")


class TestParseItems(unittest.TestCase):
    def test_tagged_lines_become_items(self):
        stdout = "\n".join([item_line("a"), item_line("b"), item_line("c")]) + "\n"
        items, host = parse_items(stdout)
        self.assertEqual([i.to_text() for i in items], ["a", "b", "c"])
        self.assertEqual(host, [])

    def test_multiline_item_stays_single(self):
        items, _ = parse_items(item_line("line one\nline two") + "\n")
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0].to_text(), "line one\nline two")

    def test_untagged_lines_are_host_output(self):
        stdout = "hello from Write-Host\n" + item_line("4") + "\n\n"
        items, host = parse_items(stdout)
        self.assertEqual(items, (TextItem("4"),))
        self.assertEqual(host, ["hello from Write-Host"])

    def test_bom_is_ignored(self):
        items, _ = parse_items("\ufeff" + item_line("x") + "\r\n")
        self.assertEqual(items, (TextItem("x"),))

    def test_undecodable_payload_kept_as_text(self):
        items, _ = parse_items(ITEM_PREFIX + "not json\n")
        self.assertEqual(items, (TextItem("not json"),))

    def test_non_string_json_is_stringified(self):
        items, _ = parse_items(ITEM_PREFIX + "4\n")
        self.assertEqual(items, (TextItem("4"),))

    def test_empty_output_has_no_items(self):
        self.assertEqual(parse_items(""), ((), []))

    def test_text_item_is_stringable(self):
        self.assertIsInstance(TextItem("x"), Stringable)
        self.assertEqual(str(TextItem("x")), "x")


class TestPowerShellSession(unittest.TestCase):
    def setUp(self):
        self.console = MagicMock(spec=Console)

    def make_session(self, *results):
        runner = RecordingProcessRunner(results)
        session = PowerShellSession("/usr/bin/pwsh", ["-NoProfile"], runner, self.console)
        return session, runner

    def test_successful_execution(self):
        session, runner = self.make_session(
            ProcessResult(command=[], returncode=0, stdout=item_line("4") + "\n", stderr="")
        )
        outcome = session.execute("2 + 2")

        self.assertIsInstance(outcome, ExecutionSucceeded)
        self.assertEqual([i.to_text() for i in outcome.items], ["4"])
        argv = runner.invocations[0]
        self.assertEqual(argv[:3], ["/usr/bin/pwsh", "-NoProfile", "-EncodedCommand"])
        decoded = base64.b64decode(argv[3]).decode("utf-16-le")
        self.assertEqual(decoded, build_wrapper_script("2 + 2"))

    def test_nonzero_exit_is_failure_with_stderr(self):
        session, _ = self.make_session(
            ProcessResult(command=[], returncode=1, stdout="", stderr="ParseException\n")
        )
        outcome = session.execute("1 +")
        self.assertEqual(outcome, ExecutionFailed("ParseException"))

    def test_nonzero_exit_without_stderr(self):
        session, _ = self.make_session(
            ProcessResult(command=[], returncode=5, stdout="", stderr="")
        )
        outcome = session.execute("exit 5")
        self.assertEqual(outcome, ExecutionFailed("/usr/bin/pwsh exited with status 5"))

    def test_stderr_on_success_is_logged(self):
        session, _ = self.make_session(
            ProcessResult(
                command=[], returncode=0, stdout=item_line("after") + "\n", stderr="warning\n"
            )
        )
        outcome = session.execute("Write-Error warning; 'after'")
        self.assertEqual(outcome.items, (TextItem("after"),))
        self.console.error.assert_called_once_with("warning")

    def test_start_failure_becomes_execution_failure(self):
        runner = MagicMock()
        runner.run.side_effect = PermissionError("denied")
        session = PowerShellSession("/usr/bin/pwsh", [], runner)

        outcome = session.execute("Get-Date")
        self.assertIsInstance(outcome, ExecutionFailed)
        self.assertIn("Could not start /usr/bin/pwsh", outcome.error)

    def test_closed_session_rejects_commands(self):
        session, runner = self.make_session()
        session.close()
        session.close()
        with self.assertRaises(SessionClosedError):
            session.execute("Get-Date")
        self.assertEqual(runner.invocations, [])

    def test_context_manager_closes(self):
        session, _ = self.make_session()
        with session as s:
            self.assertFalse(s.closed)
        self.assertTrue(session.closed)


class TestPowerShellEngine(unittest.TestCase):
    @patch("psshell.src.engine.shutil.which")
    def test_first_available_executable_wins(self, mock_which):
        mock_which.side_effect = lambda name: None if name == "pwsh" else f"/bin/{name}"
        engine = PowerShellEngine(["pwsh", "powershell"], ["-NoLogo"], RecordingProcessRunner())

        session = engine.open_session()
        self.assertEqual(session.executable, "/bin/powershell")
        self.assertEqual(session.engine_args, ["-NoLogo"])
        self.assertFalse(session.closed)

    @patch("psshell.src.engine.shutil.which", return_value=None)
    def test_unavailable_engine_raises(self, _mock_which):
        engine = PowerShellEngine(["pwsh", "powershell"], [], RecordingProcessRunner())
        with self.assertRaises(EngineUnavailableError) as cm:
            engine.open_session()
        self.assertIn("pwsh, powershell", str(cm.exception))


if __name__ == "__main__":
    unittest.main()
