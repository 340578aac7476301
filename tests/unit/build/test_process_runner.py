"""
Unit tests for ProcessRunner.

Real child processes are the running Python interpreter, so these tests
need no compiler.
"""

import sys
from unittest.mock import Mock, patch

import pytest

from kiln.build.command import Command
from kiln.build.process_runner import (
    ProcessExitError,
    ProcessRunner,
    ProcessSpawnError,
    RunOptions,
)


def python_command(code: str) -> Command:
    return Command(sys.executable, "-c", code)


class TestProcessRunner:
    """Test suite for ProcessRunner."""

    @pytest.fixture
    def runner(self):
        return ProcessRunner()

    def test_zero_exit_is_success(self, runner):
        assert runner.run(python_command("pass")) is True

    def test_nonzero_exit_is_failure(self, runner):
        result = runner.execute(python_command("import sys; sys.exit(3)"))
        assert result.success is False
        assert result.returncode == 3
        assert "status 3" in result.error

    def test_empty_command_fails_without_spawning(self, runner, caplog):
        with patch("kiln.build.process_runner.psutil.Popen") as popen:
            assert runner.run(Command()) is False
            popen.assert_not_called()
        assert "Could not run empty command" in caplog.text

    def test_missing_program_is_failure(self, runner, tmp_path):
        result = runner.execute(Command(tmp_path / "no-such-program"))
        assert result.success is False
        assert result.returncode is None

    def test_spawns_argv_list_on_posix(self, runner):
        proc = Mock()
        proc.wait.return_value = 0
        with patch("kiln.build.process_runner.os.name", "posix"), \
                patch("kiln.build.process_runner.psutil.Popen", return_value=proc) as popen:
            assert runner.run(Command("cc", "a b.c"))
        assert popen.call_args[0][0] == ["cc", "a b.c"]

    def test_spawns_serialized_string_on_windows(self, runner):
        proc = Mock()
        proc.wait.return_value = 0
        with patch("kiln.build.process_runner.os.name", "nt"), \
                patch("kiln.build.process_runner.psutil.Popen", return_value=proc) as popen:
            assert runner.run(Command("cl", "a b.c"))
        assert popen.call_args[0][0] == 'cl "a b.c"'

    def test_stdout_redirection(self, runner, tmp_path):
        out = tmp_path / "logs" / "out.txt"
        code = "print('hello')"
        assert runner.run(python_command(code), RunOptions(stdout=out))
        assert out.read_text().strip() == "hello"

    def test_stdin_redirection(self, runner, tmp_path):
        source = tmp_path / "in.txt"
        source.write_text("payload")
        out = tmp_path / "out.txt"
        code = "import sys; sys.stdout.write(sys.stdin.read().upper())"
        assert runner.run(python_command(code), RunOptions(stdin=source, stdout=out))
        assert out.read_text() == "PAYLOAD"

    def test_missing_stdin_file_is_failure(self, runner, tmp_path):
        result = runner.execute(python_command("pass"), RunOptions(stdin=tmp_path / "missing"))
        assert result.success is False
        assert result.returncode is None

    def test_cwd(self, runner, tmp_path):
        code = "open('marker', 'w').close()"
        assert runner.run(python_command(code), RunOptions(cwd=tmp_path))
        assert (tmp_path / "marker").exists()

    def test_echo_commands_logs_at_info(self, caplog):
        runner = ProcessRunner(echo_commands=True)
        with caplog.at_level("INFO"):
            runner.run(python_command("pass"))
        assert sys.executable in caplog.text


class TestRunChecked:
    """Test suite for ProcessRunner.run_checked."""

    def test_success_returns_none(self):
        assert ProcessRunner().run_checked(python_command("pass")) is None

    def test_exit_error_carries_status(self):
        with pytest.raises(ProcessExitError) as exc_info:
            ProcessRunner().run_checked(python_command("import sys; sys.exit(5)"))
        assert exc_info.value.returncode == 5

    def test_spawn_error(self, tmp_path):
        with pytest.raises(ProcessSpawnError):
            ProcessRunner().run_checked(Command(tmp_path / "missing"))
