"""Process Runner.

This module spawns external programs (compilers, linkers, a freshly built
build description) and waits for them to finish.

Design:
    - A run succeeds iff the process exit status is zero
    - An empty command fails immediately without spawning anything
    - Spawn failures (executable not found, permission denied) are reported
      as failures, not raised, by run(); run_checked() raises instead
    - On Windows the command is spawned from its serialized string so the
      child sees exactly the argv the quoting rules describe
    - Output streams are inherited unless redirected to files via RunOptions
    - There is no timeout: a hung compiler hangs the build
"""

import logging
import os
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Optional, Union

import psutil

from ..interrupt_utils import handle_keyboard_interrupt_properly
from .command import Command


class ProcessError(Exception):
    """Base exception for process execution errors."""
    pass


class ProcessSpawnError(ProcessError):
    """Raised when the operating system cannot start the program."""
    pass


class ProcessExitError(ProcessError):
    """Raised when the program exits with a nonzero status."""

    def __init__(self, message: str, returncode: int):
        super().__init__(message)
        self.returncode = returncode


@dataclass
class RunOptions:
    """Stream redirection and working directory for a run.

    Attributes:
        stdin: File to read standard input from
        stdout: File to write standard output to (truncated)
        stderr: File to write standard error to (truncated)
        cwd: Working directory for the child process
    """

    stdin: Optional[Path] = None
    stdout: Optional[Path] = None
    stderr: Optional[Path] = None
    cwd: Optional[Path] = None


@dataclass
class RunResult:
    """Result of running a command."""

    success: bool
    returncode: Optional[int]
    error: Optional[str] = None


class ProcessRunner:
    """Runs Commands as child processes and waits for them.

    Example usage:
        runner = ProcessRunner()
        if not runner.run(Command("clang++", "-c", "main.cpp")):
            ...
    """

    def __init__(self, echo_commands: bool = False):
        """Initialize process runner.

        Args:
            echo_commands: Log every command line at INFO level instead of DEBUG
        """
        self.echo_commands = echo_commands

    def run(self, command: Command, options: Optional[RunOptions] = None) -> bool:
        """Run a command and report success.

        Args:
            command: Command to run; the first argument names the program
            options: Optional stream redirection

        Returns:
            True iff the process was spawned and exited with status zero
        """
        return self.execute(command, options).success

    def run_checked(self, command: Command, options: Optional[RunOptions] = None) -> None:
        """Run a command, raising on any failure.

        Raises:
            ProcessSpawnError: If the command is empty or cannot be started
            ProcessExitError: If the process exits with a nonzero status
        """
        result = self.execute(command, options)
        if result.success:
            return
        if result.returncode is None:
            raise ProcessSpawnError(result.error or "Failed to start process")
        raise ProcessExitError(result.error or "Process failed", result.returncode)

    def execute(self, command: Command, options: Optional[RunOptions] = None) -> RunResult:
        """Run a command and return a detailed result."""
        if command.empty():
            logging.error("Could not run empty command")
            return RunResult(success=False, returncode=None, error="empty command")

        options = options or RunOptions()
        command_line = command.serialize()
        if self.echo_commands:
            logging.info(command_line)
        else:
            logging.debug(command_line)

        args: Union[str, list] = command_line if os.name == "nt" else command.args

        with ExitStack() as stack:
            try:
                stdin = self._open(stack, options.stdin, "rb")
                stdout = self._open(stack, options.stdout, "wb")
                stderr = self._open(stack, options.stderr, "wb")
            except OSError as e:
                message = f"Could not open redirection file {e.filename}: {e.strerror}"
                logging.error(message)
                return RunResult(success=False, returncode=None, error=message)

            try:
                proc = psutil.Popen(
                    args,
                    stdin=stdin,
                    stdout=stdout,
                    stderr=stderr,
                    cwd=str(options.cwd) if options.cwd else None,
                )
            except OSError as e:
                message = f"Could not start {command.program}: {e.strerror or e}"
                logging.error(message)
                return RunResult(success=False, returncode=None, error=message)

            try:
                returncode = proc.wait()
            except KeyboardInterrupt as ke:
                handle_keyboard_interrupt_properly(ke, proc.pid)
                raise  # Never reached, but satisfies type checker

        if returncode != 0:
            message = f"{command.program} exited with status {returncode}"
            logging.error(message)
            return RunResult(success=False, returncode=returncode, error=message)

        return RunResult(success=True, returncode=returncode)

    @staticmethod
    def _open(stack: ExitStack, path: Optional[Path], mode: str) -> Optional[IO[bytes]]:
        if path is None:
            return None
        if "w" in mode:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        return stack.enter_context(open(path, mode))
