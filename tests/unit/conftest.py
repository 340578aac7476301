"""
Shared fixtures for unit tests.

FakeToolchainRunner stands in for a real compiler: it records every command
and produces the files a GNU-style driver would (objects, dependency files,
module interfaces, linked artifacts).
"""

import os
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from kiln.build.command import Command
from kiln.build.depfile import DependencyRecord, write_depfile
from kiln.build.process_runner import ProcessRunner, RunOptions, RunResult


class FakeToolchainRunner(ProcessRunner):
    """Process runner that simulates compiler and linker invocations."""

    def __init__(
        self,
        headers: Optional[Dict[str, List[Path]]] = None,
        fail_on: Iterable[str] = ()
    ):
        super().__init__()
        self.headers = headers or {}
        self.fail_on = set(fail_on)
        self.commands: List[List[str]] = []
        self._lock = threading.Lock()

    def execute(self, command: Command, options: Optional[RunOptions] = None) -> RunResult:
        args = command.args
        with self._lock:
            self.commands.append(args)

        if "-c" in args:
            source = Path(args[args.index("-c") + 1])
            if source.name in self.fail_on:
                return RunResult(success=False, returncode=1, error="fake compile error")
            obj = Path(args[args.index("-o") + 1])
            obj.write_bytes(b"object")
            if "-MF" in args:
                depfile = Path(args[args.index("-MF") + 1])
                prerequisites = [source] + list(self.headers.get(source.name, []))
                write_depfile(depfile, DependencyRecord([obj], prerequisites))
            for arg in args:
                if arg.startswith("-fmodule-output="):
                    Path(arg.split("=", 1)[1]).write_bytes(b"interface")
        elif len(args) > 2 and args[1] == "rcs":
            Path(args[2]).write_bytes(b"archive")
        elif "-o" in args:
            Path(args[args.index("-o") + 1]).write_bytes(b"linked")
        return RunResult(success=True, returncode=0)

    def compiled_sources(self) -> List[str]:
        """File names of sources compiled so far, in command order."""
        return [
            Path(args[args.index("-c") + 1]).name
            for args in self.commands
            if "-c" in args
        ]

    def link_commands(self) -> List[List[str]]:
        return [args for args in self.commands if "-c" not in args]

    def reset(self) -> None:
        self.commands.clear()


def set_mtime(path: Path, offset_s: float) -> None:
    """Move the mtime of `path` relative to now."""
    ts = time.time() + offset_s
    os.utime(path, (ts, ts))


@pytest.fixture
def fake_runner_class():
    return FakeToolchainRunner


@pytest.fixture
def age():
    """Set a file's mtime `offset` seconds away from now."""
    return set_mtime
