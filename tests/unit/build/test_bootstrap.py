"""
Unit tests for the self-rebuild bootstrap.
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from kiln.build.bootstrap import (
    BootstrapError,
    BootstrapState,
    SelfRebuilder,
    backup_path_for,
    ensure_current,
    resolve_binary_path,
)
from kiln.build.compiler_clang import ClangCompiler
from kiln.build.process_runner import ProcessRunner, RunResult


class RecordingRunner(ProcessRunner):
    """Records what the filesystem looked like at every command."""

    def __init__(self, binary: Path, compile_ok: bool = True, exec_status: int = 0):
        super().__init__()
        self.binary = binary
        self.compile_ok = compile_ok
        self.exec_status = exec_status
        self.events = []

    def execute(self, command, options=None):
        args = command.args
        if args[0] == "clang++":
            self.events.append((
                "compile",
                args,
                self.binary.exists(),
                backup_path_for(self.binary).exists(),
            ))
            if not self.compile_ok:
                return RunResult(success=False, returncode=1, error="compile error")
            self.binary.write_bytes(b"new binary")
            return RunResult(success=True, returncode=0)

        self.events.append(("exec", args))
        if self.exec_status:
            return RunResult(success=False, returncode=self.exec_status, error="failed")
        return RunResult(success=True, returncode=0)


@pytest.fixture
def layout(tmp_path, age):
    source = tmp_path / "build.cpp"
    source.write_text("int main() {}\n")
    header = tmp_path / "buildkit.hpp"
    header.write_text("#pragma once\n")
    binary = tmp_path / "build"
    binary.write_bytes(b"old binary")
    age(source, -100)
    age(header, -100)
    age(binary, -50)
    return source, header, binary


class TestResolveBinaryPath:
    """Test suite for resolve_binary_path."""

    def test_posix_unchanged(self):
        assert resolve_binary_path("./build", platform="linux") == Path("./build")

    def test_windows_adds_exe(self):
        assert resolve_binary_path("build", platform="win32") == Path("build.exe")

    def test_windows_keeps_exe(self):
        assert resolve_binary_path("build.EXE", platform="win32") == Path("build.EXE")


class TestSelfRebuilder:
    """Test suite for SelfRebuilder."""

    def test_current_binary_does_nothing(self, layout):
        source, header, binary = layout
        runner = RecordingRunner(binary)
        rebuilder = SelfRebuilder(ClangCompiler(), source, [header], runner=runner)

        assert rebuilder.run([str(binary)], binary=binary) is BootstrapState.CURRENT
        assert runner.events == []
        assert not backup_path_for(binary).exists()

    def test_stale_binary_rename_compile_exec(self, layout, age):
        source, header, binary = layout
        age(source, 0)
        runner = RecordingRunner(binary)
        rebuilder = SelfRebuilder(ClangCompiler(), source, [header], runner=runner)

        state = rebuilder.run([str(binary), "release", "-j", "4"], binary=binary)

        assert state is BootstrapState.SUPERSEDED
        assert rebuilder.state is BootstrapState.SUPERSEDED
        kind, args, binary_present, backup_present = runner.events[0]
        assert kind == "compile"
        # Renamed away before compiling
        assert not binary_present and backup_present
        assert args == ["clang++", "-std=c++23", "-o", binary.as_posix(), source.as_posix()]
        assert runner.events[1] == ("exec", [binary.as_posix(), "release", "-j", "4"])
        assert backup_path_for(binary).read_bytes() == b"old binary"
        assert binary.read_bytes() == b"new binary"

    def test_changed_extra_source_triggers_rebuild(self, layout, age):
        source, header, binary = layout
        age(header, 0)
        runner = RecordingRunner(binary)
        rebuilder = SelfRebuilder(ClangCompiler(), source, [header], runner=runner)
        assert rebuilder.run([str(binary)], binary=binary) is BootstrapState.SUPERSEDED

    def test_custom_standard(self, layout, age):
        source, header, binary = layout
        age(source, 0)
        runner = RecordingRunner(binary)
        SelfRebuilder(ClangCompiler(), source, runner=runner, standard="c++20").run(
            [str(binary)], binary=binary
        )
        assert runner.events[0][1][1] == "-std=c++20"

    def test_compile_failure_keeps_backup(self, layout, age):
        source, header, binary = layout
        age(source, 0)
        runner = RecordingRunner(binary, compile_ok=False)
        rebuilder = SelfRebuilder(ClangCompiler(), source, runner=runner)

        with pytest.raises(BootstrapError, match="previous binary kept"):
            rebuilder.run([str(binary)], binary=binary)
        assert backup_path_for(binary).exists()
        assert [e[0] for e in runner.events] == ["compile"]

    def test_new_binary_failure_carries_status(self, layout, age):
        source, header, binary = layout
        age(source, 0)
        runner = RecordingRunner(binary, exec_status=7)
        with pytest.raises(BootstrapError) as exc_info:
            SelfRebuilder(ClangCompiler(), source, runner=runner).run([str(binary)], binary=binary)
        assert exc_info.value.returncode == 7

    def test_missing_binary_is_built(self, layout, caplog):
        source, header, binary = layout
        binary.unlink()
        runner = RecordingRunner(binary)
        state = SelfRebuilder(ClangCompiler(), source, runner=runner).run(
            [str(binary)], binary=binary
        )
        assert state is BootstrapState.SUPERSEDED
        assert "nothing to back up" in caplog.text

    def test_missing_source_raises(self, layout):
        source, header, binary = layout
        rebuilder = SelfRebuilder(ClangCompiler(), source.with_name("missing.cpp"))
        with pytest.raises(FileNotFoundError):
            rebuilder.run([str(binary)], binary=binary)

    def test_empty_argv(self, layout):
        source, header, binary = layout
        with pytest.raises(BootstrapError):
            SelfRebuilder(ClangCompiler(), source).run([])


class TestEnsureCurrent:
    """Test suite for ensure_current."""

    def test_current_returns(self, layout):
        source, header, binary = layout
        exit_mock = Mock()
        state = ensure_current(
            [str(binary)], source, ClangCompiler(), runner=RecordingRunner(binary), exit=exit_mock
        )
        assert state is BootstrapState.CURRENT
        exit_mock.assert_not_called()

    def test_superseded_exits_zero(self, layout, age, monkeypatch):
        source, header, binary = layout
        age(source, 0)
        monkeypatch.chdir(binary.parent)
        exit_mock = Mock()
        ensure_current(
            [binary.name], source, ClangCompiler(), runner=RecordingRunner(Path(binary.name)),
            exit=exit_mock,
        )
        exit_mock.assert_called_once_with(0)

    def test_failure_exits_with_status(self, layout, age, monkeypatch):
        source, header, binary = layout
        age(source, 0)
        monkeypatch.chdir(binary.parent)
        exit_mock = Mock()
        ensure_current(
            [binary.name], source, ClangCompiler(),
            runner=RecordingRunner(Path(binary.name), exec_status=3),
            exit=exit_mock,
        )
        exit_mock.assert_called_once_with(3)
