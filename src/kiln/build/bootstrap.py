"""
Self-rebuild bootstrap for compiled build descriptions.

A build description written in C++ is compiled into a small binary that runs
the build. When its source (or a header it includes) changes, the binary has
to be rebuilt before it does anything else. The protocol is:

    CURRENT     binary is newer than every declared source, keep going
    REBUILDING  binary is stale: move it aside to <binary>.old, compile the
                source into <binary>, run the new binary with the original
                arguments
    SUPERSEDED  the new binary ran successfully; the caller must exit, the
                real work has already been done

The .old backup is never deleted, so a broken rebuild can be rolled back by
hand. If compiling fails the backup is the only usable binary left.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from .command import Command
from .compiler import ICompiler
from .process_runner import ProcessRunner
from .staleness import needs_rebuild

BACKUP_SUFFIX = ".old"


class BootstrapState(Enum):
    """Where a build description binary stands relative to its source."""

    CURRENT = "current"
    REBUILDING = "rebuilding"
    SUPERSEDED = "superseded"


class BootstrapError(Exception):
    """Raised when the rebuilt binary cannot be produced or fails to run."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


def resolve_binary_path(argv0: Union[str, Path], platform: Optional[str] = None) -> Path:
    """Path of the running binary, with the platform executable extension."""
    platform = platform or sys.platform
    binary = Path(argv0)
    if platform.startswith("win") and binary.suffix.lower() != ".exe":
        binary = binary.with_suffix(".exe")
    return binary


def backup_path_for(binary: Path) -> Path:
    return binary.with_name(binary.name + BACKUP_SUFFIX)


class SelfRebuilder:
    """
    Runs the self-rebuild protocol for one build description.

    Example usage:
        rebuilder = SelfRebuilder(
            compiler=ClangCompiler(),
            source_path=Path("build.cpp"),
            extra_sources=[Path("buildkit.hpp")],
        )
        if rebuilder.run(sys.argv) is BootstrapState.SUPERSEDED:
            sys.exit(0)
    """

    def __init__(
        self,
        compiler: ICompiler,
        source_path: Path,
        extra_sources: Sequence[Path] = (),
        runner: Optional[ProcessRunner] = None,
        standard: str = "c++23"
    ):
        """
        Initialize self rebuilder.

        Args:
            compiler: Compiler used to rebuild the binary
            source_path: Source file of the build description
            extra_sources: Other files whose change forces a rebuild
            runner: Process runner (a default one is created if omitted)
            standard: Language standard passed to the compiler
        """
        self.compiler = compiler
        self.source_path = Path(source_path)
        self.extra_sources = [Path(p) for p in extra_sources]
        self.runner = runner or ProcessRunner()
        self.standard = standard
        self.state = BootstrapState.CURRENT

    @property
    def watched_sources(self) -> List[Path]:
        return self.extra_sources + [self.source_path]

    def is_stale(self, binary: Path) -> bool:
        """
        Check the binary against its sources.

        Raises:
            FileNotFoundError: If a declared source does not exist
        """
        return needs_rebuild(binary, self.watched_sources)

    def run(self, argv: Sequence[str], binary: Optional[Path] = None) -> BootstrapState:
        """
        Rebuild and re-execute the binary if it is stale.

        Args:
            argv: Original process arguments; argv[0] names the binary
            binary: Binary path to use instead of resolving argv[0]

        Returns:
            CURRENT if nothing was rebuilt, SUPERSEDED if the new binary ran
            successfully and the caller should exit

        Raises:
            BootstrapError: If renaming, compiling, or running the new binary
                fails
        """
        if binary is None:
            if not argv:
                raise BootstrapError("Cannot resolve the binary path from empty argv")
            binary = resolve_binary_path(argv[0])

        if not self.is_stale(binary):
            logging.debug(f"{binary} is up to date with {self.source_path}")
            self.state = BootstrapState.CURRENT
            return self.state

        self.state = BootstrapState.REBUILDING
        logging.info(f"{self.source_path} changed, rebuilding {binary}")

        backup = backup_path_for(binary)
        if binary.exists():
            try:
                binary.replace(backup)
            except OSError as e:
                raise BootstrapError(
                    f"Could not move {binary} to {backup}: {e.strerror}"
                ) from e
        else:
            logging.warning(f"{binary} does not exist, nothing to back up")

        compile_cmd = self.compiler.self_compile_command(self.source_path, binary, self.standard)
        if not self.runner.run(compile_cmd):
            raise BootstrapError(
                f"Compiling {self.source_path} failed; previous binary kept at {backup}"
            )

        exec_cmd = Command(binary).extend(argv[1:])
        result = self.runner.execute(exec_cmd)
        if not result.success:
            raise BootstrapError(
                f"Rebuilt {binary} failed: {result.error}", result.returncode
            )

        self.state = BootstrapState.SUPERSEDED
        return self.state


def ensure_current(
    argv: Sequence[str],
    source_path: Path,
    compiler: ICompiler,
    extra_sources: Sequence[Path] = (),
    runner: Optional[ProcessRunner] = None,
    standard: str = "c++23",
    exit: Callable[[int], None] = sys.exit
) -> BootstrapState:
    """Run the bootstrap and end the process when it has been superseded.

    Exits with status 0 when the rebuilt binary succeeded, and with the
    rebuilt binary's status (or 1) when rebuilding or running it failed.

    Returns:
        BootstrapState.CURRENT when the caller should carry on
    """
    rebuilder = SelfRebuilder(compiler, source_path, extra_sources, runner, standard)
    try:
        state = rebuilder.run(argv)
    except BootstrapError as e:
        logging.error(str(e))
        exit(e.returncode or 1)
        return rebuilder.state
    if state is BootstrapState.SUPERSEDED:
        exit(0)
    return state
