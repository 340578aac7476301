"""Abstract base classes for compiler toolchains.

This module defines the interface every compiler family implements. All
methods that produce a Command are pure: they return the command line and
never run anything. Execution belongs to the orchestrators, which keeps
command construction testable without a compiler installed.
"""

import sys
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .command import Command


class CompilerError(Exception):
    """Base exception for toolchain errors."""
    pass


class OutputKind(Enum):
    """Kind of artifact a target links into."""

    EXECUTABLE = "executable"
    STATIC_LIBRARY = "static_library"
    DYNAMIC_LIBRARY = "dynamic_library"


def artifact_filename(name: str, kind: OutputKind, platform: Optional[str] = None) -> str:
    """File name of a linked artifact on the given platform.

    Args:
        name: Target name
        kind: Artifact kind
        platform: sys.platform value (defaults to the host)

    Returns:
        File name such as 'app.exe', 'libcore.a' or 'libcore.so'
    """
    platform = platform or sys.platform
    windows = platform.startswith("win")
    if kind is OutputKind.EXECUTABLE:
        return f"{name}.exe" if windows else name
    if kind is OutputKind.STATIC_LIBRARY:
        return f"{name}.lib" if windows else f"lib{name}.a"
    if windows:
        return f"{name}.dll"
    if platform == "darwin":
        return f"lib{name}.dylib"
    return f"lib{name}.so"


class ICompiler(ABC):
    """Interface for compiler families.

    Implementations (via GnuDriverCompiler):
    - ClangCompiler (clang++, llvm-ar)
    - GccCompiler (g++, ar)
    """

    #: Human readable family name, also the configuration value that selects it
    family: str = ""

    def __init__(self, path: Path, archiver: Path):
        """
        Initialize compiler.

        Args:
            path: Compiler driver executable (name on PATH or full path)
            archiver: Archiver executable used for static libraries
        """
        self.path = Path(path)
        self.archiver = Path(archiver)

    @abstractmethod
    def module_interface_path(self, object_path: Path) -> Optional[Path]:
        """Where the built interface of a module unit is written.

        Returns None when the family manages interface locations itself.
        """
        pass

    @abstractmethod
    def depfile_command(
        self,
        source: Path,
        depfile: Path,
        options: Sequence[str],
        target: Optional[Path] = None
    ) -> Command:
        """Command that only writes the dependency file for `source`.

        Args:
            source: Translation unit
            depfile: Dependency file to write
            options: Compiler options (include paths and defines matter here)
            target: Rule target to write instead of the compiler's default

        Returns:
            Command to run
        """
        pass

    @abstractmethod
    def compile_command(
        self,
        source: Path,
        object_path: Path,
        options: Sequence[str]
    ) -> Command:
        """Command that compiles `source` to `object_path`."""
        pass

    @abstractmethod
    def compile_with_depfile_command(
        self,
        source: Path,
        object_path: Path,
        depfile: Path,
        options: Sequence[str]
    ) -> Command:
        """Command that compiles and writes the dependency file in one step.

        The dependency file's rule target is the object path, so the next
        build can check the object against it.
        """
        pass

    @abstractmethod
    def module_command(
        self,
        source: Path,
        object_path: Path,
        interface_path: Optional[Path],
        depfile: Path,
        options: Sequence[str]
    ) -> Command:
        """Command that precompiles a module interface unit.

        Produces the object file (for linking), the built module interface
        (for importers) and the dependency file.
        """
        pass

    @abstractmethod
    def module_search_options(self, interface_dirs: Iterable[Path]) -> List[str]:
        """Options that let importers find built module interfaces."""
        pass

    @abstractmethod
    def link_command(
        self,
        output: Path,
        objects: Sequence[Path],
        kind: OutputKind = OutputKind.EXECUTABLE,
        options: Sequence[str] = ()
    ) -> Command:
        """Command that links or archives `objects` into `output`."""
        pass

    @abstractmethod
    def self_compile_command(
        self,
        source: Path,
        binary: Path,
        standard: str = "c++23"
    ) -> Command:
        """Command that builds a build description binary from its source."""
        pass

    def target_options(self, kind: OutputKind) -> List[str]:
        """Extra compile options implied by the artifact kind."""
        if kind is OutputKind.DYNAMIC_LIBRARY and not sys.platform.startswith("win"):
            return ['-fPIC']
        return []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={str(self.path)!r})"


class GnuDriverCompiler(ICompiler):
    """Command lines shared by GNU-compatible drivers (g++, clang++).

    Subclasses supply the module handling, which is where the families
    differ.
    """

    def depfile_command(
        self,
        source: Path,
        depfile: Path,
        options: Sequence[str],
        target: Optional[Path] = None
    ) -> Command:
        cmd = Command(self.path, "-MM", "-MF", depfile, source)
        if target is not None:
            cmd.append("-MT", target)
        cmd.append(list(options))
        return cmd

    def compile_command(
        self,
        source: Path,
        object_path: Path,
        options: Sequence[str]
    ) -> Command:
        return Command(self.path, "-c", source, "-o", object_path, list(options))

    def compile_with_depfile_command(
        self,
        source: Path,
        object_path: Path,
        depfile: Path,
        options: Sequence[str]
    ) -> Command:
        return Command(
            self.path,
            "-c", source,
            "-o", object_path,
            "-MMD", "-MF", depfile,
            "-MT", object_path,
            list(options),
        )

    def link_command(
        self,
        output: Path,
        objects: Sequence[Path],
        kind: OutputKind = OutputKind.EXECUTABLE,
        options: Sequence[str] = ()
    ) -> Command:
        if kind is OutputKind.STATIC_LIBRARY:
            return Command(self.archiver, "rcs", output, list(objects))
        cmd = Command(self.path)
        if kind is OutputKind.DYNAMIC_LIBRARY:
            cmd.append("-shared")
        cmd.append(list(objects), "-o", output, list(options))
        return cmd

    def self_compile_command(
        self,
        source: Path,
        binary: Path,
        standard: str = "c++23"
    ) -> Command:
        return Command(self.path, f"-std={standard}", "-o", binary, source)
