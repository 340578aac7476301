"""
Clang compiler family.

Command lines for clang++ and llvm-ar. Module interface units are built with
`-fmodule-output=`, which produces the object file and the .pcm in a single
invocation; importers locate interfaces via `-fprebuilt-module-path=`.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .command import Command
from .compiler import GnuDriverCompiler


class ClangCompiler(GnuDriverCompiler):
    """
    Wrapper for the clang++ driver.

    Example:
        clang = ClangCompiler()
        cmd = clang.compile_with_depfile_command(
            Path("main.cpp"), Path("build/main.o"), Path("build/main.d"), ["-O2"]
        )
        # clang++ -c main.cpp -o build/main.o -MMD -MF build/main.d -MT build/main.o -O2
    """

    family = "clang"

    def __init__(
        self,
        path: Path = Path("clang++"),
        archiver: Path = Path("llvm-ar")
    ):
        super().__init__(path, archiver)

    def module_interface_path(self, object_path: Path) -> Optional[Path]:
        return object_path.with_suffix(".pcm")

    def module_command(
        self,
        source: Path,
        object_path: Path,
        interface_path: Optional[Path],
        depfile: Path,
        options: Sequence[str]
    ) -> Command:
        cmd = Command(
            self.path,
            "-x", "c++-module",
            "-c", source,
            "-o", object_path,
        )
        if interface_path is not None:
            cmd.append(f"-fmodule-output={interface_path.as_posix()}")
        cmd.append(
            "-MMD", "-MF", depfile,
            "-MT", object_path,
            list(options),
        )
        return cmd

    def module_search_options(self, interface_dirs: Iterable[Path]) -> List[str]:
        return [f"-fprebuilt-module-path={Path(d).as_posix()}" for d in interface_dirs]
