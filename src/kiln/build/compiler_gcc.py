"""
GCC compiler family.

Command lines for g++ and ar. GCC keeps built module interfaces in its own
`gcm.cache` directory under the working directory, so no interface path is
passed on the command line; importers only need `-fmodules-ts`.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .command import Command
from .compiler import GnuDriverCompiler


class GccCompiler(GnuDriverCompiler):
    """Wrapper for the g++ driver."""

    family = "gcc"

    def __init__(
        self,
        path: Path = Path("g++"),
        archiver: Path = Path("ar")
    ):
        super().__init__(path, archiver)

    def module_interface_path(self, object_path: Path) -> Optional[Path]:
        return None

    def module_command(
        self,
        source: Path,
        object_path: Path,
        interface_path: Optional[Path],
        depfile: Path,
        options: Sequence[str]
    ) -> Command:
        return Command(
            self.path,
            "-fmodules-ts",
            "-x", "c++",
            "-c", source,
            "-o", object_path,
            "-MMD", "-MF", depfile,
            "-MT", object_path,
            list(options),
        )

    def module_search_options(self, interface_dirs: Iterable[Path]) -> List[str]:
        return ["-fmodules-ts"] if list(interface_dirs) else []
