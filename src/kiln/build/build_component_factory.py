"""
Build component factory for kiln.

This module selects the compiler family from an explicit configuration value
and wires the runner and orchestrators together. There is no process-wide
"current compiler": whoever starts a build names the family.
"""

import shutil
from pathlib import Path
from typing import Dict, Optional, Type

from .compiler import CompilerError, ICompiler
from .compiler_clang import ClangCompiler
from .compiler_gcc import GccCompiler
from .orchestrator import TargetBuildOrchestrator
from .process_runner import ProcessRunner

COMPILER_FAMILIES: Dict[str, Type[ICompiler]] = {
    ClangCompiler.family: ClangCompiler,
    GccCompiler.family: GccCompiler,
}

# Aliases accepted in configuration files and on the command line
_ALIASES = {
    "clang++": "clang",
    "llvm": "clang",
    "g++": "gcc",
    "gnu": "gcc",
}


class BuildComponentFactory:
    """
    Factory for creating build components.

    Example usage:
        factory = BuildComponentFactory()
        compiler = factory.create_compiler("clang")
        orchestrator = factory.create_orchestrator(compiler, jobs=4)
    """

    @staticmethod
    def create_compiler(
        family: str,
        path: Optional[Path] = None,
        archiver: Optional[Path] = None
    ) -> ICompiler:
        """
        Create a compiler for a family.

        Args:
            family: 'clang' or 'gcc' (aliases like 'g++' accepted)
            path: Compiler driver to use instead of the family default
            archiver: Archiver to use instead of the family default

        Returns:
            Configured compiler

        Raises:
            CompilerError: If the family is unknown
        """
        key = family.strip().lower()
        key = _ALIASES.get(key, key)
        compiler_class = COMPILER_FAMILIES.get(key)
        if compiler_class is None:
            available = ", ".join(sorted(COMPILER_FAMILIES))
            raise CompilerError(
                f"Unknown compiler family '{family}'. Available: {available}"
            )

        kwargs = {}
        if path is not None:
            kwargs["path"] = Path(path)
        if archiver is not None:
            kwargs["archiver"] = Path(archiver)
        return compiler_class(**kwargs)

    @staticmethod
    def detect_compiler() -> ICompiler:
        """Pick the first compiler family whose driver is on PATH.

        Raises:
            CompilerError: If neither clang++ nor g++ is installed
        """
        for compiler_class in COMPILER_FAMILIES.values():
            compiler = compiler_class()
            if shutil.which(str(compiler.path)):
                return compiler
        raise CompilerError("No supported compiler found on PATH (tried clang++, g++)")

    @staticmethod
    def create_runner(verbose: bool = False) -> ProcessRunner:
        return ProcessRunner(echo_commands=verbose)

    @staticmethod
    def create_orchestrator(
        compiler: ICompiler,
        jobs: int = 1,
        verbose: bool = False
    ) -> TargetBuildOrchestrator:
        """Create a target orchestrator with a fresh process runner."""
        return TargetBuildOrchestrator(
            compiler=compiler,
            runner=BuildComponentFactory.create_runner(verbose),
            jobs=jobs,
        )
