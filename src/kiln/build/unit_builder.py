"""
Incremental compilation of a single translation unit.

For every build the unit goes through the same steps:

1. Determine paths: <output_dir>/<name>.o, the .d next to it, and for module
   units the built interface next to it
2. Decide: rebuild if the object is missing; otherwise read the previous
   dependency file, record it in the graph and rebuild if any prerequisite
   is newer than the object. A missing or malformed dependency file means
   rebuild
3. Execute: module units use the module command, everything else compiles
   and regenerates the dependency file in one step, so the next build has
   fresh dependency information
4. Record the freshly written dependency file in the graph
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .command import Command
from .compiler import ICompiler
from .depfile import DepfileParseError, read_depfile
from .graph import DependencyGraph
from .process_runner import ProcessRunner
from .staleness import needs_rebuild
from .unit import TranslationUnit, UnitKind


def object_path_for(source: Path, output_dir: Path) -> Path:
    return (Path(output_dir) / Path(source).name).with_suffix(".o")


def depfile_path_for(object_path: Path) -> Path:
    return object_path.with_suffix(".d")


@dataclass
class UnitPaths:
    """Output locations of one unit."""

    object_path: Path
    depfile: Path
    interface_path: Optional[Path] = None


@dataclass
class UnitBuildResult:
    """Result of building one unit.

    Attributes:
        success: False if the compiler failed or could not be started
        rebuilt: True if a compile command was run
        object_path: Object file of the unit
        reason: Why the unit was (or was not) rebuilt
    """

    success: bool
    rebuilt: bool
    object_path: Path
    reason: str


class UnitBuilder:
    """
    Decides whether a unit is stale and recompiles it if so.

    Example usage:
        builder = UnitBuilder(ClangCompiler(), ProcessRunner())
        result = builder.build(unit, Path("build/src"), ["-O2"], target.graph)
        if not result.success:
            ...
    """

    def __init__(self, compiler: ICompiler, runner: ProcessRunner):
        """
        Initialize unit builder.

        Args:
            compiler: Toolchain producing the compile commands
            runner: Process runner executing them
        """
        self.compiler = compiler
        self.runner = runner

    def paths_for(self, unit: TranslationUnit, output_dir: Path) -> UnitPaths:
        """Compute output paths of a unit inside `output_dir`."""
        object_path = object_path_for(unit.source_path, output_dir)
        depfile = depfile_path_for(object_path)
        interface_path = None
        if unit.kind is UnitKind.MODULE:
            interface_path = self.compiler.module_interface_path(object_path)
        return UnitPaths(object_path, depfile, interface_path)

    def check(
        self,
        unit: TranslationUnit,
        paths: UnitPaths,
        graph: Optional[DependencyGraph] = None
    ) -> Tuple[bool, str]:
        """Decide whether a unit must be recompiled.

        Args:
            unit: Unit to check
            paths: Its output paths
            graph: Graph to record the previous dependency file into

        Returns:
            (rebuild, reason)
        """
        if not paths.object_path.exists():
            return True, "object file missing"

        if paths.interface_path is not None and not paths.interface_path.exists():
            return True, "module interface missing"

        try:
            record = read_depfile(paths.depfile)
        except FileNotFoundError:
            return True, "dependency file missing"
        except DepfileParseError as e:
            logging.warning(f"Malformed dependency file, will rebuild: {e}")
            return True, "dependency file malformed"
        except OSError as e:
            logging.warning(f"Could not read {paths.depfile}: {e.strerror}, will rebuild")
            return True, "dependency file unreadable"

        if graph is not None:
            graph.record(unit, record)

        try:
            stale = needs_rebuild(paths.object_path, record.prerequisites)
        except FileNotFoundError as e:
            return True, f"prerequisite removed: {e.filename}"

        if stale:
            return True, "prerequisite changed"
        return False, "up to date"

    def command_for(
        self,
        unit: TranslationUnit,
        paths: UnitPaths,
        options: Sequence[str]
    ) -> Command:
        """Select the compile command by unit kind."""
        if unit.kind is UnitKind.MODULE:
            return self.compiler.module_command(
                unit.source_path,
                paths.object_path,
                paths.interface_path,
                paths.depfile,
                options,
            )
        return self.compiler.compile_with_depfile_command(
            unit.source_path, paths.object_path, paths.depfile, options
        )

    def build(
        self,
        unit: TranslationUnit,
        output_dir: Path,
        options: Sequence[str] = (),
        graph: Optional[DependencyGraph] = None
    ) -> UnitBuildResult:
        """
        Build one unit if it is stale.

        Args:
            unit: Unit to build; its object_path is assigned here
            output_dir: Directory for the object and dependency files
            options: Compiler options
            graph: Dependency graph of the owning target

        Returns:
            UnitBuildResult describing what happened
        """
        paths = self.paths_for(unit, output_dir)
        unit.object_path = paths.object_path

        # TODO: store the options next to the .d file so that changing
        # compiler flags alone also forces a rebuild.
        rebuild, reason = self.check(unit, paths, graph)
        if not rebuild:
            logging.debug(f"{unit.source_path} is up to date")
            return UnitBuildResult(True, False, paths.object_path, reason)

        logging.info(f"{unit.source_path} needs to rebuild ({reason})")
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logging.error(f"Could not create {output_dir}: {e.strerror}")
            return UnitBuildResult(False, True, paths.object_path, "output directory unavailable")

        command = self.command_for(unit, paths, options)
        if not self.runner.run(command):
            logging.error(f"Compile {unit.source_path} failed")
            return UnitBuildResult(False, True, paths.object_path, "compiler failed")

        if graph is not None:
            self._record_fresh_depfile(unit, paths.depfile, graph)

        return UnitBuildResult(True, True, paths.object_path, reason)

    @staticmethod
    def _record_fresh_depfile(
        unit: TranslationUnit,
        depfile: Path,
        graph: DependencyGraph
    ) -> None:
        try:
            graph.record(unit, read_depfile(depfile))
        except (OSError, DepfileParseError) as e:
            logging.warning(f"Compiler did not leave a usable dependency file for {unit.source_path}: {e}")
