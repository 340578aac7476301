"""
Build orchestration for kiln targets.

This module drives a whole target through the build:
1. Assign every compilable unit an output directory mirroring its source
   directory below the build directory
2. Build each unit incrementally (see unit_builder)
3. Stop at the first unit that fails to compile
4. Link (or archive) all object files into the target artifact

With jobs > 1, module interface units are built first in declaration order,
since other units may import them, and the remaining units are compiled on a
bounded thread pool.
"""

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from .compiler import ICompiler
from .process_runner import ProcessRunner
from .unit import TranslationUnit, UnitKind
from .unit_builder import UnitBuilder, UnitBuildResult

if TYPE_CHECKING:
    from ..config.project import Target


@dataclass
class BuildResult:
    """Result of building one target."""

    success: bool
    output_path: Optional[Path]
    objects: List[Path] = field(default_factory=list)
    rebuilt: List[Path] = field(default_factory=list)
    build_time: float = 0.0
    message: str = ""


class BuildOrchestratorError(Exception):
    """Exception raised for invalid orchestrator configuration."""
    pass


class TargetBuildOrchestrator:
    """
    Orchestrates the incremental build of a target.

    Example usage:
        orchestrator = TargetBuildOrchestrator(ClangCompiler(), ProcessRunner())
        result = orchestrator.build(target, root=Path("."), build_dir=Path("build"))
        if result.success:
            print(f"Built {result.output_path}")
    """

    def __init__(
        self,
        compiler: ICompiler,
        runner: Optional[ProcessRunner] = None,
        jobs: int = 1
    ):
        """
        Initialize target orchestrator.

        Args:
            compiler: Toolchain used for compiling and linking
            runner: Process runner (a default one is created if omitted)
            jobs: Maximum number of concurrent compiler processes

        Raises:
            BuildOrchestratorError: If jobs is less than 1
        """
        if jobs < 1:
            raise BuildOrchestratorError(f"jobs must be at least 1, got {jobs}")
        self.compiler = compiler
        self.runner = runner or ProcessRunner()
        self.jobs = jobs
        self.unit_builder = UnitBuilder(compiler, self.runner)

    @staticmethod
    def output_dir_for(unit: TranslationUnit, root: Path, build_dir: Path) -> Path:
        """Mirror the unit's source directory below the build directory."""
        relative = os.path.relpath(unit.source_path.parent, root)
        return Path(os.path.normpath(build_dir / relative))

    def build(self, target: "Target", root: Path, build_dir: Path) -> BuildResult:
        """
        Build every unit of a target and link the result.

        Args:
            target: Target to build
            root: Project root that source directories are relative to
            build_dir: Build directory for objects (and the artifact, unless
                the target overrides its output directory)

        Returns:
            BuildResult; success is the link command's success
        """
        start_time = time.time()
        root = Path(root)
        build_dir = Path(build_dir)

        units = [u for u in target.units if u.compilable]
        output_dirs = {u: self.output_dir_for(u, root, build_dir) for u in units}
        options = self._options_for(target, units, output_dirs)

        logging.info(f"Building target {target.name} ({len(units)} units)")

        if self.jobs == 1:
            results = self._build_sequential(target, units, output_dirs, options)
        else:
            results = self._build_parallel(target, units, output_dirs, options)

        rebuilt = [r.object_path for r in results if r.rebuilt and r.success]
        failed = [r for r in results if not r.success]
        if failed or len(results) != len(units):
            names = ", ".join(str(r.object_path) for r in failed)
            message = f"Compilation failed for target {target.name}: {names}"
            logging.error(message)
            return BuildResult(
                success=False,
                output_path=None,
                objects=[r.object_path for r in results if r.success],
                rebuilt=rebuilt,
                build_time=time.time() - start_time,
                message=message,
            )

        objects = [u.object_path for u in units if u.object_path is not None]
        output_path = target.output_path(build_dir)
        success = self._link(target, output_path, objects)

        if success:
            message = f"Built {output_path}"
            logging.info(f"Build target {target.name} success")
        else:
            message = f"Link failed for target {target.name}"
            logging.error(message)

        return BuildResult(
            success=success,
            output_path=output_path if success else None,
            objects=objects,
            rebuilt=rebuilt,
            build_time=time.time() - start_time,
            message=message,
        )

    def _options_for(
        self,
        target: "Target",
        units: Sequence[TranslationUnit],
        output_dirs: Dict[TranslationUnit, Path]
    ) -> List[str]:
        options = target.get_options() + self.compiler.target_options(target.output_kind)

        interface_dirs: List[Path] = []
        for unit in units:
            if unit.kind is UnitKind.MODULE and output_dirs[unit] not in interface_dirs:
                interface_dirs.append(output_dirs[unit])
        if interface_dirs:
            options += self.compiler.module_search_options(interface_dirs)
        return options

    def _build_unit(
        self,
        target: "Target",
        unit: TranslationUnit,
        output_dir: Path,
        options: Sequence[str]
    ) -> UnitBuildResult:
        return self.unit_builder.build(unit, output_dir, options, target.graph)

    def _build_sequential(
        self,
        target: "Target",
        units: Sequence[TranslationUnit],
        output_dirs: Dict[TranslationUnit, Path],
        options: Sequence[str]
    ) -> List[UnitBuildResult]:
        results = []
        for unit in units:
            result = self._build_unit(target, unit, output_dirs[unit], options)
            results.append(result)
            if not result.success:
                logging.error(f"compile {unit.source_path.as_posix()} failed")
                break
        return results

    def _build_parallel(
        self,
        target: "Target",
        units: Sequence[TranslationUnit],
        output_dirs: Dict[TranslationUnit, Path],
        options: Sequence[str]
    ) -> List[UnitBuildResult]:
        modules = [u for u in units if u.kind is UnitKind.MODULE]
        others = [u for u in units if u.kind is not UnitKind.MODULE]

        # Module producers first; importers cannot compile before them
        results = self._build_sequential(target, modules, output_dirs, options)
        if any(not r.success for r in results):
            return results

        with ThreadPoolExecutor(max_workers=self.jobs) as executor:
            futures: Dict[Future, TranslationUnit] = {
                executor.submit(self._build_unit, target, unit, output_dirs[unit], options): unit
                for unit in others
            }
            failed = False
            for future in as_completed(futures):
                if future.cancelled():
                    continue
                result = future.result()
                results.append(result)
                if not result.success and not failed:
                    failed = True
                    logging.error(f"compile {futures[future].source_path.as_posix()} failed")
                    for pending in futures:
                        pending.cancel()

        return results

    def _link(self, target: "Target", output_path: Path, objects: List[Path]) -> bool:
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logging.error(f"Could not create {output_path.parent}: {e.strerror}")
            return False

        command = self.compiler.link_command(
            output_path, objects, target.output_kind, target.get_link_options()
        )
        return self.runner.run(command)
