"""
Project and target model.

A Project is an ordered collection of named Targets. Each Target owns its
translation units and the dependency graph discovered while building them.
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..build.compiler import OutputKind, artifact_filename
from ..build.graph import DependencyGraph
from ..build.unit import TranslationUnit


class ConfigurationError(Exception):
    """Raised for mistakes in a build description (e.g. unknown target).

    These are bugs in the description rather than runtime conditions, so the
    command-line front end treats them as fatal.
    """
    pass


class Target:
    """
    A named build goal.

    Attributes:
        name: Target name, also the base of the artifact file name
        output_kind: Executable, static library or dynamic library
        output_directory: Directory for the artifact (project build dir if None)
        options: Compiler option groups (a flag and its separate arguments),
            deduplicated, in declaration order
        link_options: Linker options, in order
        units: Translation units in declaration order
        graph: Dependencies discovered while building the units
    """

    def __init__(
        self,
        name: str,
        output_kind: OutputKind = OutputKind.EXECUTABLE,
        output_directory: Optional[Path] = None
    ):
        self.name = name
        self.output_kind = output_kind
        self.output_directory = Path(output_directory) if output_directory else None
        self.options: List[Tuple[str, ...]] = []
        self.link_options: List[str] = []
        self.units: List[TranslationUnit] = []
        self.graph = DependencyGraph()

    def add_translation_units(self, sources: Iterable[Union[str, Path, TranslationUnit]]) -> None:
        """Register source files; units are never shared between targets."""
        for source in sources:
            if isinstance(source, TranslationUnit):
                source = source.source_path
            self.units.append(TranslationUnit(source))

    def add_options(self, *options: Union[str, Sequence[str]]) -> None:
        """Add compiler options.

        Each argument is either a single flag ("-O2") or a group holding a
        flag and its separate arguments (("-include", "pch.h")). A group that
        is already present is skipped.
        """
        for option in options:
            if isinstance(option, str):
                group: Tuple[str, ...] = (option,)
            else:
                group = tuple(str(word) for word in option)
            if group and group not in self.options:
                self.options.append(group)

    def get_options(self) -> List[str]:
        """Compiler options flattened into command line words."""
        return [word for group in self.options for word in group]

    def get_link_options(self) -> List[str]:
        return list(self.link_options)

    def output_path(self, build_dir: Path) -> Path:
        directory = self.output_directory or Path(build_dir)
        return directory / artifact_filename(self.name, self.output_kind)

    def obj_files(self) -> List[Path]:
        """Object files of units that have been assigned one."""
        return [u.object_path for u in self.units if u.object_path is not None]

    def __repr__(self) -> str:
        return f"Target({self.name!r}, {self.output_kind.value}, units={len(self.units)})"


class Project:
    """
    Named, ordered collection of targets.

    Example usage:
        project = Project("demo", root=Path("."))
        app = project.add_target(Target("app"))
        app.add_translation_units(["main.cpp", "answer.cpp"])
        project["app"] is app  # True
    """

    def __init__(
        self,
        name: str,
        root: Optional[Path] = None,
        build_dir: Optional[Path] = None
    ):
        self.name = name
        self.root = Path(root) if root is not None else Path.cwd()
        self.build_dir = Path(build_dir) if build_dir is not None else self.root / "build"
        self.targets: List[Target] = []

    def add_target(self, target: Target) -> Target:
        """Add a target and return it.

        Raises:
            ConfigurationError: If a target with the same name already exists
        """
        if target.name in self:
            raise ConfigurationError(
                f"Target '{target.name}' is declared twice in project '{self.name}'"
            )
        self.targets.append(target)
        return target

    def __getitem__(self, name: str) -> Target:
        for target in self.targets:
            if target.name == name:
                return target
        logging.error(f"failed to get {name} from project")
        available = ", ".join(t.name for t in self.targets)
        raise ConfigurationError(
            f"Target '{name}' not found in project '{self.name}'. "
            + f"Available targets: {available or 'none'}"
        )

    def __contains__(self, name: object) -> bool:
        return any(t.name == name for t in self.targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def __len__(self) -> int:
        return len(self.targets)
