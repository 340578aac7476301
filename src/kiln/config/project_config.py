"""
kiln.ini project description parser.

This module reads a project description and turns it into a Project with
Targets and TranslationUnits.

Example kiln.ini:
    [project]
    name = demo
    build_dir = build
    compiler = clang
    jobs = 4

    [target:app]
    type = executable
    sources = main.cpp
        answer.cpp
    options = -O2 -Wall
    std = c++23

    [bootstrap]
    source = build.cpp
    binary = build
    extra_sources = buildkit.hpp

Usage:
    config = ProjectConfig(Path("kiln.ini"))
    project = config.load_project()
    app = project["app"]
"""

import configparser
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..build.compiler import OutputKind
from .project import ConfigurationError, Project, Target

CONFIG_FILENAME = "kiln.ini"

_OUTPUT_KINDS = {
    "executable": OutputKind.EXECUTABLE,
    "exe": OutputKind.EXECUTABLE,
    "static_library": OutputKind.STATIC_LIBRARY,
    "static": OutputKind.STATIC_LIBRARY,
    "dynamic_library": OutputKind.DYNAMIC_LIBRARY,
    "shared": OutputKind.DYNAMIC_LIBRARY,
    "dynamic": OutputKind.DYNAMIC_LIBRARY,
}


class ProjectConfigError(ConfigurationError):
    """Exception raised for kiln.ini configuration errors."""

    pass


@dataclass
class ProjectSettings:
    """Values of the [project] section."""

    name: str
    build_dir: Path
    compiler: Optional[str] = None
    compiler_path: Optional[Path] = None
    archiver: Optional[Path] = None
    jobs: int = 1
    default_targets: List[str] = field(default_factory=list)


@dataclass
class BootstrapSettings:
    """Values of the [bootstrap] section."""

    source: Path
    binary: Path
    extra_sources: List[Path] = field(default_factory=list)
    std: str = "c++23"


def _shell_split(value: str) -> List[str]:
    try:
        return shlex.split(value)
    except ValueError as e:
        raise ProjectConfigError(f"Cannot split '{value}': {e}") from e


def _group_options(words: List[str]) -> List[Tuple[str, ...]]:
    """Attach each word that is not a flag to the flag before it.

    Example:
        ['-include', 'pch.h', '-O2', '-D', 'A'] ->
        [('-include', 'pch.h'), ('-O2',), ('-D', 'A')]
    """
    groups: List[List[str]] = []
    for word in words:
        if groups and not word.startswith("-"):
            groups[-1].append(word)
        else:
            groups.append([word])
    return [tuple(group) for group in groups]


def _split_list(value: str) -> List[str]:
    """Split a multi-line or comma separated value, honoring shell quoting."""
    items = []
    for line in value.splitlines():
        items.extend(item for item in _shell_split(line.replace(",", " ")) if item)
    return items


class ProjectConfig:
    """
    Parser for kiln.ini project descriptions.

    Relative paths in the file are resolved against the directory that
    contains it.
    """

    REQUIRED_TARGET_FIELDS = {"sources"}

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with a kiln.ini file.

        Args:
            ini_path: Path to the kiln.ini file

        Raises:
            ProjectConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = Path(ini_path)
        self.root = self.ini_path.resolve().parent

        if not self.ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {self.ini_path}")

        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )

        try:
            self.config.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {self.ini_path}: {e}") from e

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        return path if path.is_absolute() else self.root / path

    def _get(self, section: str, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            value = self.config[section].get(key, default)
        except (configparser.Error, KeyError) as e:
            raise ProjectConfigError(f"Invalid value for {section}.{key}: {e}") from e
        return value.strip() if isinstance(value, str) else value

    def get_project_settings(self) -> ProjectSettings:
        """
        Read the [project] section (all keys optional).

        Raises:
            ProjectConfigError: If jobs is not a positive integer
        """
        if "project" not in self.config:
            return ProjectSettings(name=self.root.name, build_dir=self.root / "build")

        name = self._get("project", "name") or self.root.name
        build_dir = self._resolve(self._get("project", "build_dir") or "build")
        compiler = self._get("project", "compiler") or None
        compiler_path = self._get("project", "compiler_path")
        archiver = self._get("project", "archiver")
        jobs_value = self._get("project", "jobs") or "1"
        try:
            jobs = int(jobs_value)
        except ValueError as e:
            raise ProjectConfigError(f"project.jobs must be an integer, got '{jobs_value}'") from e
        if jobs < 1:
            raise ProjectConfigError(f"project.jobs must be at least 1, got {jobs}")

        return ProjectSettings(
            name=name,
            build_dir=build_dir,
            compiler=compiler,
            compiler_path=Path(compiler_path) if compiler_path else None,
            archiver=Path(archiver) if archiver else None,
            jobs=jobs,
            default_targets=_split_list(self._get("project", "default_targets") or ""),
        )

    def get_targets(self) -> List[str]:
        """
        Get list of all target names, in file order.

        Example:
            For [target:app], [target:core], returns ['app', 'core']
        """
        return [
            section.split(":", 1)[1]
            for section in self.config.sections()
            if section.startswith("target:")
        ]

    def has_target(self, name: str) -> bool:
        return f"target:{name}" in self.config

    def get_target_config(self, name: str) -> Dict[str, str]:
        """
        Get raw configuration of a target.

        Values from an optional [target] section are inherited and overridden
        by the target's own section.

        Raises:
            ProjectConfigError: If the target is not found or misses required fields
        """
        section = f"target:{name}"

        if section not in self.config:
            available = ", ".join(self.get_targets())
            raise ProjectConfigError(
                f"Target '{name}' not found. "
                + f"Available targets: {available or 'none'}"
            )

        try:
            target_config = {key: value.strip() for key, value in self.config[section].items() if value}
            if "target" in self.config:
                base_config = {key: value.strip() for key, value in self.config["target"].items() if value}
                target_config = {**base_config, **target_config}
        except configparser.Error as e:
            raise ProjectConfigError(f"Invalid value in [{section}]: {e}") from e

        missing_fields = self.REQUIRED_TARGET_FIELDS - set(target_config.keys())
        if missing_fields:
            raise ProjectConfigError(
                f"Target '{name}' is missing required fields: "
                + f"{', '.join(sorted(missing_fields))}"
            )

        return target_config

    def create_target(self, name: str) -> Target:
        """
        Build a Target from its section.

        Raises:
            ProjectConfigError: If the target section is invalid
        """
        target_config = self.get_target_config(name)

        kind_value = target_config.get("type", "executable").lower()
        output_kind = _OUTPUT_KINDS.get(kind_value)
        if output_kind is None:
            raise ProjectConfigError(
                f"Target '{name}' has unknown type '{kind_value}'. "
                + f"Expected one of: {', '.join(sorted(_OUTPUT_KINDS))}"
            )

        output_dir = target_config.get("output_dir")
        target = Target(
            name,
            output_kind=output_kind,
            output_directory=self._resolve(output_dir) if output_dir else None,
        )

        sources = _split_list(target_config["sources"])
        if not sources:
            raise ProjectConfigError(f"Target '{name}' lists no sources")
        target.add_translation_units(self._resolve(s) for s in sources)

        target.add_options(*_group_options(_shell_split(target_config.get("options", ""))))
        for include in _split_list(target_config.get("include_dirs", "")):
            target.add_options(f"-I{self._resolve(include).as_posix()}")
        std = target_config.get("std")
        if std:
            target.add_options(f"-std={std}")
        target.link_options = _shell_split(target_config.get("link_options", ""))

        return target

    def load_project(self) -> Project:
        """
        Create the Project described by the file.

        Raises:
            ProjectConfigError: If any part of the description is invalid
        """
        settings = self.get_project_settings()
        project = Project(settings.name, root=self.root, build_dir=settings.build_dir)
        for name in self.get_targets():
            project.add_target(self.create_target(name))
        return project

    def get_bootstrap_settings(self) -> Optional[BootstrapSettings]:
        """
        Read the [bootstrap] section.

        Returns:
            BootstrapSettings, or None when the project has no section

        Raises:
            ProjectConfigError: If source is missing
        """
        if "bootstrap" not in self.config:
            return None

        source = self._get("bootstrap", "source")
        if not source:
            raise ProjectConfigError("[bootstrap] requires a 'source' entry")
        source_path = self._resolve(source)

        binary = self._get("bootstrap", "binary")
        binary_path = self._resolve(binary) if binary else source_path.with_suffix("")

        return BootstrapSettings(
            source=source_path,
            binary=binary_path,
            extra_sources=[
                self._resolve(p) for p in _split_list(self._get("bootstrap", "extra_sources") or "")
            ],
            std=self._get("bootstrap", "std") or "c++23",
        )
