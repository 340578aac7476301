"""Translation units.

A translation unit is one source file that compiles to one object file. Its
kind is derived from the file extension once, at construction.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union


class UnitKind(Enum):
    """Role of a file in a build."""

    HEADER = "header"
    SOURCE = "source"
    MODULE = "module"
    UNKNOWN = "unknown"


HEADER_EXTENSIONS = frozenset({'.h', '.hh', '.hpp', '.hxx', '.h++', '.inl'})
SOURCE_EXTENSIONS = frozenset({'.c', '.cc', '.cpp', '.cxx', '.c++', '.m', '.mm'})
MODULE_EXTENSIONS = frozenset({'.cppm', '.ixx', '.mpp', '.cxxm', '.c++m'})


def classify(path: Path) -> UnitKind:
    """Determine the unit kind from a file extension (case-insensitive)."""
    suffix = path.suffix.lower()
    if suffix in SOURCE_EXTENSIONS:
        return UnitKind.SOURCE
    if suffix in MODULE_EXTENSIONS:
        return UnitKind.MODULE
    if suffix in HEADER_EXTENSIONS:
        return UnitKind.HEADER
    return UnitKind.UNKNOWN


class TranslationUnit:
    """One compilable input and the object file it produces.

    Attributes:
        source_path: Identity of the unit, never changes
        object_path: Compiled artifact, assigned by the orchestrator
        kind: Derived from source_path when the unit is created
    """

    def __init__(self, source_path: Union[str, Path]):
        self._source_path = Path(source_path)
        self._kind = classify(self._source_path)
        self.object_path: Optional[Path] = None

    @property
    def source_path(self) -> Path:
        return self._source_path

    @property
    def kind(self) -> UnitKind:
        return self._kind

    @property
    def compilable(self) -> bool:
        """Whether the unit produces an object file."""
        return self._kind in (UnitKind.SOURCE, UnitKind.MODULE)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TranslationUnit):
            return self._source_path == other._source_path
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._source_path)

    def __repr__(self) -> str:
        return f"TranslationUnit({str(self._source_path)!r}, kind={self._kind.value})"
