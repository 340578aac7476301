"""
Per-target dependency graph.

The graph maps each translation unit to the files it was last compiled from,
as reported by the compiler's dependency output. Paths are interned into a
dense, append-only index table so that headers shared by many units are
stored once.

Invariants:
    - Indices are assigned in insertion order and never reused or removed
    - Every index in the adjacency lists is a valid index into the path table
    - Recording a unit again replaces its adjacency list (no union)
"""

import threading
from pathlib import Path
from typing import Dict, Iterator, List, Union

from .depfile import DependencyRecord
from .unit import TranslationUnit

UnitRef = Union[TranslationUnit, Path, str]


def _unit_path(unit: UnitRef) -> Path:
    if isinstance(unit, TranslationUnit):
        return unit.source_path
    return Path(unit)


class DependencyGraph:
    """Unit -> prerequisite mapping with path interning.

    Mutations are serialized by an internal lock so units compiled on worker
    threads can record their dependencies concurrently.

    Example usage:
        graph = DependencyGraph()
        graph.record(unit, read_depfile(Path("build/main.d")))
        for header in graph.dependencies_of(unit):
            print(header)
    """

    def __init__(self):
        self._paths: List[Path] = []
        self._index: Dict[Path, int] = {}
        self._adjacency: Dict[int, List[int]] = {}
        self._lock = threading.Lock()

    def _intern(self, path: Path) -> int:
        """Return the index of `path`, assigning a new one on first sight.

        This method MUST be called with self._lock held.
        """
        index = self._index.get(path)
        if index is None:
            index = len(self._paths)
            self._paths.append(path)
            self._index[path] = index
        return index

    def record(self, unit: UnitRef, record: DependencyRecord) -> None:
        """Replace the recorded prerequisites of `unit`.

        Args:
            unit: Translation unit (or its source path)
            record: Parsed dependency file for the unit
        """
        with self._lock:
            unit_index = self._intern(_unit_path(unit))
            self._adjacency[unit_index] = [
                self._intern(Path(p)) for p in record.prerequisites
            ]

    def dependencies_of(self, unit: UnitRef) -> List[Path]:
        """Prerequisites recorded for `unit`, in dependency file order.

        A unit that was never recorded has no dependencies yet, so an empty
        list is returned rather than raising.
        """
        with self._lock:
            unit_index = self._index.get(_unit_path(unit))
            if unit_index is None:
                return []
            return [self._paths[i] for i in self._adjacency.get(unit_index, [])]

    def dependents_of(self, path: Union[Path, str]) -> List[Path]:
        """Units whose recorded prerequisites include `path`."""
        with self._lock:
            index = self._index.get(Path(path))
            if index is None:
                return []
            return [
                self._paths[unit_index]
                for unit_index, deps in self._adjacency.items()
                if index in deps
            ]

    def index_of(self, path: Union[Path, str]) -> int:
        """Index assigned to `path`.

        Raises:
            KeyError: If the path was never interned
        """
        with self._lock:
            return self._index[Path(path)]

    def path_of(self, index: int) -> Path:
        with self._lock:
            return self._paths[index]

    def units(self) -> List[Path]:
        """Source paths of every unit that has recorded dependencies."""
        with self._lock:
            return [self._paths[i] for i in self._adjacency]

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def __iter__(self) -> Iterator[Path]:
        with self._lock:
            return iter(list(self._paths))

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return Path(path) in self._index
