"""
Command line assembly for toolchain invocations.

This module provides the Command class, an ordered argument list that knows
how to serialize itself into a single command-line string using the
Microsoft C runtime quoting rules (the rules CreateProcess callers must follow
so that argv is reconstructed exactly on the other side).

Design:
    - Strings are appended verbatim
    - Paths are appended in portable (forward slash) form
    - Lists and tuples are flattened, so option lists can be passed as-is
    - Serialization is only needed for logging and for spawning on Windows
"""

import os
from collections import abc
from pathlib import PurePath
from typing import Iterable, Iterator, List, Union

# Characters that force an argument to be quoted
_QUOTE_TRIGGERS = frozenset(" \t\n\v\"")

CommandPart = Union[str, "os.PathLike[str]", Iterable]


def quote_argument(arg: str) -> str:
    """Quote a single argument following the MS C runtime argv convention.

    Rules:
    - A non-empty argument without whitespace or double quotes is emitted
      verbatim
    - Otherwise the argument is wrapped in double quotes
    - A run of N backslashes followed by a double quote becomes 2N+1
      backslashes followed by the quote
    - A run of N backslashes at the end becomes 2N backslashes, so the
      closing quote is not escaped
    - Any other backslash run is passed through unchanged

    Args:
        arg: Raw argument

    Returns:
        Argument as it must appear on a command line
    """
    if arg and not any(c in _QUOTE_TRIGGERS for c in arg):
        return arg

    out = ['"']
    backslashes = 0
    for c in arg:
        if c == '\\':
            backslashes += 1
        elif c == '"':
            out.append('\\' * (2 * backslashes + 1))
            out.append(c)
            backslashes = 0
        else:
            out.append('\\' * backslashes)
            out.append(c)
            backslashes = 0
    out.append('\\' * (2 * backslashes))
    out.append('"')
    return ''.join(out)


def _portable_path(path: "os.PathLike[str]") -> str:
    """Render a path with forward slashes regardless of host platform."""
    if isinstance(path, PurePath):
        return path.as_posix()
    return os.fspath(path).replace('\\', '/')


class Command:
    """
    Ordered argument list for an external program.

    The first argument names the program. Arguments may be appended one at a
    time or in bulk:

        cmd = Command("clang++", "-c", Path("src/main.cpp"))
        cmd.append("-o", Path("build/main.o"), ["-O2", "-Wall"])
        cmd.serialize()
        # 'clang++ -c src/main.cpp -o build/main.o -O2 -Wall'
    """

    def __init__(self, *parts: CommandPart):
        self._args: List[str] = []
        self.append(*parts)

    def append(self, *parts: CommandPart) -> "Command":
        """Append strings, paths, or (nested) lists of them.

        Args:
            *parts: Arguments to append

        Returns:
            self, so calls can be chained

        Raises:
            TypeError: If a part is not a string, path, or iterable of those
        """
        for part in parts:
            self._append_one(part)
        return self

    def extend(self, argv: Iterable[str]) -> "Command":
        """Append raw strings (e.g. forwarded process arguments) unchanged."""
        self._args.extend(str(arg) for arg in argv)
        return self

    def clear(self) -> None:
        self._args.clear()

    def _append_one(self, part: CommandPart) -> None:
        if isinstance(part, str):
            self._args.append(part)
        elif isinstance(part, os.PathLike):
            self._args.append(_portable_path(part))
        elif isinstance(part, (bytes, bytearray)):
            raise TypeError("Command arguments must be str or path-like, not bytes")
        elif isinstance(part, abc.Iterable):
            for item in part:
                self._append_one(item)
        else:
            raise TypeError(
                f"Unsupported command argument type: {type(part).__name__}"
            )

    @property
    def args(self) -> List[str]:
        """Copy of the argument list."""
        return list(self._args)

    @property
    def program(self) -> str:
        if not self._args:
            raise IndexError("Empty command has no program")
        return self._args[0]

    def empty(self) -> bool:
        return not self._args

    def serialize(self) -> str:
        """Join all arguments into one command-line string."""
        return ' '.join(quote_argument(arg) for arg in self._args)

    def __iter__(self) -> Iterator[str]:
        return iter(self._args)

    def __len__(self) -> int:
        return len(self._args)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Command):
            return self._args == other._args
        return NotImplemented

    def __str__(self) -> str:
        return self.serialize()

    def __repr__(self) -> str:
        return f"Command({self._args!r})"
