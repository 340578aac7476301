r"""
Makefile-style dependency file (.d) parsing.

Compilers invoked with `-MMD -MF <file>` write a Make rule listing the object
file as target and the source plus every included header as prerequisites:

    build/main.o: src/main.cpp include/answer.h \
      include/path\ with\ spaces.h

This module decodes that text into a DependencyRecord and can write one back.

Parsing happens in three passes:
1. Backslash-newline (and backslash-CRLF) continuations are removed
2. The text is split at the first colon not escaped by a backslash
3. Each side is split on ASCII whitespace; a backslash makes the next character
   literal, which undoes Make's escaping of spaces inside a path
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

# ASCII only; other Unicode spaces are part of a path
_WHITESPACE = frozenset(' \t\n\r\v\f')


class DepfileParseError(Exception):
    """Raised when dependency file text is malformed."""
    pass


@dataclass
class DependencyRecord:
    """Parsed contents of one dependency file.

    Attributes:
        targets: Output paths, normally just the object file
        prerequisites: The translation unit followed by every header it included
    """

    targets: List[Path] = field(default_factory=list)
    prerequisites: List[Path] = field(default_factory=list)


def _remove_continuations(text: str) -> str:
    out = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '\\':
            if i + 1 < n and text[i + 1] == '\n':
                i += 2
                continue
            if i + 2 < n and text[i + 1] == '\r' and text[i + 2] == '\n':
                i += 3
                continue
        out.append(c)
        i += 1
    return ''.join(out)


def _is_drive_colon(text: str, i: int) -> bool:
    """True if the colon at `i` belongs to a Windows drive prefix like `C:/`."""
    if i < 1 or i + 1 >= len(text):
        return False
    letter = text[i - 1]
    if not (letter.isascii() and letter.isalpha()):
        return False
    if i >= 2 and text[i - 2] not in _WHITESPACE:
        return False
    return text[i + 1] in '/\\'


def _find_separator(text: str) -> Optional[int]:
    escaped = False
    for i, c in enumerate(text):
        if escaped:
            escaped = False
            continue
        if c == '\\':
            escaped = True
            continue
        if c == ':' and not _is_drive_colon(text, i):
            return i
    return None


def _tokenize(text: str) -> List[str]:
    tokens = []
    i = 0
    n = len(text)
    while i < n:
        while i < n and text[i] in _WHITESPACE:
            i += 1
        if i >= n:
            break
        token = []
        while i < n and text[i] not in _WHITESPACE:
            if text[i] == '\\' and i + 1 < n:
                token.append(text[i + 1])
                i += 2
            else:
                token.append(text[i])
                i += 1
        tokens.append(''.join(token))
    return tokens


def parse_depfile(data: Union[bytes, str]) -> DependencyRecord:
    """Parse dependency file contents.

    Args:
        data: Raw file contents

    Returns:
        DependencyRecord with targets and prerequisites in file order

    Raises:
        DepfileParseError: If there is no unescaped separator or no target
    """
    if isinstance(data, bytes):
        data = data.decode('utf-8', errors='surrogateescape')

    text = _remove_continuations(data)

    colon = _find_separator(text)
    if colon is None:
        raise DepfileParseError("No unescaped ':' separator in dependency file")

    targets = _tokenize(text[:colon])
    if not targets:
        raise DepfileParseError("Dependency rule has no target")
    prerequisites = _tokenize(text[colon + 1:])

    return DependencyRecord(
        targets=[Path(t) for t in targets],
        prerequisites=[Path(p) for p in prerequisites],
    )


def read_depfile(path: Path) -> DependencyRecord:
    """Read and parse a dependency file.

    Raises:
        OSError: If the file cannot be read
        DepfileParseError: If its contents are malformed
    """
    with open(path, 'rb') as f:
        data = f.read()
    try:
        return parse_depfile(data)
    except DepfileParseError as e:
        raise DepfileParseError(f"{path}: {e}") from e


_SPECIAL = frozenset('\\:#')


def _escape(path: Union[Path, str]) -> str:
    text = str(path)
    if not text:
        raise ValueError("Cannot write an empty path to a dependency file")
    if '\n' in text or '\r' in text:
        raise ValueError(f"Cannot write a path containing a line break: {text!r}")
    return ''.join('\\' + c if c in _SPECIAL or c in _WHITESPACE else c for c in text)


def format_depfile(record: DependencyRecord) -> str:
    """Serialize a record as a Make rule, one prerequisite per line."""
    if not record.targets:
        raise ValueError("Dependency record has no target")
    lines = [' '.join(_escape(t) for t in record.targets) + ':']
    for prereq in record.prerequisites:
        lines[-1] += ' \\'
        lines.append('  ' + _escape(prereq))
    # A final escaped backslash must not be read back as a continuation
    if lines[-1].endswith('\\'):
        lines[-1] += ' '
    return '\n'.join(lines) + '\n'


def write_depfile(path: Path, record: DependencyRecord) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_depfile(record), encoding='utf-8')
