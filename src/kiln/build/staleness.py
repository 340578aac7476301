"""Timestamp-based staleness checks.

An output needs rebuilding when it does not exist or when any of its inputs
was modified strictly after it. No content hashing is done; clock skew and
coarse filesystem timestamps are accepted limitations.
"""

from pathlib import Path
from typing import Iterable, Union

PathLike = Union[str, Path]


def needs_rebuild(output_path: PathLike, input_paths: Iterable[PathLike]) -> bool:
    """Decide whether `output_path` is out of date with respect to its inputs.

    Args:
        output_path: Artifact produced from the inputs
        input_paths: Files the artifact was produced from

    Returns:
        True if the output is missing or any input is newer than it

    Raises:
        FileNotFoundError: If an input does not exist (the caller listed a
            file that is not there)
    """
    output = Path(output_path)
    try:
        output_mtime = output.stat().st_mtime_ns
    except FileNotFoundError:
        return True

    for input_path in input_paths:
        if Path(input_path).stat().st_mtime_ns > output_mtime:
            return True

    return False
