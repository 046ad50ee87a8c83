"""
Directory scanning and long path filtering.

Walks the target folder, yields one entry per filesystem node and keeps the
ones whose absolute path is longer than the sync client allows.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, TextIO

from .config import DEFAULT_LENGTH_UNIT, DEFAULT_THRESHOLD, LENGTH_UNITS
from .errors import InvalidTarget, PermissionDenied


@dataclass(frozen=True)
class ScanEntry:
    """A single path found under the target folder."""
    path: str
    length: int
    is_dir: bool = False
    index: int = 0


def path_length(path: str, unit: str = DEFAULT_LENGTH_UNIT) -> int:
    """
    Measure a path the way the sync client is assumed to.

    Args:
        path: Absolute path string.
        unit: "chars" (code points), "utf8" (bytes) or "utf16" (code units).

    Returns:
        Length of the path in the requested unit.
    """
    if unit == "chars":
        return len(path)
    if unit == "utf8":
        return len(path.encode("utf-8", errors="surrogateescape"))
    if unit == "utf16":
        return len(path.encode("utf-16-le", errors="surrogatepass")) // 2
    raise ValueError(f"Unknown length unit: {unit} (expected one of {', '.join(LENGTH_UNITS)})")


def validate_target(target: str | Path) -> str:
    """
    Check the target folder and return it in normalized form.

    The path is made absolute and stripped of trailing separators but symlinks
    are not resolved, so lengths match what the user (and the sync client)
    sees.

    Raises:
        InvalidTarget: If the path is empty, missing or not a directory.
    """
    if not str(target).strip():
        raise InvalidTarget("Target folder is required")

    root = os.path.abspath(os.path.expanduser(str(target)))
    if not os.path.exists(root):
        raise InvalidTarget(f"Target directory does not exist: {root}")
    if not os.path.isdir(root):
        raise InvalidTarget(f"Target is not a directory: {root}")
    return root


def scan_tree(
    target: str | Path,
    on_error: Callable[[PermissionDenied], None] | None = None,
    unit: str = DEFAULT_LENGTH_UNIT,
    progress_callback: Callable[[int, str], None] | None = None,
) -> Iterator[ScanEntry]:
    """
    Recursively scan a directory and yield every entry below it.

    Hidden files are included. Symlinks are yielded as their own path and
    never followed. Unreadable subtrees are reported through on_error and
    skipped; they never abort the scan.

    Args:
        target: The directory to scan.
        on_error: Called with a PermissionDenied for each unreadable subtree.
        unit: Length unit cached on each entry.
        progress_callback: Called as (count, dirpath) after each directory.

    Yields:
        ScanEntry objects in discovery order (parents before children).

    Raises:
        InvalidTarget: If the target is not an existing directory.
    """
    root = validate_target(target)

    def _walk_error(err: OSError):
        if on_error is not None:
            on_error(PermissionDenied(err.filename or root, err.strerror or str(err)))

    index = 0
    for dirpath, dirnames, filenames in os.walk(root, onerror=_walk_error, followlinks=False):
        for name in dirnames:
            path = os.path.join(dirpath, name)
            # Symlinked directories are moved as links, not as folders
            is_dir = not os.path.islink(path)
            yield ScanEntry(path, path_length(path, unit), is_dir, index)
            index += 1

        for name in filenames:
            path = os.path.join(dirpath, name)
            yield ScanEntry(path, path_length(path, unit), False, index)
            index += 1

        if progress_callback:
            progress_callback(index, dirpath)


def is_long_path(entry: ScanEntry, threshold: int = DEFAULT_THRESHOLD) -> bool:
    """True if the entry is strictly longer than the threshold."""
    return entry.length > threshold


def filter_long_paths(
    entries: Iterable[ScanEntry],
    threshold: int = DEFAULT_THRESHOLD,
) -> Iterator[ScanEntry]:
    """Yield only the entries that exceed the threshold."""
    for entry in entries:
        if is_long_path(entry, threshold):
            yield entry


# -----------------------------------------------------------------------------
# Temporary listing
# -----------------------------------------------------------------------------
# Scan results are streamed to a listing file so very large trees are never
# held in memory before filtering. Records are NUL-terminated because a
# filename may legally contain a newline.

_DIR_FLAG = "d"
_FILE_FLAG = "f"


def write_listing(entries: Iterable[ScanEntry], handle: TextIO) -> int:
    """
    Write scan entries to an open listing file.

    Returns:
        Number of entries written.
    """
    count = 0
    for entry in entries:
        flag = _DIR_FLAG if entry.is_dir else _FILE_FLAG
        handle.write(f"{flag}{entry.path}\0")
        count += 1
    handle.flush()
    return count


def read_listing(
    handle: TextIO,
    unit: str = DEFAULT_LENGTH_UNIT,
    chunk_size: int = 65536,
) -> Iterator[ScanEntry]:
    """
    Read scan entries back from a listing file, from the beginning.

    Yields:
        ScanEntry objects in the order they were written.
    """
    handle.seek(0)
    buffer = ""
    index = 0
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            break
        buffer += chunk
        *records, buffer = buffer.split("\0")
        for record in records:
            if not record:
                continue
            path = record[1:]
            yield ScanEntry(path, path_length(path, unit), record[0] == _DIR_FLAG, index)
            index += 1
