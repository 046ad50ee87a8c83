"""
Relocation of long path entries.

Moves matched entries from the target folder into the relocation root,
keeping their relative paths. Files are copied and only deleted once the copy
succeeded; directories are recreated and removed only when empty.
"""

import errno
import os
import shutil
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Sequence

from tqdm import tqdm

from .config import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, validate_retry_settings
from .errors import CopyFailure, DirectoryNotEmpty, InvalidTarget, PathEscape
from .scanner import ScanEntry


class MoveOutcome(str, Enum):
    MOVED = "moved"
    SKIPPED_MISSING = "skipped"
    FAILED = "failed"


@dataclass
class MoveResult:
    """Result of relocating a single entry."""
    source: str
    destination: str | None
    outcome: MoveOutcome
    attempts: int = 0
    detail: str | None = None
    # Directory mirrored but the source still holds entries
    left_in_place: bool = False

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "destination": self.destination,
            "outcome": self.outcome.value,
            "attempts": self.attempts,
            "detail": self.detail,
            "left_in_place": self.left_in_place,
        }


@dataclass
class RelocationReport:
    """Summary of a relocation batch (or of a dry run)."""
    target: str
    relocation_root: str
    dry_run: bool
    results: list[MoveResult] = field(default_factory=list)
    planned_count: int = 0
    interrupted: bool = False
    started_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))
    finished_at: str | None = None

    def _count(self, outcome: MoveOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def moved_count(self) -> int:
        """Entries whose source is gone from the target."""
        return sum(1 for r in self.results if r.outcome is MoveOutcome.MOVED and not r.left_in_place)

    @property
    def left_in_place_count(self) -> int:
        """Directories mirrored but kept because they still hold entries."""
        return sum(1 for r in self.results if r.outcome is MoveOutcome.MOVED and r.left_in_place)

    @property
    def skipped_count(self) -> int:
        return self._count(MoveOutcome.SKIPPED_MISSING)

    @property
    def failed_count(self) -> int:
        return self._count(MoveOutcome.FAILED)

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "relocation_root": self.relocation_root,
            "dry_run": self.dry_run,
            "interrupted": self.interrupted,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "planned_count": self.planned_count,
            "moved_count": self.moved_count,
            "left_in_place_count": self.left_in_place_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "results": [r.to_dict() for r in self.results],
        }


# -----------------------------------------------------------------------------
# Path helpers
# -----------------------------------------------------------------------------

def validate_relocation_root(target: str, relocation_root: str) -> None:
    """
    Refuse a relocation root that sits inside the scanned target.

    Raises:
        InvalidTarget: If moved entries would end up back inside the target.
    """
    target = os.path.normpath(os.path.abspath(target))
    relocation_root = os.path.normpath(os.path.abspath(relocation_root))
    if relocation_root == target or relocation_root.startswith(target.rstrip(os.sep) + os.sep):
        raise InvalidTarget(
            f"Relocation root {relocation_root} is inside the target {target}"
        )


def relative_remainder(path: str, target: str) -> str:
    """Strip the target prefix and any leading separators from a path."""
    target = target.rstrip(os.sep)
    if not path.startswith(target + os.sep):
        raise PathEscape(f"Path is not inside the target: {path}")
    return path[len(target):].lstrip(os.sep)


def compute_destination(path: str, target: str, relocation_root: str) -> str:
    """
    Re-root an entry path from the target folder into the relocation root.

    Args:
        path: Absolute source path, lexically inside target.
        target: The scanned target folder.
        relocation_root: Directory entries are mirrored into.

    Returns:
        Absolute destination path.

    Raises:
        PathEscape: If the remainder is empty, contains '..' or the result
            would not lie below relocation_root.
    """
    rel_path = relative_remainder(path, target)
    if not rel_path:
        raise PathEscape(f"Empty relative path for {path}")
    if ".." in rel_path.split(os.sep):
        raise PathEscape(f"Relative path climbs out of the target: {rel_path}")

    root = os.path.normpath(relocation_root)
    destination = os.path.normpath(os.path.join(root, rel_path))
    if not destination.startswith(root.rstrip(os.sep) + os.sep):
        raise PathEscape(f"Destination escapes relocation root: {destination}")
    return destination


def _short(rel_path: str, width: int = 40) -> str:
    if len(rel_path) > width:
        return "..." + rel_path[-(width - 3):]
    return rel_path


def _poke_parent(path: str) -> None:
    """Touch the parent folder so the sync client notices the change."""
    try:
        os.utime(os.path.dirname(path), None)
    except OSError:
        pass


def _discard_partial(destination: str) -> None:
    try:
        if os.path.lexists(destination) and not os.path.isdir(destination):
            os.remove(destination)
    except OSError:
        pass


# -----------------------------------------------------------------------------
# Single entry moves
# -----------------------------------------------------------------------------

def copy_with_retry(
    source: str,
    destination: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    copy_function: Callable = shutil.copy2,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Copy a file (timestamps and mode preserved), retrying with back-off.

    The delay starts at base_delay and doubles after every failed attempt.
    A partially written destination is removed after each failure, unless it
    was already there before the first attempt.

    Returns:
        The attempt number that succeeded.

    Raises:
        CopyFailure: If all max_retries attempts failed, or at once when the
            destination is in the way (an existing link or a directory).
    """
    existed_before = os.path.lexists(destination)
    delay = base_delay
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        try:
            copy_function(source, destination, follow_symlinks=False)
            return attempt
        except (FileExistsError, IsADirectoryError) as e:
            # Retrying cannot clear an occupied destination
            tqdm.write(f"  Attempt {attempt}/{max_retries} failed: {e}", file=sys.stderr)
            raise CopyFailure(source, attempt, e)
        except OSError as e:
            last_error = e
            if not existed_before:
                _discard_partial(destination)
            tqdm.write(f"  Attempt {attempt}/{max_retries} failed: {e}", file=sys.stderr)
            if attempt < max_retries:
                tqdm.write(f"  Retrying in {delay:g}s...", file=sys.stderr)
                sleep(delay)
                delay *= 2
        except BaseException:
            # Interrupted mid-copy: the source is intact, drop the half copy
            if not existed_before:
                _discard_partial(destination)
            raise

    raise CopyFailure(source, max_retries, last_error)


def relocate_directory(source: str, destination: str) -> MoveResult:
    """Mirror a directory and remove the source if nothing is left in it."""
    try:
        os.makedirs(destination, exist_ok=True)
    except OSError as e:
        return MoveResult(source, destination, MoveOutcome.FAILED, detail=f"Cannot create {destination}: {e}")

    try:
        _remove_empty_dir(source)
    except DirectoryNotEmpty as e:
        return MoveResult(source, destination, MoveOutcome.MOVED, detail=str(e), left_in_place=True)
    except OSError as e:
        return MoveResult(source, destination, MoveOutcome.FAILED, detail=f"Cannot remove {source}: {e}")
    return MoveResult(source, destination, MoveOutcome.MOVED)


def _remove_empty_dir(path: str) -> None:
    try:
        os.rmdir(path)
    except OSError as e:
        if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
            raise DirectoryNotEmpty(f"Directory not empty, left in place: {path}")
        raise


def relocate_file(
    source: str,
    destination: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    copy_function: Callable = shutil.copy2,
    sleep: Callable[[float], None] = time.sleep,
) -> MoveResult:
    """
    Copy a file (or symlink) to its destination, then delete the source.

    The source is only removed after a successful copy.
    """
    if os.path.isdir(destination) and not os.path.islink(destination):
        return MoveResult(source, destination, MoveOutcome.FAILED,
                          detail=f"Destination is a directory: {destination}")
    try:
        os.makedirs(os.path.dirname(destination), exist_ok=True)
    except OSError as e:
        return MoveResult(source, destination, MoveOutcome.FAILED,
                          detail=f"Cannot create parent folder: {e}")

    try:
        attempts = copy_with_retry(source, destination, max_retries, base_delay, copy_function, sleep)
    except CopyFailure as e:
        return MoveResult(source, destination, MoveOutcome.FAILED, attempts=e.attempts, detail=str(e))

    try:
        os.remove(source)
    except OSError as e:
        return MoveResult(source, destination, MoveOutcome.FAILED, attempts=attempts,
                          detail=f"Copied but could not remove source: {e}")

    _poke_parent(source)
    return MoveResult(source, destination, MoveOutcome.MOVED, attempts=attempts)


def relocate_entry(
    entry: ScanEntry,
    target: str,
    relocation_root: str,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    copy_function: Callable = shutil.copy2,
    sleep: Callable[[float], None] = time.sleep,
) -> MoveResult:
    """
    Relocate one entry.

    Missing entries (already gone or moved with a parent) are skipped and
    a destination that would escape the relocation root fails the entry.
    """
    if not os.path.lexists(entry.path):
        return MoveResult(entry.path, None, MoveOutcome.SKIPPED_MISSING, detail="Already moved/gone")

    try:
        destination = compute_destination(entry.path, target, relocation_root)
    except PathEscape as e:
        return MoveResult(entry.path, None, MoveOutcome.FAILED, detail=str(e))

    if os.path.isdir(entry.path) and not os.path.islink(entry.path):
        return relocate_directory(entry.path, destination)
    return relocate_file(entry.path, destination, max_retries, base_delay, copy_function, sleep)


# -----------------------------------------------------------------------------
# Batch
# -----------------------------------------------------------------------------

def _preview(entries: Sequence[ScanEntry], target: str, relocation_root: str,
             report: RelocationReport, limit: int = 10) -> None:
    count = 0
    for entry in entries:
        try:
            destination = compute_destination(entry.path, target, relocation_root)
        except PathEscape as e:
            report.results.append(MoveResult(entry.path, None, MoveOutcome.FAILED, detail=str(e)))
            continue
        count += 1
        if count <= limit:
            print(f"  [WOULD MOVE] .../{_short(relative_remainder(entry.path, target))} -> {destination}")
    if count > limit:
        print(f"  ... and {count - limit} more")
    report.planned_count = count


def relocate_all(
    entries: Sequence[ScanEntry],
    target: str,
    relocation_root: str,
    dry_run: bool = True,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    copy_function: Callable = shutil.copy2,
    sleep: Callable[[float], None] = time.sleep,
    show_progress: bool = True,
) -> RelocationReport:
    """
    Relocate (or simulate relocating) entries in the given order.

    Entries must already be ordered deepest-first. Processing is strictly
    sequential and a single failure never stops the batch. Ctrl-C (or any
    signal turned into KeyboardInterrupt) stops after the in-flight item and
    returns the partial report.

    Args:
        entries: Ordered entries to move.
        target: The scanned target folder.
        relocation_root: Directory entries are mirrored into.
        dry_run: If True, only print what would be moved.
        max_retries: Copy attempts per file.
        base_delay: First back-off delay in seconds.
        copy_function: Used to copy files, shutil.copy2 by default.
        sleep: Used to wait between attempts.
        show_progress: Display a progress bar.

    Returns:
        RelocationReport with per-entry results and counts.

    Raises:
        InvalidTarget: If relocation_root lies inside target.
        ValueError: If the retry policy is unusable (fewer than one attempt
            or a negative delay). Nothing is touched in that case.
    """
    target = target.rstrip(os.sep) or os.sep
    relocation_root = os.path.abspath(str(relocation_root))
    validate_relocation_root(target, relocation_root)
    validate_retry_settings(max_retries, base_delay)

    report = RelocationReport(target=target, relocation_root=relocation_root, dry_run=dry_run)
    mode = "DRY-RUN" if dry_run else "MOVE"
    print(f"\n[{mode}] {len(entries)} entries to relocate into {relocation_root}")

    if dry_run:
        _preview(entries, target, relocation_root, report)
        report.finished_at = datetime.now().isoformat(timespec='seconds')
        return report

    if entries:
        os.makedirs(relocation_root, exist_ok=True)
    report.planned_count = len(entries)

    with tqdm(
        total=len(entries),
        unit="item",
        ascii=" =",
        bar_format="[{bar:20}] {percentage:3.0f}% {n_fmt}/{total_fmt}{postfix}",
        disable=not show_progress,
    ) as pbar:
        try:
            for entry in entries:
                try:
                    rel_path = relative_remainder(entry.path, target)
                except PathEscape:
                    rel_path = entry.path
                pbar.set_postfix_str(f"Moving: .../{_short(rel_path)}")

                result = relocate_entry(
                    entry, target, relocation_root,
                    max_retries, base_delay, copy_function, sleep,
                )
                report.results.append(result)

                if result.outcome is MoveOutcome.SKIPPED_MISSING:
                    tqdm.write(f"[SKIP] Already moved/gone: {entry.path}")
                elif result.outcome is MoveOutcome.FAILED:
                    tqdm.write(f"[ERROR] {result.detail}", file=sys.stderr)
                pbar.update(1)
        except KeyboardInterrupt:
            report.interrupted = True
            tqdm.write("\n[ABORT] Relocation interrupted, stopping after the current item", file=sys.stderr)

    report.finished_at = datetime.now().isoformat(timespec='seconds')
    print(f"\n[{mode}] Complete: {report.moved_count} moved, "
          f"{report.left_in_place_count} left in place, "
          f"{report.skipped_count} skipped, {report.failed_count} failed")
    return report
