"""
Report and log artifacts.

The report is a CSV listing every matched path, written before anything is
moved so it can be inspected after a dry run. The run log is a timestamped
audit record.
"""

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from .config import (
    ARTIFACT_MARKER,
    LOG_PREFIX,
    REPORT_PREFIX,
    get_log_dir,
    get_report_dir,
    timestamp_suffix,
)
from .scanner import ScanEntry


def default_report_path(now: datetime | None = None) -> Path:
    return get_report_dir() / f"{REPORT_PREFIX}-{timestamp_suffix(now)}.csv"


def default_log_path(now: datetime | None = None) -> Path:
    return get_log_dir() / f"{LOG_PREFIX}-{timestamp_suffix(now)}"


class ReportWriter:
    """
    Writes matched long paths to the report CSV.

    Every path is quoted and written on its own line after the marker line.
    Entries are passed through, so the writer can sit in the middle of the
    scan pipeline.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.count = 0

    def write(self, entries: Iterable[ScanEntry]) -> Iterator[ScanEntry]:
        """
        Record each entry and yield it on.

        Args:
            entries: Matched entries, in discovery order.

        Yields:
            The same entries, after they were written and flushed.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', newline='', encoding='utf-8', errors='surrogateescape') as f:
            f.write(f"{ARTIFACT_MARKER}\n")
            writer = csv.writer(f, quoting=csv.QUOTE_ALL, lineterminator='\n')
            for entry in entries:
                writer.writerow([entry.path])
                f.flush()
                self.count += 1
                yield entry

    def write_all(self, entries: Iterable[ScanEntry]) -> list[ScanEntry]:
        """Write all entries and return them as a list."""
        return list(self.write(entries))


def read_report(path: Path) -> list[str]:
    """Load the paths listed in a report file."""
    with open(path, 'r', newline='', encoding='utf-8', errors='surrogateescape') as f:
        first = f.readline().rstrip('\n')
        if first != ARTIFACT_MARKER:
            f.seek(0)
        return [row[0] for row in csv.reader(f) if row]


class RunLog:
    """Append-only audit log for a single run."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            f.write(f"{ARTIFACT_MARKER}\n")

    def write(self, message: str) -> None:
        stamp = datetime.now().isoformat(timespec='seconds')
        with open(self.path, 'a', encoding='utf-8', errors='surrogateescape') as f:
            f.write(f"{stamp} {message}\n")
