"""
Long File Path Fixer
====================

A command-line tool that finds files and folders whose absolute path is too
long for the OneDrive sync client and optionally moves them to ~/LFP, keeping
their relative structure.
"""

__version__ = "1.0.0"

from .scanner import ScanEntry, scan_tree, filter_long_paths, is_long_path, path_length
from .ordering import order_deepest_first, violates_ordering
from .executor import (
    MoveOutcome,
    MoveResult,
    RelocationReport,
    compute_destination,
    relocate_all,
    relocate_entry,
)
from .report import ReportWriter
from .errors import (
    FixLfpError,
    InvalidTarget,
    PermissionDenied,
    PathEscape,
    CopyFailure,
    DirectoryNotEmpty,
)

__all__ = [
    "ScanEntry",
    "scan_tree",
    "filter_long_paths",
    "is_long_path",
    "path_length",
    "order_deepest_first",
    "violates_ordering",
    "MoveOutcome",
    "MoveResult",
    "RelocationReport",
    "compute_destination",
    "relocate_all",
    "relocate_entry",
    "ReportWriter",
    "FixLfpError",
    "InvalidTarget",
    "PermissionDenied",
    "PathEscape",
    "CopyFailure",
    "DirectoryNotEmpty",
]
