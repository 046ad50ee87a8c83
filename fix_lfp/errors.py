"""
Exceptions raised by the Long File Path Fixer.

Only InvalidTarget stops a run. Everything else is turned into a per-entry
outcome by the scanner or the relocator.
"""


class FixLfpError(Exception):
    """Base error for the project."""


class InvalidTarget(FixLfpError):
    """The target folder is missing, not a directory, or unusable."""


class PermissionDenied(FixLfpError):
    """A subtree could not be read during the scan."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}" if reason else f"Cannot read {path}")


class PathEscape(FixLfpError):
    """A destination would land outside the relocation root."""


class CopyFailure(FixLfpError):
    """Every copy attempt for a file failed."""

    def __init__(self, path: str, attempts: int, last_error: Exception | None = None):
        self.path = path
        self.attempts = attempts
        self.last_error = last_error
        message = f"Failed to copy after {attempts} attempts: {path}"
        if last_error is not None:
            message += f" ({last_error})"
        super().__init__(message)


class DirectoryNotEmpty(FixLfpError):
    """A source directory still holds entries and was left in place."""
