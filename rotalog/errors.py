"""
Error types and helpers for the rotation engine.

Write and rotation failures are raised to the caller of ``LogWriter.write``.
Compression and retention failures never reach writers; they are logged by
the background worker that ran them.
"""

import errno
from typing import Optional


class ErrorCategory:
    """Error categories used to tag engine failures."""
    WRITE = "write"
    ROTATION = "rotation"
    COMPRESSION = "compression"
    RETENTION = "retention"
    CONFIG = "configuration"


# errno -> short operator hint, appended to error messages
_ERRNO_HINTS = {
    errno.EACCES: "permission denied; check ownership of the log directory",
    errno.EPERM: "operation not permitted; check ownership of the log directory",
    errno.EXDEV: "backup path is on a different filesystem than the active file",
    errno.ENOSPC: "no space left on the device holding the log directory",
    errno.EROFS: "log directory is on a read-only filesystem",
    errno.ENOENT: "file or directory does not exist",
    errno.EISDIR: "path points at a directory, not a file",
}


def describe_os_error(exc: BaseException) -> str:
    """Return a one-line description of an OS error with a hint when known."""
    if isinstance(exc, OSError) and exc.errno in _ERRNO_HINTS:
        detail = exc.strerror or str(exc)
        return f"{detail} ({_ERRNO_HINTS[exc.errno]})"
    return str(exc) or exc.__class__.__name__


class RotalogError(Exception):
    """Base class for all errors raised by the engine."""

    category = ErrorCategory.WRITE

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class WriteError(RotalogError):
    """An I/O failure while appending to the active file.

    ``bytes_written`` is the number of bytes the filesystem accepted before
    the failure; the writer's size counter already includes them.
    """

    category = ErrorCategory.WRITE

    def __init__(self, message: str, path: Optional[str] = None, bytes_written: int = 0):
        super().__init__(message, path)
        self.bytes_written = bytes_written


class RotationError(RotalogError):
    """A failure in one of the rotation steps (close, rename or reopen)."""

    category = ErrorCategory.ROTATION

    CLOSE = "close"
    RENAME = "rename"
    REOPEN = "reopen"

    def __init__(self, message: str, stage: str, path: Optional[str] = None, backup=None):
        super().__init__(message, path)
        self.stage = stage
        # Set when the active file had already been renamed to this backup.
        self.backup = backup


class WriterClosedError(RotalogError):
    """Raised when writing to a writer that has been closed."""

    category = ErrorCategory.WRITE
