"""
Active file handle and the close/rename/reopen rotation sequence.
"""

import errno
import os
from datetime import datetime
from pathlib import Path
from typing import Callable

from .errors import RotationError, WriteError, describe_os_error
from .index import BackupIndex
from .logging_config import get_logger
from .models import BackupFile

logger = get_logger(__name__)


class ActiveFile:
    """Unbuffered append handle on the active file and its exact byte count."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.size = 0
        self._handle = None

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self, truncate: bool = False) -> None:
        """Open (creating if needed) for append; size is read from the file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
        if truncate:
            flags |= os.O_TRUNC
        fd = os.open(self.path, flags, 0o644)
        try:
            handle = os.fdopen(fd, "ab", buffering=0)
        except Exception:
            os.close(fd)
            raise
        self.size = os.fstat(handle.fileno()).st_size
        self._handle = handle

    def write(self, data: memoryview) -> int:
        """Write all of ``data``; on failure count only what the OS accepted."""
        written = 0
        try:
            while written < len(data):
                count = self._handle.write(data[written:])
                if not count:
                    raise OSError(errno.EIO, "write accepted no bytes")
                written += count
        except OSError as exc:
            self.size += written
            raise WriteError(
                f"Failed to write to {self.path}: {describe_os_error(exc)}",
                path=str(self.path),
                bytes_written=written,
            ) from exc
        self.size += written
        return written

    def sync(self) -> None:
        if self._handle is not None:
            os.fsync(self._handle.fileno())

    def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()


class Rotator:
    """Retires the active file to a backup name and opens a fresh one."""

    def __init__(self, active: ActiveFile, index: BackupIndex, clock: Callable[[], datetime] = datetime.now):
        self.active = active
        self.index = index
        self._clock = clock

    def rotate(self) -> BackupFile:
        """
        Close, rename and reopen the active file.

        Returns:
            The new backup, already recorded in the index

        Raises:
            RotationError: ``stage`` tells which step failed. After a rename
                failure the old file is reopened for append; after a reopen
                failure no file is open and ``backup`` is set.
        """
        base = self.active.path

        try:
            self.active.close()
        except OSError as exc:
            raise RotationError(
                f"Failed to close {base.name} for rotation: {describe_os_error(exc)}",
                stage=RotationError.CLOSE,
                path=str(base),
            ) from exc

        backup = self.index.allocate(self._clock())

        try:
            os.rename(base, backup.path)
        except OSError as exc:
            try:
                self.active.open()
            except OSError as reopen_exc:
                logger.warning(f"Could not reopen {base.name} after failed rename: {reopen_exc}")
            raise RotationError(
                f"Failed to rename {base.name} to {backup.path.name}: {describe_os_error(exc)}",
                stage=RotationError.RENAME,
                path=str(base),
            ) from exc

        self.index.add(backup)

        try:
            self.active.open(truncate=True)
        except OSError as exc:
            raise RotationError(
                f"Rotated {base.name} but failed to open a new file: {describe_os_error(exc)}",
                stage=RotationError.REOPEN,
                path=str(base),
                backup=backup,
            ) from exc

        logger.info(f"Rotated {base.name} -> {backup.path.name}")
        return backup
