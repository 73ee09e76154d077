"""
LogWriter: the append sink that owns the active file.

Trigger check, rotation and write happen under one lock. Compression and
retention run afterwards on a background worker.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from .compressor import Compressor
from .errors import RotationError, WriterClosedError, describe_os_error
from .index import BackupIndex
from .logging_config import get_logger
from .models import BackupFile, RotationPolicy
from .naming import BackupNamer
from .retention import RetentionManager
from .rotator import ActiveFile, Rotator
from .tasks import BackgroundWorker
from .trigger import rotation_reason

logger = get_logger(__name__)

Data = Union[bytes, bytearray, memoryview, str]


class LogWriter:
    """Size- and time-rotating append-only log file.

    Args:
        base_path: Path of the active file; backups are created next to it
        policy: Rotation and retention settings
        encoding: Used when ``write`` is given a ``str``
        clock: Returns the current local time; injectable for tests
        worker: Shared BackgroundWorker; by default the writer starts its own
        workers: Thread count for the writer's own worker
        max_pending: Queue bound for the writer's own worker
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        policy: Optional[RotationPolicy] = None,
        *,
        encoding: str = "utf-8",
        clock: Optional[Callable[[], datetime]] = None,
        worker: Optional[BackgroundWorker] = None,
        workers: int = 1,
        max_pending: int = 64,
    ):
        self.base_path = Path(base_path)
        self.policy = policy or RotationPolicy()
        self.encoding = encoding
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self._closed = False

        self.index = BackupIndex(BackupNamer(self.base_path, self.policy.naming))
        self.compressor = Compressor(self.policy.compression_format) if self.policy.compress else None
        self.retention = RetentionManager(self.index, self.policy, self._clock)
        self._active = ActiveFile(self.base_path)
        self._rotator = Rotator(self._active, self.index, self._clock)

        leftovers = self.index.scan()
        self._active.open()
        self._last_rotation_time = self._initial_rotation_time()

        self._owns_worker = worker is None
        self._worker = worker or BackgroundWorker(
            name=f"rotalog:{self.base_path.name}",
            workers=workers,
            max_pending=max_pending,
        )

        logger.debug(f"Opened {self.base_path} ({self._active.size} bytes, {len(self.index)} backups)")

        if self.compressor is not None or self.policy.prunes:
            self._submit(self._recover, leftovers)

    # ------------------------------------------------------------------
    @property
    def current_size(self) -> int:
        return self._active.size

    @property
    def last_rotation_time(self) -> datetime:
        return self._last_rotation_time

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: Data) -> int:
        """
        Append ``data`` to the active file, rotating first if a limit is hit.

        Returns:
            Number of bytes written

        Raises:
            WriteError: The append failed; ``bytes_written`` were kept
            RotationError: The rotation that had to happen first failed
            WriterClosedError: The writer was closed
        """
        if isinstance(data, str):
            data = data.encode(self.encoding)
        view = memoryview(data).cast("B")

        retired: List[BackupFile] = []
        try:
            with self._locked():
                self._ensure_open()
                now = self._clock()
                reason = rotation_reason(
                    self._active.size, len(view), self._last_rotation_time, now, self.policy
                )
                if reason is not None:
                    self._rotate_locked(reason, now, retired)
                return self._active.write(view)
        finally:
            for backup in retired:
                self._submit(self._follow_up, backup)

    def rotate(self) -> Optional[BackupFile]:
        """Force a rotation. Returns the new backup, or None if the file was empty."""
        retired: List[BackupFile] = []
        try:
            with self._locked():
                self._ensure_open()
                self._rotate_locked("manual", self._clock(), retired)
        finally:
            for backup in retired:
                self._submit(self._follow_up, backup)
        return retired[0] if retired else None

    def flush(self) -> None:
        """Writes are unbuffered; present for file-like callers."""

    def sync(self) -> None:
        """fsync the active file."""
        with self._locked():
            self._active.sync()

    def close(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Close the active file. Safe to call more than once.

        Blocks until an in-flight write or rotation has finished. With
        ``wait`` the pending compression and retention work is drained too.
        """
        close_error = None
        with self._locked():
            if self._closed:
                return
            self._closed = True
            try:
                self._active.close()
            except OSError as exc:
                close_error = exc

        # Outside the lock: background tasks may log through this writer.
        if self._owns_worker:
            self._worker.shutdown(wait=wait, timeout=timeout)
        elif wait:
            self._worker.wait_idle(timeout)

        if close_error is not None:
            raise close_error
        logger.debug(f"Closed {self.base_path}")

    def wait_for_background(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued compression/retention work. False on timeout."""
        return self._worker.wait_idle(timeout)

    def get_info(self) -> dict:
        """Status of the active file and its backups."""
        info = self.retention.get_retention_info()
        info.update({
            'base_path': str(self.base_path),
            'current_size': self._active.size,
            'last_rotation_time': self._last_rotation_time,
            'closed': self._closed,
            'pending_tasks': self._worker.pending,
            'policy': self.policy.model_dump(),
        })
        return info

    def __enter__(self) -> "LogWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"LogWriter({str(self.base_path)!r}, size={self._active.size})"

    def owned_by_current_thread(self) -> bool:
        """True while the calling thread is inside a write, rotate or close."""
        return self._owner == threading.get_ident()

    # ------------------------------------------------------------------
    @contextmanager
    def _locked(self):
        with self._lock:
            self._owner = threading.get_ident()
            try:
                yield
            finally:
                self._owner = None

    def _initial_rotation_time(self) -> datetime:
        # Resume the time triggers from the newest backup left by an earlier run.
        now = self._clock()
        newest = self.index.newest
        if newest is None or newest.created_at > now:
            return now
        return newest.created_at

    def _ensure_open(self) -> None:
        if self._closed:
            raise WriterClosedError(f"LogWriter for {self.base_path} is closed", path=str(self.base_path))
        if self._active.is_open:
            return
        # A previous rotation left no active file.
        try:
            self._active.open()
        except OSError as exc:
            raise RotationError(
                f"Failed to reopen {self.base_path}: {describe_os_error(exc)}",
                stage=RotationError.REOPEN,
                path=str(self.base_path),
            ) from exc
        logger.info(f"Reopened {self.base_path} after an earlier rotation failure")

    def _rotate_locked(self, reason: str, now: datetime, retired: List[BackupFile]) -> None:
        if self._active.size == 0:
            # Nothing to retire; restart the interval instead of creating an empty backup.
            self._last_rotation_time = now
            return

        try:
            backup = self._rotator.rotate()
        except RotationError as e:
            if e.backup is not None:
                retired.append(e.backup)
                self._last_rotation_time = now
            logger.error(f"Rotation of {self.base_path.name} ({reason}) failed at {e.stage}: {e}")
            raise

        retired.append(backup)
        self._last_rotation_time = now
        logger.debug(f"Rotation reason for {backup.path.name}: {reason}")

    def _submit(self, fn, *args) -> None:
        if self._worker.owns_current_thread():
            # A background task logged through this writer and rotated it;
            # queueing from the worker itself could block on a full queue.
            fn(*args)
            return
        try:
            self._worker.submit(fn, *args)
        except RuntimeError:
            # Worker already shut down (e.g. racing close); do the work inline.
            fn(*args)

    def _follow_up(self, backup: BackupFile) -> None:
        if self.compressor is not None and not backup.compressed:
            archive = self.compressor.compress(backup.path)
            if archive is not None:
                self.index.mark_compressed(backup, archive)
        self.retention.prune()

    def _recover(self, leftovers: List[BackupFile]) -> None:
        if self.compressor is not None:
            self.compressor.remove_stale_temp_files(self.base_path.parent, self.base_path.name)
            for backup in leftovers:
                archive = self.compressor.compress(backup.path)
                if archive is not None:
                    self.index.mark_compressed(backup, archive)
        self.retention.prune()


# Process-wide default writer
_default_writer: Optional[LogWriter] = None
_default_lock = threading.Lock()


def set_default_writer(writer: Optional[LogWriter]) -> Optional[LogWriter]:
    """Install the process-wide writer. Returns the previous one (not closed)."""
    global _default_writer
    with _default_lock:
        previous, _default_writer = _default_writer, writer
    return previous


def get_default_writer() -> LogWriter:
    """Return the process-wide writer."""
    with _default_lock:
        if _default_writer is None:
            raise RuntimeError("No default LogWriter has been set")
        return _default_writer


def close_default_writer(wait: bool = True, timeout: Optional[float] = None) -> None:
    """Close and forget the process-wide writer, if any."""
    writer = set_default_writer(None)
    if writer is not None:
        writer.close(wait=wait, timeout=timeout)
