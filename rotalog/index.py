"""
In-memory index of the backups that belong to one active file.

The index is updated incrementally as backups are created, compressed and
deleted. The directory is only scanned to bootstrap it after a restart.
"""

import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .models import BackupFile, NamingScheme
from .naming import BackupNamer


class BackupIndex:
    """Thread-safe map of ordering key -> BackupFile."""

    def __init__(self, namer: BackupNamer):
        self.namer = namer
        self._lock = threading.Lock()
        self._entries: Dict[str, BackupFile] = {}
        self._newest: Optional[BackupFile] = None

    def scan(self) -> List[BackupFile]:
        """Rebuild the index from the filesystem.

        When both a plain and a compressed file exist for one key the
        compressed one is indexed. Returns every plain backup found, oldest
        first, so the caller can finish compressing them.
        """
        found: Dict[str, BackupFile] = {}
        plain: List[BackupFile] = []
        directory = self.namer.directory
        if directory.is_dir():
            for path in directory.iterdir():
                if not self.namer.matches(path) or not path.is_file():
                    continue
                try:
                    backup = self.namer.parse(path)
                except FileNotFoundError:
                    continue
                if backup is None:
                    continue
                if not backup.compressed:
                    plain.append(backup)
                current = found.get(backup.ordering_key)
                if current is None or (backup.compressed and not current.compressed):
                    found[backup.ordering_key] = backup

        with self._lock:
            self._entries = found
            self._newest = max(found.values(), key=lambda b: b.sort_key, default=None)
        return sorted(plain, key=lambda b: b.sort_key)

    def allocate(self, now: datetime) -> BackupFile:
        """Pick the name for the next backup.

        The key never sorts before the newest known backup and never
        collides with a file already on disk.
        """
        with self._lock:
            newest = self._newest

        if self.namer.scheme == NamingScheme.SEQUENCE:
            sequence = (newest.sequence or 0) + 1 if newest is not None else 1
            while self._taken(self.namer.format_key(sequence=sequence)):
                sequence += 1
            key = self.namer.format_key(sequence=sequence)
            return BackupFile(
                path=self.namer.path_for(key),
                ordering_key=key,
                mod_time=now,
                sequence=sequence,
            )

        stamp = now.replace(microsecond=0)
        sub_sequence = 0
        if newest is not None and newest.key_time is not None and stamp <= newest.key_time:
            stamp = newest.key_time
            sub_sequence = newest.sub_sequence + 1
        while self._taken(self.namer.format_key(when=stamp, sub_sequence=sub_sequence)):
            sub_sequence += 1
        key = self.namer.format_key(when=stamp, sub_sequence=sub_sequence)
        return BackupFile(
            path=self.namer.path_for(key),
            ordering_key=key,
            mod_time=now,
            key_time=stamp,
            sub_sequence=sub_sequence,
        )

    def _taken(self, key: str) -> bool:
        with self._lock:
            if key in self._entries:
                return True
        return any(path.exists() for path in self.namer.variants(key))

    def add(self, backup: BackupFile) -> None:
        with self._lock:
            self._entries[backup.ordering_key] = backup
            if self._newest is None or backup.sort_key >= self._newest.sort_key:
                self._newest = backup

    def mark_compressed(self, backup: BackupFile, archive: Path) -> BackupFile:
        updated = backup.model_copy(update={"path": Path(archive), "compressed": True})
        with self._lock:
            # A prune may already have discarded it.
            if backup.ordering_key in self._entries:
                self._entries[backup.ordering_key] = updated
            if self._newest is not None and self._newest.ordering_key == backup.ordering_key:
                self._newest = updated
        return updated

    def discard(self, backup: BackupFile) -> None:
        # _newest is kept so ordering keys stay monotonic after pruning.
        with self._lock:
            self._entries.pop(backup.ordering_key, None)

    @property
    def newest(self) -> Optional[BackupFile]:
        """The most recent backup ever indexed, even if since pruned."""
        with self._lock:
            return self._newest

    def get(self, key: str) -> Optional[BackupFile]:
        with self._lock:
            return self._entries.get(key)

    def snapshot(self) -> List[BackupFile]:
        """All indexed backups, oldest first."""
        with self._lock:
            entries = list(self._entries.values())
        return sorted(entries, key=lambda b: b.sort_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
