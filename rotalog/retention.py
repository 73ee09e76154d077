"""
Count- and age-based pruning of backup files.
"""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .index import BackupIndex
from .logging_config import get_logger
from .models import BackupFile, RotationPolicy

logger = get_logger(__name__)


class RetentionManager:
    """Deletes the backups that fall outside the retention policy."""

    def __init__(
        self,
        index: BackupIndex,
        policy: RotationPolicy,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.index = index
        self.policy = policy
        self._clock = clock

    def select_expired(self, backups: List[BackupFile], now: datetime) -> List[BackupFile]:
        """
        Pick the backups that violate either retention limit.

        Args:
            backups: Backups sorted oldest first
            now: Reference time for the age limit

        Returns:
            Expired backups, oldest first
        """
        expired = set()

        if self.policy.max_backups > 0 and len(backups) > self.policy.max_backups:
            for backup in backups[:len(backups) - self.policy.max_backups]:
                expired.add(backup.ordering_key)

        if self.policy.max_backup_age > timedelta(0):
            cutoff = now - self.policy.max_backup_age
            for backup in backups:
                if backup.created_at < cutoff:
                    expired.add(backup.ordering_key)

        return [b for b in backups if b.ordering_key in expired]

    def prune(self, now: Optional[datetime] = None) -> List[BackupFile]:
        """
        Delete expired backups.

        A file that cannot be removed is logged and skipped; the rest are
        still pruned.

        Returns:
            Backups that were removed
        """
        if not self.policy.prunes:
            return []

        now = now or self._clock()
        removed = []

        for backup in self.select_expired(self.index.snapshot(), now):
            if self._delete(backup):
                self.index.discard(backup)
                removed.append(backup)

        if removed:
            logger.info(f"Retention removed {len(removed)} backup(s) of {self.index.namer.base_path.name}, "
                        f"{len(self.index)} remaining")
        return removed

    def _delete(self, backup: BackupFile) -> bool:
        deleted = True
        for path in self.index.namer.variants(backup.ordering_key):
            try:
                path.unlink()
                logger.debug(f"Removed backup file: {path.name}")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove backup file {path.name}: {e}")
                deleted = False
        return deleted

    def get_retention_info(self) -> dict:
        """
        Get information about the retention policy and current backups.

        Returns:
            Dict with policy settings and per-backup stats
        """
        now = self._clock()
        info = {
            'max_backups': self.policy.max_backups,
            'max_backup_age': self.policy.max_backup_age,
            'compress': self.policy.compress,
            'directory': str(self.index.namer.directory),
            'files': [],
            'total_size': 0,
            'compressed_files': 0,
            'uncompressed_files': 0,
            'oldest_file_age': None,
        }

        for backup in self.index.snapshot():
            try:
                size = backup.path.stat().st_size
            except OSError:
                continue

            info['files'].append({
                'name': backup.path.name,
                'size': size,
                'created': backup.created_at,
                'compressed': backup.compressed,
            })
            info['total_size'] += size
            if backup.compressed:
                info['compressed_files'] += 1
            else:
                info['uncompressed_files'] += 1

        if info['files']:
            info['oldest_file_age'] = now - min(f['created'] for f in info['files'])

        return info
