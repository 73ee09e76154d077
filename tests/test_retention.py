"""
Tests for backup retention policies.
"""

import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

from rotalog.index import BackupIndex
from rotalog.logging_config import reset_logging
from rotalog.models import RotationPolicy
from rotalog.naming import BackupNamer
from rotalog.retention import RetentionManager

NOW = datetime(2025, 6, 1, 12, 0, 0)


class TestRetentionManager(unittest.TestCase):
    """Test count- and age-based pruning."""

    def setUp(self):
        """Set up test fixtures."""
        reset_logging()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.log_dir = Path(self.temp_dir.name)
        self.base = self.log_dir / 'app.log'
        (self.log_dir / 'app.log').write_text('active')

    def tearDown(self):
        """Clean up after each test."""
        self.temp_dir.cleanup()
        reset_logging()

    def _make_backups(self, days_ago, compressed_every=0):
        """Create one backup per entry in ``days_ago`` and return a scanned index."""
        for i, days in enumerate(days_ago):
            stamp = (NOW - timedelta(days=days)).strftime('%Y%m%d_%H%M%S')
            suffix = '.gz' if compressed_every and i % compressed_every == 0 else ''
            (self.log_dir / f'app.log.{stamp}{suffix}').write_text(f'backup {days}')
        index = BackupIndex(BackupNamer(self.base))
        index.scan()
        return index

    def _manager(self, index, **policy):
        return RetentionManager(index, RotationPolicy(**policy), clock=lambda: NOW)

    def test_no_limits_keeps_everything(self):
        """Test that a policy without limits removes nothing."""
        index = self._make_backups([5, 4, 3, 2, 1])

        assert self._manager(index).prune() == []
        assert len(index) == 5

    def test_count_limit_removes_oldest(self):
        """Test that only the newest max_backups remain."""
        index = self._make_backups([5, 4, 3, 2, 1], compressed_every=2)

        removed = self._manager(index, max_backups=2).prune()

        assert len(removed) == 3
        remaining = sorted(p.name for p in self.log_dir.glob('app.log.*'))
        expected = sorted(b.path.name for b in index.snapshot())
        assert remaining == expected
        assert [b.created_at for b in index.snapshot()] == [NOW - timedelta(days=2), NOW - timedelta(days=1)]

    def test_age_limit(self):
        """Test that backups older than max_backup_age are removed."""
        index = self._make_backups([40, 31, 10, 1])

        removed = self._manager(index, max_backup_age=timedelta(days=30)).prune()

        assert [b.created_at for b in removed] == [NOW - timedelta(days=40), NOW - timedelta(days=31)]
        assert len(index) == 2

    def test_either_limit_deletes(self):
        """Test that count and age limits are combined with OR."""
        index = self._make_backups([40, 3, 2, 1])
        manager = self._manager(index, max_backups=3, max_backup_age=timedelta(days=30))

        expired = manager.select_expired(index.snapshot(), NOW)
        assert len(expired) == 1

        manager = self._manager(index, max_backups=2, max_backup_age=timedelta(days=30))
        expired = manager.select_expired(index.snapshot(), NOW)
        assert [b.created_at for b in expired] == [NOW - timedelta(days=40), NOW - timedelta(days=3)]

    def test_deletion_failure_does_not_stop_pruning(self):
        """Test that one unremovable file is skipped and the rest are pruned."""
        index = self._make_backups([5, 4, 3, 2, 1])
        oldest = index.snapshot()[0].path
        real_unlink = Path.unlink

        def flaky_unlink(path, *args, **kwargs):
            if path == oldest:
                raise PermissionError('Operation not permitted')
            return real_unlink(path, *args, **kwargs)

        with patch.object(Path, 'unlink', flaky_unlink):
            with self.assertLogs('rotalog.retention', level='WARNING'):
                removed = self._manager(index, max_backups=1).prune()

        assert len(removed) == 3
        assert oldest.exists()
        # The unremovable backup stays indexed so a later pass retries it
        assert len(index) == 2

    def test_missing_file_is_dropped_from_index(self):
        """Test that a backup deleted externally is forgotten."""
        index = self._make_backups([3, 2, 1])
        index.snapshot()[0].path.unlink()

        removed = self._manager(index, max_backups=2).prune()

        assert len(removed) == 1
        assert len(index) == 2

    def test_duplicate_variants_removed_together(self):
        """Test that a plain leftover next to its archive is deleted with it."""
        stamp = (NOW - timedelta(days=9)).strftime('%Y%m%d_%H%M%S')
        (self.log_dir / f'app.log.{stamp}').write_text('plain')
        (self.log_dir / f'app.log.{stamp}.gz').write_text('archive')
        index = self._make_backups([2, 1])

        self._manager(index, max_backups=2).prune()

        assert not (self.log_dir / f'app.log.{stamp}').exists()
        assert not (self.log_dir / f'app.log.{stamp}.gz').exists()

    def test_active_file_never_pruned(self):
        """Test that the active file is not a backup."""
        index = self._make_backups([3, 2, 1])

        self._manager(index, max_backups=1, max_backup_age=timedelta(seconds=1)).prune()

        assert (self.log_dir / 'app.log').read_text() == 'active'

    def test_retention_info(self):
        """Test retention info includes compression statistics."""
        index = self._make_backups([3, 2, 1], compressed_every=2)

        info = self._manager(index, max_backups=5, compress=True).get_retention_info()

        assert info['max_backups'] == 5
        assert info['compress'] is True
        assert info['compressed_files'] == 2
        assert info['uncompressed_files'] == 1
        assert len(info['files']) == 3
        assert info['total_size'] > 0
        assert info['oldest_file_age'] == timedelta(days=3)
