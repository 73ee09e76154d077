"""
Tests for the models module.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from rotalog.models import BackupFile, RotationPolicy, parse_size


class TestParseSize:
    """Test size string parsing."""

    def test_plain_numbers(self):
        """Test integers and digit strings."""
        assert parse_size(0) == 0
        assert parse_size(1500) == 1500
        assert parse_size("1500") == 1500

    def test_units(self):
        """Test binary unit suffixes."""
        assert parse_size("512K") == 512 * 1024
        assert parse_size("10MB") == 10 * 1024 * 1024
        assert parse_size("1 GiB") == 1024 ** 3
        assert parse_size("1.5k") == 1536

    def test_invalid_values(self):
        """Test rejected inputs."""
        with pytest.raises(ValueError):
            parse_size("lots")
        with pytest.raises(ValueError):
            parse_size(-1)
        with pytest.raises(ValueError):
            parse_size(True)


class TestRotationPolicy:
    """Test RotationPolicy model."""

    def test_defaults_disable_everything(self):
        """Test default values."""
        policy = RotationPolicy()

        assert policy.max_size_bytes == 0
        assert policy.max_interval == timedelta(0)
        assert policy.rotate_daily is False
        assert policy.max_backups == 0
        assert policy.max_backup_age == timedelta(0)
        assert policy.compress is False
        assert policy.compression_format == "gzip"
        assert policy.naming == "timestamp"
        assert not policy.rotates_by_size
        assert not policy.rotates_by_time
        assert not policy.prunes

    def test_size_string_and_seconds(self):
        """Test coercion of size strings and second counts."""
        policy = RotationPolicy(max_size_bytes="1MB", max_interval=3600, max_backup_age="86400")

        assert policy.max_size_bytes == 1024 * 1024
        assert policy.max_interval == timedelta(hours=1)
        assert policy.max_backup_age == timedelta(days=1)
        assert policy.rotates_by_size
        assert policy.rotates_by_time

    def test_policy_is_immutable(self):
        """Test that policies cannot be changed after creation."""
        policy = RotationPolicy(max_backups=3)

        with pytest.raises(ValidationError):
            policy.max_backups = 4

    def test_negative_values_rejected(self):
        """Test validation of negative limits."""
        with pytest.raises(ValidationError):
            RotationPolicy(max_backups=-1)
        with pytest.raises(ValidationError):
            RotationPolicy(max_interval=timedelta(seconds=-5))

    def test_unknown_compression_format_rejected(self):
        """Test validation of the compression format."""
        with pytest.raises(ValidationError):
            RotationPolicy(compression_format="zip")

    def test_from_env(self):
        """Test loading a policy from environment variables."""
        env = {
            "ROTALOG_MAX_SIZE_BYTES": "2MB",
            "ROTALOG_MAX_BACKUPS": "7",
            "ROTALOG_MAX_BACKUP_AGE": "3600",
            "ROTALOG_COMPRESS": "true",
            "ROTALOG_NAMING": "sequence",
            "ROTALOG_ROTATE_DAILY": "1",
        }
        with patch('rotalog.models.load_dotenv') as mock_load_dotenv:
            with patch.dict(os.environ, env):
                policy = RotationPolicy.from_env()

        mock_load_dotenv.assert_called_once()
        assert policy.max_size_bytes == 2 * 1024 * 1024
        assert policy.max_backups == 7
        assert policy.max_backup_age == timedelta(hours=1)
        assert policy.compress is True
        assert policy.naming == "sequence"
        assert policy.rotate_daily is True
        assert policy.max_interval == timedelta(0)

    def test_from_env_overrides_win(self):
        """Test that keyword overrides take precedence."""
        with patch('rotalog.models.load_dotenv'):
            with patch.dict(os.environ, {"ROTALOG_MAX_BACKUPS": "7"}):
                policy = RotationPolicy.from_env(max_backups=2)

        assert policy.max_backups == 2

    def test_from_env_invalid_value(self):
        """Test that malformed environment values are rejected."""
        with patch('rotalog.models.load_dotenv'):
            with patch.dict(os.environ, {"ROTALOG_MAX_BACKUPS": "many"}):
                with pytest.raises(ValidationError):
                    RotationPolicy.from_env()


class TestBackupFile:
    """Test BackupFile model."""

    def test_timestamp_ordering(self):
        """Test that the parsed key time and sub-sequence order backups."""
        mtime = datetime(2030, 1, 1)
        first = BackupFile(path=Path("a.log.20250101_120000"), ordering_key="20250101_120000",
                           mod_time=mtime, key_time=datetime(2025, 1, 1, 12))
        second = BackupFile(path=Path("a.log.20250101_120000-1"), ordering_key="20250101_120000-1",
                            mod_time=mtime, key_time=datetime(2025, 1, 1, 12), sub_sequence=1)

        assert first.sort_key < second.sort_key
        assert first.created_at == datetime(2025, 1, 1, 12)

    def test_mtime_fallback(self):
        """Test that unparsed keys fall back to modification time."""
        backup = BackupFile(path=Path("a.log.99"), ordering_key="99", mod_time=datetime(2025, 6, 1))

        assert backup.created_at == datetime(2025, 6, 1)
        assert str(backup) == "a.log.99"

    def test_sequence_ordering(self):
        """Test ordering by sequence number."""
        mtime = datetime(2025, 1, 1)
        low = BackupFile(path=Path("a.log.000002"), ordering_key="000002", mod_time=mtime, sequence=2)
        high = BackupFile(path=Path("a.log.000010"), ordering_key="000010", mod_time=mtime, sequence=10)

        assert low.sort_key < high.sort_key
