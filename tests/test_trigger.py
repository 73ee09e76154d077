"""
Tests for the rotation decision function.
"""

from datetime import datetime, timedelta

from rotalog.models import RotationPolicy
from rotalog.trigger import DAILY, INTERVAL, SIZE, rotation_reason, should_rotate

START = datetime(2025, 1, 1, 12, 0, 0)


class TestRotationTrigger:
    """Test size and interval triggers."""

    def test_disabled_policy_never_rotates(self):
        """Test that a default policy never asks for rotation."""
        policy = RotationPolicy()

        assert not should_rotate(10 ** 9, 10 ** 9, START, START + timedelta(days=365), policy)

    def test_size_threshold_is_exclusive(self):
        """Test that reaching the limit exactly does not rotate."""
        policy = RotationPolicy(max_size_bytes=100)

        assert not should_rotate(60, 40, START, START, policy)
        assert rotation_reason(60, 41, START, START, policy) == SIZE

    def test_interval_threshold_is_inclusive(self):
        """Test that the interval triggers once it has fully elapsed."""
        policy = RotationPolicy(max_interval=timedelta(hours=1))

        assert not should_rotate(0, 10, START, START + timedelta(minutes=59, seconds=59), policy)
        assert rotation_reason(0, 10, START, START + timedelta(hours=1), policy) == INTERVAL

    def test_whichever_comes_first(self):
        """Test that size and interval are combined with OR."""
        policy = RotationPolicy(max_size_bytes=100, max_interval=timedelta(days=1))

        assert rotation_reason(90, 20, START, START + timedelta(minutes=1), policy) == SIZE
        assert rotation_reason(10, 20, START, START + timedelta(days=2), policy) == INTERVAL
        assert rotation_reason(10, 20, START, START + timedelta(minutes=1), policy) is None

    def test_oversized_write_on_empty_file(self):
        """Test that a write larger than the limit is reported as a size trigger."""
        policy = RotationPolicy(max_size_bytes=10)

        assert rotation_reason(0, 50, START, START, policy) == SIZE

    def test_calendar_day_rotation(self):
        """Test that crossing local midnight triggers a daily rotation."""
        policy = RotationPolicy(rotate_daily=True)
        evening = datetime(2025, 1, 1, 23, 59, 59)

        assert rotation_reason(10, 10, START, evening, policy) is None
        assert rotation_reason(10, 10, evening, evening + timedelta(seconds=2), policy) == DAILY

    def test_daily_and_size_combined(self):
        """Test that the size limit still applies within one day."""
        policy = RotationPolicy(max_size_bytes=100, rotate_daily=True)

        assert rotation_reason(90, 20, START, START + timedelta(hours=1), policy) == SIZE
        assert rotation_reason(10, 20, START, START + timedelta(hours=12), policy) == DAILY
