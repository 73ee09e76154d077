"""Rotation decision: size threshold, time interval or calendar day, whichever comes first."""

from datetime import datetime
from typing import Optional

from .models import RotationPolicy

SIZE = "size"
INTERVAL = "interval"
DAILY = "daily"


def rotation_reason(
    current_size: int,
    incoming: int,
    last_rotation_time: datetime,
    now: datetime,
    policy: RotationPolicy,
) -> Optional[str]:
    """Return why a rotation is due before writing ``incoming`` bytes, or None."""
    if policy.rotates_by_size and current_size + incoming > policy.max_size_bytes:
        return SIZE
    if policy.rotates_by_time and now - last_rotation_time >= policy.max_interval:
        return INTERVAL
    if policy.rotate_daily and now.date() != last_rotation_time.date():
        return DAILY
    return None


def should_rotate(
    current_size: int,
    incoming: int,
    last_rotation_time: datetime,
    now: datetime,
    policy: RotationPolicy,
) -> bool:
    return rotation_reason(current_size, incoming, last_rotation_time, now, policy) is not None
