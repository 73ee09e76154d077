"""
Data models for the rotation engine.
"""

import os
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class NamingScheme:
    """Ordering-key schemes for backup file names."""
    TIMESTAMP = "timestamp"
    SEQUENCE = "sequence"


_SIZE_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*([KMGT]?)(?:I?B)?")
_SIZE_MULTIPLIERS = {
    "": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}


def parse_size(value: Any) -> int:
    """Convert a byte count or a size string such as ``"10MB"`` to bytes.

    Units are binary multiples: ``K``/``KB``/``KiB`` all mean 1024.
    """
    if isinstance(value, bool):
        raise ValueError("size must be a number of bytes, not a boolean")
    if isinstance(value, (int, float)):
        size = int(value)
    else:
        match = _SIZE_PATTERN.fullmatch(str(value).strip().upper())
        if not match:
            raise ValueError(f"invalid size: {value!r}")
        number, unit = match.groups()
        size = int(float(number) * _SIZE_MULTIPLIERS[unit])
    if size < 0:
        raise ValueError("size must not be negative")
    return size


def _parse_seconds(value: Any) -> Any:
    # Environment values arrive as strings; plain numbers mean seconds.
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"\d+(?:\.\d+)?", text):
            return timedelta(seconds=float(text))
    return value


class RotationPolicy(BaseModel):
    """Immutable rotation and retention settings.

    A zero value disables the corresponding limit.
    """

    model_config = ConfigDict(frozen=True)

    max_size_bytes: int = Field(default=0, ge=0)
    max_interval: timedelta = timedelta(0)
    rotate_daily: bool = False
    max_backups: int = Field(default=0, ge=0)
    max_backup_age: timedelta = timedelta(0)
    compress: bool = False
    compression_format: Literal["gzip", "bz2", "xz"] = "gzip"
    naming: Literal["timestamp", "sequence"] = NamingScheme.TIMESTAMP

    @field_validator("max_size_bytes", mode="before")
    @classmethod
    def _coerce_size(cls, value: Any) -> int:
        return parse_size(value)

    @field_validator("max_interval", "max_backup_age", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> Any:
        return _parse_seconds(value)

    @field_validator("max_interval", "max_backup_age")
    @classmethod
    def _non_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("duration must not be negative")
        return value

    @property
    def rotates_by_size(self) -> bool:
        return self.max_size_bytes > 0

    @property
    def rotates_by_time(self) -> bool:
        return self.max_interval > timedelta(0)

    @property
    def prunes(self) -> bool:
        return self.max_backups > 0 or self.max_backup_age > timedelta(0)

    @classmethod
    def from_env(
        cls,
        prefix: str = "ROTALOG_",
        dotenv_path: str | None = None,
        **overrides: Any,
    ) -> "RotationPolicy":
        """Build a policy from environment variables.

        A ``.env`` file is loaded first (existing variables win). Each field
        maps to ``<prefix><FIELD_NAME>``, e.g. ``ROTALOG_MAX_SIZE_BYTES=10MB``.
        Keyword overrides take precedence over the environment.
        """
        load_dotenv(dotenv_path)
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        values.update(overrides)
        return cls(**values)


class BackupFile(BaseModel):
    """A retired log file, derived from its name and filesystem metadata."""

    model_config = ConfigDict(frozen=True)

    path: Path
    ordering_key: str
    compressed: bool = False
    mod_time: datetime
    key_time: datetime | None = None
    sequence: int | None = None
    sub_sequence: int = 0

    def __str__(self) -> str:
        return self.path.name

    @property
    def created_at(self) -> datetime:
        """Time the backup was rotated, falling back to its mtime."""
        return self.key_time or self.mod_time

    @property
    def sort_key(self) -> tuple[float, int]:
        if self.sequence is not None:
            return (float(self.sequence), self.sub_sequence)
        return (self.created_at.timestamp(), self.sub_sequence)
