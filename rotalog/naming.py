"""
Backup file naming: ``<base>.<orderingKey>[<compression suffix>]``.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .models import BackupFile, NamingScheme

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
SEQUENCE_WIDTH = 6

COMPRESSION_SUFFIXES = {
    "gzip": ".gz",
    "bz2": ".bz2",
    "xz": ".xz",
}

_TIMESTAMP_KEY = re.compile(r"(\d{8}_\d{6})(?:-(\d+))?")


class BackupNamer:
    """Formats and parses backup names derived from one active file path."""

    def __init__(self, base_path: Path, scheme: str = NamingScheme.TIMESTAMP):
        self.base_path = Path(base_path)
        self.scheme = scheme
        suffixes = "|".join(re.escape(s) for s in COMPRESSION_SUFFIXES.values())
        self._pattern = re.compile(
            rf"{re.escape(self.base_path.name)}\.(?P<key>\d[\d_-]*)(?P<ext>{suffixes})?"
        )

    @property
    def directory(self) -> Path:
        return self.base_path.parent

    def format_key(
        self,
        when: Optional[datetime] = None,
        sequence: int = 0,
        sub_sequence: int = 0,
    ) -> str:
        if self.scheme == NamingScheme.SEQUENCE:
            return f"{sequence:0{SEQUENCE_WIDTH}d}"
        key = when.strftime(TIMESTAMP_FORMAT)
        if sub_sequence:
            key = f"{key}-{sub_sequence}"
        return key

    def path_for(self, key: str, suffix: str = "") -> Path:
        return self.base_path.with_name(f"{self.base_path.name}.{key}{suffix}")

    def variants(self, key: str) -> List[Path]:
        """All paths a backup with ``key`` may live under."""
        paths = [self.path_for(key)]
        paths.extend(self.path_for(key, suffix) for suffix in COMPRESSION_SUFFIXES.values())
        return paths

    def matches(self, path: Path) -> bool:
        return self._pattern.fullmatch(Path(path).name) is not None

    def parse(self, path: Path, mod_time: Optional[datetime] = None) -> Optional[BackupFile]:
        """Build a BackupFile from a path, or None if it is not one of ours.

        Timestamp keys that fail to parse fall back to the file's mtime for
        ordering. Under the sequence scheme only all-digit keys are managed.
        """
        path = Path(path)
        match = self._pattern.fullmatch(path.name)
        if not match:
            return None

        key = match.group("key")
        fields = {}
        if self.scheme == NamingScheme.SEQUENCE:
            if not key.isdigit():
                return None
            fields["sequence"] = int(key)
        else:
            stamp = _TIMESTAMP_KEY.fullmatch(key)
            if stamp:
                try:
                    fields["key_time"] = datetime.strptime(stamp.group(1), TIMESTAMP_FORMAT)
                    fields["sub_sequence"] = int(stamp.group(2) or 0)
                except ValueError:
                    fields = {}

        if mod_time is None:
            mod_time = datetime.fromtimestamp(path.stat().st_mtime)

        return BackupFile(
            path=path,
            ordering_key=key,
            compressed=match.group("ext") is not None,
            mod_time=mod_time,
            **fields,
        )
