"""
Compression of retired log files.

An archive only ever appears under its final name once it is complete: the
data is written to a hidden temporary file in the same directory, synced,
and renamed into place. The original is removed after that rename.
"""

import bz2
import glob
import gzip
import lzma
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from .logging_config import get_logger
from .naming import COMPRESSION_SUFFIXES

logger = get_logger(__name__)

TEMP_SUFFIX = ".tmp"

_CODECS = {
    "gzip": gzip,
    "bz2": bz2,
    "xz": lzma,
}


class Compressor:
    """Compresses closed backup files in place."""

    def __init__(self, compression_format: str = "gzip"):
        if compression_format not in _CODECS:
            raise ValueError(f"Unsupported compression format: {compression_format}")
        self.compression_format = compression_format
        self.suffix = COMPRESSION_SUFFIXES[compression_format]

    @property
    def _codec(self):
        return _CODECS[self.compression_format]

    def archive_path(self, log_file: Path) -> Path:
        log_file = Path(log_file)
        return log_file.with_name(log_file.name + self.suffix)

    def compress(self, log_file: Path) -> Optional[Path]:
        """
        Compress a single closed log file.

        Args:
            log_file: Path to the retired log file

        Returns:
            Path of the archive, or None if compression failed (the
            original is then left untouched)
        """
        log_file = Path(log_file)
        archive = self.archive_path(log_file)

        if archive.exists():
            # Archives are renamed into place complete, so the plain file is
            # a leftover from an interrupted run.
            self._remove_original(log_file)
            return archive

        tmp_path = None
        try:
            original_stat = log_file.stat()
            fd, tmp_name = tempfile.mkstemp(
                dir=log_file.parent,
                prefix=f".{log_file.name}.",
                suffix=TEMP_SUFFIX,
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, 'wb') as raw:
                with self._codec.open(raw, 'wb') as f_out:
                    with open(log_file, 'rb') as f_in:
                        shutil.copyfileobj(f_in, f_out)
                raw.flush()
                os.fsync(raw.fileno())

            # Preserve modification time
            os.utime(tmp_path, (original_stat.st_atime, original_stat.st_mtime))
            os.replace(tmp_path, archive)
            tmp_path = None

        except Exception as e:
            logger.warning(f"Failed to compress {log_file.name}: {e}")
            return None

        finally:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        self._remove_original(log_file)
        logger.debug(f"Compressed log file: {log_file.name} -> {archive.name}")
        return archive

    def _remove_original(self, log_file: Path) -> None:
        try:
            log_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Compressed {log_file.name} but could not remove the original: {e}")

    def decompress_file(self, compressed_file: Path, output_file: Optional[Path] = None) -> bool:
        """
        Decompress an archived log file.

        Args:
            compressed_file: Path to the compressed log file
            output_file: Optional path for the decompressed file

        Returns:
            True if decompression was successful, False otherwise
        """
        compressed_file = Path(compressed_file)
        codec = None
        for name, suffix in COMPRESSION_SUFFIXES.items():
            if compressed_file.name.endswith(suffix):
                codec = _CODECS[name]
                break

        if codec is None or not compressed_file.exists():
            return False

        if output_file is None:
            output_file = compressed_file.with_suffix('')
        output_file = Path(output_file)

        # Never overwrite
        if output_file.exists():
            return False

        try:
            with codec.open(compressed_file, 'rb') as f_in:
                with open(output_file, 'xb') as f_out:
                    shutil.copyfileobj(f_in, f_out)

            compressed_stat = compressed_file.stat()
            os.utime(output_file, (compressed_stat.st_atime, compressed_stat.st_mtime))
            return True

        except Exception as e:
            logger.warning(f"Failed to decompress {compressed_file.name}: {e}")

            # Clean up partial decompressed file if it exists
            if output_file.exists():
                try:
                    output_file.unlink()
                except OSError:
                    pass

            return False

    def remove_stale_temp_files(self, directory: Path, base_name: str) -> int:
        """Delete temporary archives left behind by an interrupted compression."""
        removed = 0
        pattern = f".{glob.escape(base_name)}.*{TEMP_SUFFIX}"
        for stale in Path(directory).glob(pattern):
            try:
                stale.unlink()
                removed += 1
                logger.debug(f"Removed stale temporary archive: {stale.name}")
            except OSError as e:
                logger.warning(f"Failed to remove stale temporary archive {stale.name}: {e}")
        return removed
