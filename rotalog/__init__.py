"""
rotalog - a rotating, compressing, self-pruning log file writer.
"""

from .errors import (
    ErrorCategory,
    RotalogError,
    RotationError,
    WriteError,
    WriterClosedError,
)
from .handler import RotatingLogHandler
from .models import BackupFile, NamingScheme, RotationPolicy
from .writer import LogWriter, close_default_writer, get_default_writer, set_default_writer

__version__ = "0.1.0"

__all__ = [
    "BackupFile",
    "ErrorCategory",
    "LogWriter",
    "NamingScheme",
    "RotalogError",
    "RotatingLogHandler",
    "RotationError",
    "RotationPolicy",
    "WriteError",
    "WriterClosedError",
    "close_default_writer",
    "get_default_writer",
    "set_default_writer",
]
