"""
logging.Handler that writes formatted records through a LogWriter.
"""

import logging

from .errors import WriterClosedError
from .writer import LogWriter


class RotatingLogHandler(logging.Handler):
    """Send log records to a rotating LogWriter.

    The writer serializes writes itself, so ``handle`` does not take the
    handler lock. Records logged by the writer from inside its own locked
    section (e.g. rotation messages) go to ``logging.lastResort``.
    """

    terminator = "\n"

    def __init__(self, writer: LogWriter, level: int = logging.NOTSET):
        super().__init__(level)
        self.writer = writer

    def handle(self, record: logging.LogRecord):
        rv = self.filter(record)
        if isinstance(rv, logging.LogRecord):
            record = rv
        if rv:
            self.emit(record)
        return rv

    def emit(self, record: logging.LogRecord) -> None:
        if self.writer.owned_by_current_thread():
            fallback = logging.lastResort
            if fallback is not None and record.levelno >= fallback.level:
                fallback.handle(record)
            return

        try:
            self.writer.write(self.format(record) + self.terminator)
        except WriterClosedError:
            pass  # records after shutdown are dropped
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        self.writer.flush()

    def close(self) -> None:
        try:
            self.writer.close()
        finally:
            super().close()
