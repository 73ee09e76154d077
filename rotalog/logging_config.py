"""
Centralized logging configuration for rotalog.

This module provides a unified logging setup with configurable levels,
formatters, and handlers. File logging goes through a LogWriter, so the
engine's own diagnostics rotate under the same policy as any other stream.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional


class RotalogLoggerConfig:
    """Centralized logging configuration for rotalog."""

    # Default log format
    DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s - %(message)s'

    # Log levels mapping
    LOG_LEVELS = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    def __init__(self):
        """Initialize the logging configuration."""
        self._configured = False
        self._log_dir = None
        self._log_level = logging.INFO
        self._console_handler = None
        self._file_handler = None
        self._detailed_logging = False

    def configure(
        self,
        log_level: str = 'INFO',
        log_to_file: bool = False,
        log_file_path: Optional[str] = None,
        policy=None,
        detailed_logging: bool = False,
        console_logging: bool = True
    ) -> None:
        """
        Configure the centralized logging system.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_to_file: Whether to log to file
            log_file_path: Path to log file (auto-generated if None)
            policy: RotationPolicy for the log file (defaults to
                10MB files, 5 compressed backups)
            detailed_logging: Whether to use detailed format with file/line info
            console_logging: Whether to log to console
        """
        if self._configured:
            return

        self._log_level = self.LOG_LEVELS.get(log_level.upper(), logging.INFO)
        self._detailed_logging = detailed_logging

        root_logger = logging.getLogger()
        root_logger.setLevel(self._log_level)
        root_logger.handlers.clear()

        if console_logging:
            self._console_handler = logging.StreamHandler(sys.stdout)
            self._console_handler.setLevel(self._log_level)
            self._console_handler.setFormatter(self._formatter())
            root_logger.addHandler(self._console_handler)

        if log_to_file:
            self.add_file_logging(log_file_path, policy)

        self._configured = True

    def _formatter(self) -> logging.Formatter:
        log_format = self.DETAILED_FORMAT if self._detailed_logging else self.DEFAULT_FORMAT
        return logging.Formatter(log_format)

    @staticmethod
    def default_policy():
        from .models import RotationPolicy

        return RotationPolicy(
            max_size_bytes=10 * 1024 * 1024,
            max_backups=5,
            compress=True,
        )

    def _get_log_file_path(self, log_file_path: Optional[str] = None) -> Path:
        """
        Get the log file path.

        Args:
            log_file_path: Custom log file path

        Returns:
            Path to log file
        """
        if log_file_path:
            return Path(log_file_path)

        if os.name == 'nt':  # Windows
            log_dir = Path.home() / 'AppData' / 'Local' / 'rotalog' / 'logs'
        else:
            log_dir = Path.home() / '.local' / 'state' / 'rotalog'

        return log_dir / 'rotalog.log'

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger instance with the given name."""
        return logging.getLogger(name)

    def set_level(self, level: str) -> None:
        """
        Change the logging level at runtime.

        Args:
            level: New logging level
        """
        new_level = self.LOG_LEVELS.get(level.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(new_level)

        if self._console_handler:
            self._console_handler.setLevel(new_level)
        if self._file_handler:
            self._file_handler.setLevel(new_level)

        self._log_level = new_level

        logger = logging.getLogger(__name__)
        logger.info(f"Log level changed to {level}")

    def add_file_logging(self, log_file_path: Optional[str] = None, policy=None) -> None:
        """
        Add rotating file logging to the existing configuration.

        Args:
            log_file_path: Path to log file
            policy: RotationPolicy for the file
        """
        if self._file_handler:
            return  # Already configured

        from .handler import RotatingLogHandler
        from .writer import LogWriter

        log_file = self._get_log_file_path(log_file_path)
        writer = LogWriter(log_file, policy or self.default_policy())

        self._file_handler = RotatingLogHandler(writer)
        self._file_handler.setLevel(self._log_level)
        self._file_handler.setFormatter(self._formatter())
        logging.getLogger().addHandler(self._file_handler)

        self._log_dir = log_file.parent

        logger = logging.getLogger(__name__)
        logger.info(f"File logging added: {log_file}")

    def remove_file_logging(self) -> None:
        """Remove file logging and close its writer."""
        if not self._file_handler:
            return

        root_logger = logging.getLogger()
        root_logger.removeHandler(self._file_handler)
        self._file_handler.close()
        self._file_handler = None

        logger = logging.getLogger(__name__)
        logger.info("File logging removed")

    def get_file_writer(self):
        """Return the LogWriter behind file logging, if any."""
        return self._file_handler.writer if self._file_handler else None

    def get_log_directory(self) -> Optional[Path]:
        """Get the current log directory."""
        return self._log_dir

    def is_configured(self) -> bool:
        """Check if logging is configured."""
        return self._configured

    def get_current_level(self) -> str:
        """Get the current log level as string."""
        for name, level in self.LOG_LEVELS.items():
            if level == self._log_level:
                return name
        return 'INFO'


# Global logger configuration instance
_logger_config = None


def _get_global_config() -> RotalogLoggerConfig:
    """Get the global logger configuration instance."""
    global _logger_config
    if _logger_config is None:
        _logger_config = RotalogLoggerConfig()
    return _logger_config


def configure_logging(
    log_level: str = 'INFO',
    log_to_file: bool = False,
    log_file_path: Optional[str] = None,
    policy=None,
    detailed_logging: bool = False,
    console_logging: bool = True
) -> None:
    """Configure the centralized logging system.

    See ``RotalogLoggerConfig.configure`` for the arguments.
    """
    _get_global_config().configure(
        log_level=log_level,
        log_to_file=log_to_file,
        log_file_path=log_file_path,
        policy=policy,
        detailed_logging=detailed_logging,
        console_logging=console_logging
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return _get_global_config().get_logger(name)


def set_log_level(level: str) -> None:
    """Change the logging level at runtime."""
    _get_global_config().set_level(level)


def add_file_logging(log_file_path: Optional[str] = None, policy=None) -> None:
    """Add rotating file logging to the existing configuration."""
    _get_global_config().add_file_logging(log_file_path, policy)


def remove_file_logging() -> None:
    """Remove file logging from configuration."""
    _get_global_config().remove_file_logging()


def get_log_directory() -> Optional[Path]:
    """Get the current log directory."""
    return _get_global_config().get_log_directory()


def is_configured() -> bool:
    """Check if logging is configured."""
    return _get_global_config().is_configured()


def get_current_level() -> str:
    """Get the current log level as string."""
    return _get_global_config().get_current_level()


def reset_logging() -> None:
    """Reset logging configuration (for testing)."""
    global _logger_config
    if _logger_config:
        _logger_config.remove_file_logging()
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
    _logger_config = None
