"""Structured logging infrastructure with verbosity levels and progress tracking."""

import copy
import logging
import logging.handlers
import sys
import threading
import time
from typing import Any, Dict, Optional, TextIO

import colorlog

ROOT_LOGGER_NAME = 'quiver_obsidian_migrator'


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    level: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with configurable verbosity levels.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path to log file
        log_format: Optional custom log format string
        date_format: Optional custom date format string
        level: Optional explicit log level string, overrides verbosity

    Returns:
        Configured logger instance

    Raises:
        ValueError: If level is not a known log level name
    """
    if level:
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level_upper = level.upper()
        if level_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{level}'. Must be one of: {sorted(allowed_levels)}"
            )
        log_level = getattr(logging, level_upper)
    elif verbosity >= 2:
        log_level = logging.DEBUG
    elif verbosity >= 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    if log_format is None:
        log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    if date_format is None:
        date_format = '%Y-%m-%d %H:%M:%S'

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {log_file}")
            logger.info(f"Log level: {logging.getLevelName(log_level)}")
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {e}")
    else:
        logger.info(f"Console logging only. Level: {logging.getLevelName(log_level)}")

    return logger


class ProgressTracker:
    """Context manager for tracking progress across operations. Safe to share between threads."""

    def __init__(self, total_items: int, item_type: str = "items"):
        """
        Initialize progress tracker.

        Args:
            total_items: Total number of items to process
            item_type: Description of item type (e.g., "notes", "notebooks")
        """
        self.total_items = total_items
        self.item_type = item_type
        self.processed_items = 0
        self.successful_items = 0
        self.failed_items = 0
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger(ROOT_LOGGER_NAME)
        self._lock = threading.Lock()

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Starting processing of {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        stats = self.get_stats()
        if self.failed_items > 0 and self.failed_items == self.total_items:
            log_method = self.logger.error
        elif self.failed_items > 0 or exc_type is not None:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        log_method(f"=== Progress Summary: {self.item_type.upper()} ===")
        log_method(f"Total: {stats['total']}")
        log_method(f"Processed: {stats['processed']}")
        log_method(f"Successful: {stats['successful']}")
        log_method(f"Failed: {stats['failed']}")
        log_method(f"Success Rate: {stats['success_rate']:.1f}%")
        log_method(f"Elapsed Time: {stats['elapsed_time_formatted']}")

    def increment(self, success: bool = True) -> None:
        """
        Increment progress counter.

        Args:
            success: Whether the item was processed successfully
        """
        with self._lock:
            self.processed_items += 1
            if success:
                self.successful_items += 1
            else:
                self.failed_items += 1
            processed = self.processed_items

        if processed % 10 == 0 or not success:
            remaining = self.total_items - processed
            status = "Success" if success else "Failed"
            self.logger.info(
                f"Processed {processed}/{self.total_items} {self.item_type} "
                f"({remaining} remaining) - Last: {status}"
            )

    def get_stats(self) -> Dict[str, Any]:
        """Get current progress statistics."""
        elapsed = 0.0 if self.start_time is None else time.time() - self.start_time
        with self._lock:
            return {
                'total': self.total_items,
                'processed': self.processed_items,
                'successful': self.successful_items,
                'failed': self.failed_items,
                'success_rate': (self.successful_items / self.total_items * 100)
                                if self.total_items > 0 else 0,
                'elapsed_time': elapsed,
                'elapsed_time_formatted': format_elapsed(elapsed)
            }


class LoadingIndicator:
    """
    One-line status shown while the library is read.

    The indicator is cleared by whoever finishes first (the reader on error,
    or the first exported note); clear() may be called any number of times
    from any thread.
    """

    def __init__(self, message: str = "Reading Quiver library...", stream: Optional[TextIO] = None):
        self.message = message
        self.stream = stream or sys.stderr
        self._active = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    def start(self) -> 'LoadingIndicator':
        with self._lock:
            if self._active:
                return self
            self._active = True
            if self._is_tty():
                self.stream.write(self.message)
                self.stream.flush()
        logging.getLogger(ROOT_LOGGER_NAME).info(self.message)
        return self

    def clear(self) -> bool:
        """Remove the status line. Returns True only for the call that cleared it."""
        with self._lock:
            if not self._active:
                return False
            self._active = False
            if self._is_tty():
                self.stream.write('\r' + ' ' * len(self.message) + '\r')
                self.stream.flush()
            return True

    def _is_tty(self) -> bool:
        isatty = getattr(self.stream, 'isatty', None)
        return bool(isatty and isatty())

    def __enter__(self) -> 'LoadingIndicator':
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.clear()


def format_elapsed(seconds: float) -> str:
    """Format elapsed time in human-readable format."""
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes = int(seconds // 60)
    seconds = int(seconds % 60)

    if minutes < 60:
        return f"{minutes}m {seconds}s"

    hours = minutes // 60
    minutes = minutes % 60

    return f"{hours}h {minutes}m {seconds}s"


def log_section(title: str) -> None:
    """
    Log a decorative section header.

    Args:
        title: Section title to display
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)

    separator = "=" * 60
    logger.info("")
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)
    logger.info("")


def log_config(config: Dict[str, Any]) -> None:
    """
    Log the effective configuration for debugging.

    Args:
        config: Configuration dictionary to log
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    config = copy.deepcopy(config)

    log_section("Configuration")

    quiver = config.get('quiver', {})
    logger.info(f"Library Path: {quiver.get('library_path', 'Not Set')}")
    logger.info("")

    export_settings = config.get('export', {})
    logger.info(f"Output Directory: {export_settings.get('output_directory', 'Not Set')}")
    logger.info(f"Library Directory Name: {export_settings.get('library_dirname', 'quiver')}")
    logger.info(f"Resource Layout: {export_settings.get('resource_layout', 'per_note')}")
    logger.info(f"Replace Extensions: {export_settings.get('replace_extensions') or 'None'}")
    logger.info(f"Preserve Timestamps: {export_settings.get('preserve_timestamps', True)}")
    logger.info(f"Max Workers: {export_settings.get('max_workers', 4)}")
    logger.info("")

    migration = config.get('migration', {})
    logger.info(f"Dry Run: {migration.get('dry_run', False)}")
    logger.info(f"Report Path: {migration.get('report_path') or 'Not Set'}")
    logger.info(f"Broken Links CSV: {migration.get('broken_links_csv') or 'Not Set'}")


__all__ = [
    'setup_logging',
    'ProgressTracker',
    'LoadingIndicator',
    'format_elapsed',
    'log_section',
    'log_config',
    'ROOT_LOGGER_NAME'
]
