"""
Structured logging for Recruit Tracker.

Provides centralized logging with console and file outputs, plus
counters that summarize what bulk imports and exports did.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks import/export metrics for the current process.
    """

    def __init__(
        self,
        name: str = "recruittracker",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.propagate = False
        self.metrics = self._empty_metrics()
        self.configure(level, log_dir, enable_file, enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """Replace the handlers, e.g. once settings have been loaded."""
        self.logger.setLevel(getattr(logging, level.upper()))
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"recruittracker_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
            file_handler.setLevel(logging.DEBUG)  # file gets everything
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "imports_run": 0,
            "rows_read": 0,
            "rows_imported": 0,
            "rows_skipped": 0,
            "duplicates_skipped": 0,
            "saves_failed": 0,
            "errors_by_type": {},
            "exports_by_format": {},
        }

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_import(self, rows_read: int, imported: int, skipped: int, duplicates: int):
        """Accumulate the outcome of one CSV import run."""
        self.metrics["imports_run"] += 1
        self.metrics["rows_read"] += rows_read
        self.metrics["rows_imported"] += imported
        self.metrics["rows_skipped"] += skipped
        self.metrics["duplicates_skipped"] += duplicates

    def record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def record_save_failure(self):
        self.metrics["saves_failed"] += 1
        self.record_error("PersistenceError")

    def record_export(self, fmt: str, count: int):
        """Record an export of `count` records in format `fmt`."""
        exports = self.metrics["exports_by_format"]
        if fmt not in exports:
            exports[fmt] = {"runs": 0, "records": 0}
        exports[fmt]["runs"] += 1
        exports[fmt]["records"] += count

    def get_metrics(self) -> dict:
        """Return current metrics, with the overall import rate filled in."""
        metrics_copy = self.metrics.copy()
        if metrics_copy["rows_read"] > 0:
            metrics_copy["import_rate"] = round(
                metrics_copy["rows_imported"] / metrics_copy["rows_read"], 3
            )
        return metrics_copy

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        self.info("=== Session Metrics ===")
        self.info(f"Imports: {metrics['imports_run']} run(s), "
                  f"{metrics['rows_imported']}/{metrics['rows_read']} rows imported")
        self.info(f"Skipped: {metrics['rows_skipped']} ({metrics['duplicates_skipped']} duplicates)")

        if metrics["exports_by_format"]:
            self.info("Exports:")
            for fmt, stats in metrics["exports_by_format"].items():
                self.info(f"  {fmt}: {stats['records']} records in {stats['runs']} run(s)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "recruittracker",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
