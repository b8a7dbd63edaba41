"""
Structured logging system for ensgraph.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for monitoring lookup health against the RPC endpoint.
"""

import logging
import os
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_level(level: str) -> int:
    """Map a level name (any case) to its logging constant; unknown names raise ValueError."""
    name = (level or "").strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r} (expected one of {', '.join(LOG_LEVELS)})")
    return getattr(logging, name)


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for RPC traffic and per-field lookup outcomes.
    """

    def __init__(
        self,
        name: str = "ensgraph",
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
            enable_console: Output logs to console (stderr, so JSON output stays clean)
        """
        self.logger = logging.getLogger(name)
        self.logger.propagate = False

        # Lookups run on worker threads
        self._lock = threading.Lock()
        self.metrics = {
            "rpc_calls": 0,
            "lookups_attempted": 0,
            "lookups_successful": 0,
            "lookups_failed": 0,
            "errors_by_type": {},
            "field_success_rate": {},
        }

        self.configure(level, log_dir, enable_file=enable_file, enable_console=enable_console)

    def configure(
        self,
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        (Re)install handlers in place; metrics are kept.

        Modules keep the instance they got at import time.
        """
        numeric_level = parse_level(level)
        self.logger.setLevel(numeric_level)
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(numeric_level)
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

            log_file = log_dir / f"ensgraph_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

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

    def record_rpc_call(self):
        """Increment RPC call counter."""
        with self._lock:
            self.metrics["rpc_calls"] += 1

    def record_lookup_attempt(self, field: str):
        """Record a sub-lookup attempt for a profile field."""
        with self._lock:
            self.metrics["lookups_attempted"] += 1
            stats = self.metrics["field_success_rate"].setdefault(
                field, {"attempts": 0, "successes": 0}
            )
            stats["attempts"] += 1

    def record_lookup_success(self, field: str):
        """Record a sub-lookup that produced a value."""
        with self._lock:
            self.metrics["lookups_successful"] += 1
            if field in self.metrics["field_success_rate"]:
                self.metrics["field_success_rate"][field]["successes"] += 1

    def record_lookup_failure(self, field: str, error_type: str):
        """Record a sub-lookup that raised."""
        with self._lock:
            self.metrics["lookups_failed"] += 1
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics."""
        with self._lock:
            metrics_copy = json.loads(json.dumps(self.metrics))
        for field, stats in metrics_copy["field_success_rate"].items():
            if stats["attempts"] > 0:
                stats["success_rate"] = round(
                    stats["successes"] / stats["attempts"], 3
                )
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        total_attempts = metrics["lookups_attempted"]
        total_successes = metrics["lookups_successful"]
        overall_rate = 0
        if total_attempts > 0:
            overall_rate = round(total_successes / total_attempts * 100, 1)

        self.info("=== Resolution Session Metrics ===")
        self.info(f"RPC Calls: {metrics['rpc_calls']}")
        self.info(f"Lookups: {total_successes}/{total_attempts} ({overall_rate}% with data)")

        if metrics["field_success_rate"]:
            self.info("Field Hit Rates:")
            for field, stats in metrics["field_success_rate"].items():
                rate = stats.get("success_rate", 0) * 100
                self.info(f"  {field}: {stats['successes']}/{stats['attempts']} ({rate:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "ensgraph",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level and file output default to ENSGRAPH_LOG_LEVEL and ENSGRAPH_LOG_DIR;
    without a log directory only the console handler is installed. This runs
    at import time, so an unknown level from the environment falls back to
    INFO here; Settings.from_env reports it as a configuration error.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        if level is None:
            level = os.getenv("ENSGRAPH_LOG_LEVEL") or "INFO"
            if level.strip().upper() not in LOG_LEVELS:
                level = "INFO"
        if "log_dir" not in kwargs and "enable_file" not in kwargs:
            log_dir = os.getenv("ENSGRAPH_LOG_DIR")
            kwargs["enable_file"] = bool(log_dir)
            kwargs["log_dir"] = Path(log_dir) if log_dir else None
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def configure_logging(level: str, log_dir: Optional[Path] = None) -> StructuredLogger:
    """Apply runtime settings to the shared logger; file output only with a log directory."""
    logger = get_logger()
    logger.configure(level, log_dir, enable_file=log_dir is not None)
    return logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
