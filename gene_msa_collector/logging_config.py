"""
Logging configuration for the Gene MSA Collector.

This module provides structured logging with process metrics, contextual information,
and configurable output formats for monitoring long unattended runs.
"""

import logging
import logging.handlers
import json
import sys
import time
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path
import psutil
import os

from .config import LoggingConfig


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'message',
    'taskName', 'cpu_percent', 'memory_mb', 'uptime_seconds',
    'process_id', 'thread_id', 'iso_timestamp'
])


class PerformanceFilter(logging.Filter):
    """Filter to add process metrics to log records."""

    def __init__(self):
        super().__init__()
        self.process = psutil.Process()
        self.start_time = time.time()

    def filter(self, record):
        """Add process metrics to the log record."""
        try:
            record.cpu_percent = self.process.cpu_percent()
            record.memory_mb = self.process.memory_info().rss / 1024 / 1024
            record.uptime_seconds = time.time() - self.start_time
            record.process_id = os.getpid()
            record.thread_id = record.thread
            record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        except psutil.Error:
            # Metrics are best effort; the record itself must still be emitted
            pass

        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

    def format(self, record):
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        if self.include_performance and hasattr(record, 'cpu_percent'):
            log_entry["performance"] = {
                "cpu_percent": getattr(record, 'cpu_percent', 0),
                "memory_mb": getattr(record, 'memory_mb', 0),
                "uptime_seconds": getattr(record, 'uptime_seconds', 0),
                "process_id": getattr(record, 'process_id', 0),
            }

        return json.dumps(log_entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Human-readable formatter with contextual information."""

    def __init__(self, include_performance=False):
        super().__init__()
        self.include_performance = include_performance

        format_str = "%(iso_timestamp)s [%(levelname)s] %(name)s - %(message)s"

        if include_performance:
            format_str += " [CPU: %(cpu_percent).1f%% MEM: %(memory_mb).1fMB]"

        self._formatter = logging.Formatter(format_str)

    def format(self, record):
        """Format log record with contextual information."""
        if not hasattr(record, 'iso_timestamp'):
            record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        if not hasattr(record, 'cpu_percent'):
            record.cpu_percent = 0.0
        if not hasattr(record, 'memory_mb'):
            record.memory_mb = 0.0

        return self._formatter.format(record)


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up logging configuration.

    Args:
        config: Logging configuration object
    """
    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, config.level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    perf_filter = PerformanceFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(perf_filter)
    console_handler.setFormatter(_build_formatter(config))
    root_logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.addFilter(perf_filter)
        file_handler.setFormatter(_build_formatter(config))
        root_logger.addHandler(file_handler)

    _configure_library_loggers()

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging system initialized",
        extra={
            "log_level": config.level,
            "log_format": config.format,
            "file_logging": bool(config.log_file),
        }
    )


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    """Pick the formatter matching the configured output format."""
    if config.format.lower() == 'json' and config.structured:
        return JSONFormatter(include_performance=True)
    return ContextualFormatter(include_performance=False)


def _configure_library_loggers():
    """Configure logging levels for third-party libraries."""
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('playwright').setLevel(logging.WARNING)


def log_gene_result(logger: logging.Logger, gene_name: str, gene_id: str,
                    success: bool, duration: float, **kwargs):
    """
    Log the final outcome of one gene.

    Args:
        logger: Logger instance
        gene_name: Human-readable gene name
        gene_id: Search id used on the site
        success: Whether an artifact was written
        duration: Time spent on the gene in seconds
        **kwargs: Additional context
    """
    level = logging.INFO if success else logging.WARNING

    logger.log(
        level,
        f"Gene {gene_name} {'collected' if success else 'failed'}",
        extra={
            "gene_name": gene_name,
            "gene_id": gene_id,
            "success": success,
            "duration_seconds": duration,
            **kwargs
        }
    )


def log_run_progress(logger: logging.Logger, progress: Dict[str, Any]):
    """
    Log run progress.

    Args:
        logger: Logger instance
        progress: Progress information
    """
    logger.info(
        "Run progress: %d/%d genes (%d ok, %d failed)",
        progress.get("processed", 0),
        progress.get("total", 0),
        progress.get("success_count", 0),
        progress.get("fail_count", 0),
        extra={"progress": progress}
    )


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context):
    """
    Log error with full context information.

    Args:
        logger: Logger instance
        error: Exception that occurred
        operation: Operation that failed
        **context: Additional context information
    """
    logger.error(
        f"Error in {operation}: {str(error)}",
        exc_info=True,
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            **context
        }
    )
