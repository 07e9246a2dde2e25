"""
Error handling system for the Gene MSA Collector.

This module provides error classification, logging, and recovery strategies
for the failures met while driving the browser through the export workflow.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class ErrorCategory(Enum):
    """Categories of errors that can occur during a run."""
    BROWSER = "browser"
    NAVIGATION = "navigation"
    STRUCTURAL = "structural"
    DATA = "data"
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorAction(Enum):
    """Actions to take when an error occurs."""
    RETRY = "retry"
    FAIL_ATTEMPT = "fail_attempt"
    ABORT = "abort"


@dataclass
class ErrorContext:
    """Contextual information about an error."""
    operation: str
    gene_name: Optional[str] = None
    gene_id: Optional[str] = None
    attempt: Optional[int] = None
    page_url: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Complete information about an error occurrence."""
    category: ErrorCategory
    severity: ErrorSeverity
    action: ErrorAction
    message: str
    original_exception: Exception
    context: ErrorContext
    recovery_suggestions: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return self.message


class MSACollectorError(Exception):
    """Base exception class for Gene MSA Collector errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext(operation="unknown")
        self.original_exception = original_exception


class TransientUIError(MSACollectorError):
    """A page element or navigation did not become ready in time."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.NAVIGATION,
            severity=ErrorSeverity.MEDIUM,
            context=context,
            original_exception=original_exception
        )


class StructuralError(MSACollectorError):
    """The export workflow could not proceed: a control or the data itself is absent."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.STRUCTURAL,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class DataQualityError(MSACollectorError):
    """Captured text was rejected by the MSA data classifier."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.DATA,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class StorageError(MSACollectorError):
    """Artifacts or the failure log could not be written."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.HIGH,
            context=context,
            original_exception=original_exception
        )


class ConfigurationError(MSACollectorError):
    """Errors related to system configuration or input files."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            original_exception=original_exception
        )


class BrowserLaunchError(MSACollectorError):
    """The browser could not be started; the run cannot continue."""

    def __init__(self, message: str, context: Optional[ErrorContext] = None, original_exception: Optional[Exception] = None):
        super().__init__(
            message=message,
            category=ErrorCategory.BROWSER,
            severity=ErrorSeverity.CRITICAL,
            context=context,
            original_exception=original_exception
        )


class ErrorHandler:
    """
    Error handler with classification and recovery strategies.

    Per-gene errors are classified and logged here so the retry controller
    can decide whether a fresh attempt is worthwhile.
    """

    def __init__(self):
        """Initialize error handler with logger."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._error_counts = {}

    def classify_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Classify an exception and determine appropriate handling strategy.

        Args:
            exception: The exception to classify
            context: Contextual information about the error

        Returns:
            ErrorInfo with classification and recommended action
        """
        # Handle known custom exceptions
        if isinstance(exception, MSACollectorError):
            return ErrorInfo(
                category=exception.category,
                severity=exception.severity,
                action=self._determine_action(exception.category, exception.severity),
                message=exception.message,
                original_exception=exception,
                context=context,
                recovery_suggestions=self._get_recovery_suggestions(exception.category)
            )

        category, severity = self._classify_standard_exception(exception)
        action = self._determine_action(category, severity)

        return ErrorInfo(
            category=category,
            severity=severity,
            action=action,
            message=str(exception) or type(exception).__name__,
            original_exception=exception,
            context=context,
            recovery_suggestions=self._get_recovery_suggestions(category)
        )

    def _classify_standard_exception(self, exception: Exception) -> tuple[ErrorCategory, ErrorSeverity]:
        """Classify Playwright and standard Python exceptions."""
        # Playwright timeouts subclass the generic Playwright error
        if isinstance(exception, (PlaywrightTimeoutError, TimeoutError)):
            return ErrorCategory.NAVIGATION, ErrorSeverity.MEDIUM

        if isinstance(exception, PlaywrightError):
            return ErrorCategory.BROWSER, ErrorSeverity.MEDIUM

        if isinstance(exception, (ConnectionError,)):
            return ErrorCategory.NAVIGATION, ErrorSeverity.MEDIUM

        if isinstance(exception, OSError):
            return ErrorCategory.STORAGE, ErrorSeverity.HIGH

        if isinstance(exception, (ValueError, KeyError, UnicodeError)):
            return ErrorCategory.DATA, ErrorSeverity.HIGH

        return ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM

    def _determine_action(self, category: ErrorCategory, severity: ErrorSeverity) -> ErrorAction:
        """Determine appropriate action based on error category and severity."""
        if severity == ErrorSeverity.CRITICAL or category == ErrorCategory.CONFIGURATION:
            return ErrorAction.ABORT
        elif category in (ErrorCategory.NAVIGATION, ErrorCategory.BROWSER):
            return ErrorAction.RETRY
        elif category in (ErrorCategory.STRUCTURAL, ErrorCategory.DATA):
            return ErrorAction.FAIL_ATTEMPT
        else:
            return ErrorAction.RETRY

    def _get_recovery_suggestions(self, category: ErrorCategory) -> list[str]:
        """Get recovery suggestions for different error categories."""
        suggestions = {
            ErrorCategory.BROWSER: [
                "Check that Playwright browsers are installed (playwright install chromium)",
                "Try running with --headless off to watch the page"
            ],
            ErrorCategory.NAVIGATION: [
                "Check network connectivity to the orthobrowser site",
                "Consider increasing navigation or selector timeouts"
            ],
            ErrorCategory.STRUCTURAL: [
                "Verify the gene id exists in the orthobrowser",
                "Check whether the Export menu markup has changed"
            ],
            ErrorCategory.DATA: [
                "Inspect the captured text for binary or truncated content",
                "Check that clipboard permissions were granted"
            ],
            ErrorCategory.STORAGE: [
                "Check output directory permissions and free disk space"
            ],
            ErrorCategory.CONFIGURATION: [
                "Verify configuration file format and syntax",
                "Check that the genes CSV file exists"
            ]
        }
        return suggestions.get(category, ["Review error details and system logs"])

    def handle_error(self, exception: Exception, context: ErrorContext) -> ErrorInfo:
        """
        Handle an error with appropriate logging and classification.

        Args:
            exception: The exception to handle
            context: Contextual information about the error

        Returns:
            ErrorInfo with handling details
        """
        error_info = self.classify_error(exception, context)

        # Track error counts for the terminal report
        error_key = f"{error_info.category.value}:{error_info.context.operation}"
        self._error_counts[error_key] = self._error_counts.get(error_key, 0) + 1

        self._log_error(error_info)

        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        """Log error with contextual information."""
        log_data = {
            "error_category": error_info.category.value,
            "error_severity": error_info.severity.value,
            "recommended_action": error_info.action.value,
            "operation": error_info.context.operation,
            "gene_name": error_info.context.gene_name,
            "gene_id": error_info.context.gene_id,
            "attempt": error_info.context.attempt,
            "page_url": error_info.context.page_url,
            "exception_type": type(error_info.original_exception).__name__,
            "recovery_suggestions": error_info.recovery_suggestions
        }

        if error_info.context.additional_data:
            log_data.update(error_info.context.additional_data)

        if error_info.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error: %s", error_info.message, extra=log_data)
        elif error_info.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error: %s", error_info.message, extra=log_data)
        else:
            self.logger.info("Low severity error: %s", error_info.message, extra=log_data)

    def get_error_statistics(self) -> Dict[str, int]:
        """Get error count statistics."""
        return self._error_counts.copy()

    def reset_error_statistics(self) -> None:
        """Reset error count statistics."""
        self._error_counts.clear()


# Global error handler instance
_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _error_handler
    if _error_handler is None:
        _error_handler = ErrorHandler()
    return _error_handler


def set_error_handler(handler: Optional[ErrorHandler]) -> None:
    """Set the global error handler instance."""
    global _error_handler
    _error_handler = handler


def create_error_context(
    operation: str,
    gene_name: Optional[str] = None,
    gene_id: Optional[str] = None,
    attempt: Optional[int] = None,
    page_url: Optional[str] = None,
    **additional_data
) -> ErrorContext:
    """
    Convenience function to create error context.

    Args:
        operation: Name of the operation being performed
        gene_name: Name of the gene being processed
        gene_id: Search id of the gene being processed
        attempt: Attempt number (1-based)
        page_url: URL the page was on when the error happened
        **additional_data: Additional contextual data

    Returns:
        ErrorContext instance
    """
    return ErrorContext(
        operation=operation,
        gene_name=gene_name,
        gene_id=gene_id,
        attempt=attempt,
        page_url=page_url,
        additional_data=additional_data
    )
