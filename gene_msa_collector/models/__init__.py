"""
Data models and validation for the Gene MSA Collector.

This package provides the gene and run bookkeeping models and the
classifier deciding whether captured text is genuine alignment data.
"""

from .entities import (
    Gene,
    CaptureSource,
    CaptureResult,
    AttemptOutcome,
    FailureRecord,
    RunStatistics
)
from .validation import (
    MSADataValidator,
    ValidationResult,
    ValidationError,
    ValidationErrorType,
    is_valid_msa_data
)

__all__ = [
    # Entity models
    "Gene",
    "CaptureSource",
    "CaptureResult",
    "AttemptOutcome",
    "FailureRecord",
    "RunStatistics",

    # Validation
    "MSADataValidator",
    "ValidationResult",
    "ValidationError",
    "ValidationErrorType",
    "is_valid_msa_data",
]
