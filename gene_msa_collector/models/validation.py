"""
Validation of captured MSA export data.

This module decides whether a captured text blob is plausibly a genuine
multiple sequence alignment (FASTA or tab-separated export) rather than
binary noise, an empty response or an encoding-corrupted payload.
"""

import re
from typing import Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum


class ValidationErrorType(Enum):
    """Types of validation errors."""
    NOT_TEXT = "not_text"
    BINARY_CONTENT = "binary_content"
    TOO_SHORT = "too_short"
    INVALID_FORMAT = "invalid_format"
    MISSING_SEQUENCE = "missing_sequence"


@dataclass
class ValidationError:
    """Represents a validation error with context."""
    error_type: ValidationErrorType
    message: str


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def error_message(self) -> str:
        """Get formatted error message."""
        if not self.errors:
            return ""
        return "; ".join([error.message for error in self.errors])

    def add_error(self, error: ValidationError) -> None:
        """Add a validation error."""
        self.errors.append(error)
        self.is_valid = False


class MSADataValidator:
    """Validator for exported alignment text."""

    # Leading bytes of image formats the site can serve instead of text
    BINARY_SIGNATURES = {
        "PNG": "\x89PNG",
        "JPEG": "\xff\xd8\xff",
        "GIF": "GIF8",
        "BMP": "BM",
    }

    DNA_RUN = re.compile(r"[ATCGN-]{10,}", re.IGNORECASE)
    RNA_RUN = re.compile(r"[ACGUN-]{10,}", re.IGNORECASE)

    def __init__(self, min_length: int = 100):
        """
        Initialize validator.

        Args:
            min_length: Minimum number of characters a valid export has
        """
        self.min_length = min_length

    def validate(self, data: Any) -> ValidationResult:
        """
        Validate a captured text blob.

        Every rule is evaluated so the result lists all reasons for rejection.

        Args:
            data: Captured payload

        Returns:
            ValidationResult with validation status and errors
        """
        result = ValidationResult(is_valid=True)

        if not isinstance(data, str):
            result.add_error(ValidationError(
                ValidationErrorType.NOT_TEXT,
                f"Payload is {type(data).__name__}, not text"
            ))
            return result

        signature = self._binary_signature(data)
        if signature:
            result.add_error(ValidationError(
                ValidationErrorType.BINARY_CONTENT,
                f"Payload looks binary ({signature})"
            ))

        if len(data) < self.min_length:
            result.add_error(ValidationError(
                ValidationErrorType.TOO_SHORT,
                f"Payload has {len(data)} characters, expected at least {self.min_length}"
            ))

        if ">" not in data and "\t" not in data:
            result.add_error(ValidationError(
                ValidationErrorType.INVALID_FORMAT,
                "No FASTA header marker or tab-separated columns found"
            ))

        if not self.has_nucleotide_run(data):
            result.add_error(ValidationError(
                ValidationErrorType.MISSING_SEQUENCE,
                "No run of 10 or more nucleotide symbols found"
            ))

        return result

    def is_valid(self, data: Any) -> bool:
        """Return True when ``data`` passes every rule."""
        return self.validate(data).is_valid

    def _binary_signature(self, data: str) -> Optional[str]:
        """Name of the binary marker found in ``data``, if any."""
        for name, magic in self.BINARY_SIGNATURES.items():
            if data.startswith(magic):
                return name
        if "\x00" in data:
            return "null byte"
        if "\ufffd" in data:
            return "replacement character"
        return None

    @classmethod
    def has_nucleotide_run(cls, data: str) -> bool:
        """True if ``data`` holds a DNA or RNA run of at least 10 symbols."""
        return bool(cls.DNA_RUN.search(data) or cls.RNA_RUN.search(data))


_default_validator = MSADataValidator()


def is_valid_msa_data(data: Any) -> bool:
    """
    Decide whether ``data`` is genuine MSA/FASTA export text.

    Pure and deterministic; shared by the network observer and the
    post-capture check.
    """
    return _default_validator.is_valid(data)
