"""
Custom Error Types for Blueprint Plan Parsing

Every failure that leaves the pipeline is one of these, carrying a stable
error code and the HTTP status the API surface maps it to. Per-sheet and
fallback failures are not raised this far; they degrade to warnings.
"""

import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class PlanParseError(Exception):
    """Base exception for all plan parsing errors."""

    error_code = "UNEXPECTED_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InvalidInputError(PlanParseError):
    """
    Request could not be processed as given.

    Examples:
    - Empty upload
    - Unsupported file type
    """
    error_code = "BAD_REQUEST"
    status_code = 400


class PlanFileNotFoundError(PlanParseError):
    error_code = "FILE_NOT_FOUND"
    status_code = 404


class FileTooLargeError(PlanParseError):
    """Raised before any parsing when the document exceeds the size limit."""
    error_code = "FILE_TOO_LARGE"
    status_code = 413


class CorruptedFileError(PlanParseError):
    """All text extraction strategies failed on the document."""
    error_code = "CORRUPTED_FILE"
    status_code = 422


class ScannedPdfError(PlanParseError):
    """Text-only extraction requested on a document without a text layer."""
    error_code = "SCANNED_PDF"
    status_code = 422


class PageRenderError(PlanParseError):
    """No page of a scanned document rendered to a usable image."""
    error_code = "RENDER_FAILED"
    status_code = 422


class ModelCallError(PlanParseError):
    """
    AI model call failed.

    Examples:
    - Network error or timeout talking to the provider
    - Authentication failure
    - Empty completion
    """
    error_code = "AI_SERVICE_ERROR"
    status_code = 502


class UnparseableModelOutputError(PlanParseError):
    """Model returned text that is neither JSON nor a fenced JSON block."""
    error_code = "UNPARSEABLE_MODEL_OUTPUT"
    status_code = 502


class PipelineTimeoutError(PlanParseError):
    error_code = "TIMEOUT"
    status_code = 504


class ConfigurationError(PlanParseError):
    """
    Configuration errors that prevent proper operation.

    Examples:
    - Missing API keys
    - Invalid configuration values
    """
    error_code = "CONFIGURATION_ERROR"
    status_code = 503


class UnexpectedError(PlanParseError):
    error_code = "UNEXPECTED_ERROR"
    status_code = 500


def categorize_exception(e: Exception) -> PlanParseError:
    """
    Categorize a generic exception into appropriate error type.

    Args:
        e: Exception to categorize

    Returns:
        Categorized PlanParseError
    """
    if isinstance(e, PlanParseError):
        return e

    error_message = str(e)
    error_type = type(e).__name__

    # File-related errors
    if isinstance(e, FileNotFoundError):
        return PlanFileNotFoundError(f"File not found: {error_message}")

    # Timeout errors
    if isinstance(e, TimeoutError) or 'timeout' in error_message.lower():
        return PipelineTimeoutError(f"Operation timed out: {error_message}")

    # Configuration errors
    if 'api' in error_message.lower() and 'key' in error_message.lower():
        return ConfigurationError(f"API configuration error: {error_message}")

    return UnexpectedError(f"Unexpected error: {error_message}", {'original_type': error_type})


def log_error_with_context(error: PlanParseError, context: Dict[str, Any]):
    """
    Log error with additional context information.

    Args:
        error: Error to log
        context: Additional context (filename, stage, page_number, etc.)
    """
    log_data = {
        'error_type': type(error).__name__,
        'error_code': error.error_code,
        'error_message': error.message,
        'details': error.details,
        **context
    }

    if error.status_code >= 500:
        logger.error(f"Plan parsing failed: {error.message}", extra=log_data)
    else:
        logger.warning(f"Plan parsing rejected: {error.message}", extra=log_data)
