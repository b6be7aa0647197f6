"""
Standardized error handling utilities for EcoTracker.
Defines the error kinds raised by the core operations and the consistent
(body, status_code) format the presentation-facing handlers return.
"""

import logging
from typing import Dict, Any, List, Optional

# Standard error codes for consistent responses
ERROR_CODES = {
    # Validation errors (400-499)
    "INVALID_REQUEST": "Invalid request body or parameters",
    "VALIDATION_ERROR": "Request validation failed",

    # Storage errors (500-599)
    "STORAGE_ERROR": "Error accessing storage service",
    "STORAGE_CORRUPT": "Stored data could not be parsed",

    # System errors (500-599)
    "SERVER_ERROR": "Internal server error",
}


class EcoTrackerError(Exception):
    """Base class for errors reported to callers as a distinguishable result."""

    error_code = "SERVER_ERROR"
    status_code = 500

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or ERROR_CODES[self.error_code]
        self.details = details
        super().__init__(self.message)


class RecordValidationError(EcoTrackerError):
    """A required field is missing or invalid. No state was changed."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, fields: List[str], message: Optional[str] = None):
        self.fields = list(fields)
        super().__init__(
            message or f"Please fill in: {', '.join(self.fields)}",
            details={"fields": self.fields},
        )


class StorageUnavailableError(EcoTrackerError):
    """The storage medium could not be reached. The operation was aborted."""

    error_code = "STORAGE_ERROR"
    status_code = 503


class StorageCorruptError(EcoTrackerError):
    """A persisted payload could not be parsed. Recovered by the Record Store."""

    error_code = "STORAGE_CORRUPT"
    status_code = 500


def create_error_response(
    error_code: str,
    message: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    status_code: int = 500
) -> tuple:
    """
    Create a standardized error response with consistent format.

    Args:
        error_code: One of the standard ERROR_CODES keys
        message: Optional custom message (defaults to standard message)
        details: Optional additional error details
        status_code: Status code mirroring HTTP semantics

    Returns:
        Tuple of (response dict, status code)
    """
    if error_code not in ERROR_CODES:
        logging.warning(f"Unknown error code used: {error_code}")
        error_code = "SERVER_ERROR"

    error_message = message or ERROR_CODES[error_code]

    response_data = {
        "error_code": error_code,
        "message": error_message
    }

    if details:
        response_data["details"] = details

    logging.error(f"Error [{error_code}]: {error_message} - Status: {status_code}")

    return response_data, status_code


def error_response_from(error: EcoTrackerError) -> tuple:
    """Builds the standard response for one of our own error kinds."""
    return create_error_response(error.error_code, error.message, error.details, error.status_code)


def handle_exception(e: Exception, context: str = "operation") -> tuple:
    """
    Handle unexpected exceptions with standardized error response.

    Args:
        e: The exception that occurred
        context: Context information for logging

    Returns:
        Tuple of (response dict, status code)
    """
    if isinstance(e, EcoTrackerError):
        return error_response_from(e)

    error_type = type(e).__name__
    error_message = str(e)

    logging.error(f"Unexpected error in {context}: {error_type} - {error_message}", exc_info=True)

    return create_error_response(
        error_code="SERVER_ERROR",
        message="An unexpected error occurred",
        details={"error_type": error_type, "error_message": error_message},
        status_code=500
    )

