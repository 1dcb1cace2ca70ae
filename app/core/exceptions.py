"""
Custom exception classes for the CRM import backend.
"""
from typing import Any, Dict, Optional


class CRMImportException(Exception):
    """Base exception class for the application."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(CRMImportException):
    """Raised for request validation errors."""

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=422, details=details)


class NotFoundError(CRMImportException):
    """Raised when a resource is not found."""

    def __init__(
        self,
        message: str = "Resource not found",
        code: str = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=404, details=details)


class ParseError(CRMImportException):
    """Raised when an uploaded file cannot be turned into a table of rows."""

    def __init__(
        self,
        message: str = "Could not read file",
        code: str = "PARSE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=400, details=details)


class MappingError(CRMImportException):
    """Raised when the header mapping cannot identify customers."""

    def __init__(
        self,
        message: str = "Invalid column mapping",
        code: str = "MAPPING_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=422, details=details)


class SessionStateError(CRMImportException):
    """Raised when an import session is asked for an illegal transition."""

    def __init__(
        self,
        message: str = "Operation not allowed in the current import state",
        code: str = "INVALID_SESSION_STATE",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=409, details=details)


class PersistenceError(CRMImportException):
    """Raised when the record store fails to write a single row."""

    def __init__(
        self,
        message: str = "Could not persist record",
        code: str = "PERSISTENCE_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, status_code=500, details=details)
