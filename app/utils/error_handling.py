"""
Utilities for standardized error handling across API endpoints.
"""
from typing import Any, Dict, Optional, Union
import logging
from fastapi import HTTPException, status
from fastapi.exceptions import RequestValidationError

from app.core.exceptions import CRMImportException, MappingError, NotFoundError, ParseError, ValidationError

logger = logging.getLogger("crm_import.errors")

# Client-side problems, logged at info level instead of error
EXPECTED_ERRORS = (ValidationError, NotFoundError, ParseError, MappingError)


class ErrorResponse:
    """Standard error response format."""
    
    @staticmethod
    def model(
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Create a standardized error response model.
        
        Args:
            code: Error code
            message: Error message
            details: Additional error details
            
        Returns:
            Dict: Standardized error response
        """
        return {
            "status": "error",
            "code": code,
            "message": message,
            "details": details or {}
        }
    
    @staticmethod
    def from_exception(exception: Union[Exception, CRMImportException]) -> Dict[str, Any]:
        """
        Create error response from exception.
        
        Args:
            exception: Exception to process
            
        Returns:
            Dict: Standardized error response
        """
        if isinstance(exception, CRMImportException):
            return ErrorResponse.model(
                code=exception.code,
                message=exception.message,
                details=exception.details
            )
        elif isinstance(exception, HTTPException):
            return ErrorResponse.model(
                code=f"HTTP_{exception.status_code}",
                message=str(exception.detail),
            )
        elif isinstance(exception, RequestValidationError):
            return ErrorResponse.model(
                code="VALIDATION_ERROR",
                message="Validation error",
                details={"errors": exception.errors()}
            )
        else:
            return ErrorResponse.model(
                code="INTERNAL_ERROR",
                message=str(exception),
                details={"type": type(exception).__name__}
            )


def status_code_for(exception: Exception) -> int:
    """Resolve the HTTP status code for any exception."""
    if isinstance(exception, CRMImportException):
        return exception.status_code
    if isinstance(exception, HTTPException):
        return exception.status_code
    if isinstance(exception, RequestValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def log_exception(exception: Exception) -> None:
    """Log an exception at a level matching how surprising it is."""
    if isinstance(exception, EXPECTED_ERRORS):
        logger.info(f"Expected exception: {exception}")
    elif isinstance(exception, CRMImportException) and exception.status_code < 500:
        logger.warning(f"Request rejected: {exception}")
    else:
        logger.error(f"Exception: {exception}", exc_info=exception)
