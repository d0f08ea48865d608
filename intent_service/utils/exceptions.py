from typing import Any, Dict, Optional
from fastapi import status


class AppException(Exception):
    """Base application exception class."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code to return
            details: Additional error details
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestError(AppException):
    """Exception for malformed client input."""

    def __init__(
        self,
        message: str = "Invalid request",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class CatalogValidationError(InvalidRequestError):
    """Exception for an intent catalog that does not have the expected shape."""

    def __init__(
        self,
        message: str = 'Invalid JSON structure. The catalog must contain an "intents" array.',
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, details=details)


class UnauthorizedException(AppException):
    """Exception for authentication errors."""

    def __init__(
        self,
        message: str = "Unauthorized: No password provided.",
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize unauthorized exception."""
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details
        )


class ForbiddenException(AppException):
    """Exception for authorization errors."""

    def __init__(
        self,
        message: str = "Forbidden: Incorrect password.",
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize forbidden exception."""
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ModelNotReadyError(AppException):
    """Raised when no trained model and catalog are being served yet."""

    def __init__(
        self,
        message: str = "Model is not ready.",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


class TrainingDataError(AppException):
    """Raised when a catalog carries no usable training signal."""

    def __init__(
        self,
        message: str = "Catalog contains no training data",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class UnknownIntentError(AppException):
    """Raised when a predicted tag has no intent in the serving catalog."""

    def __init__(
        self,
        tag: str,
        message: Optional[str] = None
    ):
        super().__init__(
            message=message or f"No intent with tag '{tag}' in the active catalog",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"tag": tag}
        )


class ExternalServiceException(AppException):
    """Exception for external service integration errors."""

    def __init__(
        self,
        service_name: str,
        message: str = "External service error",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize external service exception.

        Args:
            service_name: Name of the external service
            message: Error message
            status_code: HTTP status code
            details: Additional error details
        """
        error_details = details or {}
        error_details["service"] = service_name

        super().__init__(
            message=message,
            status_code=status_code,
            details=error_details
        )


class StoreUnavailableError(ExternalServiceException):
    """Raised when the catalog document store cannot be reached."""

    def __init__(
        self,
        message: str = "Catalog store is unavailable",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            service_name="catalog-store",
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


class PersistenceError(AppException):
    """Raised when a model artifact cannot be written."""

    def __init__(
        self,
        message: str = "Failed to persist model artifact",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )
