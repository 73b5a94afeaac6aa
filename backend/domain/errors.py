"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the exception handler
in main.py. Services raise them; nothing in the core catches and retries them.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class MissingLocationError(DomainError):
    """Discovery called without usable coordinates (400)."""
    def __init__(self, message: str = "Latitude and longitude are required", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class ConflictError(DomainError):
    """Resource conflict (409)."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class InvalidTransitionError(ConflictError):
    """Order status precondition violated, including a lost concurrent race (409)."""
    def __init__(self, order_id: str, current_status: str, action: str, details: dict | None = None):
        message = f"Cannot {action} order {order_id} in status {current_status}"
        details = {"order_id": order_id, "current_status": current_status, "action": action, **(details or {})}
        super().__init__(message, details=details)
        self.current_status = current_status


class NoFurtherTransitionError(ConflictError):
    """Order status has no successor in the workflow (409)."""
    def __init__(self, order_id: str, current_status: str, details: dict | None = None):
        message = f"No further status updates available for order {order_id} ({current_status})"
        details = {"order_id": order_id, "current_status": current_status, **(details or {})}
        super().__init__(message, details=details)
        self.current_status = current_status


class StorageError(DomainError):
    """Backing-store failure or timeout (503)."""
    def __init__(self, message: str = "Storage unavailable", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE, details=details)
