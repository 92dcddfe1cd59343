"""
Custom exceptions for the application.
"""

from typing import Any, Optional


class TodoTodayError(Exception):
    """Base exception for todotoday."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(TodoTodayError):
    """Resource not found."""

    pass


class ValidationError(TodoTodayError):
    """Validation error."""

    pass


class InfrastructureError(TodoTodayError):
    """Local durable storage failed (read, write or decode)."""

    pass


class RemoteStoreError(TodoTodayError):
    """Remote store call failed."""

    def __init__(self, message: str, collection: Optional[str] = None):
        super().__init__(message, details={"collection": collection})
        self.collection = collection
