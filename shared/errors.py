"""
Shared error handling for the client icons back office.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ClientIconsException(Exception):
    """Base exception for client icons services."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConditionValidationError(ClientIconsException):
    """A stored or submitted auto-assign condition is malformed."""

    def __init__(self, message: str = "Invalid auto-assign condition", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONDITION_VALIDATION_ERROR", message, details)


class AssignmentStoreError(ClientIconsException):
    """Reading or writing icon assignments failed."""

    def __init__(self, message: str = "Assignment store error", details: Optional[Dict[str, Any]] = None):
        super().__init__("ASSIGNMENT_STORE_ERROR", message, details)
