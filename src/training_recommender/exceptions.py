"""
Custom exceptions for the training recommendation engine.

Each exception carries:
- A descriptive message
- An error code for API responses
- HTTP status code mapping
- Optional details for debugging

InsufficientDataError and NoModelAvailableError are expected steady states
for new users and map to non-5xx statuses. FeatureShapeMismatchError is a
fatal condition and is never coerced.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Modeling errors
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    NO_MODEL_AVAILABLE = "NO_MODEL_AVAILABLE"
    FEATURE_SHAPE_MISMATCH = "FEATURE_SHAPE_MISMATCH"

    # Collaborator errors
    COLLABORATOR_UNAVAILABLE = "COLLABORATOR_UNAVAILABLE"


class TrainingRecommenderError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Validation Errors (400)
# ============================================================================

class ValidationError(TrainingRecommenderError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=error_details,
        )


# ============================================================================
# Modeling Errors
# ============================================================================

class InsufficientDataError(TrainingRecommenderError):
    """Raised when there are too few samples to train a model."""

    def __init__(
        self,
        required: int,
        actual: int,
        model_kind: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        error_details["required_samples"] = required
        error_details["actual_samples"] = actual
        if model_kind:
            error_details["model_kind"] = model_kind
        self.required = required
        self.actual = actual
        super().__init__(
            message=f"Insufficient training data: need at least {required} samples, got {actual}",
            code=ErrorCode.INSUFFICIENT_DATA,
            status_code=422,
            details=error_details,
        )


class NoModelAvailableError(TrainingRecommenderError):
    """Raised when no fitted model is current for a user."""

    def __init__(
        self,
        user_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if user_id is not None:
            error_details["user_id"] = user_id
        super().__init__(
            message="No trained model available",
            code=ErrorCode.NO_MODEL_AVAILABLE,
            status_code=409,
            details=error_details,
        )


class FeatureShapeMismatchError(TrainingRecommenderError):
    """Raised when a feature vector does not match the expected width."""

    def __init__(
        self,
        expected: int,
        actual: int,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        error_details["expected_features"] = expected
        error_details["actual_features"] = actual
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"Feature vector has {actual} values, expected {expected}",
            code=ErrorCode.FEATURE_SHAPE_MISMATCH,
            status_code=500,
            details=error_details,
        )


# ============================================================================
# Collaborator Errors (503)
# ============================================================================

class CollaboratorUnavailableError(TrainingRecommenderError):
    """Raised when the history store or analytics sink cannot be reached."""

    def __init__(
        self,
        collaborator: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        error_details["collaborator"] = collaborator
        self.collaborator = collaborator
        super().__init__(
            message=message or f"{collaborator} is currently unavailable",
            code=ErrorCode.COLLABORATOR_UNAVAILABLE,
            status_code=503,
            details=error_details,
        )
