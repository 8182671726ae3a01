"""Custom exceptions for SignalRec.

Defines specific exception types for validation and configuration failures.
Recommendation calls themselves degrade to empty results rather than raise;
these errors are reserved for structurally invalid input.
"""

from typing import Any, Dict, List, Optional


class SignalRecError(Exception):
    """Base exception for SignalRec errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidProfileError(SignalRecError, ValueError):
    """Raised when a user profile is structurally invalid."""

    def __init__(self, user_id: Optional[str], errors: List[Any]):
        message = f"Invalid profile for user '{user_id}': {errors}"
        super().__init__(
            message=message,
            details={"user_id": user_id, "errors": errors},
        )


class InvalidProductError(SignalRecError, ValueError):
    """Raised when a catalog entry cannot be read as a Product."""

    def __init__(self, product_id: Optional[str], errors: List[Any]):
        message = f"Invalid product '{product_id}': {errors}"
        super().__init__(
            message=message,
            details={"product_id": product_id, "errors": errors},
        )


class ConfigError(SignalRecError):
    """Raised when engine configuration cannot be loaded."""


class ScorerWeightsError(SignalRecError):
    """Raised when learned-scorer weights are invalid or fail to load."""

    def __init__(self, message: str, weights_path: Optional[str] = None):
        super().__init__(
            message=message,
            details={"weights_path": weights_path} if weights_path else {},
        )
