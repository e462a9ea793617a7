"""
Custom exceptions and error codes for the FlagPilot application.

This module provides:
- Structured error codes for categorized error handling
- Custom exception classes for specific failure scenarios
- Error response schema for consistent API responses
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """
    Application-wide error codes for categorized error handling.

    Format: CATEGORY_SPECIFIC_ERROR
    Categories:
    - FEATURE_*: Feature registry and toggle errors
    - STORE_*: Preference store errors
    """

    # Feature-related errors
    FEATURE_NOT_FOUND = "FEATURE_NOT_FOUND"
    FEATURE_TOGGLE_LOCKED = "FEATURE_TOGGLE_LOCKED"
    FEATURE_RESET_NOT_ALLOWED = "FEATURE_RESET_NOT_ALLOWED"

    # Store-related errors
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    STORE_OPERATION_FAILED = "STORE_OPERATION_FAILED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Structured error response for API errors."""
    error_code: ErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(use_enum_values=True)


class FlagPilotError(Exception):
    """
    Base exception for all FlagPilot application errors.

    Provides structured error information for consistent error handling.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to ErrorResponse for API output."""
        return ErrorResponse(
            error_code=self.error_code,
            message=self.message,
            details=self.details if self.details else None,
        )


# Feature-related exceptions

class UnknownFeatureError(FlagPilotError):
    """Raised when a feature id is not present in the registry."""

    def __init__(self, feature_id: str):
        super().__init__(
            message=f"Feature '{feature_id}' is not registered",
            error_code=ErrorCode.FEATURE_NOT_FOUND,
            details={"feature_id": feature_id},
            status_code=404,
        )


class FeatureToggleLockedError(FlagPilotError):
    """Raised when a feature cannot be toggled at runtime in the current build."""

    def __init__(self, feature_id: str, build_mode: str, compile_time_flag: Optional[str] = None):
        details: Dict[str, Any] = {"feature_id": feature_id, "build_mode": build_mode}
        message = f"Feature '{feature_id}' cannot be toggled at runtime in {build_mode} builds"
        if compile_time_flag:
            details["compile_time_flag"] = compile_time_flag
            message += f". Set {compile_time_flag}=true at build time to enable it."

        super().__init__(
            message=message,
            error_code=ErrorCode.FEATURE_TOGGLE_LOCKED,
            details=details,
            status_code=409,
        )


class ResetNotAllowedError(FlagPilotError):
    """Raised when a reset of runtime toggles is requested in a restricted build."""

    def __init__(self, build_mode: str):
        super().__init__(
            message=f"Runtime feature flags cannot be reset in {build_mode} builds",
            error_code=ErrorCode.FEATURE_RESET_NOT_ALLOWED,
            details={"build_mode": build_mode},
            status_code=409,
        )


# Store-related exceptions

class StoreError(FlagPilotError):
    """Base exception for preference store errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.STORE_OPERATION_FAILED,
        details: Dict[str, Any] = None,
        status_code: int = 500,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details=details,
            status_code=status_code,
        )


class StoreUnavailableError(StoreError):
    """Raised when the preference store cannot be opened."""

    def __init__(self, reason: str):
        super().__init__(
            message="Could not load settings: the preference store is unavailable.",
            error_code=ErrorCode.STORE_UNAVAILABLE,
            details={"reason": reason},
            status_code=503,
        )


class StoreOperationError(StoreError):
    """Raised when a read or write against an open store fails."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Preference store {operation} failed",
            error_code=ErrorCode.STORE_OPERATION_FAILED,
            details={"operation": operation, "reason": reason},
        )
