"""
Application error hierarchy.

Every domain error carries a human-readable message, a machine-readable
error code and an optional details dict. Services raise these for
unexpected conditions and return ServiceResult for expected ones.

Hierarchy:
    BaseApplicationError
    ├── ValidationError        - submitted data breaks a business rule
    ├── NotFoundError          - a record that must exist does not
    ├── PermissionDeniedError  - caller may not perform the action
    ├── ConflictError          - action clashes with current state
    └── ExternalServiceError   - a third-party call failed

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "This email address is already registered",
        error_code="EMAIL_EXISTS",
        details={"email": email},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code used by callers to branch on
        details: Extra context (field errors, ids)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize the error for a JSON body or a log record.

        Example:
            {"error": "Account not found", "error_code": "ACCOUNT_NOT_FOUND",
             "details": {"user_id": "42"}}
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when submitted data violates a business rule.

    Example:
        raise ValidationError(
            "This email address is already registered",
            error_code="EMAIL_EXISTS",
        )
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a record that is expected to exist is missing.

    Example:
        raise NotFoundError(
            f"Account {user_id} not found",
            error_code="ACCOUNT_NOT_FOUND",
            details={"user_id": user_id},
        )
    """

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """Raised when the caller is not allowed to perform an action."""

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an action conflicts with the current state of a record,
    for example upgrading an account that is already premium.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a third-party service call fails.

    Log the original error; never show provider internals to end users.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
