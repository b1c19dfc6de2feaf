"""
Core application: shared base classes for the membership apps.

Models (import from core.models):
    - BaseModel: abstract model with created_at / updated_at

Model mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID primary key

Services (import from core.services):
    - BaseService: logger + transaction helpers for service classes
    - ServiceResult: success/failure wrapper returned across layers

Exceptions (import from core.exceptions):
    - BaseApplicationError and its subclasses

Models and mixins are not re-exported here because importing them
requires the app registry to be ready.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    "BaseService",
    "ServiceResult",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
]
