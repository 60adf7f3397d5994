"""
Core infrastructure shared by the domain apps.

Safe to import before the app registry is ready (core is an installed app,
so nothing here may pull in DRF views or auth models at import time):
    from core import BaseService, ServiceResult, NotFoundError

The DRF exception handler imports rest_framework.views lazily, when it is
first called:
    core.exceptions.api_exception_handler

Models and mixins depend on the registry; import them from their modules:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "RateLimitError",
    "ExternalServiceError",
]
