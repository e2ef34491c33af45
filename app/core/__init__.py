"""
Core infrastructure shared by all apps.

This package contains generic building blocks with no payment-specific logic:

Services (import from core.services):
    - ServiceResult: Standard success/failure wrapper for service calls
    - BaseService: Logging and transaction helpers

Exceptions (import from core.exceptions):
    - BaseApplicationError: message + error_code + details base class

Models (import from core.models / core.model_mixins):
    - BaseModel: created_at/updated_at timestamps
    - UUIDPrimaryKeyMixin: UUID primary keys

Usage:
    from core.services import BaseService, ServiceResult
    from core.exceptions import BaseApplicationError

Note:
    Models and model mixins are NOT imported here to avoid AppRegistryNotReady
    errors. Import them directly from their modules.
"""

from .exceptions import BaseApplicationError
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
]
