"""
Services.

Business logic layer. Facades (``*_service.py``) own the unit of work and
return ``ServiceResult``; subpackages hold the components they delegate to.
"""

from app.services.base_service import (
    BaseService,
    ServiceResult,
    log_operation,
    service_operation,
    transaction,
)


__all__ = [
    "BaseService",
    "ServiceResult",
    "log_operation",
    "service_operation",
    "transaction",
]
