"""
Shared module - base model and helpers used across feature modules.
"""

from school_erp.modules.shared.models import BaseModel, TenantScopedMixin, enum_type
from school_erp.modules.shared.utils import as_utc, utcnow

__all__ = ["BaseModel", "TenantScopedMixin", "enum_type", "as_utc", "utcnow"]
