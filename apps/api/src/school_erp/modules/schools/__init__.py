"""
Schools module - School tenant management.
"""

from school_erp.modules.schools.models import School, SchoolStatus
from school_erp.modules.schools.repository import SchoolRepository

__all__ = ["School", "SchoolStatus", "SchoolRepository"]
