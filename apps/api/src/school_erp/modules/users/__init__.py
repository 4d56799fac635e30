"""
Users module - Principals, roles, user management and profile.
"""

from school_erp.modules.users.models import TENANT_ROLES, User, UserRole
from school_erp.modules.users.repository import UserRepository

__all__ = ["TENANT_ROLES", "User", "UserRole", "UserRepository"]
