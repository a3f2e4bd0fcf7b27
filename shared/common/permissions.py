# shared/common/permissions.py
"""
Custom Permission Classes for Role-Based Access Control (RBAC)
"""

from typing import List
from rest_framework import permissions
from rest_framework.request import Request
from rest_framework.views import APIView
import logging

from .authentication import ADMIN_ROLES, STAFF_ROLES

logger = logging.getLogger(__name__)


class BasePermission(permissions.BasePermission):
    """Base permission class with utility methods"""

    def get_user_roles(self, request: Request) -> List[str]:
        """Get roles from user object or JWT payload"""
        if hasattr(request.user, 'roles'):
            return request.user.roles
        if hasattr(request, 'auth') and isinstance(request.auth, dict):
            return request.auth.get('roles', [])
        return []


class HasRole(BasePermission):
    """Check if user has required role(s)"""

    required_roles: List[str] = []

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False

        return bool(set(self.required_roles) & set(self.get_user_roles(request)))


# =============================================================================
# ROLE-SPECIFIC PERMISSIONS
# =============================================================================

class IsAdmin(HasRole):
    """Organisation administrators and owners"""
    required_roles = ADMIN_ROLES


class IsInstructor(HasRole):
    """Flight instructors, administrators and owners"""
    required_roles = STAFF_ROLES


# =============================================================================
# COMBINED PERMISSIONS
# =============================================================================

class IsAdminOrReadOnly(BasePermission):
    """
    Full access for admins, read-only for other authenticated users.
    """

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False

        if request.method in permissions.SAFE_METHODS:
            return True

        return bool(set(ADMIN_ROLES) & set(self.get_user_roles(request)))


class IsInstructorOrReadOnly(BasePermission):
    """
    Write access for instructors and above, read-only for everyone else.
    """

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not request.user or not request.user.is_authenticated:
            return False

        if request.method in permissions.SAFE_METHODS:
            return True

        return bool(set(STAFF_ROLES) & set(self.get_user_roles(request)))
