# Overview: Utility functions for capability lookups and validation.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all capability codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    return code in get_all_permission_codes()


def get_role_permissions(role):
    """Capabilities held by a role; unknown roles hold none."""
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def user_has_permission(user, code) -> bool:
    if user is None or not user.is_active:
        return False
    return code in get_role_permissions(user.role)
