# Overview: Capability system package.
# Re-exports all public APIs.

from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    ORDER_PERMISSIONS,
    DISPENSARY_PERMISSIONS,
    REPORT_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_role_permissions,
    user_has_permission,
    validate_permission_code,
)

__all__ = [
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "DISPENSARY_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_role_permissions",
    "user_has_permission",
    "validate_permission_code",
]
