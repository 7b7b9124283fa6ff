# Overview: Role -> capability map.

from ..models.auth import ROLE_ADMINISTRATOR, ROLE_SALES_REPRESENTATIVE
from .definitions import PERMISSION_DEFINITIONS


DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMINISTRATOR: frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    ROLE_SALES_REPRESENTATIVE: frozenset({
        "VIEW_CATALOG",
        "VIEW_DISPENSARIES",
        "CREATE_ORDER",
        "VIEW_ORDERS",
        "VIEW_REPORTS",
        "EXPORT_REPORTS",
        "VIEW_DASHBOARD",
    }),
}
