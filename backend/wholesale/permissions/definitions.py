# Overview: All capability definitions.
# Each capability is defined as: (code, name, description)


CATALOG_PERMISSIONS = [
    ("VIEW_CATALOG", "View Catalog", "View product templates, batches and stock rollups"),
    ("MANAGE_PRODUCTS", "Manage Products", "Create, edit and delete product templates and batches"),
]

ORDER_PERMISSIONS = [
    ("CREATE_ORDER", "Create Order", "Preview and place wholesale orders"),
    ("VIEW_ORDERS", "View Orders", "View placed wholesale orders"),
    ("UPDATE_PAYMENT_STATUS", "Update Payment Status", "Move an order's payment status"),
]

DISPENSARY_PERMISSIONS = [
    ("VIEW_DISPENSARIES", "View Dispensaries", "View dispensary clients and prospects"),
    ("MANAGE_DISPENSARIES", "Manage Dispensaries", "Create, edit and delete dispensaries"),
]

REPORT_PERMISSIONS = [
    ("VIEW_REPORTS", "View Reports", "View filtered order reports"),
    ("EXPORT_REPORTS", "Export Reports", "Download order reports as CSV"),
    ("VIEW_DASHBOARD", "View Dashboard", "View the sales dashboard"),
    ("USE_INSIGHTS", "Use Insights", "Ask natural-language sales and business questions"),
]

USER_PERMISSIONS = [
    ("MANAGE_USERS", "Manage Users", "Create, list and deactivate user accounts"),
]

PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + ORDER_PERMISSIONS
    + DISPENSARY_PERMISSIONS
    + REPORT_PERMISSIONS
    + USER_PERMISSIONS
)
