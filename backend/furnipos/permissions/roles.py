# Overview: Role constants and the static role -> permission table.

from .definitions import Permissions, PERMISSION_DEFINITIONS


class Role:
    """Fixed role enumeration. Every user has exactly one primary role."""
    OWNER = "OWNER"
    CASHIER_SALES = "CASHIER_SALES"
    CASHIER_SERVICE = "CASHIER_SERVICE"
    MASTER = "MASTER"


ALL_ROLES = (Role.OWNER, Role.CASHIER_SALES, Role.CASHIER_SERVICE, Role.MASTER)

ROLE_LABELS = {
    Role.OWNER: "Owner",
    Role.CASHIER_SALES: "Sales Cashier",
    Role.CASHIER_SERVICE: "Service Cashier",
    Role.MASTER: "Master",
}


DEFAULT_ROLE_PERMISSIONS = {
    Role.OWNER: frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    Role.CASHIER_SALES: frozenset({
        Permissions.DASHBOARD_VIEW,
        Permissions.CUSTOMER_READ,
        Permissions.CUSTOMER_CREATE,
        Permissions.CUSTOMER_UPDATE,
        Permissions.PRODUCT_READ,
        Permissions.WAREHOUSE_READ,
        Permissions.WAREHOUSE_PURCHASE,
        Permissions.SALE_PRODUCT,
        Permissions.PAYMENT_RECEIVE,
        Permissions.RECEIPT_PRINT,
        Permissions.EXPENSE_CREATE,
        Permissions.REPORT_OWN,
        Permissions.WORKSHOP_VIEW,
        Permissions.SHIFT_OWN,
    }),
    Role.CASHIER_SERVICE: frozenset({
        Permissions.DASHBOARD_VIEW,
        Permissions.CUSTOMER_READ,
        Permissions.CUSTOMER_CREATE,
        Permissions.CUSTOMER_UPDATE,
        Permissions.PRODUCT_READ,
        Permissions.WAREHOUSE_READ,
        Permissions.SALE_SERVICE,
        Permissions.PAYMENT_RECEIVE,
        Permissions.RECEIPT_PRINT,
        Permissions.EXPENSE_CREATE,
        Permissions.REPORT_OWN,
        Permissions.WORKSHOP_VIEW,
        Permissions.SHIFT_OWN,
    }),
    Role.MASTER: frozenset({
        Permissions.DASHBOARD_VIEW,
        Permissions.WORKSHOP_MANAGE,
    }),
}
