# Overview: Permission group constants used for UI presentation only.


class PermissionCategory:
    """Permission groups for organization and UI display. No runtime semantics."""
    DASHBOARD = "DASHBOARD"
    CUSTOMERS = "CUSTOMERS"
    PRODUCTS = "PRODUCTS"
    CATEGORIES = "CATEGORIES"
    WAREHOUSE = "WAREHOUSE"
    SALES = "SALES"
    FINANCE = "FINANCE"
    REPORTS = "REPORTS"
    EMPLOYEES = "EMPLOYEES"
    WORKSHOP = "WORKSHOP"
    ADMIN = "ADMIN"
