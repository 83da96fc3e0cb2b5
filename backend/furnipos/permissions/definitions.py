# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


class Permissions:
    """Closed vocabulary of permission codes."""
    DASHBOARD_VIEW = "dashboard:view"

    CUSTOMER_READ = "customer:read"
    CUSTOMER_CREATE = "customer:create"
    CUSTOMER_UPDATE = "customer:update"
    CUSTOMER_DELETE = "customer:delete"

    PRODUCT_READ = "product:read"
    PRODUCT_CREATE = "product:create"
    PRODUCT_UPDATE = "product:update"
    PRODUCT_DELETE = "product:delete"
    PRODUCT_PRICE_BELOW_MIN = "product:price_below_min"

    CATEGORY_MANAGE = "category:manage"

    WAREHOUSE_READ = "warehouse:read"
    WAREHOUSE_PURCHASE = "warehouse:purchase"
    WAREHOUSE_TRANSFER = "warehouse:transfer"
    WAREHOUSE_INVENTORY = "warehouse:inventory"
    WAREHOUSE_REVALUE = "warehouse:revalue"
    WAREHOUSE_WRITE_OFF = "warehouse:write_off"
    WAREHOUSE_RETURN = "warehouse:return"

    SALE_PRODUCT = "sale:product"
    SALE_SERVICE = "sale:service"

    PAYMENT_RECEIVE = "payment:receive"
    RECEIPT_PRINT = "receipt:print"
    EXPENSE_CREATE = "expense:create"
    EXPENSE_VIEW_ALL = "expense:view_all"

    REPORT_OWN = "report:own"
    REPORT_ALL = "report:all"

    EMPLOYEE_MANAGE = "employee:manage"
    EMPLOYEE_ADVANCE = "employee:advance"
    EMPLOYEE_SALARY = "employee:salary"

    WORKSHOP_VIEW = "workshop:view"
    WORKSHOP_MANAGE = "workshop:manage"

    ADMIN_SETTINGS = "admin:settings"
    ADMIN_USERS = "admin:users"
    MARKETPLACE_MANAGE = "marketplace:manage"

    SHIFT_OWN = "shift:own"
    SHIFT_VIEW_ALL = "shift:view_all"


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    (Permissions.DASHBOARD_VIEW, "View Dashboard", "Open the home dashboard", PermissionCategory.DASHBOARD),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (Permissions.CUSTOMER_READ, "View Customers", "List and open customer cards", PermissionCategory.CUSTOMERS),
    (Permissions.CUSTOMER_CREATE, "Create Customers", "Register new customers", PermissionCategory.CUSTOMERS),
    (Permissions.CUSTOMER_UPDATE, "Edit Customers", "Edit customer details", PermissionCategory.CUSTOMERS),
    (Permissions.CUSTOMER_DELETE, "Delete Customers", "Deactivate customers", PermissionCategory.CUSTOMERS),
]


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    (Permissions.PRODUCT_READ, "View Products", "Browse the product catalog", PermissionCategory.PRODUCTS),
    (Permissions.PRODUCT_CREATE, "Create Products", "Add catalog products", PermissionCategory.PRODUCTS),
    (Permissions.PRODUCT_UPDATE, "Edit Products", "Edit catalog products", PermissionCategory.PRODUCTS),
    (Permissions.PRODUCT_DELETE, "Delete Products", "Deactivate catalog products", PermissionCategory.PRODUCTS),
    (
        Permissions.PRODUCT_PRICE_BELOW_MIN,
        "Sell Below Minimum",
        "Sell a product below its configured floor price",
        PermissionCategory.PRODUCTS,
    ),
]


# -- CATEGORIES --

CATEGORY_PERMISSIONS = [
    (Permissions.CATEGORY_MANAGE, "Manage Categories", "Create and edit product categories", PermissionCategory.CATEGORIES),
]


# -- WAREHOUSE --

WAREHOUSE_PERMISSIONS = [
    (Permissions.WAREHOUSE_READ, "View Stock", "View stock levels per warehouse", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_PURCHASE, "Receive Stock", "Record purchases into a warehouse", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_TRANSFER, "Transfer Stock", "Move stock between warehouses", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_INVENTORY, "Inventory Count", "Create and apply inventory checks", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_REVALUE, "Revalue Stock", "Change product cost prices", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_WRITE_OFF, "Write Off", "Remove stock from a warehouse", PermissionCategory.WAREHOUSE),
    (Permissions.WAREHOUSE_RETURN, "Return To Stock", "Put returned goods back on stock", PermissionCategory.WAREHOUSE),
]


# -- SALES --

SALES_PERMISSIONS = [
    (Permissions.SALE_PRODUCT, "Sales Register", "Create product sales", PermissionCategory.SALES),
    (Permissions.SALE_SERVICE, "Service Register", "Create service sales", PermissionCategory.SALES),
]


# -- FINANCE --

FINANCE_PERMISSIONS = [
    (Permissions.PAYMENT_RECEIVE, "Receive Payment", "Record payments against sales or debt", PermissionCategory.FINANCE),
    (Permissions.RECEIPT_PRINT, "Print Receipt", "Print sale receipts", PermissionCategory.FINANCE),
    (Permissions.EXPENSE_CREATE, "Create Expense", "Record expenses from a register", PermissionCategory.FINANCE),
    (Permissions.EXPENSE_VIEW_ALL, "View All Expenses", "View expenses of every register", PermissionCategory.FINANCE),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (Permissions.REPORT_OWN, "Own Reports", "View reports for own register", PermissionCategory.REPORTS),
    (Permissions.REPORT_ALL, "All Reports", "View all reports", PermissionCategory.REPORTS),
]


# -- EMPLOYEES --

EMPLOYEE_PERMISSIONS = [
    (Permissions.EMPLOYEE_MANAGE, "Manage Employees", "Manage employee records", PermissionCategory.EMPLOYEES),
    (Permissions.EMPLOYEE_ADVANCE, "Pay Advances", "Pay salary advances", PermissionCategory.EMPLOYEES),
    (Permissions.EMPLOYEE_SALARY, "Pay Salaries", "Pay monthly salaries", PermissionCategory.EMPLOYEES),
    (Permissions.SHIFT_OWN, "Own Shift", "Open and close own shift", PermissionCategory.EMPLOYEES),
    (Permissions.SHIFT_VIEW_ALL, "All Shifts", "View every employee shift", PermissionCategory.EMPLOYEES),
]


# -- WORKSHOP --

WORKSHOP_PERMISSIONS = [
    (Permissions.WORKSHOP_VIEW, "View Tasks", "View workshop tasks", PermissionCategory.WORKSHOP),
    (Permissions.WORKSHOP_MANAGE, "Manage Tasks", "Update workshop task status", PermissionCategory.WORKSHOP),
]


# -- ADMIN --

ADMIN_PERMISSIONS = [
    (Permissions.ADMIN_SETTINGS, "System Settings", "Change system settings", PermissionCategory.ADMIN),
    (Permissions.ADMIN_USERS, "Manage Users", "Create and edit user accounts", PermissionCategory.ADMIN),
    (Permissions.MARKETPLACE_MANAGE, "Manage Marketplace", "Manage the public storefront", PermissionCategory.ADMIN),
]


PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + PRODUCT_PERMISSIONS
    + CATEGORY_PERMISSIONS
    + WAREHOUSE_PERMISSIONS
    + SALES_PERMISSIONS
    + FINANCE_PERMISSIONS
    + REPORT_PERMISSIONS
    + EMPLOYEE_PERMISSIONS
    + WORKSHOP_PERMISSIONS
    + ADMIN_PERMISSIONS
)
