# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- USER MANAGEMENT --

USER_PERMISSIONS = [
    (
        "CREATE_USER",
        "Create User",
        "Create new users",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "UPDATE_USER",
        "Update User",
        "Update user information",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "DELETE_USER",
        "Delete User",
        "Delete users",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "VIEW_USERS",
        "View Users",
        "View user list and details",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Full user management access",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "MANAGE_PERMISSIONS",
        "Manage Permissions",
        "Assign and manage user permissions",
        PermissionCategory.USER_MANAGEMENT,
    ),
    (
        "VIEW_USER_ACTIVITY",
        "View User Activity",
        "View user activity logs",
        PermissionCategory.USER_MANAGEMENT,
    ),
]


# -- PHARMACY MANAGEMENT --

PHARMACY_PERMISSIONS = [
    (
        "MANAGE_PHARMACY",
        "Manage Pharmacy",
        "Full pharmacy management access",
        PermissionCategory.PHARMACY_MANAGEMENT,
    ),
    (
        "VIEW_PHARMACY_INFO",
        "View Pharmacy Info",
        "View pharmacy information",
        PermissionCategory.PHARMACY_MANAGEMENT,
    ),
    (
        "UPDATE_PHARMACY_SETTINGS",
        "Update Pharmacy Settings",
        "Update pharmacy settings",
        PermissionCategory.PHARMACY_MANAGEMENT,
    ),
]


# -- BRANCH MANAGEMENT --

BRANCH_PERMISSIONS = [
    (
        "CREATE_BRANCH",
        "Create Branch",
        "Create new branches",
        PermissionCategory.BRANCH_MANAGEMENT,
    ),
    (
        "UPDATE_BRANCH",
        "Update Branch",
        "Update branch information",
        PermissionCategory.BRANCH_MANAGEMENT,
    ),
    (
        "DELETE_BRANCH",
        "Delete Branch",
        "Delete branches",
        PermissionCategory.BRANCH_MANAGEMENT,
    ),
    (
        "VIEW_BRANCHES",
        "View Branches",
        "View branch list and details",
        PermissionCategory.BRANCH_MANAGEMENT,
    ),
    (
        "MANAGE_BRANCHES",
        "Manage Branches",
        "Full branch management access",
        PermissionCategory.BRANCH_MANAGEMENT,
    ),
]


# -- DRUGS / INVENTORY --

DRUG_PERMISSIONS = [
    (
        "CREATE_DRUG",
        "Create Drug",
        "Add new drugs to inventory",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "UPDATE_DRUG",
        "Update Drug",
        "Update drug information",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "DELETE_DRUG",
        "Delete Drug",
        "Remove drugs from system",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "VIEW_DRUGS",
        "View Drugs",
        "View drug inventory",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "MANAGE_DRUGS",
        "Manage Drugs",
        "Full drug management access",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Manage inventory levels",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "VIEW_LOW_STOCK",
        "View Low Stock",
        "View low stock alerts",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
    (
        "TRANSFER_STOCK",
        "Transfer Stock",
        "Transfer stock between branches",
        PermissionCategory.INVENTORY_MANAGEMENT,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Create new sales transactions",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "UPDATE_SALE",
        "Update Sale",
        "Modify sales transactions",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "DELETE_SALE",
        "Delete Sale",
        "Delete sales transactions",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales list and details",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "MANAGE_SALES",
        "Manage Sales",
        "Full sales management access",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "FINALIZE_SALE",
        "Finalize Sale",
        "Finalize and complete sales",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "VOID_SALE",
        "Void Sale",
        "Void sales transactions",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "REFUND_SALE",
        "Refund Sale",
        "Process refunds",
        PermissionCategory.SALES_MANAGEMENT,
    ),
    (
        "VIEW_SALE_HISTORY",
        "View Sale History",
        "View historical sales data",
        PermissionCategory.SALES_MANAGEMENT,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "CREATE_CUSTOMER",
        "Create Customer",
        "Add new customers",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
    (
        "UPDATE_CUSTOMER",
        "Update Customer",
        "Update customer information",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
    (
        "DELETE_CUSTOMER",
        "Delete Customer",
        "Remove customers",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View customer list and details",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Full customer management access",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
    (
        "VIEW_CUSTOMER_HISTORY",
        "View Customer History",
        "View customer purchase history",
        PermissionCategory.CUSTOMER_MANAGEMENT,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View system reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "GENERATE_REPORTS",
        "Generate Reports",
        "Generate custom reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "VIEW_ANALYTICS",
        "View Analytics",
        "View analytics and insights",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "EXPORT_DATA",
        "Export Data",
        "Export data and reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "VIEW_FINANCIAL_REPORTS",
        "View Financial Reports",
        "View financial reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "VIEW_INVENTORY_REPORTS",
        "View Inventory Reports",
        "View inventory reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
    (
        "VIEW_SALES_REPORTS",
        "View Sales Reports",
        "View sales reports",
        PermissionCategory.REPORTS_ANALYTICS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_SYSTEM_SETTINGS",
        "Manage System Settings",
        "Manage system configuration",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
    (
        "MANAGE_SYSTEM",
        "Manage System",
        "Full platform administration",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
    (
        "VIEW_AUDIT_LOGS",
        "View Audit Logs",
        "View system audit logs",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
    (
        "MANAGE_CRON_JOBS",
        "Manage Cron Jobs",
        "Manage scheduled tasks",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
    (
        "BACKUP_RESTORE",
        "Backup & Restore",
        "Backup and restore system data",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
    (
        "SYSTEM_MONITORING",
        "System Monitoring",
        "Monitor system performance",
        PermissionCategory.SYSTEM_ADMINISTRATION,
    ),
]


# -- AUDIT --
# VIEW_AUDIT_LOGS lives under SYSTEM; codes are unique across categories.

AUDIT_PERMISSIONS = [
    (
        "MANAGE_AUDIT_LOGS",
        "Manage Audit Logs",
        "Manage audit log retention",
        PermissionCategory.AUDIT_MANAGEMENT,
    ),
    (
        "EXPORT_AUDIT_LOGS",
        "Export Audit Logs",
        "Export audit log records",
        PermissionCategory.AUDIT_MANAGEMENT,
    ),
]


# -- EXPIRY --

EXPIRY_PERMISSIONS = [
    (
        "VIEW_EXPIRY_ALERTS",
        "View Expiry Alerts",
        "View drug expiry alerts",
        PermissionCategory.EXPIRY_MANAGEMENT,
    ),
    (
        "MANAGE_EXPIRY_SETTINGS",
        "Manage Expiry Settings",
        "Configure expiry alert settings",
        PermissionCategory.EXPIRY_MANAGEMENT,
    ),
    (
        "DISPOSE_EXPIRED_DRUGS",
        "Dispose Expired Drugs",
        "Dispose of expired drugs",
        PermissionCategory.EXPIRY_MANAGEMENT,
    ),
]


# -- MANAGER PRIVILEGES --

MANAGER_PERMISSIONS = [
    (
        "MANAGE_BRANCH_STAFF",
        "Manage Branch Staff",
        "Manage staff within assigned branch",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "VIEW_BRANCH_ANALYTICS",
        "View Branch Analytics",
        "View detailed branch performance analytics",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "APPROVE_DISCOUNTS",
        "Approve Discounts",
        "Approve special discounts and promotions",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "MANAGE_BRANCH_INVENTORY",
        "Manage Branch Inventory",
        "Full inventory control for assigned branch",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "OVERRIDE_PRICES",
        "Override Prices",
        "Override system prices when necessary",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "APPROVE_REFUNDS",
        "Approve Refunds",
        "Approve refund requests and returns",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "MANAGE_SHIFT_SCHEDULES",
        "Manage Shift Schedules",
        "Create and manage staff schedules",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
    (
        "VIEW_STAFF_PERFORMANCE",
        "View Staff Performance",
        "View staff performance metrics and reports",
        PermissionCategory.MANAGER_PRIVILEGES,
    ),
]


# =============================================================================
# ALL PERMISSIONS
# =============================================================================

PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + PHARMACY_PERMISSIONS
    + BRANCH_PERMISSIONS
    + DRUG_PERMISSIONS
    + SALES_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + REPORT_PERMISSIONS
    + SYSTEM_PERMISSIONS
    + AUDIT_PERMISSIONS
    + EXPIRY_PERMISSIONS
    + MANAGER_PERMISSIONS
)


def codes_of(definitions) -> frozenset[str]:
    """Permission codes of a definition list."""
    return frozenset(perm[0] for perm in definitions)


def _check_unique_codes(definitions) -> None:
    seen = set()
    for perm in definitions:
        if perm[0] in seen:
            raise ValueError(f"Duplicate permission code: {perm[0]}")
        seen.add(perm[0])


_check_unique_codes(PERMISSION_DEFINITIONS)

ALL_PERMISSION_CODES = codes_of(PERMISSION_DEFINITIONS)

USER_CODES = codes_of(USER_PERMISSIONS)
PHARMACY_CODES = codes_of(PHARMACY_PERMISSIONS)
BRANCH_CODES = codes_of(BRANCH_PERMISSIONS)
DRUG_CODES = codes_of(DRUG_PERMISSIONS)
SALES_CODES = codes_of(SALES_PERMISSIONS)
CUSTOMER_CODES = codes_of(CUSTOMER_PERMISSIONS)
REPORT_CODES = codes_of(REPORT_PERMISSIONS)
SYSTEM_CODES = codes_of(SYSTEM_PERMISSIONS)
AUDIT_CODES = codes_of(AUDIT_PERMISSIONS)
EXPIRY_CODES = codes_of(EXPIRY_PERMISSIONS)
MANAGER_PERMISSION_CODES = codes_of(MANAGER_PERMISSIONS)
