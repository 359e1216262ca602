# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    USER_MANAGEMENT = "USER_MANAGEMENT"
    PHARMACY_MANAGEMENT = "PHARMACY_MANAGEMENT"
    BRANCH_MANAGEMENT = "BRANCH_MANAGEMENT"
    INVENTORY_MANAGEMENT = "INVENTORY_MANAGEMENT"
    SALES_MANAGEMENT = "SALES_MANAGEMENT"
    CUSTOMER_MANAGEMENT = "CUSTOMER_MANAGEMENT"
    REPORTS_ANALYTICS = "REPORTS_ANALYTICS"
    SYSTEM_ADMINISTRATION = "SYSTEM_ADMINISTRATION"
    AUDIT_MANAGEMENT = "AUDIT_MANAGEMENT"
    EXPIRY_MANAGEMENT = "EXPIRY_MANAGEMENT"
    MANAGER_PRIVILEGES = "MANAGER_PRIVILEGES"

    UNKNOWN = "UNKNOWN"


# Display metadata, in the order categories are shown in the UI.
CATEGORY_INFO = {
    PermissionCategory.USER_MANAGEMENT: {
        "name": "User Management",
        "description": "Manage users, roles, and permissions",
    },
    PermissionCategory.PHARMACY_MANAGEMENT: {
        "name": "Pharmacy Management",
        "description": "Manage pharmacy information and settings",
    },
    PermissionCategory.BRANCH_MANAGEMENT: {
        "name": "Branch Management",
        "description": "Manage pharmacy branches",
    },
    PermissionCategory.INVENTORY_MANAGEMENT: {
        "name": "Inventory Management",
        "description": "Manage drugs and inventory",
    },
    PermissionCategory.SALES_MANAGEMENT: {
        "name": "Sales Management",
        "description": "Manage sales and transactions",
    },
    PermissionCategory.CUSTOMER_MANAGEMENT: {
        "name": "Customer Management",
        "description": "Manage customer information",
    },
    PermissionCategory.REPORTS_ANALYTICS: {
        "name": "Reports & Analytics",
        "description": "View reports and analytics",
    },
    PermissionCategory.SYSTEM_ADMINISTRATION: {
        "name": "System Administration",
        "description": "System-level administration",
    },
    PermissionCategory.AUDIT_MANAGEMENT: {
        "name": "Audit Management",
        "description": "Manage and export audit trails",
    },
    PermissionCategory.EXPIRY_MANAGEMENT: {
        "name": "Expiry Management",
        "description": "Manage drug expiry alerts and disposal",
    },
    PermissionCategory.MANAGER_PRIVILEGES: {
        "name": "Manager Privileges",
        "description": "Special permissions for branch managers",
    },
}
