# Overview: Default permission sets per role, composed from the category groups.

from .definitions import (
    BRANCH_CODES,
    CUSTOMER_CODES,
    DRUG_CODES,
    EXPIRY_CODES,
    REPORT_CODES,
    SALES_CODES,
    USER_CODES,
)
from .hierarchy import ROLE_HIERARCHY, SYSTEM_LEVEL_PERMISSIONS, Role


def _ordered(codes) -> tuple[str, ...]:
    return tuple(sorted(codes))


# =============================================================================
# ROLE DEFAULTS
# =============================================================================

SUPER_ADMIN_DEFAULTS = _ordered(
    SYSTEM_LEVEL_PERMISSIONS
    | {
        "VIEW_PHARMACY_INFO",
        "VIEW_BRANCHES",
        "VIEW_USERS",
        "VIEW_USER_ACTIVITY",
        "UPDATE_USER",
        "DELETE_USER",
        "MANAGE_PERMISSIONS",
    }
)

ADMIN_DEFAULTS = _ordered(
    USER_CODES
    | {"VIEW_PHARMACY_INFO"}
    | BRANCH_CODES
    | DRUG_CODES
    | (SALES_CODES - {"FINALIZE_SALE"})
    | CUSTOMER_CODES
    | REPORT_CODES
    | EXPIRY_CODES
)

PHARMACIST_DEFAULTS = (
    "VIEW_USERS",
    "VIEW_PHARMACY_INFO",
    "VIEW_BRANCHES",
    "VIEW_DRUGS",
    "UPDATE_DRUG",
    "MANAGE_INVENTORY",
    "VIEW_LOW_STOCK",
    "TRANSFER_STOCK",
    "CREATE_SALE",
    "VIEW_SALES",
    "FINALIZE_SALE",
    "VIEW_SALE_HISTORY",
    "CREATE_CUSTOMER",
    "UPDATE_CUSTOMER",
    "VIEW_CUSTOMERS",
    "VIEW_CUSTOMER_HISTORY",
    "VIEW_REPORTS",
    "VIEW_INVENTORY_REPORTS",
    "VIEW_SALES_REPORTS",
    "VIEW_EXPIRY_ALERTS",
    "DISPOSE_EXPIRED_DRUGS",
)

CASHIER_DEFAULTS = (
    "VIEW_BRANCHES",
    "VIEW_DRUGS",
    "VIEW_LOW_STOCK",
    "CREATE_SALE",
    "VIEW_SALES",
    "VIEW_SALE_HISTORY",
    "CREATE_CUSTOMER",
    "UPDATE_CUSTOMER",
    "VIEW_CUSTOMERS",
    "VIEW_CUSTOMER_HISTORY",
    "VIEW_EXPIRY_ALERTS",
)

DEFAULT_ROLE_PERMISSIONS = {
    Role.SUPER_ADMIN: SUPER_ADMIN_DEFAULTS,
    Role.ADMIN: ADMIN_DEFAULTS,
    Role.PHARMACIST: PHARMACIST_DEFAULTS,
    Role.CASHIER: CASHIER_DEFAULTS,
}


def validate_role_defaults(defaults, hierarchy) -> None:
    """Raise ValueError if any role's defaults include a permission excluded for that role."""
    for role, codes in defaults.items():
        definition = hierarchy.get(role)
        if definition is None:
            raise ValueError(f"Defaults defined for unknown role '{role}'")
        overlap = set(codes) & definition.excluded_permissions
        if overlap:
            raise ValueError(f"Defaults for '{role}' include excluded permissions: {sorted(overlap)}")


validate_role_defaults(DEFAULT_ROLE_PERMISSIONS, ROLE_HIERARCHY)


def get_permissions_by_role(role) -> tuple[str, ...]:
    """Default permissions for a role. Unknown roles get nothing."""
    return DEFAULT_ROLE_PERMISSIONS.get(role, ())
