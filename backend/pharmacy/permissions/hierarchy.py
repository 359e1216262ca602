# Overview: Role hierarchy table - levels, creation/management rights, scopes and exclusions.

"""
Role Hierarchy

Four ordered tiers:

    super_admin (4, system) > admin (3, pharmacy) > pharmacist (2, branch) > cashier (1, branch)

Each role lists the roles it may create and manage (strictly lower levels
only), the data scope it sees, and the permissions it must never hold no
matter where they come from (role default, manager flag, custom grant).

Exclusion sets are set expressions over the catalog groups, evaluated once
at import. Lookups for unknown roles fail closed and never raise.
"""

from dataclasses import dataclass

from .definitions import (
    ALL_PERMISSION_CODES,
    BRANCH_CODES,
    CUSTOMER_CODES,
    DRUG_CODES,
    EXPIRY_CODES,
    REPORT_CODES,
    SALES_CODES,
    SYSTEM_CODES,
    USER_CODES,
)


class Role:
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    PHARMACIST = "pharmacist"
    CASHIER = "cashier"


ALL_ROLES = (Role.SUPER_ADMIN, Role.ADMIN, Role.PHARMACIST, Role.CASHIER)


class Scope:
    SYSTEM = "system"
    PHARMACY = "pharmacy"
    BRANCH = "branch"


# Wider scopes include the narrower ones.
SCOPE_RANK = {
    Scope.SYSTEM: 3,
    Scope.PHARMACY: 2,
    Scope.BRANCH: 1,
}


@dataclass(frozen=True)
class RoleDefinition:
    level: int
    can_create: frozenset
    can_manage: frozenset
    scope: str
    excluded_permissions: frozenset


# =============================================================================
# DERIVED PERMISSION GROUPS
# =============================================================================

# Platform-level rights reserved for super_admin.
SYSTEM_LEVEL_PERMISSIONS = frozenset(
    {"MANAGE_PHARMACY", "UPDATE_PHARMACY_SETTINGS", "CREATE_USER"} | SYSTEM_CODES
)

# Day-to-day pharmacy operations, kept away from super_admin.
OPERATIONAL_PERMISSIONS = frozenset(
    (BRANCH_CODES - {"VIEW_BRANCHES"})
    | DRUG_CODES
    | SALES_CODES
    | CUSTOMER_CODES
    | EXPIRY_CODES
    | REPORT_CODES
)


# =============================================================================
# ROLE HIERARCHY
# =============================================================================

ROLE_HIERARCHY = {
    Role.SUPER_ADMIN: RoleDefinition(
        level=4,
        can_create=frozenset({Role.ADMIN}),
        can_manage=frozenset({Role.ADMIN}),
        scope=Scope.SYSTEM,
        excluded_permissions=OPERATIONAL_PERMISSIONS,
    ),
    Role.ADMIN: RoleDefinition(
        level=3,
        can_create=frozenset({Role.PHARMACIST, Role.CASHIER}),
        can_manage=frozenset({Role.PHARMACIST, Role.CASHIER}),
        scope=Scope.PHARMACY,
        # Admins create pharmacists and cashiers, so CREATE_USER stays open.
        # FINALIZE_SALE is reserved for counter staff.
        excluded_permissions=(SYSTEM_LEVEL_PERMISSIONS - {"CREATE_USER"}) | {"FINALIZE_SALE"},
    ),
    Role.PHARMACIST: RoleDefinition(
        level=2,
        can_create=frozenset(),
        can_manage=frozenset(),
        scope=Scope.BRANCH,
        excluded_permissions=SYSTEM_LEVEL_PERMISSIONS | {"CREATE_USER", "DELETE_USER", "MANAGE_PERMISSIONS"},
    ),
    Role.CASHIER: RoleDefinition(
        level=1,
        can_create=frozenset(),
        can_manage=frozenset(),
        scope=Scope.BRANCH,
        excluded_permissions=SYSTEM_LEVEL_PERMISSIONS | USER_CODES | (BRANCH_CODES - {"VIEW_BRANCHES"}),
    ),
}


def validate_hierarchy(hierarchy) -> None:
    """
    Check structural invariants of a role table.

    Raises ValueError if a role can create or manage itself or a role at the
    same or a higher level, or if an exclusion names an unknown permission.
    """
    for role, definition in hierarchy.items():
        for target in definition.can_create | definition.can_manage:
            target_def = hierarchy.get(target)
            if target_def is None:
                raise ValueError(f"Role '{role}' references unknown role '{target}'")
            if target_def.level >= definition.level:
                raise ValueError(f"Role '{role}' cannot create or manage '{target}'")
        unknown = definition.excluded_permissions - ALL_PERMISSION_CODES
        if unknown:
            raise ValueError(f"Role '{role}' excludes unknown permissions: {sorted(unknown)}")
        if definition.scope not in SCOPE_RANK:
            raise ValueError(f"Role '{role}' has unknown scope '{definition.scope}'")


validate_hierarchy(ROLE_HIERARCHY)


# =============================================================================
# LOOKUPS
# =============================================================================

def is_valid_role(role) -> bool:
    return role in ROLE_HIERARCHY


def get_role_level(role) -> int:
    definition = ROLE_HIERARCHY.get(role)
    return definition.level if definition else 0


def can_create_role(creator_role, target_role) -> bool:
    """Check if a user role can create another user role."""
    definition = ROLE_HIERARCHY.get(creator_role)
    return bool(definition) and target_role in definition.can_create


def can_manage_role(manager_role, target_role) -> bool:
    """Check if a user role can manage another user role."""
    definition = ROLE_HIERARCHY.get(manager_role)
    return bool(definition) and target_role in definition.can_manage


def get_role_scope(role) -> str:
    """Data-visibility scope for a role; unknown roles get the narrowest scope."""
    definition = ROLE_HIERARCHY.get(role)
    return definition.scope if definition else Scope.BRANCH


def scope_includes(held_scope, required_scope) -> bool:
    """True if a principal holding held_scope satisfies required_scope."""
    if required_scope not in SCOPE_RANK:
        return False
    return SCOPE_RANK.get(held_scope, 0) >= SCOPE_RANK[required_scope]


def is_permission_excluded_for_role(role, permission) -> bool:
    definition = ROLE_HIERARCHY.get(role)
    return bool(definition) and permission in definition.excluded_permissions


def get_filtered_permissions_for_role(role, permissions) -> list[str]:
    """Drop permissions the role must never hold, preserving order."""
    definition = ROLE_HIERARCHY.get(role)
    if not definition:
        return list(permissions)
    return [p for p in permissions if p not in definition.excluded_permissions]
