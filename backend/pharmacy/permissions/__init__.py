# Overview: Permission system package.
# Re-exports the catalog, role table, policy and evaluator.

from .categories import CATEGORY_INFO, PermissionCategory
from .definitions import (
    ALL_PERMISSION_CODES,
    MANAGER_PERMISSION_CODES,
    PERMISSION_DEFINITIONS,
)
from .helpers import (
    get_all_permission_codes,
    get_invalid_permissions,
    get_permission_categories,
    get_permission_category,
    get_permission_definition,
    get_permission_description,
    get_permissions_by_category,
    validate_permission_code,
    validate_permissions,
)
from .hierarchy import (
    ALL_ROLES,
    OPERATIONAL_PERMISSIONS,
    ROLE_HIERARCHY,
    SYSTEM_LEVEL_PERMISSIONS,
    Role,
    RoleDefinition,
    Scope,
    can_create_role,
    can_manage_role,
    get_filtered_permissions_for_role,
    get_role_level,
    get_role_scope,
    is_permission_excluded_for_role,
    is_valid_role,
    scope_includes,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, get_permissions_by_role
from .principal import Principal
from .policy import DEFAULT_POLICY, PermissionPolicy
from .evaluator import (
    DEFAULT_EVALUATOR,
    PermissionDiff,
    PermissionEvaluator,
    can_manage_user_permissions,
    get_custom_permissions,
    get_effective_permissions,
    get_permission_diff,
    get_permission_source,
    get_removed_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_manager_permission,
)

__all__ = [
    "CATEGORY_INFO",
    "PermissionCategory",
    "ALL_PERMISSION_CODES",
    "MANAGER_PERMISSION_CODES",
    "PERMISSION_DEFINITIONS",
    "get_all_permission_codes",
    "get_invalid_permissions",
    "get_permission_categories",
    "get_permission_category",
    "get_permission_definition",
    "get_permission_description",
    "get_permissions_by_category",
    "validate_permission_code",
    "validate_permissions",
    "ALL_ROLES",
    "OPERATIONAL_PERMISSIONS",
    "ROLE_HIERARCHY",
    "SYSTEM_LEVEL_PERMISSIONS",
    "Role",
    "RoleDefinition",
    "Scope",
    "can_create_role",
    "can_manage_role",
    "get_filtered_permissions_for_role",
    "get_role_level",
    "get_role_scope",
    "is_permission_excluded_for_role",
    "is_valid_role",
    "scope_includes",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_permissions_by_role",
    "Principal",
    "DEFAULT_POLICY",
    "PermissionPolicy",
    "DEFAULT_EVALUATOR",
    "PermissionDiff",
    "PermissionEvaluator",
    "can_manage_user_permissions",
    "get_custom_permissions",
    "get_effective_permissions",
    "get_permission_diff",
    "get_permission_source",
    "get_removed_permissions",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "is_manager_permission",
]
