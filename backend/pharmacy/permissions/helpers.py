# Overview: Utility functions for permission lookups and validation.

from .categories import CATEGORY_INFO, PermissionCategory
from .definitions import ALL_PERMISSION_CODES, PERMISSION_DEFINITIONS

_DEFINITIONS_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    perm = _DEFINITIONS_BY_CODE.get(code)
    if perm is None:
        return None
    return {
        "code": perm[0],
        "name": perm[1],
        "description": perm[2],
        "category": perm[3],
    }


def get_permission_description(code) -> str:
    """Human-readable label for a permission, or the code itself if undescribed."""
    perm = _DEFINITIONS_BY_CODE.get(code) if isinstance(code, str) else None
    if perm is None or not perm[2]:
        return code
    return perm[2]


def get_permission_category(code) -> str:
    """Category key for a permission, or UNKNOWN."""
    perm = _DEFINITIONS_BY_CODE.get(code) if isinstance(code, str) else None
    if perm is None:
        return PermissionCategory.UNKNOWN
    return perm[3]


def get_permission_categories() -> list[dict]:
    """Catalog grouped by category, in display order."""
    grouped = []
    for key, info in CATEGORY_INFO.items():
        grouped.append({
            "category_key": key,
            "name": info["name"],
            "description": info["description"],
            "permissions": [
                {"key": perm[0], "name": perm[1], "description": perm[2]}
                for perm in get_permissions_by_category(key)
            ],
        })
    return grouped


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return isinstance(code, str) and code in ALL_PERMISSION_CODES


def validate_permissions(codes) -> bool:
    """True iff every element is a catalog permission code."""
    return all(validate_permission_code(code) for code in codes)


def get_invalid_permissions(codes) -> list[str]:
    """Codes not present in the catalog, in input order."""
    return [code for code in codes if not validate_permission_code(code)]
