# Overview: Flask API routes for permission catalog, checks and per-user permission administration.

# backend/pharmacy/routes/permissions.py
"""
Permission API routes

Provides endpoints for:
- Catalog browsing (by category, by role)
- Checks for the current session
- Per-user custom grants (view, replace, add, remove)
- Validation of permission code lists
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..permissions import (
    DEFAULT_EVALUATOR,
    ROLE_HIERARCHY,
    Role,
    get_invalid_permissions,
    get_permission_categories,
    get_permission_category,
    get_permission_description,
    get_permissions_by_role,
    validate_permission_code,
)
from ..services import permission_service
from ..services.permission_service import (
    InvalidPermissionError,
    PermissionAssignmentError,
    PermissionDeniedError,
)
from ..services.pharmacy_access_service import AccessDeniedError, validate_pharmacy_access
from ..decorators import require_auth, require_permission

permissions_bp = Blueprint("permissions", __name__, url_prefix="/api/permissions")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _codes_from_body(data: dict):
    codes = data.get("permissions")
    if not isinstance(codes, list):
        return None
    return codes


def _describe(codes) -> list[dict]:
    return [
        {
            "code": code,
            "description": get_permission_description(code),
            "category": get_permission_category(code),
        }
        for code in sorted(codes)
    ]


def _load_target(user_id: int) -> User | None:
    return db.session.query(User).filter_by(id=user_id).first()


# =============================================================================
# CATALOG
# =============================================================================

@permissions_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_permissions():
    """Permission catalog grouped by category."""
    categories = get_permission_categories()
    return jsonify({
        "categories": categories,
        "count": sum(len(c["permissions"]) for c in categories),
    })


@permissions_bp.get("/role/<role>")
@require_auth
@require_permission("VIEW_USERS")
def role_permissions(role: str):
    """Defaults, exclusions and hierarchy position of one role."""
    definition = ROLE_HIERARCHY.get(role)
    if definition is None:
        return jsonify({"error": "Role not found"}), 404

    return jsonify({
        "role": role,
        "level": definition.level,
        "scope": definition.scope,
        "can_create": sorted(definition.can_create),
        "can_manage": sorted(definition.can_manage),
        "default_permissions": _describe(get_permissions_by_role(role)),
        "excluded_permissions": sorted(definition.excluded_permissions),
    })


# =============================================================================
# CURRENT SESSION
# =============================================================================

@permissions_bp.get("/current")
@require_auth
def current_permissions():
    principal = g.principal
    effective = DEFAULT_EVALUATOR.get_effective_permissions(principal)
    return jsonify({
        "role": principal.role,
        "is_manager": principal.is_manager,
        "permissions": [
            dict(entry, source=DEFAULT_EVALUATOR.get_permission_source(principal, entry["code"]))
            for entry in _describe(effective)
        ],
        "count": len(effective),
    })


@permissions_bp.get("/check/<code>")
@require_auth
def check_permission(code: str):
    return jsonify({
        "permission": code,
        "valid": validate_permission_code(code),
        "granted": DEFAULT_EVALUATOR.has_permission(g.principal, code),
    })


@permissions_bp.post("/validate")
@require_auth
def validate_permissions_route():
    """
    Validate a list of permission codes against the catalog.

    Request body:
    - permissions: list[str]
    """
    codes = _codes_from_body(_json_body())
    if codes is None:
        return jsonify({"error": "permissions must be a list"}), 400
    invalid = get_invalid_permissions(codes)
    return jsonify({"valid": not invalid, "invalid_permissions": invalid})


# =============================================================================
# PER-USER ADMINISTRATION
# =============================================================================

def _admin_error_response(e: Exception):
    if isinstance(e, InvalidPermissionError):
        return jsonify({"error": "Invalid permissions", "invalid_permissions": e.codes}), 400
    if isinstance(e, PermissionAssignmentError):
        return jsonify({
            "error": str(e),
            "kind": "PERMISSION_NOT_ASSIGNABLE",
            "rejected_permissions": e.codes,
        }), 400
    if isinstance(e, PermissionDeniedError):
        return jsonify({
            "error": "Permission denied",
            "kind": "PERMISSION_DENIED",
            "required_permission": e.permission,
        }), 403
    if isinstance(e, AccessDeniedError):
        return jsonify({"error": str(e), "kind": "PHARMACY_ACCESS_DENIED"}), 403
    raise e


@permissions_bp.get("/user/<int:user_id>")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def get_user_permissions(user_id: int):
    target = _load_target(user_id)
    # super_admins are invisible below their own tier
    if not target or (target.role == Role.SUPER_ADMIN and g.principal.role != Role.SUPER_ADMIN):
        return jsonify({"error": "User not found"}), 404
    try:
        if target.pharmacy_id is not None:
            validate_pharmacy_access(g.principal, target.pharmacy_id, "view user permissions", resource=request.path)
    except AccessDeniedError as e:
        return _admin_error_response(e)

    return jsonify(permission_service.get_user_permission_summary(target))


def _change_user_permissions(user_id: int, operation):
    target = _load_target(user_id)
    if not target:
        return jsonify({"error": "User not found"}), 404

    data = _json_body()
    reset = bool(data.get("reset_to_role_defaults", False))
    codes = _codes_from_body(data)
    if codes is None and not reset:
        return jsonify({"error": "permissions must be a list"}), 400

    try:
        diff = operation(g.principal, target, codes or [], reset)
    except (InvalidPermissionError, PermissionAssignmentError, PermissionDeniedError, AccessDeniedError) as e:
        return _admin_error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user permissions")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "changes": diff.to_dict(),
        "summary": permission_service.get_user_permission_summary(target),
    })


@permissions_bp.put("/user/<int:user_id>")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def set_user_permissions(user_id: int):
    """
    Replace a user's custom grants.

    Request body:
    - permissions: list[str]
    - reset_to_role_defaults: bool (optional, clears custom grants)
    """
    return _change_user_permissions(
        user_id,
        lambda actor, target, codes, reset: permission_service.set_user_permissions(
            actor, target, codes, reset_to_role_defaults=reset
        ),
    )


@permissions_bp.post("/user/<int:user_id>/add")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def add_user_permissions(user_id: int):
    return _change_user_permissions(
        user_id,
        lambda actor, target, codes, reset: permission_service.add_user_permissions(actor, target, codes),
    )


@permissions_bp.post("/user/<int:user_id>/remove")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def remove_user_permissions(user_id: int):
    """Remove custom grants. Role defaults cannot be removed this way."""
    return _change_user_permissions(
        user_id,
        lambda actor, target, codes, reset: permission_service.remove_user_permissions(actor, target, codes),
    )
