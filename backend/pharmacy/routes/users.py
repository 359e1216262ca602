# Overview: Flask API routes for user management; parses input and returns JSON responses.

# backend/pharmacy/routes/users.py
"""
User management routes.

Users are listed within the caller's scope, created and managed strictly
down the role hierarchy, and deleted by deactivation.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_EVALUATOR, Principal, Role, Scope, get_role_scope
from ..services import auth_service, permission_service
from ..services.auth_service import PasswordValidationError, RoleHierarchyError
from ..services.permission_service import InvalidPermissionError, PermissionDeniedError
from ..services.pharmacy_access_service import (
    AccessDeniedError,
    has_pharmacy_access,
    scope_query_to_pharmacies,
    with_assignments,
)
from ..decorators import require_auth, require_permission, require_can_create_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _is_visible(principal: Principal, user: User) -> bool:
    if principal.role == Role.SUPER_ADMIN:
        return True
    if user.role == Role.SUPER_ADMIN:
        return False
    if not has_pharmacy_access(with_assignments(principal), user.pharmacy_id):
        return False
    if get_role_scope(principal.role) == Scope.BRANCH:
        return user.id == principal.user_id or (
            principal.branch_id is not None and user.branch_id == principal.branch_id
        )
    return True


def _get_visible_user(user_id: int) -> User | None:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not _is_visible(g.principal, user):
        return None
    return user


def _error_response(e: Exception):
    if isinstance(e, RoleHierarchyError):
        return jsonify({"error": str(e), "kind": "ROLE_REQUIRED"}), 403
    if isinstance(e, AccessDeniedError):
        return jsonify({"error": str(e), "kind": "PHARMACY_ACCESS_DENIED"}), 403
    if isinstance(e, InvalidPermissionError):
        return jsonify({"error": "Invalid permissions", "invalid_permissions": e.codes}), 400
    return jsonify({"error": str(e)}), 400


def _with_permissions(user: User) -> dict:
    user_dict = user.to_dict()
    user_dict["effective_permissions"] = sorted(
        DEFAULT_EVALUATOR.get_effective_permissions(Principal.from_user(user))
    )
    return user_dict


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    """
    List users visible to the caller.

    Query params:
    - include_inactive: bool (default false)
    - role: str
    - pharmacy_id: int
    - branch_id: int
    """
    principal = g.principal
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    role = request.args.get("role")
    pharmacy_id = request.args.get("pharmacy_id", type=int)
    branch_id = request.args.get("branch_id", type=int)

    query = db.session.query(User)
    if principal.role != Role.SUPER_ADMIN:
        query = scope_query_to_pharmacies(query, User.pharmacy_id, principal)
        if get_role_scope(principal.role) == Scope.BRANCH:
            if principal.branch_id is None:
                query = query.filter(User.id == principal.user_id)
            else:
                query = query.filter(User.branch_id == principal.branch_id)

    if not include_inactive:
        query = query.filter_by(is_active=True)
    if role:
        query = query.filter_by(role=role)
    if pharmacy_id is not None:
        query = query.filter_by(pharmacy_id=pharmacy_id)
    if branch_id is not None:
        query = query.filter_by(branch_id=branch_id)

    users = query.order_by(User.name.asc(), User.id.asc()).all()
    return jsonify({"users": [u.to_dict() for u in users], "count": len(users)})


@users_bp.post("")
@require_auth
@require_permission("CREATE_USER")
@require_can_create_role(lambda: _json_body().get("role"))
def create_user():
    """
    Create a user one level below the caller.

    Request body:
    - name, email, password, role: str (required)
    - pharmacy_id / branch_id: int (one required except for super_admin)
    - is_manager: bool
    - permissions: list[str] (custom grants)
    """
    data = _json_body()
    for field in ("name", "email", "password", "role"):
        if not isinstance(data.get(field), str) or not data.get(field):
            return jsonify({"error": f"{field} is required"}), 400
    permissions = data.get("permissions") or []
    if not isinstance(permissions, list):
        return jsonify({"error": "permissions must be a list"}), 400

    try:
        user = auth_service.create_user(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
            pharmacy_id=data.get("pharmacy_id"),
            branch_id=data.get("branch_id"),
            is_manager=bool(data.get("is_manager", False)),
            permissions=permissions,
            created_by=g.principal,
        )
    except (RoleHierarchyError, AccessDeniedError, InvalidPermissionError, PasswordValidationError, ValueError) as e:
        db.session.rollback()
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": _with_permissions(user)}), 201


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("VIEW_USERS")
def get_user(user_id: int):
    user = _get_visible_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify({"user": _with_permissions(user)})


@users_bp.patch("/<int:user_id>")
@require_auth
def update_user(user_id: int):
    """
    Update a user.

    Anyone may change their own name and password. Everything else needs
    UPDATE_USER and management rights over the target's role.
    """
    principal = g.principal
    is_self = user_id == principal.user_id
    user = g.current_user if is_self else _get_visible_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    data = _json_body()
    if not data:
        return jsonify({"error": "No changes provided"}), 400

    if not (is_self and set(data) <= auth_service.SELF_UPDATABLE_FIELDS):
        try:
            permission_service.require_permission(principal, "UPDATE_USER", resource=request.path)
        except PermissionDeniedError:
            return jsonify({
                "error": "Permission denied",
                "kind": "PERMISSION_DENIED",
                "required_permission": "UPDATE_USER",
            }), 403

    try:
        user = auth_service.update_user(principal, user, data)
    except (RoleHierarchyError, AccessDeniedError, PasswordValidationError, ValueError) as e:
        db.session.rollback()
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": _with_permissions(user)})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("DELETE_USER")
def delete_user(user_id: int):
    """Deactivate a user and revoke their sessions."""
    user = _get_visible_user(user_id)
    if not user:
        return jsonify({"error": "User not found"}), 404

    try:
        user = auth_service.deactivate_user(g.principal, user)
    except (RoleHierarchyError, AccessDeniedError, ValueError) as e:
        db.session.rollback()
        return _error_response(e)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to deactivate user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"user": user.to_dict(), "message": "User deactivated"})
