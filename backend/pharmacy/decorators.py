# Overview: Request and permission decorators for API routes.

"""
Route guards.

@require_auth goes first and establishes g.principal from the session claims.
Every other guard assumes it ran; without a principal they answer 401.
A failing guard returns the JSON denial and the wrapped view never runs.

Denial bodies:
    401 {"error": "Authentication required", "kind": "AUTHENTICATION_REQUIRED"}
    403 {"error": ..., "kind": "PERMISSION_DENIED" | "ROLE_REQUIRED" | "SCOPE_REQUIRED", "required_...": ...}
"""

from functools import wraps
from flask import request, jsonify, g

from .permissions import (
    DEFAULT_EVALUATOR,
    Role,
    can_create_role,
    can_manage_role,
    get_role_scope,
    scope_includes,
)
from .services import session_service, permission_service


def _principal():
    return getattr(g, 'principal', None)


def _unauthenticated(message: str = "Authentication required"):
    return jsonify({"error": message, "kind": "AUTHENTICATION_REQUIRED"}), 401


def _log_denial(principal, event_type: str, action: str, reason: str) -> None:
    permission_service.log_security_event(
        user_id=principal.user_id,
        event_type=event_type,
        success=False,
        resource=request.path,
        action=action,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        pharmacy_id=principal.pharmacy_id,
        branch_id=principal.branch_id,
    )


def require_auth(f):
    """
    Require authentication and establish request context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.principal: Principal built from the session claims
    - g.pharmacy_id / g.branch_id: tenant placement from the claims
    - g.session_context: The full SessionContext object

    Returns 401 if the header is missing, the token is invalid, expired or
    revoked, or the user or their pharmacy was deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthenticated()

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token) if token else None

        if not context:
            return _unauthenticated("Invalid or expired token")

        g.current_user = context.user
        g.principal = context.principal
        g.pharmacy_id = context.principal.pharmacy_id
        g.branch_id = context.principal.branch_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


# =============================================================================
# PERMISSION GUARDS
# =============================================================================

def require_permission(permission_code: str):
    """Require a specific permission."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()

            try:
                permission_service.require_permission(
                    principal,
                    permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                )
            except permission_service.PermissionDeniedError:
                return jsonify({
                    "error": "Permission denied",
                    "kind": "PERMISSION_DENIED",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()

            if not DEFAULT_EVALUATOR.has_any_permission(principal, permission_codes):
                _log_denial(
                    principal,
                    "PERMISSION_DENIED",
                    f"ANY_OF:{','.join(permission_codes)}",
                    f"Missing any of: {', '.join(permission_codes)}",
                )
                return jsonify({
                    "error": "Permission denied",
                    "kind": "PERMISSION_DENIED",
                    "required_permissions": list(permission_codes),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_all_permissions(*permission_codes):
    """Require all of the specified permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()

            missing = [
                code for code in permission_codes
                if not DEFAULT_EVALUATOR.has_permission(principal, code)
            ]
            if missing:
                _log_denial(
                    principal,
                    "PERMISSION_DENIED",
                    f"ALL_OF:{','.join(permission_codes)}",
                    f"Missing: {', '.join(missing)}",
                )
                return jsonify({
                    "error": "Permission denied",
                    "kind": "PERMISSION_DENIED",
                    "required_permissions": list(permission_codes),
                    "missing_permissions": missing,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


# =============================================================================
# ROLE GUARDS
# =============================================================================

def _role_denied(principal, required_roles, reason: str):
    _log_denial(principal, "ROLE_REQUIRED", f"ROLES:{','.join(required_roles)}", reason)
    return jsonify({
        "error": "Insufficient role",
        "kind": "ROLE_REQUIRED",
        "required_roles": list(required_roles),
    }), 403


def require_roles(*roles):
    """Require one of the given roles. super_admin always passes."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()
            if principal.role != Role.SUPER_ADMIN and principal.role not in roles:
                return _role_denied(principal, roles, f"Role {principal.role} not in {', '.join(roles)}")
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_super_admin(f):
    """Require the super_admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = _principal()
        if principal is None:
            return _unauthenticated()
        if principal.role != Role.SUPER_ADMIN:
            return _role_denied(principal, (Role.SUPER_ADMIN,), "Super admin access required")
        return f(*args, **kwargs)
    return decorated_function


def require_admin_level(f):
    """Require admin or super_admin."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = _principal()
        if principal is None:
            return _unauthenticated()
        if principal.role not in (Role.SUPER_ADMIN, Role.ADMIN):
            return _role_denied(principal, (Role.SUPER_ADMIN, Role.ADMIN), "Admin access required")
        return f(*args, **kwargs)
    return decorated_function


def require_authenticated(f):
    """Require any authenticated principal with a known role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = _principal()
        if principal is None or principal.role not in (
            Role.SUPER_ADMIN, Role.ADMIN, Role.PHARMACIST, Role.CASHIER
        ):
            return _unauthenticated()
        return f(*args, **kwargs)
    return decorated_function


def _resolve_target(target):
    return target() if callable(target) else target


def require_can_create_role(target):
    """
    Require the principal to be allowed to create users of a role.

    target is a role string or a zero-argument callable that reads it from
    the request (e.g. lambda: (request.get_json(silent=True) or {}).get("role")).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()
            target_role = _resolve_target(target)
            if not can_create_role(principal.role, target_role):
                _log_denial(
                    principal,
                    "ROLE_REQUIRED",
                    f"CREATE_ROLE:{target_role}",
                    f"{principal.role} cannot create {target_role}",
                )
                return jsonify({
                    "error": "Cannot create users with this role",
                    "kind": "ROLE_REQUIRED",
                    "target_role": target_role,
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def require_can_manage_role(target):
    """Require the principal to be allowed to manage users of a role (string or callable)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()
            target_role = _resolve_target(target)
            if not can_manage_role(principal.role, target_role):
                _log_denial(
                    principal,
                    "ROLE_REQUIRED",
                    f"MANAGE_ROLE:{target_role}",
                    f"{principal.role} cannot manage {target_role}",
                )
                return jsonify({
                    "error": "Cannot manage users with this role",
                    "kind": "ROLE_REQUIRED",
                    "target_role": target_role,
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


# =============================================================================
# SCOPE GUARD
# =============================================================================

def require_scope(required_scope: str):
    """Require a data scope: system passes everything, pharmacy passes pharmacy and branch."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = _principal()
            if principal is None:
                return _unauthenticated()
            held = get_role_scope(principal.role)
            if not scope_includes(held, required_scope):
                _log_denial(
                    principal,
                    "SCOPE_REQUIRED",
                    f"SCOPE:{required_scope}",
                    f"Scope {held} does not include {required_scope}",
                )
                return jsonify({
                    "error": "Insufficient scope",
                    "kind": "SCOPE_REQUIRED",
                    "required_scope": required_scope,
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
