# Overview: Permission checks, security event logging and administration of user permission grants.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and keep an audit trail of denials
and permission changes.

DESIGN PRINCIPLES:
- Fail closed: unknown roles and unknown codes grant nothing
- Log denials only: successful checks are not logged
- Exclusions win: no grant path can give a role a permission excluded for it
- Custom grants add to role defaults; removing a grant never removes a default
- Effective permissions are computed, never stored
"""

from __future__ import annotations

from flask import current_app, has_request_context, request

from ..extensions import db
from ..models import SecurityEvent, User
from ..permissions import (
    DEFAULT_EVALUATOR,
    Principal,
    get_invalid_permissions,
    get_permission_category,
    get_permission_description,
    get_permissions_by_role,
    is_permission_excluded_for_role,
)
from ..time_utils import utcnow
from .session_service import refresh_session_claims


class PermissionDeniedError(Exception):
    """Raised when a principal lacks a required permission."""

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(f"Permission denied: {permission}")


class InvalidPermissionError(ValueError):
    """Raised when permission codes are not in the catalog."""

    def __init__(self, codes):
        self.codes = list(codes)
        super().__init__(f"Invalid permissions: {', '.join(map(str, self.codes))}")


class PermissionAssignmentError(ValueError):
    """Raised when codes may not be granted to the target user's role."""

    def __init__(self, codes, role: str):
        self.codes = sorted(codes)
        self.role = role
        super().__init__(f"Permissions not allowed for role {role}: {', '.join(self.codes)}")


def _request_client() -> tuple[str | None, str | None]:
    if not has_request_context():
        return None, None
    return request.remote_addr, request.headers.get("User-Agent")


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    pharmacy_id: int | None = None,
    branch_id: int | None = None,
    details: dict | None = None,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    Client IP and user agent default to the current request, if any.

    event_type examples:
    - PERMISSION_DENIED, ROLE_REQUIRED, SCOPE_REQUIRED
    - PHARMACY_ACCESS_DENIED
    - LOGIN_FAILED, LOGIN_SUCCESS, LOGOUT
    - USER_CREATED, USER_UPDATED, USER_DEACTIVATED
    - PERMISSIONS_CHANGED
    - PHARMACY_ASSIGNED, PHARMACY_UNASSIGNED
    """
    if ip_address is None and user_agent is None:
        ip_address, user_agent = _request_client()

    event = SecurityEvent(
        user_id=user_id,
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


# =============================================================================
# CHECKS
# =============================================================================

def user_has_permission(user_id: int, permission_code: str) -> bool:
    """Check a persisted user. Inactive or unknown users have nothing."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return False
    return DEFAULT_EVALUATOR.has_permission(Principal.from_user(user), permission_code)


def get_user_permissions(user_id: int) -> set[str]:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return set()
    return set(DEFAULT_EVALUATOR.get_effective_permissions(Principal.from_user(user)))


def require_permission(
    principal: Principal,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require principal to have permission, raise PermissionDeniedError if not.

    Denials are logged to security_events.

    Usage:
        require_permission(g.principal, "CREATE_SALE", resource="/api/sales")
    """
    if DEFAULT_EVALUATOR.has_permission(principal, permission_code):
        return

    log_security_event(
        user_id=principal.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        pharmacy_id=principal.pharmacy_id,
        branch_id=principal.branch_id,
    )
    raise PermissionDeniedError(permission_code)


# =============================================================================
# SUMMARY
# =============================================================================

def _describe(code: str) -> dict:
    return {
        "code": code,
        "description": get_permission_description(code),
        "category": get_permission_category(code),
    }


def get_user_permission_summary(user: User) -> dict:
    """
    Full permission picture for one user.

    removed_from_defaults is informational: those defaults are still granted.
    """
    principal = Principal.from_user(user)
    evaluator = DEFAULT_EVALUATOR
    effective = evaluator.get_effective_permissions(principal)

    return {
        "user_id": user.id,
        "role": user.role,
        "is_manager": bool(user.is_manager),
        "effective_permissions": [
            dict(_describe(code), source=evaluator.get_permission_source(principal, code))
            for code in sorted(effective)
        ],
        "role_defaults": sorted(get_permissions_by_role(user.role)),
        "custom_permissions": sorted(evaluator.get_custom_permissions(principal)),
        "removed_from_defaults": sorted(evaluator.get_removed_permissions(principal)),
        "manager_permissions": sorted(
            code for code in effective if evaluator.get_permission_source(principal, code) == "manager"
        ),
    }


# =============================================================================
# ADMINISTRATION
# =============================================================================

def _authorize_change(actor: Principal, target: User, codes, action: str) -> None:
    from .pharmacy_access_service import validate_pharmacy_access

    invalid = get_invalid_permissions(codes)
    if invalid:
        raise InvalidPermissionError(invalid)

    if not DEFAULT_EVALUATOR.can_manage_user_permissions(actor, Principal.from_user(target)):
        log_security_event(
            user_id=actor.user_id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=f"users/{target.id}/permissions",
            action=action,
            reason=f"Cannot manage permissions of {target.role}",
            pharmacy_id=actor.pharmacy_id,
            branch_id=actor.branch_id,
        )
        raise PermissionDeniedError("MANAGE_PERMISSIONS")

    if target.pharmacy_id is not None:
        validate_pharmacy_access(
            actor,
            target.pharmacy_id,
            "manage user permissions",
            resource=f"users/{target.id}/permissions",
        )


def _reject_excluded(target: User, codes) -> None:
    excluded = {code for code in codes if is_permission_excluded_for_role(target.role, code)}
    if excluded:
        raise PermissionAssignmentError(excluded, target.role)


def _apply_custom_permissions(actor: Principal, target: User, new_codes, action: str):
    old_codes = list(target.permissions or [])
    diff = DEFAULT_EVALUATOR.get_permission_diff(old_codes, new_codes)

    target.permissions = sorted(set(new_codes))
    db.session.commit()

    if diff.changed:
        log_security_event(
            user_id=actor.user_id,
            event_type="PERMISSIONS_CHANGED",
            success=True,
            resource=f"users/{target.id}/permissions",
            action=action,
            pharmacy_id=target.pharmacy_id,
            branch_id=target.branch_id,
            details=dict(diff.to_dict(), target_user_id=target.id),
        )
        refresh_session_claims(target.id)
        current_app.logger.info(
            "Permissions for user %s changed by %s: +%s -%s",
            target.id,
            actor.user_id,
            sorted(diff.added),
            sorted(diff.removed),
        )
    return diff


def set_user_permissions(
    actor: Principal,
    target: User,
    codes,
    reset_to_role_defaults: bool = False,
):
    """
    Replace a user's custom grants.

    reset_to_role_defaults clears every custom grant, leaving the role
    defaults (and manager tier) as the only source. Returns the PermissionDiff.
    """
    codes = [] if reset_to_role_defaults else list(codes or [])
    _authorize_change(actor, target, codes, "SET_PERMISSIONS")
    _reject_excluded(target, codes)
    return _apply_custom_permissions(actor, target, codes, "SET_PERMISSIONS")


def add_user_permissions(actor: Principal, target: User, codes):
    codes = list(codes or [])
    _authorize_change(actor, target, codes, "ADD_PERMISSIONS")
    _reject_excluded(target, codes)
    merged = set(target.permissions or []) | set(codes)
    return _apply_custom_permissions(actor, target, merged, "ADD_PERMISSIONS")


def remove_user_permissions(actor: Principal, target: User, codes):
    """
    Drop custom grants. Role defaults named here stay granted.
    """
    codes = list(codes or [])
    _authorize_change(actor, target, codes, "REMOVE_PERMISSIONS")
    remaining = set(target.permissions or []) - set(codes)
    return _apply_custom_permissions(actor, target, remaining, "REMOVE_PERMISSIONS")
