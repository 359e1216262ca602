# Overview: Service-layer operations for auth; password hashing, login and user lifecycle under the role hierarchy.

"""
Authentication and User Lifecycle Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

HIERARCHY: Users are created and managed only downward:
super_admin -> admin -> pharmacist/cashier. Creation also requires access to
the target pharmacy. A bootstrap path (created_by=None) exists for the CLI.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Branch, Pharmacy, User
from ..permissions import (
    Principal,
    Role,
    can_create_role,
    can_manage_role,
    get_filtered_permissions_for_role,
    get_invalid_permissions,
    is_valid_role,
)
from ..time_utils import utcnow
from .permission_service import InvalidPermissionError, log_security_event
from .pharmacy_access_service import validate_pharmacy_access
from .session_service import refresh_session_claims, revoke_all_user_sessions


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class RoleHierarchyError(ValueError):
    """Raised when an actor may not create or manage a user of the target role."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt at the configured cost."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


# =============================================================================
# USER CREATION
# =============================================================================

def _resolve_placement(role: str, pharmacy_id, branch_id) -> tuple[int | None, int | None]:
    """Return (pharmacy_id, branch_id) for a new user; a branch implies its pharmacy."""
    if role == Role.SUPER_ADMIN:
        if pharmacy_id is not None or branch_id is not None:
            raise ValueError("super_admin users do not belong to a pharmacy or branch")
        return None, None

    if branch_id is not None:
        branch = db.session.query(Branch).filter_by(id=branch_id).first()
        if not branch:
            raise ValueError("Branch not found")
        if pharmacy_id is not None and branch.pharmacy_id != pharmacy_id:
            raise ValueError("Branch does not belong to this pharmacy")
        pharmacy_id = branch.pharmacy_id

    if pharmacy_id is None:
        raise ValueError("Either branch_id or pharmacy_id must be provided")

    pharmacy = db.session.query(Pharmacy).filter_by(id=pharmacy_id).first()
    if not pharmacy:
        raise ValueError("Pharmacy not found")
    if not pharmacy.is_active:
        raise ValueError("Pharmacy is not active")

    return pharmacy_id, branch_id


def _email_taken(email: str, pharmacy_id, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User).filter(User.email == email)
    if pharmacy_id is None:
        query = query.filter(User.pharmacy_id.is_(None))
    else:
        query = query.filter(User.pharmacy_id == pharmacy_id)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(
    name: str,
    email: str,
    password: str,
    role: str,
    pharmacy_id: int | None = None,
    branch_id: int | None = None,
    is_manager: bool = False,
    permissions: list[str] | None = None,
    created_by: Principal | None = None,
) -> User:
    """
    Create a user under the role hierarchy.

    created_by is the acting principal. None is the bootstrap path used by
    the CLI and skips hierarchy and pharmacy checks.

    Custom permissions must be catalog codes. Codes excluded for the new
    user's role (e.g. FINALIZE_SALE for admins) are dropped.

    Raises:
        RoleHierarchyError: actor may not create this role
        AccessDeniedError: actor has no access to the target pharmacy
        InvalidPermissionError: unknown permission codes
        PasswordValidationError: weak password
        ValueError: bad placement or duplicate email
    """
    if not is_valid_role(role):
        raise ValueError(f"Invalid role: {role}")

    if created_by is not None and not can_create_role(created_by.role, role):
        raise RoleHierarchyError(f"{created_by.role} cannot create {role} users")

    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise ValueError("name and email are required")

    pharmacy_id, branch_id = _resolve_placement(role, pharmacy_id, branch_id)

    if created_by is not None and pharmacy_id is not None:
        validate_pharmacy_access(created_by, pharmacy_id, "create user", resource="users")

    permissions = list(permissions or [])
    invalid = get_invalid_permissions(permissions)
    if invalid:
        raise InvalidPermissionError(invalid)
    permissions = sorted(set(get_filtered_permissions_for_role(role, permissions)))

    if _email_taken(email, pharmacy_id):
        raise ValueError("Email already exists in this pharmacy")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_manager=bool(is_manager),
        permissions=permissions,
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        created_by_user_id=created_by.user_id if created_by else None,
    )

    db.session.add(user)
    db.session.commit()

    log_security_event(
        user_id=created_by.user_id if created_by else None,
        event_type="USER_CREATED",
        success=True,
        resource="users",
        action="CREATE_USER",
        pharmacy_id=pharmacy_id,
        branch_id=branch_id,
        details={"target_user_id": user.id, "role": role},
    )
    return user


def authenticate(email: str, password: str, pharmacy_id: int | None = None) -> User | None:
    """
    Authenticate user with email and password.

    If pharmacy_id is provided, authentication is scoped to that pharmacy.
    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    email = (email or "").strip().lower()
    query = db.session.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
    )
    if pharmacy_id is not None:
        query = query.filter(User.pharmacy_id == pharmacy_id)

    for user in query.order_by(User.id.asc()).all():
        if user.pharmacy_id is not None and not (user.pharmacy and user.pharmacy.is_active):
            continue
        if verify_password(password, user.password_hash):
            user.last_login_at = utcnow()
            db.session.commit()
            return user

    return None


# =============================================================================
# USER MANAGEMENT
# =============================================================================

def _require_manageable(actor: Principal, target: User, operation: str) -> None:
    if not can_manage_role(actor.role, target.role):
        raise RoleHierarchyError(f"{actor.role} cannot manage {target.role} users")
    if target.pharmacy_id is not None:
        validate_pharmacy_access(actor, target.pharmacy_id, operation, resource=f"users/{target.id}")


UPDATABLE_FIELDS = {"name", "email", "password", "role", "branch_id", "is_manager", "is_active"}
SELF_UPDATABLE_FIELDS = {"name", "password"}


def update_user(actor: Principal, target: User, changes: dict) -> User:
    """
    Apply changes to a user.

    Users may change their own name and password. Anything else needs
    can_manage_role over the target; a role change also needs
    can_create_role for the new role.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")

    is_self = actor.user_id is not None and actor.user_id == target.id
    if not (is_self and set(changes) <= SELF_UPDATABLE_FIELDS):
        _require_manageable(actor, target, "update user")

    if "role" in changes and changes["role"] != target.role:
        new_role = changes["role"]
        if not is_valid_role(new_role):
            raise ValueError(f"Invalid role: {new_role}")
        if new_role == Role.SUPER_ADMIN or target.role == Role.SUPER_ADMIN:
            raise RoleHierarchyError("super_admin role cannot be assigned or removed here")
        if not can_create_role(actor.role, new_role):
            raise RoleHierarchyError(f"{actor.role} cannot assign role {new_role}")
        target.role = new_role
        # Grants the new role may not hold are dropped
        target.permissions = sorted(set(get_filtered_permissions_for_role(new_role, target.permissions or [])))

    if "name" in changes:
        name = changes["name"].strip() if isinstance(changes["name"], str) else ""
        if not name:
            raise ValueError("name cannot be empty")
        target.name = name

    if "email" in changes:
        email = changes["email"].strip().lower() if isinstance(changes["email"], str) else ""
        if not email:
            raise ValueError("email cannot be empty")
        if _email_taken(email, target.pharmacy_id, exclude_user_id=target.id):
            raise ValueError("Email already exists in this pharmacy")
        target.email = email

    if "password" in changes:
        target.password_hash = hash_password(changes["password"])

    if "branch_id" in changes:
        branch_id = changes["branch_id"]
        if branch_id is not None:
            branch = db.session.query(Branch).filter_by(id=branch_id).first()
            if not branch or branch.pharmacy_id != target.pharmacy_id:
                raise ValueError("Branch does not belong to the user's pharmacy")
        target.branch_id = branch_id

    if "is_manager" in changes:
        target.is_manager = bool(changes["is_manager"])

    if "is_active" in changes:
        target.is_active = bool(changes["is_active"])

    db.session.commit()

    if not target.is_active or "password" in changes:
        revoke_all_user_sessions(target.id, reason="User updated")
    else:
        refresh_session_claims(target.id)

    log_security_event(
        user_id=actor.user_id,
        event_type="USER_UPDATED",
        success=True,
        resource=f"users/{target.id}",
        action="UPDATE_USER",
        pharmacy_id=target.pharmacy_id,
        branch_id=target.branch_id,
        details={"target_user_id": target.id, "fields": sorted(changes)},
    )
    return target


def deactivate_user(actor: Principal, target: User) -> User:
    """Soft-delete: deactivate and revoke every session."""
    if actor.user_id is not None and actor.user_id == target.id:
        raise ValueError("Users cannot deactivate themselves")
    _require_manageable(actor, target, "deactivate user")

    target.is_active = False
    db.session.commit()
    revoke_all_user_sessions(target.id, reason="User deactivated")

    log_security_event(
        user_id=actor.user_id,
        event_type="USER_DEACTIVATED",
        success=True,
        resource=f"users/{target.id}",
        action="DELETE_USER",
        pharmacy_id=target.pharmacy_id,
        branch_id=target.branch_id,
        details={"target_user_id": target.id},
    )
    return target
