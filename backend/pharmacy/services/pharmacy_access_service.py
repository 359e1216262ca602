# Overview: Pharmacy and branch access scoping; assignment-based, independent of the permission catalog.

"""
Pharmacy/Branch Access Scoping

WHY: Permissions say what a user may do. Access scoping says where. A user
may act on a pharmacy's data when:

1. they are super_admin (system scope), or
2. it is their primary pharmacy (User.pharmacy_id), or
3. they hold an active UserPharmacyAssignment for it.

Token principals do not carry assignments, so the pure checks skip step 3
for them. That makes the token check strictly more restrictive than the
record check. The validate_* and scoping helpers used by routes load the
assignments first (with_assignments) so request handling honors step 3.

USAGE:
    from pharmacy.services.pharmacy_access_service import validate_pharmacy_access

    validate_pharmacy_access(g.principal, pharmacy_id, "view pharmacy")
"""

from __future__ import annotations

from dataclasses import replace

from ..extensions import db
from ..models import Branch, Pharmacy, User, UserPharmacyAssignment
from ..permissions import Principal, Role, Scope, get_role_scope
from ..time_utils import utcnow
from .permission_service import log_security_event


class AccessDeniedError(Exception):
    """Raised when a principal may not touch the target pharmacy or branch."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Access denied: {operation}")


# =============================================================================
# DECISIONS
# =============================================================================

def has_pharmacy_access(principal: Principal, target_pharmacy_id) -> bool:
    if principal.role == Role.SUPER_ADMIN:
        return True
    if target_pharmacy_id is None:
        return False
    if principal.pharmacy_id is not None and principal.pharmacy_id == target_pharmacy_id:
        return True
    if principal.assigned_pharmacy_ids is None:
        # Token principal: no assignment list to consult
        return False
    return target_pharmacy_id in principal.assigned_pharmacy_ids


def has_pharmacy_access_from_token(principal: Principal, target_pharmacy_id) -> bool:
    """
    Fast path for request handling: primary pharmacy only.

    Never grants more than has_pharmacy_access on the full record.
    """
    if principal.role == Role.SUPER_ADMIN:
        return True
    return target_pharmacy_id is not None and principal.pharmacy_id == target_pharmacy_id


def user_has_pharmacy_access(user_id: int, target_pharmacy_id) -> bool:
    """Full check against the persisted user, including assignments."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return False
    return has_pharmacy_access(Principal.from_user(user), target_pharmacy_id)


def get_user_pharmacy_ids(user_id: int) -> list[int] | None:
    """
    Pharmacy IDs a user may access.

    Returns None for super_admin (all pharmacies) and [] for unknown users.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        return []
    if user.role == Role.SUPER_ADMIN:
        return None
    ids = {a.pharmacy_id for a in user.pharmacy_assignments if a.is_active and a.pharmacy.is_active}
    if user.pharmacy_id is not None:
        ids.add(user.pharmacy_id)
    return sorted(ids)


def with_assignments(principal: Principal) -> Principal:
    """
    Principal with its active pharmacy assignments loaded.

    Assignments to deactivated pharmacies are ignored.

    Record principals and super_admin are returned unchanged.
    """
    if principal.assigned_pharmacy_ids is not None or principal.role == Role.SUPER_ADMIN:
        return principal
    if principal.user_id is None:
        return replace(principal, assigned_pharmacy_ids=frozenset())
    rows = db.session.query(UserPharmacyAssignment.pharmacy_id).join(
        Pharmacy, Pharmacy.id == UserPharmacyAssignment.pharmacy_id
    ).filter(
        UserPharmacyAssignment.user_id == principal.user_id,
        UserPharmacyAssignment.is_active.is_(True),
        Pharmacy.is_active.is_(True),
    ).all()
    return replace(principal, assigned_pharmacy_ids=frozenset(row[0] for row in rows))


def accessible_pharmacy_ids(principal: Principal) -> set[int] | None:
    """Pharmacy IDs visible to a principal; None means all."""
    if principal.role == Role.SUPER_ADMIN:
        return None
    ids = set(principal.assigned_pharmacy_ids or ())
    if principal.pharmacy_id is not None:
        ids.add(principal.pharmacy_id)
    return ids


def validate_pharmacy_access(
    principal: Principal,
    target_pharmacy_id,
    operation: str,
    resource: str | None = None,
) -> None:
    """
    Require pharmacy access, raise AccessDeniedError if not.

    Full check: a token principal's assignments are loaded before deciding.
    Denials are logged as PHARMACY_ACCESS_DENIED.
    """
    if has_pharmacy_access(principal, target_pharmacy_id):
        return
    if has_pharmacy_access(with_assignments(principal), target_pharmacy_id):
        return
    log_security_event(
        user_id=principal.user_id,
        event_type="PHARMACY_ACCESS_DENIED",
        success=False,
        resource=resource,
        action=operation,
        reason=f"No access to pharmacy {target_pharmacy_id}",
        pharmacy_id=principal.pharmacy_id,
        branch_id=principal.branch_id,
        details={"target_pharmacy_id": target_pharmacy_id},
    )
    raise AccessDeniedError(operation)


def has_branch_access(principal: Principal, branch) -> bool:
    """
    Branch-level scoping by role scope.

    system scope sees every branch, pharmacy scope sees the branches of
    accessible pharmacies, branch scope sees only its own branch.
    """
    if branch is None:
        return False
    scope = get_role_scope(principal.role)
    if scope == Scope.SYSTEM:
        return True
    if scope == Scope.PHARMACY:
        return has_pharmacy_access(principal, branch.pharmacy_id)
    return principal.branch_id is not None and principal.branch_id == branch.id


def validate_branch_access(principal: Principal, branch, operation: str, resource: str | None = None) -> None:
    if has_branch_access(with_assignments(principal), branch):
        return
    log_security_event(
        user_id=principal.user_id,
        event_type="PHARMACY_ACCESS_DENIED",
        success=False,
        resource=resource,
        action=operation,
        reason=f"No access to branch {branch.id if branch is not None else None}",
        pharmacy_id=principal.pharmacy_id,
        branch_id=principal.branch_id,
    )
    raise AccessDeniedError(operation)


def scope_query_to_pharmacies(query, column, principal: Principal):
    """Filter a query to rows whose pharmacy column the principal can access."""
    ids = accessible_pharmacy_ids(with_assignments(principal))
    if ids is None:
        return query
    if not ids:
        return query.filter(db.false())
    return query.filter(column.in_(sorted(ids)))


# =============================================================================
# ASSIGNMENTS
# =============================================================================

def list_pharmacy_assignments(
    *,
    user_id: int | None = None,
    pharmacy_id: int | None = None,
    include_inactive: bool = False,
) -> list[UserPharmacyAssignment]:
    query = db.session.query(UserPharmacyAssignment)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    if pharmacy_id is not None:
        query = query.filter_by(pharmacy_id=pharmacy_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(UserPharmacyAssignment.id.asc()).all()


def grant_pharmacy_assignment(
    *,
    user_id: int,
    pharmacy_id: int,
    assigned_by_user_id: int | None = None,
) -> UserPharmacyAssignment:
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")
    if user.role == Role.SUPER_ADMIN:
        raise ValueError("super_admin already has access to every pharmacy")

    pharmacy = db.session.query(Pharmacy).filter_by(id=pharmacy_id).first()
    if not pharmacy:
        raise ValueError("Pharmacy not found")
    if not pharmacy.is_active:
        raise ValueError("Pharmacy is not active")
    if user.pharmacy_id == pharmacy_id:
        raise ValueError("Pharmacy is already the user's primary pharmacy")

    assignment = db.session.query(UserPharmacyAssignment).filter_by(
        user_id=user_id,
        pharmacy_id=pharmacy_id,
    ).first()

    if assignment and assignment.is_active:
        return assignment

    if assignment:
        assignment.is_active = True
        assignment.assigned_by_user_id = assigned_by_user_id
        assignment.assigned_at = utcnow()
        assignment.revoked_at = None
    else:
        assignment = UserPharmacyAssignment(
            user_id=user_id,
            pharmacy_id=pharmacy_id,
            assigned_by_user_id=assigned_by_user_id,
            is_active=True,
        )
        db.session.add(assignment)

    db.session.commit()

    log_security_event(
        user_id=assigned_by_user_id,
        event_type="PHARMACY_ASSIGNED",
        success=True,
        resource=f"users/{user_id}",
        action="ASSIGN_PHARMACY",
        pharmacy_id=pharmacy_id,
        details={"target_user_id": user_id, "pharmacy_id": pharmacy_id},
    )
    return assignment


def revoke_pharmacy_assignment(
    *,
    user_id: int,
    pharmacy_id: int,
    revoked_by_user_id: int | None = None,
) -> bool:
    assignment = db.session.query(UserPharmacyAssignment).filter_by(
        user_id=user_id,
        pharmacy_id=pharmacy_id,
        is_active=True,
    ).first()
    if not assignment:
        return False

    assignment.is_active = False
    assignment.revoked_at = utcnow()
    db.session.commit()

    log_security_event(
        user_id=revoked_by_user_id,
        event_type="PHARMACY_UNASSIGNED",
        success=True,
        resource=f"users/{user_id}",
        action="UNASSIGN_PHARMACY",
        pharmacy_id=pharmacy_id,
        details={"target_user_id": user_id, "pharmacy_id": pharmacy_id},
    )
    return True


def get_branch(branch_id: int) -> Branch | None:
    return db.session.query(Branch).filter_by(id=branch_id).first()
