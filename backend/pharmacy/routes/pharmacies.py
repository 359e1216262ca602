# Overview: Flask API routes for pharmacies, branches and pharmacy assignments.

from flask import Blueprint, jsonify, request, g

from ..decorators import (
    require_auth,
    require_permission,
    require_scope,
    require_super_admin,
)
from ..models import Pharmacy
from ..extensions import db
from ..permissions import Role, Scope, get_role_scope
from ..services import pharmacy_access_service, pharmacy_service
from ..services.pharmacy_access_service import AccessDeniedError


pharmacies_bp = Blueprint("pharmacies", __name__, url_prefix="/api/pharmacies")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _access_denied(exc: AccessDeniedError):
    return jsonify({"error": str(exc), "kind": "PHARMACY_ACCESS_DENIED"}), 403


# =============================================================================
# PHARMACIES
# =============================================================================

@pharmacies_bp.get("")
@require_auth
@require_permission("VIEW_PHARMACY_INFO")
def list_pharmacies():
    query = pharmacy_access_service.scope_query_to_pharmacies(
        db.session.query(Pharmacy), Pharmacy.id, g.principal
    )
    pharmacies = pharmacy_service.list_pharmacies(query)
    return jsonify({"pharmacies": [p.to_dict() for p in pharmacies], "count": len(pharmacies)}), 200


@pharmacies_bp.post("")
@require_auth
@require_super_admin
@require_permission("MANAGE_PHARMACY")
def create_pharmacy():
    data = _json_body()
    try:
        pharmacy = pharmacy_service.create_pharmacy(name=data.get("name"), code=data.get("code"))
    except pharmacy_service.PharmacyError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(pharmacy.to_dict()), 201


@pharmacies_bp.get("/<int:pharmacy_id>")
@require_auth
@require_permission("VIEW_PHARMACY_INFO")
def get_pharmacy(pharmacy_id: int):
    try:
        pharmacy_access_service.validate_pharmacy_access(
            g.principal, pharmacy_id, "view pharmacy", resource=request.path
        )
    except AccessDeniedError as exc:
        return _access_denied(exc)

    pharmacy = pharmacy_service.get_pharmacy(pharmacy_id)
    if not pharmacy:
        return jsonify({"error": "Pharmacy not found"}), 404
    return jsonify(pharmacy.to_dict()), 200


@pharmacies_bp.patch("/<int:pharmacy_id>")
@require_auth
@require_super_admin
@require_permission("MANAGE_PHARMACY")
def update_pharmacy(pharmacy_id: int):
    """
    Activate or deactivate a pharmacy.

    Sessions of its users are revoked on their next request while it is inactive.
    """
    is_active = _json_body().get("is_active")
    if not isinstance(is_active, bool):
        return jsonify({"error": "is_active must be a boolean"}), 400
    try:
        pharmacy = pharmacy_service.set_pharmacy_active(pharmacy_id, is_active)
    except pharmacy_service.PharmacyError as exc:
        return jsonify({"error": str(exc)}), 404
    return jsonify(pharmacy.to_dict()), 200


# =============================================================================
# ASSIGNMENTS (super admin)
# =============================================================================

@pharmacies_bp.get("/<int:pharmacy_id>/assignments")
@require_auth
@require_super_admin
def list_assignments(pharmacy_id: int):
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    assignments = pharmacy_access_service.list_pharmacy_assignments(
        pharmacy_id=pharmacy_id,
        include_inactive=include_inactive,
    )
    return jsonify({"assignments": [a.to_dict() for a in assignments]}), 200


@pharmacies_bp.post("/<int:pharmacy_id>/assignments")
@require_auth
@require_super_admin
def create_assignment(pharmacy_id: int):
    user_id = _json_body().get("user_id")
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        return jsonify({"error": "user_id is required"}), 400
    try:
        assignment = pharmacy_access_service.grant_pharmacy_assignment(
            user_id=user_id,
            pharmacy_id=pharmacy_id,
            assigned_by_user_id=g.principal.user_id,
        )
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(assignment.to_dict()), 201


@pharmacies_bp.delete("/<int:pharmacy_id>/assignments/<int:user_id>")
@require_auth
@require_super_admin
def delete_assignment(pharmacy_id: int, user_id: int):
    revoked = pharmacy_access_service.revoke_pharmacy_assignment(
        user_id=user_id,
        pharmacy_id=pharmacy_id,
        revoked_by_user_id=g.principal.user_id,
    )
    if not revoked:
        return jsonify({"error": "Assignment not found"}), 404
    return jsonify({"message": "Assignment revoked"}), 200


# =============================================================================
# BRANCHES
# =============================================================================

@pharmacies_bp.get("/<int:pharmacy_id>/branches")
@require_auth
@require_permission("VIEW_BRANCHES")
def list_branches(pharmacy_id: int):
    principal = g.principal
    try:
        pharmacy_access_service.validate_pharmacy_access(
            principal, pharmacy_id, "view branches", resource=request.path
        )
    except AccessDeniedError as exc:
        return _access_denied(exc)

    branches = pharmacy_service.list_branches(pharmacy_id)
    if principal.role != Role.SUPER_ADMIN and get_role_scope(principal.role) == Scope.BRANCH:
        branches = [b for b in branches if pharmacy_access_service.has_branch_access(principal, b)]
    return jsonify({"branches": [b.to_dict() for b in branches], "count": len(branches)}), 200


@pharmacies_bp.post("/<int:pharmacy_id>/branches")
@require_auth
@require_permission("CREATE_BRANCH")
@require_scope(Scope.PHARMACY)
def create_branch(pharmacy_id: int):
    try:
        pharmacy_access_service.validate_pharmacy_access(
            g.principal, pharmacy_id, "create branch", resource=request.path
        )
    except AccessDeniedError as exc:
        return _access_denied(exc)

    data = _json_body()
    try:
        branch = pharmacy_service.create_branch(
            pharmacy_id,
            name=data.get("name"),
            code=data.get("code"),
            address=data.get("address"),
        )
    except pharmacy_service.PharmacyError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(branch.to_dict()), 201


@pharmacies_bp.patch("/branches/<int:branch_id>")
@require_auth
@require_permission("UPDATE_BRANCH")
def update_branch(branch_id: int):
    branch = pharmacy_access_service.get_branch(branch_id)
    if not branch:
        return jsonify({"error": "Branch not found"}), 404
    try:
        pharmacy_access_service.validate_branch_access(
            g.principal, branch, "update branch", resource=request.path
        )
    except AccessDeniedError as exc:
        return _access_denied(exc)

    data = _json_body()
    try:
        branch = pharmacy_service.update_branch(
            branch,
            name=data.get("name"),
            code=data.get("code"),
            address=data.get("address"),
            is_active=data.get("is_active"),
        )
    except pharmacy_service.PharmacyError as exc:
        db.session.rollback()
        return jsonify({"error": str(exc)}), 400
    return jsonify(branch.to_dict()), 200
