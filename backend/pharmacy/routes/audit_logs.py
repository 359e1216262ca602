# Overview: Read-only API over the security event audit trail, scoped by pharmacy.

"""
Audit log routes.

super_admin reads the whole trail through VIEW_AUDIT_LOGS. Admins read the
events recorded against their own (and assigned) pharmacies. Events outside
the caller's pharmacies answer 404 rather than 403.
"""

from flask import Blueprint, jsonify, request, g

from ..decorators import require_admin_level, require_auth
from ..permissions import Role
from ..services import audit_service, permission_service


audit_logs_bp = Blueprint("audit_logs", __name__, url_prefix="/api/audit-logs")


def _platform_read_denied():
    """super_admin must hold VIEW_AUDIT_LOGS for the unscoped trail."""
    principal = g.principal
    if principal.role != Role.SUPER_ADMIN:
        return None
    try:
        permission_service.require_permission(principal, "VIEW_AUDIT_LOGS", resource=request.path)
    except permission_service.PermissionDeniedError:
        return jsonify({
            "error": "Permission denied",
            "kind": "PERMISSION_DENIED",
            "required_permission": "VIEW_AUDIT_LOGS",
        }), 403
    return None


def _bool_arg(name: str):
    value = request.args.get(name)
    if value is None:
        return None
    lowered = value.lower()
    if lowered not in ("true", "false"):
        raise audit_service.AuditQueryError(f"{name} must be true or false")
    return lowered == "true"


@audit_logs_bp.get("")
@require_auth
@require_admin_level
def list_audit_logs():
    """
    Newest-first security events.

    Query params: event_type, user_id, success, start, end (ISO-8601), limit, offset.
    """
    denied = _platform_read_denied()
    if denied:
        return denied

    try:
        report = audit_service.list_security_events(
            g.principal,
            user_id=request.args.get("user_id", type=int),
            event_type=request.args.get("event_type"),
            success=_bool_arg("success"),
            start=request.args.get("start"),
            end=request.args.get("end"),
            limit=request.args.get("limit", 200, type=int),
            offset=request.args.get("offset", 0, type=int),
        )
    except audit_service.AuditQueryError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(report), 200


@audit_logs_bp.get("/stats")
@require_auth
@require_admin_level
def audit_log_stats():
    denied = _platform_read_denied()
    if denied:
        return denied

    try:
        stats = audit_service.security_event_stats(
            g.principal,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except audit_service.AuditQueryError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(stats), 200


@audit_logs_bp.get("/<int:event_id>")
@require_auth
@require_admin_level
def get_audit_log(event_id: int):
    denied = _platform_read_denied()
    if denied:
        return denied

    event = audit_service.get_security_event(g.principal, event_id)
    if not event:
        return jsonify({"error": "Audit log not found"}), 404
    return jsonify(event.to_dict()), 200
