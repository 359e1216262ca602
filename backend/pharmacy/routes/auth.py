# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pharmacy/routes/auth.py
"""
Authentication API routes

Self-registration does not exist: users are created by someone above them
in the role hierarchy (POST /api/users) or through the CLI.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..permissions import DEFAULT_EVALUATOR, Principal, get_role_level, get_role_scope
from ..services import auth_service
from ..services import session_service
from ..services import permission_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(principal) -> dict:
    return {
        "role": principal.role,
        "scope": get_role_scope(principal.role),
        "level": get_role_level(principal.role),
        "pharmacy_id": principal.pharmacy_id,
        "branch_id": principal.branch_id,
        "is_manager": principal.is_manager,
        "permissions": sorted(DEFAULT_EVALUATOR.get_effective_permissions(principal)),
    }


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
    - email: str (required)
    - password: str (required)
    - pharmacy_id: int (optional, scopes the lookup)
    """
    try:
        data = request.get_json(silent=True) or {}
        email = data.get("email")
        password = data.get("password")
        pharmacy_id = data.get("pharmacy_id")

        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            return jsonify({"error": "email and password required"}), 400
        if pharmacy_id is not None and (not isinstance(pharmacy_id, int) or isinstance(pharmacy_id, bool)):
            return jsonify({"error": "pharmacy_id must be an integer"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(email, password, pharmacy_id=pharmacy_id)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="LOGIN",
                reason="Invalid credentials",
                ip_address=ip_address,
                user_agent=user_agent,
                details={"email": email[:255], "pharmacy_id": pharmacy_id},
            )
            return jsonify({"error": "Invalid credentials"}), 401

        try:
            session, token = session_service.create_session(
                user_id=user.id,
                user_agent=user_agent,
                ip_address=ip_address
            )
        except ValueError as e:
            return jsonify({"error": str(e)}), 403

        permission_service.log_security_event(
            user_id=user.id,
            event_type="LOGIN_SUCCESS",
            success=True,
            resource=request.path,
            action="LOGIN",
            ip_address=ip_address,
            user_agent=user_agent,
            pharmacy_id=user.pharmacy_id,
            branch_id=user.branch_id,
        )

        principal = Principal.from_claims(session.claims)
        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            **_session_payload(principal),
            "message": "Login successful"
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the current session token."""
    token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
    session_service.revoke_session(token, reason="User logout")

    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="LOGOUT",
        success=True,
        resource=request.path,
        action="LOGOUT",
        pharmacy_id=g.pharmacy_id,
        branch_id=g.branch_id,
    )
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with the permissions of this session."""
    return jsonify({
        "user": g.current_user.to_dict(),
        **_session_payload(g.principal),
    }), 200
