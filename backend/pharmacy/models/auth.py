from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Role, manager flag and custom permission grants live on the row.
    Effective permissions are always derived from them and never stored,
    so a change to role defaults applies to every user at once.

    Email is unique within a pharmacy. super_admin users have no pharmacy.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("pharmacy_id", "email", name="uq_users_pharmacy_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, index=True)
    is_manager = db.Column(db.Boolean, nullable=False, default=False)

    # Custom grants on top of role defaults (list of permission codes)
    permissions = db.Column(db.JSON, nullable=False, default=list)

    pharmacy_id = db.Column(db.Integer, db.ForeignKey("pharmacies.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    pharmacy = db.relationship("Pharmacy", backref=db.backref("users", lazy=True))
    branch = db.relationship("Branch", backref=db.backref("users", lazy=True))
    created_by = db.relationship("User", remote_side=[id])

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_manager": self.is_manager,
            "permissions": sorted(self.permissions or []),
            "pharmacy_id": self.pharmacy_id,
            "branch_id": self.branch_id,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class UserPharmacyAssignment(db.Model):
    """
    Access to an additional pharmacy beyond the user's primary one.

    Revoking deactivates the row so the grant history is kept.
    """
    __tablename__ = "user_pharmacy_assignments"
    __table_args__ = (
        db.UniqueConstraint("user_id", "pharmacy_id", name="uq_user_pharmacy_assignment"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    pharmacy_id = db.Column(db.Integer, db.ForeignKey("pharmacies.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    assigned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("pharmacy_assignments", lazy=True))
    pharmacy = db.relationship("Pharmacy", backref=db.backref("user_assignments", lazy=True))
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "pharmacy_id": self.pharmacy_id,
            "is_active": self.is_active,
            "assigned_by_user_id": self.assigned_by_user_id,
            "assigned_at": to_utc_z(self.assigned_at),
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }


class SessionToken(db.Model):
    """
    Opaque bearer session with a claims snapshot.

    The claims column holds role, pharmacy_id, branch_id, is_manager and
    custom permissions as they were when the session was created or last
    refreshed. Requests authorize against this snapshot (the token
    principal); pharmacy assignments are looked up when access is validated.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts from config
    - Revocable on logout or deactivation
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    claims = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "claims": self.claims,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
