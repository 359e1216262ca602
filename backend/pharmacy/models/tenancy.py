from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Pharmacy(db.Model):
    """
    Tenant root: every pharmacy is a tenant.

    Branches and users belong to exactly one pharmacy. Users may additionally
    be assigned to other pharmacies (UserPharmacyAssignment). Nothing crosses
    pharmacy boundaries except through super_admin or an active assignment.
    """
    __tablename__ = "pharmacies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Pharmacy id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """
    Branch within a pharmacy.

    Branch names and codes are unique within a pharmacy, not globally.
    """
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("pharmacy_id", "name", name="uq_branches_pharmacy_name"),
        db.UniqueConstraint("pharmacy_id", "code", name="uq_branches_pharmacy_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    pharmacy_id = db.Column(db.Integer, db.ForeignKey("pharmacies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, index=True)
    address = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    pharmacy = db.relationship("Pharmacy", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r} pharmacy_id={self.pharmacy_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pharmacy_id": self.pharmacy_id,
            "name": self.name,
            "code": self.code,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
