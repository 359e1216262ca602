from __future__ import annotations

from ..extensions import db
from ..models import Branch, Pharmacy


class PharmacyError(Exception):
    """Raised when pharmacy or branch operations fail."""
    pass


def _clean(value, field: str, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise PharmacyError(f"{field} is required")
        return None
    if not isinstance(value, str):
        raise PharmacyError(f"{field} must be a string")
    value = value.strip()
    if required and not value:
        raise PharmacyError(f"{field} is required")
    return value or None


def create_pharmacy(name: str, code: str | None = None) -> Pharmacy:
    name = _clean(name, "Pharmacy name", required=True)
    code = _clean(code, "Pharmacy code")

    if code and db.session.query(Pharmacy).filter_by(code=code).first():
        raise PharmacyError("Pharmacy code already exists")

    pharmacy = Pharmacy(name=name, code=code)
    db.session.add(pharmacy)
    db.session.commit()
    return pharmacy


def get_pharmacy(pharmacy_id: int) -> Pharmacy | None:
    return db.session.query(Pharmacy).filter_by(id=pharmacy_id).first()


def list_pharmacies(query=None) -> list[Pharmacy]:
    query = query if query is not None else db.session.query(Pharmacy)
    return query.order_by(Pharmacy.name.asc()).all()


def set_pharmacy_active(pharmacy_id: int, is_active: bool) -> Pharmacy:
    pharmacy = get_pharmacy(pharmacy_id)
    if not pharmacy:
        raise PharmacyError("Pharmacy not found")
    pharmacy.is_active = bool(is_active)
    db.session.commit()
    return pharmacy


def create_branch(pharmacy_id: int, name: str, code: str | None = None, address: str | None = None) -> Branch:
    pharmacy = get_pharmacy(pharmacy_id)
    if not pharmacy:
        raise PharmacyError("Pharmacy not found")
    if not pharmacy.is_active:
        raise PharmacyError("Pharmacy is not active")

    name = _clean(name, "Branch name", required=True)
    code = _clean(code, "Branch code")
    address = _clean(address, "Branch address")

    if db.session.query(Branch).filter_by(pharmacy_id=pharmacy_id, name=name).first():
        raise PharmacyError("Branch name already exists in this pharmacy")
    if code and db.session.query(Branch).filter_by(pharmacy_id=pharmacy_id, code=code).first():
        raise PharmacyError("Branch code already exists in this pharmacy")

    branch = Branch(pharmacy_id=pharmacy_id, name=name, code=code, address=address)
    db.session.add(branch)
    db.session.commit()
    return branch


def update_branch(
    branch: Branch,
    *,
    name: str | None = None,
    code: str | None = None,
    address: str | None = None,
    is_active: bool | None = None,
) -> Branch:
    if name is not None:
        name = _clean(name, "Branch name", required=True)
        clash = db.session.query(Branch).filter(
            Branch.pharmacy_id == branch.pharmacy_id,
            Branch.name == name,
            Branch.id != branch.id,
        ).first()
        if clash:
            raise PharmacyError("Branch name already exists in this pharmacy")
        branch.name = name
    if code is not None:
        branch.code = _clean(code, "Branch code")
    if address is not None:
        branch.address = _clean(address, "Branch address")
    if is_active is not None:
        branch.is_active = bool(is_active)

    db.session.commit()
    return branch


def list_branches(pharmacy_id: int) -> list[Branch]:
    return (
        db.session.query(Branch)
        .filter_by(pharmacy_id=pharmacy_id)
        .order_by(Branch.name.asc())
        .all()
    )
