# Overview: Principal - the one shape the evaluator decides over, with record and token adapters.

"""
Principal

A Principal is an immutable snapshot of who is asking: role, custom grants,
manager flag and tenant placement. The evaluator never touches the database;
callers build a Principal first, from either source:

    Principal.from_user(user)      persisted User row, includes active pharmacy assignments
    Principal.from_claims(claims)  session claims snapshot (token payload)

Tokens do not carry pharmacy assignments, so a token principal has
assigned_pharmacy_ids=None. The pure pharmacy checks skip that step for it;
the validating helpers in pharmacy_access_service load the assignments first.
"""

from dataclasses import dataclass
from typing import Optional

SOURCE_RECORD = "record"
SOURCE_TOKEN = "token"


def _as_code_set(value) -> frozenset:
    if not value:
        return frozenset()
    return frozenset(code for code in value if isinstance(code, str))


@dataclass(frozen=True)
class Principal:
    role: str
    permissions: frozenset = frozenset()
    is_manager: bool = False
    user_id: Optional[int] = None
    pharmacy_id: Optional[int] = None
    branch_id: Optional[int] = None
    assigned_pharmacy_ids: Optional[frozenset] = None
    source: str = SOURCE_RECORD

    def __post_init__(self):
        # Accept any iterable of codes; the evaluator works on frozensets
        object.__setattr__(self, "permissions", _as_code_set(self.permissions))
        if self.assigned_pharmacy_ids is not None:
            object.__setattr__(self, "assigned_pharmacy_ids", frozenset(self.assigned_pharmacy_ids))

    @classmethod
    def from_user(cls, user) -> "Principal":
        assignments = getattr(user, "pharmacy_assignments", None) or []
        assigned = frozenset(
            a.pharmacy_id for a in assignments if a.is_active and a.pharmacy.is_active
        )
        return cls(
            role=user.role,
            permissions=_as_code_set(user.permissions),
            is_manager=bool(user.is_manager),
            user_id=user.id,
            pharmacy_id=user.pharmacy_id,
            branch_id=user.branch_id,
            assigned_pharmacy_ids=assigned,
            source=SOURCE_RECORD,
        )

    @classmethod
    def from_claims(cls, claims: dict) -> "Principal":
        return cls(
            role=claims.get("role"),
            permissions=_as_code_set(claims.get("permissions")),
            is_manager=bool(claims.get("is_manager")),
            user_id=claims.get("user_id"),
            pharmacy_id=claims.get("pharmacy_id"),
            branch_id=claims.get("branch_id"),
            assigned_pharmacy_ids=None,
            source=SOURCE_TOKEN,
        )

    def to_claims(self) -> dict:
        """Claims snapshot stored alongside a session."""
        return {
            "user_id": self.user_id,
            "role": self.role,
            "pharmacy_id": self.pharmacy_id,
            "branch_id": self.branch_id,
            "is_manager": self.is_manager,
            "permissions": sorted(self.permissions),
        }
