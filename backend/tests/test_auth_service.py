# Overview: Pytest coverage for passwords, authentication and the user lifecycle under the role hierarchy.

import pytest

from pharmacy.models import SecurityEvent, SessionToken
from pharmacy.permissions import Principal, Role
from pharmacy.services.auth_service import (
    PasswordValidationError,
    RoleHierarchyError,
    authenticate,
    create_user,
    deactivate_user,
    hash_password,
    update_user,
    validate_password_strength,
    verify_password,
)
from pharmacy.services.pharmacy_access_service import AccessDeniedError
from pharmacy.services.permission_service import InvalidPermissionError
from pharmacy.services.session_service import create_session, validate_session

from conftest import PASSWORD


def _p(user):
    return Principal.from_user(user)


class TestPasswords:

    @pytest.mark.parametrize(
        "password",
        ["Short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123"],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_hash_and_verify(self, app):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed)
        assert not verify_password("Wrong123!", hashed)

    def test_malformed_hash_verifies_false(self):
        assert not verify_password(PASSWORD, "not-a-bcrypt-hash")
        assert not verify_password("", "whatever")


class TestCreateUser:

    def test_admin_creates_cashier_in_own_pharmacy(self, db_session, admin_a, branch_a1):
        user = create_user(
            name="New Cashier",
            email="New.Cashier@GC.test ",
            password=PASSWORD,
            role=Role.CASHIER,
            branch_id=branch_a1.id,
            created_by=_p(admin_a),
        )
        assert user.email == "new.cashier@gc.test"
        assert user.pharmacy_id == branch_a1.pharmacy_id
        assert user.created_by_user_id == admin_a.id

        event = db_session.query(SecurityEvent).filter_by(event_type="USER_CREATED", user_id=admin_a.id).one()
        assert event.details["target_user_id"] == user.id

    def test_hierarchy_enforced(self, db_session, admin_a, pharmacist_a, pharmacy_a):
        with pytest.raises(RoleHierarchyError):
            create_user("X", "x@gc.test", PASSWORD, Role.ADMIN, pharmacy_id=pharmacy_a.id, created_by=_p(admin_a))
        with pytest.raises(RoleHierarchyError):
            create_user("Y", "y@gc.test", PASSWORD, Role.CASHIER, pharmacy_id=pharmacy_a.id, created_by=_p(pharmacist_a))

    def test_super_admin_creates_admin_anywhere(self, db_session, super_admin, pharmacy_b):
        user = create_user("B Admin", "boss@bm.test", PASSWORD, Role.ADMIN, pharmacy_id=pharmacy_b.id, created_by=_p(super_admin))
        assert user.role == Role.ADMIN

    def test_cross_pharmacy_creation_denied(self, db_session, admin_a, pharmacy_b):
        with pytest.raises(AccessDeniedError):
            create_user("Z", "z@bm.test", PASSWORD, Role.CASHIER, pharmacy_id=pharmacy_b.id, created_by=_p(admin_a))

    def test_excluded_custom_permissions_are_dropped(self, db_session, super_admin, pharmacy_a):
        user = create_user(
            "Admin", "adm@gc.test", PASSWORD, Role.ADMIN,
            pharmacy_id=pharmacy_a.id,
            permissions=["FINALIZE_SALE", "MANAGE_SYSTEM", "APPROVE_DISCOUNTS"],
            created_by=_p(super_admin),
        )
        assert user.permissions == ["APPROVE_DISCOUNTS"]

    def test_unknown_permissions_rejected(self, db_session, admin_a, branch_a1):
        with pytest.raises(InvalidPermissionError) as exc_info:
            create_user("C", "c@gc.test", PASSWORD, Role.CASHIER, branch_id=branch_a1.id,
                        permissions=["LAUNCH_ROCKETS"], created_by=_p(admin_a))
        assert exc_info.value.codes == ["LAUNCH_ROCKETS"]

    def test_placement_rules(self, db_session, pharmacy_a, pharmacy_b, branch_b1):
        with pytest.raises(ValueError):
            create_user("S", "s@platform.test", PASSWORD, Role.SUPER_ADMIN, pharmacy_id=pharmacy_a.id)
        with pytest.raises(ValueError):
            create_user("N", "n@gc.test", PASSWORD, Role.CASHIER)
        with pytest.raises(ValueError):
            create_user("M", "m@gc.test", PASSWORD, Role.CASHIER, pharmacy_id=pharmacy_a.id, branch_id=branch_b1.id)
        with pytest.raises(ValueError):
            create_user("R", "r@gc.test", PASSWORD, "owner", pharmacy_id=pharmacy_a.id)

    def test_email_unique_per_pharmacy(self, db_session, admin_a, pharmacy_b):
        with pytest.raises(ValueError):
            create_user("Dup", admin_a.email, PASSWORD, Role.CASHIER, pharmacy_id=admin_a.pharmacy_id)
        # Same email in another pharmacy is fine
        other = create_user("Dup", admin_a.email, PASSWORD, Role.CASHIER, pharmacy_id=pharmacy_b.id)
        assert other.pharmacy_id == pharmacy_b.id


class TestAuthenticate:

    def test_success_updates_last_login(self, db_session, cashier_a):
        user = authenticate("CASHIER@gc.test", PASSWORD)
        assert user.id == cashier_a.id
        assert user.last_login_at is not None

    def test_wrong_password(self, db_session, cashier_a):
        assert authenticate(cashier_a.email, "Wrong123!") is None

    def test_inactive_user(self, db_session, cashier_a):
        cashier_a.is_active = False
        db_session.commit()
        assert authenticate(cashier_a.email, PASSWORD) is None

    def test_inactive_pharmacy(self, db_session, cashier_a, pharmacy_a):
        pharmacy_a.is_active = False
        db_session.commit()
        assert authenticate(cashier_a.email, PASSWORD) is None

    def test_pharmacy_scoped_lookup(self, db_session, cashier_a, pharmacy_b):
        assert authenticate(cashier_a.email, PASSWORD, pharmacy_id=pharmacy_b.id) is None
        assert authenticate(cashier_a.email, PASSWORD, pharmacy_id=cashier_a.pharmacy_id).id == cashier_a.id


class TestUpdateUser:

    def test_self_update_name(self, db_session, cashier_a):
        update_user(_p(cashier_a), cashier_a, {"name": "Renamed"})
        assert cashier_a.name == "Renamed"

    def test_self_cannot_change_own_role(self, db_session, cashier_a):
        with pytest.raises(RoleHierarchyError):
            update_user(_p(cashier_a), cashier_a, {"role": Role.PHARMACIST})

    def test_admin_promotes_cashier(self, db_session, admin_a, cashier_a):
        cashier_a.permissions = ["VOID_SALE"]
        db_session.commit()
        update_user(_p(admin_a), cashier_a, {"role": Role.PHARMACIST, "is_manager": True})
        assert cashier_a.role == Role.PHARMACIST
        assert cashier_a.is_manager

    def test_super_admin_role_is_untouchable(self, db_session, super_admin, admin_a):
        with pytest.raises(RoleHierarchyError):
            update_user(_p(super_admin), admin_a, {"role": Role.SUPER_ADMIN})

    def test_cross_pharmacy_update_denied(self, db_session, admin_b, cashier_a):
        with pytest.raises(AccessDeniedError):
            update_user(_p(admin_b), cashier_a, {"name": "Hijacked"})

    def test_unknown_field(self, db_session, admin_a, cashier_a):
        with pytest.raises(ValueError):
            update_user(_p(admin_a), cashier_a, {"password_hash": "x"})

    def test_branch_must_belong_to_pharmacy(self, db_session, admin_a, cashier_a, branch_b1):
        with pytest.raises(ValueError):
            update_user(_p(admin_a), cashier_a, {"branch_id": branch_b1.id})

    def test_role_change_refreshes_claims(self, db_session, admin_a, cashier_a):
        session, token = create_session(cashier_a.id)
        update_user(_p(admin_a), cashier_a, {"role": Role.PHARMACIST})
        assert validate_session(token).principal.role == Role.PHARMACIST

    def test_password_change_revokes_sessions(self, db_session, cashier_a):
        _session, token = create_session(cashier_a.id)
        update_user(_p(cashier_a), cashier_a, {"password": "Another123!"})
        assert validate_session(token) is None
        assert authenticate(cashier_a.email, "Another123!").id == cashier_a.id


class TestDeactivateUser:

    def test_deactivate_revokes_sessions(self, db_session, admin_a, cashier_a):
        create_session(cashier_a.id)
        deactivate_user(_p(admin_a), cashier_a)

        assert not cashier_a.is_active
        active = db_session.query(SessionToken).filter_by(user_id=cashier_a.id, is_revoked=False).count()
        assert active == 0
        assert db_session.query(SecurityEvent).filter_by(event_type="USER_DEACTIVATED").count() == 1

    def test_cannot_deactivate_self(self, db_session, admin_a):
        with pytest.raises(ValueError):
            deactivate_user(_p(admin_a), admin_a)

    def test_cannot_deactivate_peer(self, db_session, cashier_a, cashier_a2):
        with pytest.raises(RoleHierarchyError):
            deactivate_user(_p(cashier_a), cashier_a2)
