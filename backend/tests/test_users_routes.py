# Overview: HTTP tests for user listing, creation, update and deactivation across tenants.

from pharmacy.permissions import Role

from conftest import PASSWORD


def _ids(resp) -> set[int]:
    return {u["id"] for u in resp.get_json()["users"]}


class TestListUsers:

    def test_admin_sees_own_pharmacy_only(self, client, admin_a, admin_headers, pharmacist_a, cashier_a, cashier_b, super_admin):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert _ids(resp) == {admin_a.id, pharmacist_a.id, cashier_a.id}

    def test_branch_scope_sees_own_branch(self, client, pharmacist_a, pharmacist_headers, cashier_a, cashier_a2):
        resp = client.get("/api/users", headers=pharmacist_headers)
        assert _ids(resp) == {pharmacist_a.id, cashier_a.id}

    def test_super_admin_sees_everyone(self, client, super_admin, super_admin_headers, admin_a, cashier_b):
        resp = client.get("/api/users", headers=super_admin_headers)
        assert _ids(resp) == {super_admin.id, admin_a.id, cashier_b.id}

    def test_filters(self, client, db_session, admin_headers, cashier_a, cashier_a2, branch_a2):
        resp = client.get(f"/api/users?role={Role.CASHIER}", headers=admin_headers)
        assert _ids(resp) == {cashier_a.id, cashier_a2.id}

        resp = client.get(f"/api/users?branch_id={branch_a2.id}", headers=admin_headers)
        assert _ids(resp) == {cashier_a2.id}

        cashier_a2.is_active = False
        db_session.commit()
        assert _ids(client.get("/api/users?role=cashier", headers=admin_headers)) == {cashier_a.id}
        assert cashier_a2.id in _ids(client.get("/api/users?role=cashier&include_inactive=true", headers=admin_headers))

    def test_assigned_pharmacy_is_listed(self, client, super_admin_headers, admin_a, admin_headers, admin_b, pharmacy_b):
        client.post(
            f"/api/pharmacies/{pharmacy_b.id}/assignments",
            json={"user_id": admin_a.id},
            headers=super_admin_headers,
        )
        resp = client.get("/api/users", headers=admin_headers)
        assert admin_b.id in _ids(resp)


class TestCreateUser:

    def _payload(self, **overrides):
        payload = {"name": "New Hire", "email": "hire@gc.test", "password": PASSWORD, "role": Role.CASHIER}
        payload.update(overrides)
        return payload

    def test_admin_creates_cashier(self, client, admin_a, admin_headers, branch_a1):
        resp = client.post("/api/users", json=self._payload(branch_id=branch_a1.id), headers=admin_headers)
        assert resp.status_code == 201
        user = resp.get_json()["user"]
        assert user["pharmacy_id"] == branch_a1.pharmacy_id
        assert user["created_by_user_id"] == admin_a.id
        assert "CREATE_SALE" in user["effective_permissions"]
        assert "VIEW_USERS" not in user["effective_permissions"]

    def test_super_admin_creates_admin(self, client, super_admin_headers, pharmacy_b):
        resp = client.post(
            "/api/users",
            json=self._payload(email="boss@bm.test", role=Role.ADMIN, pharmacy_id=pharmacy_b.id),
            headers=super_admin_headers,
        )
        assert resp.status_code == 201
        assert "FINALIZE_SALE" not in resp.get_json()["user"]["effective_permissions"]

    def test_missing_role_is_a_hierarchy_denial(self, client, admin_headers, branch_a1):
        payload = self._payload(branch_id=branch_a1.id)
        del payload["role"]
        resp = client.post("/api/users", json=payload, headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "ROLE_REQUIRED"

    def test_missing_fields(self, client, admin_headers, branch_a1):
        resp = client.post("/api/users", json=self._payload(branch_id=branch_a1.id, name=""), headers=admin_headers)
        assert resp.status_code == 400

    def test_weak_password(self, client, admin_headers, branch_a1):
        resp = client.post("/api/users", json=self._payload(branch_id=branch_a1.id, password="weak"), headers=admin_headers)
        assert resp.status_code == 400

    def test_other_pharmacy(self, client, admin_headers, branch_b1):
        resp = client.post("/api/users", json=self._payload(branch_id=branch_b1.id), headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "PHARMACY_ACCESS_DENIED"

    def test_invalid_custom_permissions(self, client, admin_headers, branch_a1):
        resp = client.post(
            "/api/users",
            json=self._payload(branch_id=branch_a1.id, permissions=["LAUNCH_ROCKETS"]),
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["invalid_permissions"] == ["LAUNCH_ROCKETS"]


class TestGetUser:

    def test_visible(self, client, admin_headers, cashier_a):
        resp = client.get(f"/api/users/{cashier_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["email"] == cashier_a.email

    def test_other_tenant_is_not_found(self, client, admin_headers, cashier_b):
        resp = client.get(f"/api/users/{cashier_b.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_super_admin_hidden_from_admins(self, client, admin_headers, super_admin):
        resp = client.get(f"/api/users/{super_admin.id}", headers=admin_headers)
        assert resp.status_code == 404

    def test_pharmacist_cannot_see_other_branch(self, client, pharmacist_headers, cashier_a2):
        resp = client.get(f"/api/users/{cashier_a2.id}", headers=pharmacist_headers)
        assert resp.status_code == 404


class TestUpdateUser:

    def test_self_rename(self, client, cashier_a, cashier_headers):
        resp = client.patch(f"/api/users/{cashier_a.id}", json={"name": "Renamed"}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["name"] == "Renamed"

    def test_self_role_change_needs_update_user(self, client, cashier_a, cashier_headers):
        resp = client.patch(f"/api/users/{cashier_a.id}", json={"role": Role.ADMIN}, headers=cashier_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "UPDATE_USER"

    def test_admin_updates_cashier(self, client, admin_headers, cashier_a):
        resp = client.patch(
            f"/api/users/{cashier_a.id}",
            json={"role": Role.PHARMACIST, "is_manager": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        user = resp.get_json()["user"]
        assert user["role"] == Role.PHARMACIST
        assert "APPROVE_DISCOUNTS" in user["effective_permissions"]

    def test_empty_body(self, client, admin_headers, cashier_a):
        resp = client.patch(f"/api/users/{cashier_a.id}", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_promotion_past_hierarchy(self, client, admin_headers, cashier_a):
        resp = client.patch(f"/api/users/{cashier_a.id}", json={"role": Role.ADMIN}, headers=admin_headers)
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "ROLE_REQUIRED"

    def test_other_tenant(self, client, admin_headers, cashier_b):
        resp = client.patch(f"/api/users/{cashier_b.id}", json={"name": "x"}, headers=admin_headers)
        assert resp.status_code == 404


class TestDeleteUser:

    def test_admin_deactivates_cashier(self, client, admin_headers, cashier_a, cashier_headers):
        resp = client.delete(f"/api/users/{cashier_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["is_active"] is False

        # Sessions of the deactivated user are gone
        assert client.get("/api/auth/me", headers=cashier_headers).status_code == 401

    def test_cannot_deactivate_self(self, client, admin_a, admin_headers):
        resp = client.delete(f"/api/users/{admin_a.id}", headers=admin_headers)
        assert resp.status_code == 400

    def test_pharmacist_cannot_delete(self, client, pharmacist_headers, cashier_a):
        resp = client.delete(f"/api/users/{cashier_a.id}", headers=pharmacist_headers)
        assert resp.status_code == 403
