# Overview: Pytest coverage for PermissionEvaluator decisions and views.

"""
Evaluator tests.

Exercises the decision order (exclusion, super_admin ceiling, custom grant,
manager tier, role default) on plain Principals; no database involved.
"""

import random

import pytest

from pharmacy.permissions import (
    ALL_PERMISSION_CODES,
    ALL_ROLES,
    DEFAULT_EVALUATOR,
    DEFAULT_POLICY,
    MANAGER_PERMISSION_CODES,
    PermissionDiff,
    PermissionEvaluator,
    PermissionPolicy,
    Principal,
    Role,
    RoleDefinition,
    get_effective_permissions,
    get_permission_diff,
    get_permission_source,
    get_permissions_by_role,
    has_all_permissions,
    has_any_permission,
    has_permission,
)


def principal(role, permissions=(), is_manager=False, **kwargs):
    return Principal(role=role, permissions=frozenset(permissions), is_manager=is_manager, **kwargs)


class TestHasPermission:

    def test_role_default_grants(self):
        assert has_permission(principal(Role.CASHIER), "CREATE_SALE")
        assert not has_permission(principal(Role.CASHIER), "VOID_SALE")

    def test_custom_grant_adds_to_defaults(self):
        cashier = principal(Role.CASHIER, ["VOID_SALE"])
        assert has_permission(cashier, "VOID_SALE")
        assert has_permission(cashier, "CREATE_SALE")

    def test_exclusion_beats_custom_grant(self):
        admin = principal(Role.ADMIN, ["FINALIZE_SALE", "MANAGE_SYSTEM"])
        assert not has_permission(admin, "FINALIZE_SALE")
        assert not has_permission(admin, "MANAGE_SYSTEM")

    def test_exclusion_beats_manager_tier(self):
        policy = DEFAULT_POLICY.with_exclusions(Role.CASHIER, ["APPROVE_REFUNDS"])
        evaluator = PermissionEvaluator(policy)
        cashier = principal(Role.CASHIER, is_manager=True)
        assert not evaluator.has_permission(cashier, "APPROVE_REFUNDS")
        assert evaluator.has_permission(cashier, "APPROVE_DISCOUNTS")

    def test_manager_flag_grants_manager_tier(self):
        plain = principal(Role.PHARMACIST)
        manager = principal(Role.PHARMACIST, is_manager=True)
        for code in MANAGER_PERMISSION_CODES:
            assert not has_permission(plain, code)
            assert has_permission(manager, code)

    def test_super_admin_is_capped_at_defaults(self):
        root = principal(Role.SUPER_ADMIN, ["VIEW_AUDIT_LOGS", "APPROVE_DISCOUNTS", "VIEW_EXPIRY_ALERTS"], is_manager=True)
        assert has_permission(root, "VIEW_AUDIT_LOGS")
        assert not has_permission(root, "APPROVE_DISCOUNTS")
        assert not has_permission(root, "VIEW_EXPIRY_ALERTS")
        assert not has_permission(root, "CREATE_SALE")

    def test_unknown_role_has_no_defaults(self):
        stranger = principal("owner", ["CREATE_SALE"])
        # Custom grants still apply; defaults and exclusions are empty
        assert has_permission(stranger, "CREATE_SALE")
        assert not has_permission(stranger, "VIEW_DRUGS")

    @pytest.mark.parametrize("code", [None, 42, ["CREATE_SALE"], ""])
    def test_non_codes_are_denied(self, code):
        assert not has_permission(principal(Role.ADMIN), code)

    def test_unknown_code_is_denied(self):
        assert not has_permission(principal(Role.ADMIN), "LAUNCH_ROCKETS")

    def test_any_and_all(self):
        cashier = principal(Role.CASHIER)
        assert has_any_permission(cashier, ["VOID_SALE", "CREATE_SALE"])
        assert not has_any_permission(cashier, ["VOID_SALE", "REFUND_SALE"])
        assert not has_any_permission(cashier, [])
        assert has_all_permissions(cashier, ["CREATE_SALE", "VIEW_SALES"])
        assert not has_all_permissions(cashier, ["CREATE_SALE", "VOID_SALE"])
        assert has_all_permissions(cashier, [])


class TestEffectivePermissions:

    def test_composition_over_random_principals(self):
        rng = random.Random(20261018)
        catalog = sorted(ALL_PERMISSION_CODES)
        roles = [Role.ADMIN, Role.PHARMACIST, Role.CASHIER]
        for _ in range(200):
            role = rng.choice(roles)
            custom = frozenset(rng.sample(catalog, rng.randint(0, 12)))
            is_manager = rng.random() < 0.5
            p = principal(role, custom, is_manager)

            expected = set(get_permissions_by_role(role)) | custom
            if is_manager:
                expected |= MANAGER_PERMISSION_CODES
            expected -= DEFAULT_POLICY.excluded_for(role)

            assert get_effective_permissions(p) == expected

    def test_effective_agrees_with_has_permission(self):
        rng = random.Random(7)
        catalog = sorted(ALL_PERMISSION_CODES)
        for role in ALL_ROLES:
            for is_manager in (False, True):
                custom = frozenset(rng.sample(catalog, 10))
                p = principal(role, custom, is_manager)
                effective = get_effective_permissions(p)
                for code in catalog:
                    assert has_permission(p, code) == (code in effective), (role, code)

    def test_super_admin_effective_is_exactly_defaults(self):
        root = principal(Role.SUPER_ADMIN, ["APPROVE_DISCOUNTS", "MANAGE_AUDIT_LOGS"], is_manager=True)
        assert get_effective_permissions(root) == frozenset(get_permissions_by_role(Role.SUPER_ADMIN))

    def test_custom_and_removed_views(self):
        defaults = set(get_permissions_by_role(Role.CASHIER))
        cashier = principal(Role.CASHIER, ["VIEW_SALES", "VOID_SALE"])
        assert DEFAULT_EVALUATOR.get_custom_permissions(cashier) == {"VOID_SALE"}
        assert DEFAULT_EVALUATOR.get_removed_permissions(cashier) == defaults - {"VIEW_SALES"}
        # Removed-from-list defaults are still granted
        assert has_permission(cashier, "CREATE_SALE")

    def test_list_inputs_are_normalized(self):
        cashier = Principal(role=Role.CASHIER, permissions=["VOID_SALE", "VOID_SALE", 7], assigned_pharmacy_ids=[3])
        assert cashier.permissions == frozenset({"VOID_SALE"})
        assert cashier.assigned_pharmacy_ids == frozenset({3})

        assert has_permission(cashier, "VOID_SALE")
        assert "VOID_SALE" in get_effective_permissions(cashier)
        assert DEFAULT_EVALUATOR.get_custom_permissions(cashier) == {"VOID_SALE"}
        assert DEFAULT_EVALUATOR.get_removed_permissions(cashier) == set(get_permissions_by_role(Role.CASHIER))


class TestPermissionSource:

    def test_sources(self):
        p = principal(Role.CASHIER, ["VOID_SALE", "CREATE_SALE"], is_manager=True)
        assert get_permission_source(p, "CREATE_SALE") == "role"
        assert get_permission_source(p, "APPROVE_DISCOUNTS") == "manager"
        assert get_permission_source(p, "VOID_SALE") == "custom"
        assert get_permission_source(p, "REFUND_SALE") is None

    def test_manager_code_also_granted_custom_reports_manager(self):
        p = principal(Role.CASHIER, ["APPROVE_REFUNDS"], is_manager=True)
        assert get_permission_source(p, "APPROVE_REFUNDS") == "manager"

    def test_excluded_custom_has_no_source(self):
        admin = principal(Role.ADMIN, ["FINALIZE_SALE"])
        assert get_permission_source(admin, "FINALIZE_SALE") is None


class TestPermissionDiff:

    def test_diff(self):
        diff = get_permission_diff(["A", "B"], ["B", "C"])
        assert diff == PermissionDiff(added=frozenset({"C"}), removed=frozenset({"A"}))
        assert diff.changed
        assert diff.to_dict() == {"added": ["C"], "removed": ["A"]}

    def test_diff_is_symmetric(self):
        old, new = {"X", "Y"}, {"Y", "Z", "W"}
        forward = get_permission_diff(old, new)
        backward = get_permission_diff(new, old)
        assert forward.added == backward.removed
        assert forward.removed == backward.added

    def test_no_change(self):
        assert not get_permission_diff(["A"], ["A"]).changed
        assert not get_permission_diff(None, []).changed


class TestManageUserPermissions:

    @pytest.mark.parametrize(
        "manager_role,target_role,expected",
        [
            (Role.SUPER_ADMIN, Role.ADMIN, True),
            (Role.SUPER_ADMIN, Role.SUPER_ADMIN, True),
            (Role.ADMIN, Role.CASHIER, True),
            (Role.ADMIN, Role.PHARMACIST, True),
            (Role.ADMIN, Role.SUPER_ADMIN, False),
            (Role.PHARMACIST, Role.CASHIER, False),
            (Role.CASHIER, Role.CASHIER, False),
        ],
    )
    def test_matrix(self, manager_role, target_role, expected):
        assert DEFAULT_EVALUATOR.can_manage_user_permissions(
            principal(manager_role), principal(target_role)
        ) is expected

    def test_admin_on_admin_needs_manage_permissions(self):
        assert DEFAULT_EVALUATOR.can_manage_user_permissions(principal(Role.ADMIN), principal(Role.ADMIN))
        policy = DEFAULT_POLICY.with_exclusions(Role.ADMIN, ["MANAGE_PERMISSIONS"])
        assert not PermissionEvaluator(policy).can_manage_user_permissions(
            principal(Role.ADMIN), principal(Role.ADMIN)
        )


class TestPolicy:

    def test_with_exclusions_returns_new_policy(self):
        stricter = DEFAULT_POLICY.with_exclusions(Role.PHARMACIST, ["FINALIZE_SALE"])
        assert stricter is not DEFAULT_POLICY
        assert stricter.is_excluded(Role.PHARMACIST, "FINALIZE_SALE")
        assert not DEFAULT_POLICY.is_excluded(Role.PHARMACIST, "FINALIZE_SALE")

        pharmacist = principal(Role.PHARMACIST)
        assert has_permission(pharmacist, "FINALIZE_SALE")
        assert not PermissionEvaluator(stricter).has_permission(pharmacist, "FINALIZE_SALE")

    def test_with_exclusions_rejects_unknowns(self):
        with pytest.raises(ValueError):
            DEFAULT_POLICY.with_exclusions("owner", ["VIEW_DRUGS"])
        with pytest.raises(ValueError):
            DEFAULT_POLICY.with_exclusions(Role.CASHIER, ["NOPE"])

    def test_policy_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_POLICY.hierarchy[Role.CASHIER] = None
        with pytest.raises(TypeError):
            DEFAULT_POLICY.defaults[Role.CASHIER] = frozenset()

    def test_build_validates_hierarchy(self):
        broken = dict(DEFAULT_POLICY.hierarchy)
        broken["ghost"] = RoleDefinition(
            level=1,
            can_create=frozenset({Role.ADMIN}),
            can_manage=frozenset(),
            scope="branch",
            excluded_permissions=frozenset(),
        )
        with pytest.raises(ValueError):
            PermissionPolicy.build(
                catalog=DEFAULT_POLICY.catalog,
                hierarchy=broken,
                defaults={},
                manager_permissions=frozenset(),
            )

    def test_lookups(self):
        assert DEFAULT_POLICY.level_of(Role.ADMIN) == 3
        assert DEFAULT_POLICY.level_of("owner") == 0
        assert DEFAULT_POLICY.scope_rank_of(Role.SUPER_ADMIN) > DEFAULT_POLICY.scope_rank_of(Role.ADMIN)
        assert DEFAULT_POLICY.can_create(Role.ADMIN, Role.CASHIER)
        assert not DEFAULT_POLICY.can_manage(Role.CASHIER, Role.CASHIER)
