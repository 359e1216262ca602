# Overview: Pytest coverage for the role table, role defaults and scope ordering.

import pytest

from pharmacy.permissions import (
    ALL_PERMISSION_CODES,
    ALL_ROLES,
    DEFAULT_ROLE_PERMISSIONS,
    OPERATIONAL_PERMISSIONS,
    ROLE_HIERARCHY,
    SYSTEM_LEVEL_PERMISSIONS,
    Role,
    RoleDefinition,
    Scope,
    can_create_role,
    can_manage_role,
    get_filtered_permissions_for_role,
    get_permissions_by_role,
    get_role_level,
    get_role_scope,
    is_permission_excluded_for_role,
    is_valid_role,
    scope_includes,
)
from pharmacy.permissions.hierarchy import validate_hierarchy
from pharmacy.permissions.roles import validate_role_defaults


class TestLevelsAndScopes:

    def test_levels_are_strictly_ordered(self):
        levels = [get_role_level(role) for role in ALL_ROLES]
        assert levels == [4, 3, 2, 1]

    def test_scopes(self):
        assert get_role_scope(Role.SUPER_ADMIN) == Scope.SYSTEM
        assert get_role_scope(Role.ADMIN) == Scope.PHARMACY
        assert get_role_scope(Role.PHARMACIST) == Scope.BRANCH
        assert get_role_scope(Role.CASHIER) == Scope.BRANCH

    def test_unknown_role_fails_closed(self):
        assert not is_valid_role("owner")
        assert get_role_level("owner") == 0
        assert get_role_scope("owner") == Scope.BRANCH
        assert get_permissions_by_role("owner") == ()
        assert not can_create_role("owner", Role.CASHIER)
        assert not can_manage_role(Role.ADMIN, "owner")

    @pytest.mark.parametrize(
        "held,required,expected",
        [
            (Scope.SYSTEM, Scope.BRANCH, True),
            (Scope.SYSTEM, Scope.SYSTEM, True),
            (Scope.PHARMACY, Scope.BRANCH, True),
            (Scope.PHARMACY, Scope.SYSTEM, False),
            (Scope.BRANCH, Scope.PHARMACY, False),
            ("galaxy", Scope.BRANCH, False),
            (Scope.SYSTEM, "galaxy", False),
        ],
    )
    def test_scope_includes(self, held, required, expected):
        assert scope_includes(held, required) is expected


class TestCreateAndManage:

    @pytest.mark.parametrize(
        "creator,target,expected",
        [
            (Role.SUPER_ADMIN, Role.ADMIN, True),
            (Role.SUPER_ADMIN, Role.PHARMACIST, False),
            (Role.SUPER_ADMIN, Role.SUPER_ADMIN, False),
            (Role.ADMIN, Role.PHARMACIST, True),
            (Role.ADMIN, Role.CASHIER, True),
            (Role.ADMIN, Role.ADMIN, False),
            (Role.PHARMACIST, Role.CASHIER, False),
            (Role.CASHIER, Role.CASHIER, False),
        ],
    )
    def test_can_create(self, creator, target, expected):
        assert can_create_role(creator, target) is expected

    def test_nobody_manages_their_own_level_or_above(self):
        for role in ALL_ROLES:
            for target in ALL_ROLES:
                if can_manage_role(role, target) or can_create_role(role, target):
                    assert get_role_level(target) < get_role_level(role)


class TestExclusions:

    def test_super_admin_never_holds_operational_permissions(self):
        for code in OPERATIONAL_PERMISSIONS:
            assert is_permission_excluded_for_role(Role.SUPER_ADMIN, code)
        assert not is_permission_excluded_for_role(Role.SUPER_ADMIN, "VIEW_BRANCHES")

    def test_admin_exclusions(self):
        assert is_permission_excluded_for_role(Role.ADMIN, "FINALIZE_SALE")
        assert is_permission_excluded_for_role(Role.ADMIN, "MANAGE_PHARMACY")
        assert is_permission_excluded_for_role(Role.ADMIN, "MANAGE_SYSTEM")
        assert not is_permission_excluded_for_role(Role.ADMIN, "CREATE_USER")

    def test_cashier_exclusions(self):
        assert is_permission_excluded_for_role(Role.CASHIER, "VIEW_USERS")
        assert is_permission_excluded_for_role(Role.CASHIER, "CREATE_BRANCH")
        assert not is_permission_excluded_for_role(Role.CASHIER, "VIEW_BRANCHES")

    def test_pharmacist_exclusions(self):
        for code in ("CREATE_USER", "DELETE_USER", "MANAGE_PERMISSIONS", "MANAGE_PHARMACY"):
            assert is_permission_excluded_for_role(Role.PHARMACIST, code)

    def test_filter_drops_excluded_and_keeps_order(self):
        codes = ["VIEW_DRUGS", "FINALIZE_SALE", "CREATE_SALE", "MANAGE_SYSTEM"]
        assert get_filtered_permissions_for_role(Role.ADMIN, codes) == ["VIEW_DRUGS", "CREATE_SALE"]


class TestDefaults:

    def test_defaults_reference_catalog_codes(self):
        for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
            assert set(codes) <= ALL_PERMISSION_CODES, role

    def test_defaults_never_include_exclusions(self):
        for role in ALL_ROLES:
            excluded = ROLE_HIERARCHY[role].excluded_permissions
            assert not set(get_permissions_by_role(role)) & excluded, role

    def test_super_admin_holds_system_level(self):
        assert SYSTEM_LEVEL_PERMISSIONS <= set(get_permissions_by_role(Role.SUPER_ADMIN))

    def test_admin_holds_sales_except_finalize(self):
        admin = set(get_permissions_by_role(Role.ADMIN))
        assert "VOID_SALE" in admin
        assert "FINALIZE_SALE" not in admin

    def test_counter_staff_finalize_sales(self):
        assert "FINALIZE_SALE" in get_permissions_by_role(Role.PHARMACIST)
        assert "FINALIZE_SALE" not in get_permissions_by_role(Role.CASHIER)


class TestTableValidation:

    def _definition(self, **overrides):
        fields = dict(
            level=2,
            can_create=frozenset(),
            can_manage=frozenset(),
            scope=Scope.BRANCH,
            excluded_permissions=frozenset(),
        )
        fields.update(overrides)
        return RoleDefinition(**fields)

    def test_rejects_upward_creation(self):
        table = {
            "low": self._definition(level=1, can_create=frozenset({"high"})),
            "high": self._definition(level=2),
        }
        with pytest.raises(ValueError):
            validate_hierarchy(table)

    def test_rejects_self_management(self):
        table = {"solo": self._definition(can_manage=frozenset({"solo"}))}
        with pytest.raises(ValueError):
            validate_hierarchy(table)

    def test_rejects_unknown_exclusion(self):
        table = {"solo": self._definition(excluded_permissions=frozenset({"NOPE"}))}
        with pytest.raises(ValueError):
            validate_hierarchy(table)

    def test_rejects_defaults_that_hit_exclusions(self):
        table = {"solo": self._definition(excluded_permissions=frozenset({"VIEW_DRUGS"}))}
        with pytest.raises(ValueError):
            validate_role_defaults({"solo": ("VIEW_DRUGS",)}, table)

    def test_shipped_table_is_valid(self):
        validate_hierarchy(ROLE_HIERARCHY)
        validate_role_defaults(DEFAULT_ROLE_PERMISSIONS, ROLE_HIERARCHY)
