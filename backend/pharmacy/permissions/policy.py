# Overview: Immutable bundle of catalog, role table, role defaults and manager tier.

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping

from .definitions import ALL_PERMISSION_CODES, MANAGER_PERMISSION_CODES
from .hierarchy import ROLE_HIERARCHY, SCOPE_RANK, Scope, validate_hierarchy
from .roles import DEFAULT_ROLE_PERMISSIONS


@dataclass(frozen=True)
class PermissionPolicy:
    """
    Everything the evaluator needs to decide, built once and shared.

    Deriving a variant (with_exclusions) returns a new policy; an existing
    policy is never mutated, so one instance is safe to share across threads.
    """

    catalog: frozenset
    hierarchy: Mapping
    defaults: Mapping
    manager_permissions: frozenset

    @classmethod
    def build(cls, catalog, hierarchy, defaults, manager_permissions) -> "PermissionPolicy":
        validate_hierarchy(hierarchy)
        return cls(
            catalog=frozenset(catalog),
            hierarchy=MappingProxyType(dict(hierarchy)),
            defaults=MappingProxyType({role: frozenset(codes) for role, codes in defaults.items()}),
            manager_permissions=frozenset(manager_permissions),
        )

    # -- role table --

    def is_excluded(self, role, code) -> bool:
        definition = self.hierarchy.get(role)
        return bool(definition) and code in definition.excluded_permissions

    def excluded_for(self, role) -> frozenset:
        definition = self.hierarchy.get(role)
        return definition.excluded_permissions if definition else frozenset()

    def defaults_for(self, role) -> frozenset:
        return self.defaults.get(role, frozenset())

    def level_of(self, role) -> int:
        definition = self.hierarchy.get(role)
        return definition.level if definition else 0

    def scope_of(self, role) -> str:
        definition = self.hierarchy.get(role)
        return definition.scope if definition else Scope.BRANCH

    def scope_rank_of(self, role) -> int:
        return SCOPE_RANK[self.scope_of(role)]

    def can_create(self, creator_role, target_role) -> bool:
        definition = self.hierarchy.get(creator_role)
        return bool(definition) and target_role in definition.can_create

    def can_manage(self, manager_role, target_role) -> bool:
        definition = self.hierarchy.get(manager_role)
        return bool(definition) and target_role in definition.can_manage

    # -- derivation --

    def with_exclusions(self, role, codes) -> "PermissionPolicy":
        """New policy where `role` additionally excludes `codes`."""
        definition = self.hierarchy.get(role)
        if definition is None:
            raise ValueError(f"Unknown role '{role}'")
        unknown = set(codes) - self.catalog
        if unknown:
            raise ValueError(f"Unknown permissions: {sorted(unknown)}")
        hierarchy = dict(self.hierarchy)
        hierarchy[role] = replace(
            definition,
            excluded_permissions=definition.excluded_permissions | frozenset(codes),
        )
        return replace(self, hierarchy=MappingProxyType(hierarchy))


DEFAULT_POLICY = PermissionPolicy.build(
    catalog=ALL_PERMISSION_CODES,
    hierarchy=ROLE_HIERARCHY,
    defaults=DEFAULT_ROLE_PERMISSIONS,
    manager_permissions=MANAGER_PERMISSION_CODES,
)
