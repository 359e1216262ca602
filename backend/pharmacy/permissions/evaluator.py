# Overview: Grant/deny decisions and effective-permission views over a Principal.

"""
Permission Evaluator

Decision order for has_permission(principal, code):

    1. excluded for the principal's role      -> deny (beats any grant)
    2. principal is super_admin               -> allow iff in super_admin defaults
                                                 (custom grants and manager flag ignored)
    3. custom grant                           -> allow
    4. manager flag and manager-tier code     -> allow
    5. otherwise                              -> allow iff in role defaults

Every view (effective set, source lookup) follows the same order so the
views never disagree with the decision. The evaluator is pure: no I/O, no
mutation, safe to share.
"""

from dataclasses import dataclass

from .hierarchy import Role
from .policy import DEFAULT_POLICY, PermissionPolicy

SOURCE_ROLE = "role"
SOURCE_MANAGER = "manager"
SOURCE_CUSTOM = "custom"


@dataclass(frozen=True)
class PermissionDiff:
    added: frozenset
    removed: frozenset

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)

    def to_dict(self) -> dict:
        return {"added": sorted(self.added), "removed": sorted(self.removed)}


class PermissionEvaluator:
    def __init__(self, policy: PermissionPolicy = DEFAULT_POLICY):
        self.policy = policy

    # =========================================================================
    # DECISIONS
    # =========================================================================

    def has_permission(self, principal, code) -> bool:
        if not isinstance(code, str):
            return False
        policy = self.policy
        if policy.is_excluded(principal.role, code):
            return False
        if principal.role == Role.SUPER_ADMIN:
            return code in policy.defaults_for(Role.SUPER_ADMIN)
        if code in principal.permissions:
            return True
        if principal.is_manager and code in policy.manager_permissions:
            return True
        return code in policy.defaults_for(principal.role)

    def has_any_permission(self, principal, codes) -> bool:
        return any(self.has_permission(principal, code) for code in codes)

    def has_all_permissions(self, principal, codes) -> bool:
        return all(self.has_permission(principal, code) for code in codes)

    def is_manager_permission(self, code) -> bool:
        return code in self.policy.manager_permissions

    def can_manage_user_permissions(self, manager, target) -> bool:
        """Whether `manager` may edit the custom permissions of `target`."""
        if manager.role == Role.SUPER_ADMIN:
            return True
        if target.role == Role.SUPER_ADMIN:
            return False
        if manager.role == Role.ADMIN and target.role != Role.ADMIN:
            return True
        return self.has_permission(manager, "MANAGE_PERMISSIONS")

    # =========================================================================
    # VIEWS
    # =========================================================================

    def get_effective_permissions(self, principal) -> frozenset:
        """
        Everything the principal can do right now.

        (defaults ∪ manager tier if is_manager ∪ custom) − excluded, except
        that super_admin only ever holds its defaults.
        """
        policy = self.policy
        granted = set(policy.defaults_for(principal.role))
        if principal.role != Role.SUPER_ADMIN:
            if principal.is_manager:
                granted |= policy.manager_permissions
            granted |= principal.permissions
        return frozenset(granted - policy.excluded_for(principal.role))

    def get_custom_permissions(self, principal) -> frozenset:
        """Custom grants beyond the role defaults."""
        return frozenset(principal.permissions - self.policy.defaults_for(principal.role))

    def get_removed_permissions(self, principal) -> frozenset:
        """
        Role defaults missing from the principal's custom list.

        Reporting only. Custom grants add to defaults, so a missing default
        is still granted.
        """
        return frozenset(self.policy.defaults_for(principal.role) - principal.permissions)

    def get_permission_source(self, principal, code):
        """Where a granted permission comes from: 'role', 'manager', 'custom' or None."""
        if not self.has_permission(principal, code):
            return None
        if code in self.policy.defaults_for(principal.role):
            return SOURCE_ROLE
        if principal.is_manager and code in self.policy.manager_permissions:
            return SOURCE_MANAGER
        return SOURCE_CUSTOM

    @staticmethod
    def get_permission_diff(old_codes, new_codes) -> PermissionDiff:
        old_set = frozenset(old_codes or ())
        new_set = frozenset(new_codes or ())
        return PermissionDiff(added=new_set - old_set, removed=old_set - new_set)


# =============================================================================
# MODULE-LEVEL SHORTCUTS OVER THE DEFAULT POLICY
# =============================================================================

DEFAULT_EVALUATOR = PermissionEvaluator(DEFAULT_POLICY)


def has_permission(principal, code) -> bool:
    return DEFAULT_EVALUATOR.has_permission(principal, code)


def has_any_permission(principal, codes) -> bool:
    return DEFAULT_EVALUATOR.has_any_permission(principal, codes)


def has_all_permissions(principal, codes) -> bool:
    return DEFAULT_EVALUATOR.has_all_permissions(principal, codes)


def get_effective_permissions(principal) -> frozenset:
    return DEFAULT_EVALUATOR.get_effective_permissions(principal)


def get_custom_permissions(principal) -> frozenset:
    return DEFAULT_EVALUATOR.get_custom_permissions(principal)


def get_removed_permissions(principal) -> frozenset:
    return DEFAULT_EVALUATOR.get_removed_permissions(principal)


def get_permission_source(principal, code):
    return DEFAULT_EVALUATOR.get_permission_source(principal, code)


def get_permission_diff(old_codes, new_codes) -> PermissionDiff:
    return PermissionEvaluator.get_permission_diff(old_codes, new_codes)


def can_manage_user_permissions(manager, target) -> bool:
    return DEFAULT_EVALUATOR.can_manage_user_permissions(manager, target)


def is_manager_permission(code) -> bool:
    return DEFAULT_EVALUATOR.is_manager_permission(code)
