"""Permission evaluation for admin, staff and parent principals.

The evaluator is a pure function of a principal and a requirement. Policy
tables are immutable and handed to the evaluator on construction so alternate
tables can be substituted in tests.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union


class Role(str, enum.Enum):
    ADMIN = "admin"
    STAFF = "staff"
    PARENT = "parent"


class StaffSubRole(str, enum.Enum):
    SITE_MANAGER = "site-manager"
    YOUTH_DEVELOPMENT_LEAD = "youth-development-lead"
    COACH = "coach"
    SECOND_IN_COMMAND = "second-in-command"


ROLE_ADMIN = Role.ADMIN.value
ROLE_STAFF = Role.STAFF.value
ROLE_PARENT = Role.PARENT.value
ROLES = tuple(role.value for role in Role)

SITE_MANAGER = StaffSubRole.SITE_MANAGER.value
YOUTH_DEVELOPMENT_LEAD = StaffSubRole.YOUTH_DEVELOPMENT_LEAD.value
COACH = StaffSubRole.COACH.value
SECOND_IN_COMMAND = StaffSubRole.SECOND_IN_COMMAND.value
STAFF_SUB_ROLES = tuple(sub_role.value for sub_role in StaffSubRole)


def _plain(value):
    """Enum members become their string value; other values pass through."""

    return value.value if isinstance(value, enum.Enum) else value


PERM_BEHAVIOR_MANAGEMENT = "behavior-management"
PERM_TIER_MANAGEMENT = "tier-management"
PERM_HOMEWORK_MANAGEMENT = "homework-management"
PERM_PARENT_NOTIFICATIONS = "parent-notifications"
PERM_SUPPLIES_INVENTORY = "supplies-inventory"
PERM_SNACK_INVENTORY = "snack-inventory"
PERM_SOCCER_JERSEY_INVENTORY = "soccer-jersey-inventory"
PERM_PRACTICE_JERSEY_INVENTORY = "practice-jersey-inventory"
PERM_MEAL_DISTRIBUTION = "meal-distribution"
PERM_ATTENDANCE_MANAGEMENT = "attendance-management"
PERM_EARLY_RELEASE_MANAGEMENT = "early-release-management"

PERM_VIEW_CHILD_INFO = "view-child-info"
PERM_EARLY_RELEASE_REQUEST = "early-release-request"
PERM_VIEW_CHILD_HOMEWORK = "view-child-homework"
PERM_COMPLETE_CHILD_HOMEWORK = "complete-child-homework"
PERM_VIEW_BEHAVIOR_NOTES = "view-behavior-notes"
PERM_MARK_NOTE_READ = "mark-note-read"

YOUTH_DEVELOPMENT_LEAD_PERMISSIONS = (
    PERM_SNACK_INVENTORY,
    PERM_SOCCER_JERSEY_INVENTORY,
    PERM_PRACTICE_JERSEY_INVENTORY,
    PERM_HOMEWORK_MANAGEMENT,
    PERM_BEHAVIOR_MANAGEMENT,
    PERM_TIER_MANAGEMENT,
)

COACH_PERMISSIONS = (
    PERM_HOMEWORK_MANAGEMENT,
    PERM_SUPPLIES_INVENTORY,
)

SECOND_IN_COMMAND_PERMISSIONS = (
    PERM_MEAL_DISTRIBUTION,
    PERM_SNACK_INVENTORY,
    PERM_SUPPLIES_INVENTORY,
    PERM_ATTENDANCE_MANAGEMENT,
    PERM_EARLY_RELEASE_MANAGEMENT,
    PERM_PARENT_NOTIFICATIONS,
)

PARENT_PERMISSIONS = (
    PERM_VIEW_CHILD_INFO,
    PERM_EARLY_RELEASE_REQUEST,
    PERM_VIEW_CHILD_HOMEWORK,
    PERM_COMPLETE_CHILD_HOMEWORK,
    PERM_VIEW_BEHAVIOR_NOTES,
    PERM_MARK_NOTE_READ,
)

ALL_PERMISSIONS = tuple(
    dict.fromkeys(
        YOUTH_DEVELOPMENT_LEAD_PERMISSIONS
        + COACH_PERMISSIONS
        + SECOND_IN_COMMAND_PERMISSIONS
        + PARENT_PERMISSIONS
    )
)


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"
    STAFF_PROFILE_MISSING = "staff_profile_missing"


@dataclass(frozen=True)
class Principal:
    """The authenticated actor behind a request.

    ``role`` and ``staff_sub_role`` are kept as raw strings: values outside the
    known sets must be representable so that they can be denied rather than
    rejected at construction time.
    """

    id: int
    role: str
    staff_sub_role: str | None = None
    explicit_grants: frozenset[str] = field(default_factory=frozenset)
    has_staff_profile: bool = True

    @classmethod
    def build(
        cls,
        id: int,
        role: str | Role,
        *,
        staff_sub_role: str | StaffSubRole | None = None,
        explicit_grants: Iterable[str] | None = None,
        has_staff_profile: bool = True,
    ) -> "Principal":
        return cls(
            id=id,
            role=_plain(role),
            staff_sub_role=_plain(staff_sub_role),
            explicit_grants=frozenset(explicit_grants or ()),
            has_staff_profile=has_staff_profile,
        )


@dataclass(frozen=True)
class RoleRequirement:
    roles: frozenset[str]

    def __post_init__(self) -> None:
        if not self.roles:
            raise ValueError("RoleRequirement needs at least one role")

    @classmethod
    def of(cls, *roles: str) -> "RoleRequirement":
        return cls(frozenset(_plain(role) for role in roles))


@dataclass(frozen=True)
class PermissionRequirement:
    name: str


Requirement = Union[RoleRequirement, PermissionRequirement]


@dataclass(frozen=True)
class PermissionPolicy:
    sub_role_permissions: Mapping[str, frozenset[str]]
    parent_permissions: frozenset[str]
    blanket_sub_roles: frozenset[str] = frozenset({SITE_MANAGER})

    def permissions_for_sub_role(self, sub_role: str | None) -> frozenset[str]:
        if sub_role is None:
            return frozenset()
        return self.sub_role_permissions.get(sub_role, frozenset())


def build_policy(
    sub_role_permissions: Mapping[str, Iterable[str]],
    parent_permissions: Iterable[str],
    blanket_sub_roles: Iterable[str] = (SITE_MANAGER,),
) -> PermissionPolicy:
    return PermissionPolicy(
        sub_role_permissions={role: frozenset(perms) for role, perms in sub_role_permissions.items()},
        parent_permissions=frozenset(parent_permissions),
        blanket_sub_roles=frozenset(blanket_sub_roles),
    )


DEFAULT_POLICY = build_policy(
    {
        YOUTH_DEVELOPMENT_LEAD: YOUTH_DEVELOPMENT_LEAD_PERMISSIONS,
        COACH: COACH_PERMISSIONS,
        SECOND_IN_COMMAND: SECOND_IN_COMMAND_PERMISSIONS,
    },
    PARENT_PERMISSIONS,
)


class PermissionEvaluator:
    def __init__(self, policy: PermissionPolicy = DEFAULT_POLICY):
        self.policy = policy

    def evaluate(self, principal: Principal, requirement: Requirement) -> Decision:
        if isinstance(requirement, RoleRequirement):
            return Decision.ALLOW if self._role_allowed(principal, requirement.roles) else Decision.DENY
        if isinstance(requirement, PermissionRequirement):
            return self._evaluate_permission(principal, requirement.name)
        return Decision.DENY

    def check_permission(self, principal: Principal, permission: str) -> bool:
        return self._evaluate_permission(principal, permission) is Decision.ALLOW

    def check_role(self, principal: Principal, roles: str | Iterable[str]) -> bool:
        if isinstance(roles, str):
            roles = (roles,)
        return self._role_allowed(principal, frozenset(_plain(role) for role in roles))

    def effective_permissions(self, principal: Principal) -> frozenset[str] | None:
        """Permissions the principal holds, or ``None`` when unrestricted."""

        if principal.role == ROLE_ADMIN:
            return None
        if principal.role == ROLE_STAFF:
            if not principal.has_staff_profile:
                return frozenset()
            if principal.staff_sub_role in self.policy.blanket_sub_roles:
                return None
            return principal.explicit_grants | self.policy.permissions_for_sub_role(principal.staff_sub_role)
        if principal.role == ROLE_PARENT:
            return self.policy.parent_permissions
        return frozenset()

    def _role_allowed(self, principal: Principal, roles: frozenset[str]) -> bool:
        if principal.role == ROLE_ADMIN:
            return True
        return principal.role in roles

    def _evaluate_permission(self, principal: Principal, permission: str) -> Decision:
        if principal.role == ROLE_ADMIN:
            return Decision.ALLOW

        if principal.role == ROLE_STAFF:
            if not principal.has_staff_profile:
                return Decision.STAFF_PROFILE_MISSING
            if permission in principal.explicit_grants:
                return Decision.ALLOW
            # Site managers hold blanket operational authority.
            if principal.staff_sub_role in self.policy.blanket_sub_roles:
                return Decision.ALLOW
            if permission in self.policy.permissions_for_sub_role(principal.staff_sub_role):
                return Decision.ALLOW
            return Decision.DENY

        if principal.role == ROLE_PARENT:
            if permission in self.policy.parent_permissions:
                return Decision.ALLOW
            return Decision.DENY

        return Decision.DENY


default_evaluator = PermissionEvaluator()


def check_permission(principal: Principal, permission: str) -> bool:
    return default_evaluator.check_permission(principal, permission)


def check_role(principal: Principal, roles: str | Iterable[str]) -> bool:
    return default_evaluator.check_role(principal, roles)
