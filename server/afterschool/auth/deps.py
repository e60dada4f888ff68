from __future__ import annotations

import enum
import logging
from typing import Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from afterschool.auth.permissions import (
    ROLE_PARENT,
    ROLE_STAFF,
    Decision,
    PermissionEvaluator,
    PermissionRequirement,
    Principal,
    Requirement,
    RoleRequirement,
    default_evaluator,
)
from afterschool.auth.security import decode_access_token
from afterschool.core.db import get_db
from afterschool.models.user import User
from afterschool.services.staff import get_staff_by_user_id

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class AuthOutcome(str, enum.Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    STAFF_PROFILE_MISSING = "staff_profile_missing"


def authorize(
    principal: Principal | None,
    requirement: Requirement,
    evaluator: PermissionEvaluator = default_evaluator,
    allow_public: bool = False,
) -> AuthOutcome:
    if principal is None:
        return AuthOutcome.ALLOW if allow_public else AuthOutcome.UNAUTHENTICATED

    decision = evaluator.evaluate(principal, requirement)
    if decision is Decision.ALLOW:
        return AuthOutcome.ALLOW
    if decision is Decision.STAFF_PROFILE_MISSING:
        return AuthOutcome.STAFF_PROFILE_MISSING
    return AuthOutcome.FORBIDDEN


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if not credentials:
        return None

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    subject = payload.get("sub")
    if subject is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    try:
        user = db.get(User, int(subject))
    except (TypeError, ValueError):
        user = None

    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    return user


def build_principal(db: Session, user: User) -> Principal:
    if user.role != ROLE_STAFF:
        return Principal.build(user.id, user.role)

    profile = get_staff_by_user_id(db, user.id)
    if profile is None:
        return Principal.build(user.id, user.role, has_staff_profile=False)
    if not profile.is_active:
        # Deactivated staff keep their login but hold no permissions.
        return Principal.build(user.id, user.role)
    return Principal.build(
        user.id,
        user.role,
        staff_sub_role=profile.staff_role,
        explicit_grants=profile.permissions or (),
    )


def get_current_principal(
    user: User | None = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Principal | None:
    if user is None:
        return None
    return build_principal(db, user)


def get_permission_evaluator() -> PermissionEvaluator:
    return default_evaluator


def _enforce(outcome: AuthOutcome, principal: Principal | None, requirement: Requirement) -> None:
    if outcome is AuthOutcome.ALLOW:
        return
    if outcome is AuthOutcome.UNAUTHENTICATED:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    if outcome is AuthOutcome.STAFF_PROFILE_MISSING:
        logger.error("staff_profile_missing", extra={"user_id": principal.id if principal else None})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff record not found")
    logger.info(
        "authorization_denied",
        extra={
            "user_id": principal.id if principal else None,
            "role": principal.role if principal else None,
            "requirement": repr(requirement),
        },
    )
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


def _requirement_checker(requirement: Requirement, allow_public: bool) -> Callable[..., Principal | None]:
    def checker(
        principal: Principal | None = Depends(get_current_principal),
        evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
    ) -> Principal | None:
        outcome = authorize(principal, requirement, evaluator, allow_public=allow_public)
        _enforce(outcome, principal, requirement)
        return principal

    return checker


def require_roles(*roles: str, allow_public: bool = False) -> Callable[..., Principal | None]:
    return _requirement_checker(RoleRequirement.of(*roles), allow_public)


def require_permission(permission: str, allow_public: bool = False) -> Callable[..., Principal | None]:
    return _requirement_checker(PermissionRequirement(permission), allow_public)


def ensure_permission(
    principal: Principal | None,
    permission: str,
    evaluator: PermissionEvaluator = default_evaluator,
) -> None:
    """In-handler permission check for routes shared by several roles."""

    requirement = PermissionRequirement(permission)
    _enforce(authorize(principal, requirement, evaluator), principal, requirement)


def ensure_guardian_access(
    principal: Principal | None,
    parent_id: int | None,
    permission: str,
    evaluator: PermissionEvaluator = default_evaluator,
) -> None:
    """Parents need ``permission`` and must own the child; other roles pass through."""

    if principal is None or principal.role != ROLE_PARENT:
        return
    ensure_permission(principal, permission, evaluator)
    if parent_id != principal.id:
        # Other families' children are reported as missing, not forbidden.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
