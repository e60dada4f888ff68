import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from afterschool.auth.deps import build_principal, get_current_user, get_permission_evaluator
from afterschool.auth.permissions import PermissionEvaluator
from afterschool.auth.security import create_access_token, verify_password
from afterschool.core.db import get_db
from afterschool.models.user import User
from afterschool.schemas.auth import LoginRequest, TokenResponse, WhoAmIResponse

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user = db.query(User).filter(User.username == payload.username.strip()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not verify_password(payload.password, user.hashed_password):
        logger.info("login_failed", extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    token = create_access_token(subject=str(user.id), role=user.role)
    return TokenResponse(access_token=token)


@router.get("/whoami", response_model=WhoAmIResponse)
def whoami(
    user: User | None = Depends(get_current_user),
    db: Session = Depends(get_db),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator),
) -> WhoAmIResponse:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    principal = build_principal(db, user)
    permissions = evaluator.effective_permissions(principal)
    return WhoAmIResponse(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        role=user.role,
        staff_sub_role=principal.staff_sub_role,
        permissions=sorted(permissions) if permissions is not None else None,
    )
