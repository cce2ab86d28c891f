# backend/pagegate/auth/router.py
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from ..deps import get_db
from ..shared.config import settings
from ..shared.db import utcnow
from ..security.deps import require_referer_match, require_trusted_origin
from .models import User, UserRole
from .schemas import LoginIn, TokenOut, UserCreate, UserOut
from .utils import check_password, create_token, current_user, require_roles, set_password

log = logging.getLogger(__name__)

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/auth",
    tags=["auth"],
    dependencies=[Depends(require_trusted_origin)],
)

# 로그인 폼 출처 제한 (설정된 경우에만)
_login_deps = []
if settings.login_referer_patterns_list:
    _login_deps.append(Depends(require_referer_match(settings.login_referer_patterns_list)))


@router.post("/login", response_model=TokenOut, dependencies=_login_deps)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = db.scalar(select(User).where(User.email == payload.email, User.is_active.is_(True)))
    if not user or not check_password(user, payload.password):
        log.info("login failed for %s", payload.email)
        raise HTTPException(status_code=401, detail="invalid credentials")
    token = create_token(user.id)
    user.last_login_at = utcnow()
    db.commit()
    return {"access_token": token}


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(current_user)):
    return UserOut(id=user.id, email=user.email, name=user.name, role=user.role)


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    _=Depends(require_roles(UserRole.admin)),
):
    if db.scalar(select(User).where(User.email == payload.email)):
        raise HTTPException(409, "email already registered")
    user = User(email=payload.email, name=payload.name, role=payload.role, is_active=True)
    set_password(user, payload.password)
    db.add(user)
    db.commit()
    db.refresh(user)
    log.info("user %s created with role %s", user.email, user.role.value)
    return user
