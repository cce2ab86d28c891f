# backend/pagegate/auth/utils.py
import datetime as dt
import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from ..deps import get_db
from ..shared.config import settings
from ..security.hashing import create_hash, create_salt, verify_hash
from .models import User, UserRole


def create_token(user_id: int) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + dt.timedelta(minutes=settings.ACCESS_TTL_MIN),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def set_password(user: User, password: str) -> None:
    salt = create_salt()
    user.password_salt = salt
    user.password_hash = create_hash(password, salt)


def check_password(user: User, password: str) -> bool:
    return verify_hash(password, user.password_salt, user.password_hash)


def _bearer_token(request: Request) -> str:
    authz = request.headers.get("authorization")
    if not authz or not authz.lower().startswith("bearer "):
        raise HTTPException(401, "Not authenticated")
    return authz.split(" ", 1)[1]


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = _bearer_token(request)
    try:
        data = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except jwt.ExpiredSignatureError:
        raise HTTPException(401, "Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(401, "Invalid token")
    try:
        uid = int(data["sub"])
    except (KeyError, ValueError):
        raise HTTPException(401, "Invalid token")
    user = db.get(User, uid)
    if not user or not user.is_active:
        raise HTTPException(401, "User disabled")
    return user


def require_roles(*roles: UserRole):
    def _dep(user: User = Depends(current_user)):
        if roles and user.role not in roles:
            raise HTTPException(403, "Forbidden")
        return user

    return _dep
