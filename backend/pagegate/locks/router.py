# backend/pagegate/locks/router.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from ..deps import get_db
from ..shared.config import settings
from ..shared.errors import NotLockHolder
from ..auth.utils import current_user, require_roles
from ..auth.models import User, UserRole
from ..security.deps import require_trusted_origin
from .schemas import LockKeyIn, LockOut, ReleaseOut, SweepOut
from .service import LockResult, PageLockManager

router = APIRouter(
    prefix=f"{settings.API_PREFIX}/locks",
    tags=["locks"],
    dependencies=[Depends(require_trusted_origin)],
)


def get_lock_manager(db: Session = Depends(get_db)) -> PageLockManager:
    return PageLockManager(db, ttl_seconds=settings.LOCK_TTL_SECONDS)


def _holder_name(db: Session, user_id: int | None) -> str | None:
    if user_id is None:
        return None
    u = db.get(User, user_id)
    return u.name if u else f"#{user_id}"


def _to_out(db: Session, res: LockResult) -> LockOut:
    return LockOut(
        resource=res.resource,
        resource_id=res.resource_id,
        locked_by_user_id=res.holder_id,
        locked_by_name=_holder_name(db, res.holder_id),
        locked_at=res.locked_at,
        expires_at=res.expires_at,
        remaining_sec=res.remaining_seconds(),
    )


def _conflict(db: Session, res: LockResult) -> HTTPException:
    if res.expires_at is None:
        # 경합에서 졌는데 상대 레코드가 이미 사라진 경우
        return HTTPException(status_code=409, detail={"message": "Lock is busy, retry", "lock": None})
    out = _to_out(db, res)
    return HTTPException(
        status_code=409,
        detail={
            "message": f"Locked by {out.locked_by_name or 'unknown user'}",
            "lock": out.model_dump(mode="json"),
        },
    )


@router.get("", response_model=LockOut | None)
def get_lock(
    resource: str,
    resource_id: int,
    db: Session = Depends(get_db),
    mgr: PageLockManager = Depends(get_lock_manager),
):
    lock = mgr.get_lock(resource, resource_id)
    if not lock:
        return None
    return _to_out(db, LockResult.from_record(True, lock))


@router.post("/acquire", response_model=LockOut)
def acquire_lock(
    req: LockKeyIn,
    db: Session = Depends(get_db),
    mgr: PageLockManager = Depends(get_lock_manager),
    user: User = Depends(require_roles(UserRole.admin, UserRole.editor)),
):
    res = mgr.try_acquire(req.resource, req.resource_id, user.id)
    if not res.acquired:
        raise _conflict(db, res)
    return _to_out(db, res)


@router.post("/heartbeat", response_model=LockOut)
def heartbeat(
    req: LockKeyIn,
    db: Session = Depends(get_db),
    mgr: PageLockManager = Depends(get_lock_manager),
    user: User = Depends(current_user),
):
    try:
        res = mgr.refresh(req.resource, req.resource_id, user.id)
    except NotLockHolder:
        raise HTTPException(404, "lock not found")
    if not res.acquired:
        raise _conflict(db, res)
    return _to_out(db, res)


@router.post("/release", response_model=ReleaseOut)
def release(
    req: LockKeyIn,
    mgr: PageLockManager = Depends(get_lock_manager),
    user: User = Depends(current_user),
):
    try:
        released = mgr.release_held(req.resource, req.resource_id, user.id)
    except NotLockHolder:
        raise HTTPException(403, "not owner")
    return {"released": released}


@router.post("/force-release", response_model=ReleaseOut)
def force_release(
    req: LockKeyIn,
    mgr: PageLockManager = Depends(get_lock_manager),
    _=Depends(require_roles(UserRole.admin)),
):
    return {"released": mgr.release(req.resource, req.resource_id)}


@router.post("/sweep", response_model=SweepOut)
def sweep(
    mgr: PageLockManager = Depends(get_lock_manager),
    _=Depends(require_roles(UserRole.admin)),
):
    return {"removed": mgr.sweep_expired()}
