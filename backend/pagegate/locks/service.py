# backend/pagegate/locks/service.py
"""
Advisory page locks stored in ``system_lock_pages``.

A lock is a row keyed by (resource, resource_id) that expires ``ttl`` seconds
after it was taken. Nothing in the database enforces it; pages that want
exclusive editing ask ``try_acquire`` first and show "locked by X" when they
get a denial back.

Acquisition never relies on a read-then-write alone: new rows go through the
primary key and takeovers are a conditional UPDATE, so when two requests race
for the same key the loser gets a denial naming the winner.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, insert, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..shared.db import as_utc_naive, utcnow
from ..shared.errors import NotLockHolder, StorageUnavailable
from .models import PageLock

log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class LockResult:
    acquired: bool
    resource: str
    resource_id: int
    holder_id: Optional[int]
    locked_at: Optional[datetime]
    expires_at: Optional[datetime]

    @classmethod
    def from_record(cls, acquired: bool, lock: PageLock) -> "LockResult":
        return cls(
            acquired=acquired,
            resource=lock.resource,
            resource_id=lock.resource_id,
            holder_id=lock.locked_by_user_id,
            locked_at=lock.locked_at,
            expires_at=lock.expires_at,
        )

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        if self.expires_at is None:
            return 0
        now = as_utc_naive(now) if now is not None else utcnow()
        return max(int((self.expires_at - now).total_seconds()), 0)


class PageLockManager:
    def __init__(self, db: Session, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.db = db
        self.ttl = timedelta(seconds=ttl_seconds)

    @staticmethod
    def _now(now: Optional[datetime]) -> datetime:
        return utcnow() if now is None else as_utc_naive(now)

    def _load(self, resource: str, resource_id: int) -> Optional[PageLock]:
        return self.db.get(PageLock, (resource, resource_id), populate_existing=True)

    def _storage_error(self, what: str, exc: SQLAlchemyError) -> StorageUnavailable:
        self.db.rollback()
        log.error("%s failed: %s", what, exc)
        return StorageUnavailable(f"{what} failed")

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete every lock whose ``expires_at`` is before ``now``."""
        now = self._now(now)
        try:
            res = self.db.execute(
                delete(PageLock)
                .where(PageLock.expires_at < now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._storage_error("lock sweep", e) from e
        removed = res.rowcount or 0
        if removed:
            log.debug("swept %d expired page lock(s)", removed)
        return removed

    def get_lock(
        self, resource: str, resource_id: int, now: Optional[datetime] = None
    ) -> Optional[PageLock]:
        now = self._now(now)
        try:
            lock = self._load(resource, resource_id)
        except SQLAlchemyError as e:
            raise self._storage_error("lock lookup", e) from e
        if lock is None or not lock.is_live(now):
            return None
        return lock

    def try_acquire(
        self,
        resource: str,
        resource_id: int,
        actor_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> LockResult:
        now = self._now(now)
        try:
            self.sweep_expired(now)
        except StorageUnavailable:
            log.warning("sweep before acquiring %s#%s failed, continuing", resource, resource_id)

        expires_at = now + self.ttl
        acquired = LockResult(True, resource, resource_id, actor_id, now, expires_at)
        try:
            cur = self._load(resource, resource_id)
            if cur is None:
                self.db.execute(
                    insert(PageLock).values(
                        resource=resource,
                        resource_id=resource_id,
                        locked_by_user_id=actor_id,
                        locked_at=now,
                        expires_at=expires_at,
                    )
                )
                self.db.commit()
                log.info("%s#%s locked by user %s", resource, resource_id, actor_id)
                return acquired

            if cur.is_live(now) and cur.locked_by_user_id != actor_id:
                log.info(
                    "%s#%s requested by user %s, held by user %s",
                    resource, resource_id, actor_id, cur.locked_by_user_id,
                )
                return LockResult.from_record(False, cur)

            # 만료됐거나 본인 잠금 → 새 레코드로 덮어쓰기
            res = self.db.execute(
                update(PageLock)
                .where(
                    PageLock.resource == resource,
                    PageLock.resource_id == resource_id,
                    or_(PageLock.expires_at < now, PageLock.locked_by_user_id == actor_id),
                )
                .values(locked_by_user_id=actor_id, locked_at=now, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
            if res.rowcount == 1:
                log.info("%s#%s (re)locked by user %s", resource, resource_id, actor_id)
                return acquired
        except IntegrityError:
            self.db.rollback()
        except SQLAlchemyError as e:
            raise self._storage_error("lock acquisition", e) from e

        return self._lost_race(resource, resource_id, actor_id, now)

    def _lost_race(
        self, resource: str, resource_id: int, actor_id: Optional[int], now: datetime
    ) -> LockResult:
        """Another request wrote the key between our read and our write."""
        try:
            winner = self._load(resource, resource_id)
        except SQLAlchemyError as e:
            raise self._storage_error("lock lookup", e) from e
        if winner is not None and winner.is_live(now) and winner.locked_by_user_id == actor_id:
            # 같은 사용자의 동시 요청(더블클릭 등): 이긴 쪽 잠금이 곧 내 잠금
            return LockResult.from_record(True, winner)
        log.info(
            "%s#%s: user %s lost acquisition race to user %s",
            resource, resource_id, actor_id, winner.locked_by_user_id if winner else None,
        )
        if winner is None:
            return LockResult(False, resource, resource_id, None, None, None)
        return LockResult.from_record(False, winner)

    def _held_by(self, resource: str, resource_id: int, actor_id: Optional[int], now: datetime):
        return (
            PageLock.resource == resource,
            PageLock.resource_id == resource_id,
            PageLock.locked_by_user_id == actor_id,
            PageLock.expires_at >= now,
        )

    def refresh(
        self,
        resource: str,
        resource_id: int,
        actor_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> LockResult:
        """Heartbeat: restart the TTL of a live lock held by ``actor_id``."""
        now = self._now(now)
        expires_at = now + self.ttl
        try:
            res = self.db.execute(
                update(PageLock)
                .where(*self._held_by(resource, resource_id, actor_id, now))
                .values(locked_at=now, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._storage_error("lock refresh", e) from e
        if res.rowcount == 1:
            return LockResult(True, resource, resource_id, actor_id, now, expires_at)

        lock = self.get_lock(resource, resource_id, now)
        if lock is None:
            raise NotLockHolder(resource, resource_id, actor_id)
        return LockResult.from_record(False, lock)

    def release(self, resource: str, resource_id: int) -> bool:
        """Drop the lock whoever holds it."""
        try:
            res = self.db.execute(
                delete(PageLock)
                .where(PageLock.resource == resource, PageLock.resource_id == resource_id)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._storage_error("lock release", e) from e
        released = (res.rowcount or 0) > 0
        if released:
            log.info("%s#%s released", resource, resource_id)
        return released

    def release_held(
        self,
        resource: str,
        resource_id: int,
        actor_id: Optional[int],
        now: Optional[datetime] = None,
    ) -> bool:
        """Release only if ``actor_id`` holds the live lock.

        Returns False when there is no live lock; raises ``NotLockHolder``
        when someone else holds it.
        """
        now = self._now(now)
        try:
            res = self.db.execute(
                delete(PageLock)
                .where(*self._held_by(resource, resource_id, actor_id, now))
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._storage_error("lock release", e) from e
        if (res.rowcount or 0) > 0:
            log.info("%s#%s released by user %s", resource, resource_id, actor_id)
            return True

        lock = self.get_lock(resource, resource_id, now)
        if lock is not None and lock.locked_by_user_id != actor_id:
            raise NotLockHolder(resource, resource_id, actor_id)
        return False
