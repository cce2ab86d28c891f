# backend/pagegate/locks/models.py
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, DateTime, ForeignKey, Index
from ..shared.db import Base


class PageLock(Base):
    __tablename__ = "system_lock_pages"
    # (resource, resource_id) 당 1행: PK가 동시 획득 경합을 막아준다
    resource: Mapped[str] = mapped_column(String(100), primary_key=True)
    resource_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    locked_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    locked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (Index("ix_system_lock_pages_expires_at", "expires_at"),)

    def is_live(self, now: datetime) -> bool:
        return self.expires_at >= now
