# backend/pagegate/locks/schemas.py
from pydantic import BaseModel, Field
from datetime import datetime


class LockKeyIn(BaseModel):
    resource: str = Field(min_length=1, max_length=100)  # e.g. "std_release"
    resource_id: int


class LockOut(BaseModel):
    resource: str
    resource_id: int
    locked_by_user_id: int | None
    locked_by_name: str | None
    locked_at: datetime
    expires_at: datetime
    remaining_sec: int


class ReleaseOut(BaseModel):
    released: bool


class SweepOut(BaseModel):
    removed: int
