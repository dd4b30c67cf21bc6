"""User Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserCreateRequest(BaseModel):
    """Body of POST /api/users. ``address`` is checked by the handler so a missing one is a 400."""

    address: str | None = None
    username: str | None = None
    email: str | None = None


class UserResponse(BaseModel):
    """Mirrored user row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    address: str
    username: str | None = None
    email: str | None = None
    is_member: bool
    referral_count: int
    total_earnings: float
    created_at: datetime
    updated_at: datetime
