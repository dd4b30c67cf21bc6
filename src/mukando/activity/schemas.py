"""Activity Pydantic schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActivityCreateRequest(BaseModel):
    """Body of POST /api/activity, in the frontend's camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    user_address: str | None = Field(None, alias="userAddress")
    activity_type: str | None = Field(None, alias="activityType")
    details: str | dict[str, Any] | list[Any] | None = None


class MessageResponse(BaseModel):
    message: str
