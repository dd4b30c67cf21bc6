"""User endpoints: /api/users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mukando.database import get_session
from mukando.users.schemas import UserCreateRequest, UserResponse
from mukando.users.service import UserAlreadyExistsError, create_user, get_user, list_users

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("", response_model=UserResponse | list[UserResponse])
async def get_users(
    address: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
) -> UserResponse | list[UserResponse]:
    """One user by ``address``, or every user newest first."""
    if address:
        user = await get_user(db, address)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return UserResponse.model_validate(user)

    return [UserResponse.model_validate(u) for u in await list_users(db)]


@router.post("", response_model=UserResponse, status_code=201)
async def create_user_endpoint(
    body: UserCreateRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Mirror a new user."""
    if not body.address:
        raise HTTPException(status_code=400, detail="Address is required")

    try:
        user = await create_user(db, body.address, body.username, body.email)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=409, detail="User already exists") from e
    return UserResponse.model_validate(user)
