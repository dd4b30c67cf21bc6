"""Activity API tests."""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import ALICE
from mukando.db.models import UserActivity


@pytest.mark.asyncio
async def test_track_activity(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post(
        "/api/activity",
        json={"userAddress": ALICE, "activityType": "join_pool", "details": "joined pool 0xabc"},
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Activity tracked successfully"}

    rows = (await db_session.execute(select(UserActivity))).scalars().all()
    assert len(rows) == 1
    assert rows[0].user_address == ALICE
    assert rows[0].activity_type == "join_pool"
    assert rows[0].details == "joined pool 0xabc"


@pytest.mark.asyncio
async def test_structured_details_stored_as_json(client: AsyncClient, db_session: AsyncSession) -> None:
    await client.post(
        "/api/activity",
        json={"userAddress": ALICE, "activityType": "contribute", "details": {"round": 2, "amount": 10}},
    )
    row = (await db_session.execute(select(UserActivity))).scalar_one()
    assert json.loads(row.details) == {"round": 2, "amount": 10}


@pytest.mark.asyncio
async def test_activity_for_unmirrored_user_is_accepted(client: AsyncClient) -> None:
    """Activity rows do not require a user row."""
    response = await client.post("/api/activity", json={"userAddress": "0xunknown", "activityType": "visit"})
    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"activityType": "visit"},
        {"userAddress": ALICE},
        {"userAddress": "", "activityType": "visit"},
    ],
)
async def test_missing_fields_is_400(client: AsyncClient, body: dict) -> None:
    response = await client.post("/api/activity", json=body)
    assert response.status_code == 400
    assert response.json() == {"error": "userAddress and activityType are required"}
