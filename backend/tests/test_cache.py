"""
Tests for the read-side Redis cache: event listings and registration
summaries, using an in-memory Redis.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from app.services.registration_service import RegistrationCoordinator


async def register(client: AsyncClient, attendee_id: int, event_id: int):
    return await client.post(
        "/api/v1/register-event",
        json={"attendeeId": attendee_id, "eventId": event_id},
    )


async def summary(client: AsyncClient, event_id: int) -> dict:
    response = await client.get(f"/api/v1/events/{event_id}/summary")
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_summary_served_from_cache(client: AsyncClient, make_event, fake_redis):
    event_id = await make_event(capacity=5)

    first = await summary(client, event_id)
    second = await summary(client, event_id)

    assert first["cached"] is False
    assert second["cached"] is True
    assert second["registered_count"] == 0


@pytest.mark.asyncio
async def test_register_and_cancel_refresh_summary(client: AsyncClient, make_event, fake_redis):
    event_id = await make_event(capacity=5)
    await summary(client, event_id)

    await register(client, 1, event_id)
    after_register = await summary(client, event_id)
    assert after_register["cached"] is False
    assert after_register["registered_count"] == 1
    assert after_register["seats_remaining"] == 4

    await client.delete(f"/api/v1/unregister-event/1/{event_id}")
    after_cancel = await summary(client, event_id)
    assert after_cancel["cached"] is False
    assert after_cancel["registered_count"] == 0


@pytest.mark.asyncio
async def test_summary_computed_before_commit_is_not_cached(
    client: AsyncClient, make_event, fake_redis, monkeypatch
):
    """A register that commits while a summary is being built must not leave it cached."""
    event_id = await make_event(capacity=5)
    original = RegistrationCoordinator.event_summary
    raced = {"done": False}

    async def summary_then_register(self, target_event_id):
        result = await original(self, target_event_id)
        if not raced["done"]:
            raced["done"] = True
            response = await register(client, 1, target_event_id)
            assert response.status_code == 200
        return result

    monkeypatch.setattr(RegistrationCoordinator, "event_summary", summary_then_register)

    stale = await summary(client, event_id)
    assert stale["registered_count"] == 0

    fresh = await summary(client, event_id)
    assert fresh["registered_count"] == 1
    assert fresh["seats_remaining"] == 4


@pytest.mark.asyncio
async def test_event_list_cache_invalidated_on_create(client: AsyncClient, fake_redis):
    future = (datetime.now(timezone.utc) + timedelta(days=10)).isoformat()
    await client.post("/api/v1/events/", json={"title": "Career Fair", "date": future})

    first = (await client.get("/api/v1/events/")).json()
    second = (await client.get("/api/v1/events/")).json()
    assert first["cached"] is False
    assert second["cached"] is True

    await client.post("/api/v1/events/", json={"title": "Robotics Demo", "date": future})
    third = (await client.get("/api/v1/events/")).json()
    assert third["cached"] is False
    assert third["total"] == 2
