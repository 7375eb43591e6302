"""
Tests for event catalog endpoints and the registration summary.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient


def future_date(days: int = 30) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={
            "title": "Hackathon Kickoff",
            "description": "Annual campus hackathon",
            "date": future_date(),
            "location": "Engineering Hall",
            "capacity": 150,
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Hackathon Kickoff"
    assert data["capacity"] == 150


@pytest.mark.asyncio
async def test_create_event_unbounded_capacity(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Open Mic", "date": future_date()},
    )
    assert response.status_code == 201
    assert response.json()["capacity"] is None


@pytest.mark.asyncio
async def test_create_event_zero_capacity(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Invite Only", "date": future_date(), "capacity": 0},
    )
    assert response.status_code == 201
    assert response.json()["capacity"] == 0


@pytest.mark.asyncio
async def test_create_event_negative_capacity(client: AsyncClient):
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Broken", "date": future_date(), "capacity": -1},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_event_past_date(client: AsyncClient):
    past_date = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.post(
        "/api/v1/events/",
        json={"title": "Past Event", "date": past_date, "capacity": 10},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, make_event):
    await make_event(capacity=10)
    await make_event(capacity=None, title="Second")

    response = await client.get("/api/v1/events/")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert len(data["events"]) == 2
    assert data["page"] == 1
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, make_event):
    for i in range(3):
        await make_event(capacity=10, title=f"Event {i}")

    response = await client.get("/api/v1/events/?page=2&page_size=2")
    assert response.status_code == 200
    data = response.json()
    assert data["page_size"] == 2
    assert data["total"] == 3
    assert len(data["events"]) == 1


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, make_event):
    event_id = await make_event(capacity=10)

    response = await client.get(f"/api/v1/events/{event_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == event_id
    assert data["title"] == "Test Concert"


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    assert response.json() == {"error": "Event 99999 not found"}


@pytest.mark.asyncio
async def test_event_summary(client: AsyncClient, make_event):
    event_id = await make_event(capacity=2)
    for attendee_id in (1, 2, 3):
        await client.post("/api/v1/register-event", json={"attendeeId": attendee_id, "eventId": event_id})

    response = await client.get(f"/api/v1/events/{event_id}/summary")
    assert response.status_code == 200
    assert response.json() == {
        "event_id": event_id,
        "capacity": 2,
        "registered_count": 2,
        "waitlisted_count": 1,
        "seats_remaining": 0,
        "cached": False,
    }


@pytest.mark.asyncio
async def test_event_summary_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999/summary")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_health_and_metrics(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["cache"] == {"status": "disabled"}

    metrics = await client.get("/metrics")
    assert metrics.status_code == 200
    assert "registration_attempts_total" in metrics.text
