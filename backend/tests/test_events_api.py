"""
Sanctuary Backend — Event Endpoint Tests
==========================================

What:  /api/events through the full HTTP stack against SQLite.

What we test:
    ✅ Create → get returns the same fields (camelCase on the wire)
    ✅ Lists: all ascending; limit/{n} future-only with default 3
    ✅ Full-replace update and 404 on unknown id
    ✅ Delete by id and bulk delete of expired events
    ✅ Malformed ids surface as a generic 500
"""

from datetime import datetime, timedelta, timezone

import pytest

from sanctuary.models.event import Event
from sanctuary.services.event_service import EventService


def _when(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


async def _seed(session_factory, *offsets_in_days):
    async with session_factory() as session:
        for i, days in enumerate(offsets_in_days):
            session.add(Event(name=f"Event {i}", address="Hall", date=_when(days), time="10:00 AM"))
        await session.commit()


class TestEventCrud:

    @pytest.mark.asyncio
    async def test_create_then_get(self, test_client, auth_headers, event_payload):
        created = await test_client.post("/api/events", json=event_payload, headers=auth_headers)

        assert created.status_code == 201
        body = created.json()
        event_id = body["id"]
        assert body["event"]["id"] == event_id

        fetched = await test_client.get(f"/api/events/{event_id}")
        assert fetched.status_code == 200
        event = fetched.json()["event"]
        assert event["name"] == event_payload["name"]
        assert event["details"] == event_payload["details"]
        assert event["address"] == event_payload["address"]
        assert event["time"] == event_payload["time"]
        assert datetime.fromisoformat(event["date"]) == datetime.fromisoformat(event_payload["date"])

    @pytest.mark.asyncio
    async def test_details_optional(self, test_client, auth_headers, event_payload):
        del event_payload["details"]

        created = await test_client.post("/api/events", json=event_payload, headers=auth_headers)

        assert created.status_code == 201
        assert created.json()["event"]["details"] is None

    @pytest.mark.asyncio
    async def test_missing_required_field(self, test_client, auth_headers, event_payload):
        del event_payload["address"]

        response = await test_client.post("/api/events", json=event_payload, headers=auth_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_get_unknown(self, test_client):
        unknown = "7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e"
        response = await test_client.get(f"/api/events/{unknown}")

        assert response.status_code == 404
        assert response.json()["message"] == f"Could not find a event with ID of {unknown}"

    @pytest.mark.asyncio
    async def test_malformed_id_is_server_error(self, test_client):
        response = await test_client.get("/api/events/not-an-id")

        assert response.status_code == 500
        assert response.json()["error"] == "server_error"

    @pytest.mark.asyncio
    async def test_update_replaces_fields(self, test_client, auth_headers, event_payload):
        event_id = (await test_client.post("/api/events", json=event_payload, headers=auth_headers)).json()["id"]
        replacement = {**event_payload, "name": "Harvest Supper (moved)", "details": None, "time": "7:00 PM"}

        response = await test_client.put(f"/api/events/{event_id}", json=replacement, headers=auth_headers)

        assert response.status_code == 200
        event = response.json()["event"]
        assert event["name"] == "Harvest Supper (moved)"
        assert event["details"] is None
        assert event["time"] == "7:00 PM"

    @pytest.mark.asyncio
    async def test_update_unknown(self, test_client, auth_headers, event_payload):
        response = await test_client.put(
            "/api/events/7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e",
            json=event_payload,
            headers=auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, test_client, auth_headers, event_payload):
        event_id = (await test_client.post("/api/events", json=event_payload, headers=auth_headers)).json()["id"]

        response = await test_client.delete(f"/api/events/{event_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"result": {"deletedCount": 1}}
        assert (await test_client.get(f"/api/events/{event_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_unknown_is_not_an_error(self, test_client, auth_headers):
        response = await test_client.delete(
            "/api/events/7d1c7d7e-5a2b-4c9e-9d55-4f1e2b3c4d5e",
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["result"]["deletedCount"] == 0


class TestEventLists:

    @pytest.mark.asyncio
    async def test_list_ascending(self, test_client, session_factory):
        await _seed(session_factory, 5, -2, 1)

        events = (await test_client.get("/api/events")).json()["events"]

        dates = [datetime.fromisoformat(e["date"]) for e in events]
        assert len(events) == 3
        assert dates == sorted(dates)

    @pytest.mark.asyncio
    async def test_limit_returns_future_only(self, test_client, session_factory):
        await _seed(session_factory, -3, -1, 1, 2, 3, 4)

        events = (await test_client.get("/api/events/limit/2")).json()["events"]

        assert [e["name"] for e in events] == ["Event 2", "Event 3"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw_limit", ["test", "0", "-4", "2.5"])
    async def test_invalid_limit_defaults_to_three(self, test_client, session_factory, raw_limit):
        await _seed(session_factory, 1, 2, 3, 4, 5)

        events = (await test_client.get(f"/api/events/limit/{raw_limit}")).json()["events"]

        assert len(events) == 3

    @pytest.mark.asyncio
    async def test_huge_limit_returns_all_upcoming(self, test_client, session_factory):
        await _seed(session_factory, -1, 1, 2, 3, 4)

        response = await test_client.get("/api/events/limit/99999999999999999999")

        assert response.status_code == 200
        assert len(response.json()["events"]) == 4


class TestExpiredEvents:

    @pytest.mark.asyncio
    async def test_delete_old_removes_only_past_events(self, test_client, auth_headers, session_factory):
        await _seed(session_factory, -10, -1, 1, 30)

        response = await test_client.delete("/api/events/delete/old", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["result"]["deletedCount"] == 2
        remaining = (await test_client.get("/api/events")).json()["events"]
        assert [e["name"] for e in remaining] == ["Event 2", "Event 3"]

    @pytest.mark.asyncio
    async def test_boundary_is_inclusive(self, db_session):
        now = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
        db_session.add(Event(name="Exactly now", address="Hall", date=now, time="noon"))
        db_session.add(Event(name="Later", address="Hall", date=now + timedelta(seconds=1), time="noon"))
        await db_session.flush()

        result = await EventService().delete_expired(db_session, now=now)

        assert result.result.deleted_count == 1
