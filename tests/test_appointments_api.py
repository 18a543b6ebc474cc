"""
End-to-end tests for the /api/v1/appointments routes.
"""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app

pytestmark = pytest.mark.api

BASE = "/api/v1/appointments"


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_create_and_show(client):
    payload = {"name": "Ada Lovelace", "email": "ada@analytical.org", "start": "2024-06-01 10:00:00"}

    created = await client.post(BASE, json=payload)

    assert created.status_code == 201
    body = created.json()
    assert body["name"] == "Ada Lovelace"
    assert body["start"] == "2024-06-01T10:00:00"
    assert "created_at" in body and "updated_at" in body

    shown = await client.get(f"{BASE}/{body['id']}")
    assert shown.status_code == 200
    assert shown.json() == {
        "id": body["id"],
        "name": "Ada Lovelace",
        "email": "ada@analytical.org",
        "start": "2024-06-01T10:00:00",
    }


async def test_create_invalid_reports_fields(client):
    response = await client.post(BASE, json={"name": "", "email": "nope"})

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert set(errors) == {"name", "email", "start"}


async def test_create_on_booked_slot_is_rejected(client, make_appointment):
    await make_appointment(datetime(2024, 6, 1, 9, 0))

    response = await client.post(
        BASE, json={"name": "Grace", "email": "grace@cobol.org", "start": "2024-06-01T09:00:00"}
    )

    assert response.status_code == 422
    assert list(response.json()["detail"]["errors"]) == ["start"]


async def test_show_missing_is_404(client):
    response = await client.get(f"{BASE}/999")

    assert response.status_code == 404
    assert response.json() == {"detail": "Appointment not found"}


async def test_list_all_uses_summary_projection(client, make_appointment):
    await make_appointment(datetime(2024, 6, 1, 9, 0))
    await make_appointment(datetime(2024, 6, 2, 9, 0))

    response = await client.get(BASE)

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 2
    assert set(rows[0]) == {"id", "name", "email", "start"}


async def test_list_by_date_excludes_after_23_00(client, make_appointment):
    await make_appointment(datetime(2024, 6, 1, 10, 0))
    await make_appointment(datetime(2024, 6, 1, 23, 0))
    await make_appointment(datetime(2024, 6, 1, 23, 30))

    response = await client.get(BASE, params={"date": "2024-06-01"})

    assert response.status_code == 200
    assert [r["start"] for r in response.json()] == ["2024-06-01T10:00:00", "2024-06-01T23:00:00"]


async def test_list_with_bad_date_is_422(client):
    response = await client.get(BASE, params={"date": "June first"})

    assert response.status_code == 422


async def test_update_keeps_unconfigured_start(client, make_appointment):
    existing = await make_appointment(datetime(2024, 6, 1, 8, 0))

    response = await client.put(
        f"{BASE}/{existing.id}",
        json={"name": "Ada King", "email": "ada@analytical.org", "start": "2024-06-01 08:00:00"},
    )

    assert response.status_code == 202
    assert response.json()["name"] == "Ada King"
    assert response.json()["start"] == "2024-06-01T08:00:00"


async def test_update_to_unconfigured_start_is_422(client, make_appointment):
    existing = await make_appointment(datetime(2024, 6, 1, 9, 0))

    response = await client.patch(f"{BASE}/{existing.id}", json={"start": "2024-06-01 12:00:00"})

    assert response.status_code == 422
    shown = await client.get(f"{BASE}/{existing.id}")
    assert shown.json()["start"] == "2024-06-01T09:00:00"


async def test_update_missing_is_404(client):
    response = await client.put(f"{BASE}/77", json={"name": "Nobody"})

    assert response.status_code == 404


async def test_delete_then_show_is_404(client, make_appointment):
    existing = await make_appointment(datetime(2024, 6, 1, 9, 0))

    deleted = await client.delete(f"{BASE}/{existing.id}")
    assert deleted.status_code == 204
    assert deleted.content == b""

    assert (await client.get(f"{BASE}/{existing.id}")).status_code == 404
    assert (await client.delete(f"{BASE}/{existing.id}")).status_code == 404


async def test_available_hours(client, make_appointment):
    await make_appointment(datetime(2024, 6, 1, 10, 0))

    response = await client.get(f"{BASE}/2024-06-01/hours")

    assert response.status_code == 200
    assert response.json() == ["09:00:00", "11:00:00"]


async def test_available_hours_bad_date_is_422(client):
    response = await client.get(f"{BASE}/someday/hours")

    assert response.status_code == 422


async def test_unhandled_error_returns_opaque_500(session_maker, valid_hours, monkeypatch):
    from app.api.deps import get_session, get_valid_hours
    from app.api.routes import appointments as routes

    async def _boom(*args, **kwargs):
        raise RuntimeError("password=hunter2 host=db.internal")

    async def _override_session():
        async with session_maker() as session:
            yield session

    monkeypatch.setattr(routes, "list_appointments", _boom)
    app.dependency_overrides[get_session] = _override_session
    app.dependency_overrides[get_valid_hours] = lambda: valid_hours
    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get(BASE)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal Server Error"}
    assert "hunter2" not in response.text
