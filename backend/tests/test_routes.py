"""
Tests for API route endpoints.

Tests: health, order placement and workflow actions, provider discovery,
and the error envelope for every domain error class.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
from sqlalchemy.exc import OperationalError


def _order_body(**overrides) -> dict:
    body = {
        "requesterRef": "cust-9845012345",
        "providerRef": "tailor-001",
        "garmentType": "Kurta",
        "measurements": {"chest": 40, "length": 42.5},
        "items": ["Kurta", "Pyjama"],
        "providerSuppliesFabric": True,
        "handoverType": "PICKUP",
        "payment": {"totalAmount": 1000, "depositAmount": 100, "depositMode": "ONLINE"},
    }
    body.update(overrides)
    return body


async def _create(client, **overrides) -> dict:
    resp = await client.post("/orders", json=_order_body(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


class TestHealthEndpoint:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_returns_200(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "healthy"
        assert body["database_connected"] is True


class TestOrderEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_order(self, client):
        order = await _create(client)

        assert order["status"] == "PLACED"
        assert order["payment"]["remaining_amount"] == 900
        assert order["payment"]["payment_status"] == "PENDING_DEPOSIT"
        assert order["payment"]["deposit_mode"] == "ONLINE"
        assert order["handover_type"] == "PICKUP"
        assert order["items"] == ["Kurta", "Pyjama"]
        assert order["provider_supplies_fabric"] is True
        # Requester sees their own delivery code
        assert len(order["delivery_code"]) == 4

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_order_deposit_above_total(self, client):
        resp = await client.post(
            "/orders",
            json=_order_body(payment={"totalAmount": 500, "depositAmount": 600}),
        )

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation"
        assert "depositAmount" in body["error"]["message"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_order_malformed_body(self, client):
        resp = await client.post("/orders", json={"requesterRef": "cust-1"})
        assert resp.status_code == 422

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_order_views(self, client):
        order = await _create(client)

        requester_view = (await client.get(f"/orders/{order['id']}")).json()["data"]
        provider_view = (await client.get(f"/orders/{order['id']}?audience=provider")).json()["data"]

        assert requester_view["delivery_code"] == order["delivery_code"]
        assert provider_view["delivery_code"] is None

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_order_is_404(self, client):
        resp = await client.get(f"/orders/{'0' * 32}")

        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_full_workflow_over_http(self, client):
        order = await _create(client)
        order_id = order["id"]

        resp = await client.post(f"/orders/{order_id}/accept")
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "ACCEPTED"

        statuses = []
        for _ in range(5):
            resp = await client.post(f"/orders/{order_id}/advance")
            assert resp.status_code == 200
            statuses.append(resp.json()["data"]["status"])
        assert statuses == ["CUTTING", "STITCHING", "FINISHING", "READY", "DELIVERED"]

        # Provider view carries the code once the garment is delivered
        assert resp.json()["data"]["delivery_code"] == order["delivery_code"]

        resp = await client.post(f"/orders/{order_id}/advance")
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "no_further_transition"
        assert error["details"]["current_status"] == "DELIVERED"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_accept_after_reject_is_409(self, client):
        order = await _create(client)

        resp = await client.post(f"/orders/{order['id']}/reject")
        assert resp.json()["data"]["status"] == "REJECTED"

        resp = await client.post(f"/orders/{order['id']}/accept")
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "invalid_transition"
        assert error["details"]["current_status"] == "REJECTED"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_advance_placed_order_is_409(self, client):
        order = await _create(client)

        resp = await client.post(f"/orders/{order['id']}/advance")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "no_further_transition"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_confirm_deposit(self, client):
        order = await _create(client)

        resp = await client.post(f"/orders/{order['id']}/confirm-deposit")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["status"] == "ACCEPTED"
        assert data["payment"]["deposit_status"] == "PAID"
        assert data["payment"]["payment_status"] == "DEPOSIT_PAID"

        resp = await client.post(f"/orders/{order['id']}/confirm-deposit")
        assert resp.status_code == 409

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_requester_history_paginated(self, client):
        for _ in range(3):
            await _create(client)
        await _create(client, requesterRef="cust-other")

        resp = await client.get("/orders/requester/cust-9845012345?limit=2")
        body = resp.json()

        assert resp.status_code == 200
        assert len(body["data"]) == 2
        assert body["meta"] == {"limit": 2, "offset": 0, "total": 3, "hasMore": True}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_provider_dashboard_tabs(self, client):
        new_order = await _create(client)
        ongoing_order = await _create(client)
        await client.post(f"/orders/{ongoing_order['id']}/accept")

        new_tab = (await client.get("/orders/provider/tailor-001?status=PLACED")).json()
        ongoing_tab = (await client.get("/orders/provider/tailor-001?status=ongoing")).json()

        assert [o["id"] for o in new_tab["data"]] == [new_order["id"]]
        assert [o["id"] for o in ongoing_tab["data"]] == [ongoing_order["id"]]
        assert all(o["delivery_code"] is None for o in new_tab["data"] + ongoing_tab["data"])

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_provider_dashboard_unknown_filter(self, client):
        resp = await client.get("/orders/provider/tailor-001?status=shipped")
        assert resp.status_code == 400
        assert "allowed" in resp.json()["error"]["details"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_provider_analytics(self, client):
        await _create(client)
        await _create(client)

        resp = await client.get("/orders/provider/tailor-001/analytics")
        assert resp.json()["data"] == {"provider_ref": "tailor-001", "today_orders": 2}


class TestProviderEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nearby_escalates_radius(self, client, make_provider, origin):
        await make_provider("tailor-active", 2.0)
        await make_provider("tailor-suspended", 0.5, status="SUSPENDED")

        resp = await client.get("/providers/nearby", params={"lat": origin[0], "lng": origin[1]})
        body = resp.json()

        assert resp.status_code == 200
        assert body["meta"]["radius_km"] == 2
        assert body["meta"]["count"] == 1
        assert body["data"][0]["provider_id"] == "tailor-active"
        assert body["data"][0]["distance_km"] == pytest.approx(2.0)

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nearby_with_filters(self, client, make_provider, origin):
        await make_provider("tailor-shirts", 0.4, specializations=["Shirt"])
        await make_provider("tailor-sherwani", 1.5, specializations=["Sherwani"], provides_fabric=True)

        resp = await client.get(
            "/providers/nearby",
            params={"lat": origin[0], "lng": origin[1], "garmentType": "Sherwani", "requiresFabric": "true"},
        )
        body = resp.json()

        assert [p["provider_id"] for p in body["data"]] == ["tailor-sherwani"]
        assert body["meta"]["radius_km"] == 2

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nearby_empty_is_success(self, client, origin):
        resp = await client.get("/providers/nearby", params={"lat": origin[0], "lng": origin[1]})

        assert resp.status_code == 200
        assert resp.json()["data"] == []
        assert resp.json()["meta"]["radius_km"] == 5

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nearby_without_location(self, client):
        resp = await client.get("/providers/nearby")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "missing_location"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_nearby_radius_above_ceiling(self, client, origin):
        resp = await client.get(
            "/providers/nearby",
            params={"lat": origin[0], "lng": origin[1], "maxRadiusKm": 50},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_list_providers(self, client, make_provider):
        await make_provider("tailor-a", 1.0)
        await make_provider("tailor-b", None)
        await make_provider("tailor-c", 1.0, status="SUSPENDED")

        body = (await client.get("/providers")).json()

        assert [p["id"] for p in body["data"]] == ["tailor-a", "tailor-b"]
        assert [p["has_location"] for p in body["data"]] == [True, False]
        assert body["meta"]["total"] == 2


def _database_locked(statement: str):
    """Stand-in for a session method whose store gave up on a lock."""
    async def _raise(*args, **kwargs):
        raise OperationalError(statement, {}, Exception("database is locked"))
    return _raise


class TestStorageFailures:
    """Backing-store failures surface as 503 with the `storage` error code."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_lock_timeout_at_commit_is_503(self, client, db_session, monkeypatch):
        order = await _create(client)
        monkeypatch.setattr(db_session, "commit", _database_locked("COMMIT"))

        resp = await client.post(f"/orders/{order['id']}/accept")

        assert resp.status_code == 503
        error = resp.json()["error"]
        assert error["code"] == "storage"
        assert error["details"]["reason"] == "OperationalError"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_commit_failure_is_503(self, client, db_session, monkeypatch):
        monkeypatch.setattr(db_session, "commit", _database_locked("COMMIT"))

        resp = await client.post("/orders", json=_order_body())

        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "storage"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_read_failure_is_503(self, client, db_session, monkeypatch):
        monkeypatch.setattr(db_session, "execute", _database_locked("SELECT"))

        resp = await client.get(f"/orders/{'0' * 32}")

        assert resp.status_code == 503
        assert resp.json()["success"] is False
        assert resp.json()["error"]["code"] == "storage"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_discovery_failure_is_503(self, client, db_session, origin, monkeypatch):
        monkeypatch.setattr(db_session, "execute", _database_locked("SELECT"))

        resp = await client.get("/providers/nearby", params={"lat": origin[0], "lng": origin[1]})

        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "storage"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_reports_unavailable_store(self, client, db_session, monkeypatch):
        monkeypatch.setattr(db_session, "execute", _database_locked("SELECT 1"))

        resp = await client.get("/health")

        assert resp.status_code == 503
        body = resp.json()
        assert body["status"] == "unhealthy"
        assert body["database_connected"] is False
        assert body["error"] == "OperationalError"


class TestOrderPayloadValidation:

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [True, False, "38"])
    async def test_non_numeric_measurement_rejected(self, client, value):
        resp = await client.post("/orders", json=_order_body(measurements={"chest": value}))
        assert resp.status_code == 422
