"""Router integration tests for the order, dispute and audit endpoints.

Requests run through the real app against the in-memory database, so
routing, auth, the error envelope and the per-request transaction are all
exercised together.  Setup rows are committed before each request.
"""

from __future__ import annotations

import uuid

import pytest

from src.models.enums import OrderStatus
from src.modules.order.router import router

API = "/api/v1"


def _order_payload(team_id, category_id, **overrides) -> dict:
    payload = {
        "team_id": str(team_id),
        "category_id": str(category_id),
        "sla": "asap",
        "cart_value_usd": "24.90",
        "merchant": "Corner Market",
        "customer_name": "Dana Customer",
        "country": "PT",
        "city": "Lisbon",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


class TestRouterWiring:
    def test_lifecycle_routes_are_posts(self):
        paths = {
            (route.path, method)
            for route in router.routes
            for method in getattr(route, "methods", set())
        }
        for action in ("pick", "pass", "start", "hold", "resume", "fulfilment", "complete"):
            assert (f"/orders/{{order_id}}/{action}", "POST") in paths

    def test_access_routes_are_puts(self):
        paths = {(route.path, tuple(sorted(route.methods))) for route in router.routes}
        assert ("/orders/{order_id}/access/read", ("PUT",)) in paths
        assert ("/orders/{order_id}/access/write", ("PUT",)) in paths


# ---------------------------------------------------------------------------
# Envelope and auth
# ---------------------------------------------------------------------------


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_health(self, async_client):
        resp = await async_client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_missing_token_is_unauthorized(self, async_client):
        resp = await async_client.get(f"{API}/orders/", headers={"X-Request-ID": "req-123"})

        assert resp.status_code == 401
        error = resp.json()["error"]
        assert error["code"] == "UNAUTHORIZED"
        assert error["requestId"] == "req-123"
        assert resp.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_unknown_order_is_not_found(self, db, make, async_client):
        staff = await make.staff()
        await db.commit()

        resp = await async_client.get(
            f"{API}/orders/{uuid.uuid4()}", headers=make.headers(staff)
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_request_validation_uses_envelope(self, db, make, async_client):
        team = await make.team()
        member = await make.member(team)
        order = await make.order(team, member)
        staff = await make.staff()
        await db.commit()

        resp = await async_client.post(
            f"{API}/orders/{order.id}/pass", json={"reason": ""}, headers=make.headers(staff)
        )

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(d["field"].endswith("reason") for d in error["details"])


# ---------------------------------------------------------------------------
# Order lifecycle over HTTP
# ---------------------------------------------------------------------------


class TestOrderFlow:
    @pytest.mark.asyncio
    async def test_create_pick_and_reject_second_pick(self, db, make, async_client):
        team = await make.team()
        member = await make.member(team)
        category = await make.category()
        s1 = await make.staff()
        s2 = await make.staff()
        await db.commit()

        resp = await async_client.post(
            f"{API}/orders/",
            json=_order_payload(team.id, category.id),
            headers=make.headers(member),
        )
        assert resp.status_code == 201
        order = resp.json()
        assert order["status"] == "submitted"
        order_id = order["id"]

        queue = await async_client.get(f"{API}/orders/queue", headers=make.headers(s1))
        assert [o["id"] for o in queue.json()["items"]] == [order_id]

        resp = await async_client.post(f"{API}/orders/{order_id}/pick", headers=make.headers(s1))
        assert resp.status_code == 200
        assert resp.json()["picked_by_staff_user_id"] == str(s1.id)

        resp = await async_client.post(f"{API}/orders/{order_id}/pick", headers=make.headers(s2))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "BUSINESS_RULE_VIOLATION"
        assert resp.json()["error"]["message"] == "Order already picked"

    @pytest.mark.asyncio
    async def test_non_picker_hold_is_forbidden(self, db, make, async_client):
        team = await make.team()
        member = await make.member(team)
        picker = await make.staff()
        other = await make.staff()
        order = await make.order(team, member, status=OrderStatus.IN_PROGRESS, picked_by=picker)
        await db.commit()

        resp = await async_client.post(
            f"{API}/orders/{order.id}/hold",
            json={"reason": "Taking over"},
            headers=make.headers(other),
        )
        assert resp.status_code == 403

        resp = await async_client.get(f"{API}/orders/{order.id}", headers=make.headers(picker))
        assert resp.json()["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_invalid_transition_code(self, db, make, async_client):
        team = await make.team()
        member = await make.member(team)
        staff = await make.staff()
        order = await make.order(team, member, status=OrderStatus.PICKED, picked_by=staff)
        await db.commit()

        resp = await async_client.post(
            f"{API}/orders/{order.id}/complete", headers=make.headers(member)
        )

        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "INVALID_TRANSITION"
        assert error["message"] == "Cannot move order from 'picked' to 'completed'"

    @pytest.mark.asyncio
    async def test_full_flow_and_history(self, db, make, async_client):
        team = await make.team()
        member = await make.member(team)
        admin = await make.admin(team)
        staff = await make.staff()
        order = await make.order(team, member)
        await db.commit()
        staff_headers = make.headers(staff)
        base = f"{API}/orders/{order.id}"

        assert (await async_client.post(f"{base}/pick", headers=staff_headers)).status_code == 200
        assert (await async_client.post(f"{base}/start", headers=staff_headers)).status_code == 200
        resp = await async_client.post(
            f"{base}/fulfilment",
            json={
                "merchant_link": "https://merchant.example.com/o/1",
                "name_on_order": "Dana Customer",
                "final_value_usd": "23.10",
            },
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "fulfil_submitted"

        resp = await async_client.post(f"{base}/complete", headers=make.headers(admin))
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        history = await async_client.get(f"{base}/history", headers=make.headers(member))
        assert history.status_code == 200
        assert [e["action"] for e in history.json()] == [
            "order_picked",
            "order_in_progress",
            "order_fulfil_submitted",
            "order_completed",
        ]

        resp = await async_client.post(
            f"{API}/orders/{order.id}/disputes",
            json={"reason": "Item damaged"},
            headers=make.headers(member),
        )
        assert resp.status_code == 201
        assert resp.json()["status"] == "open"

        resp = await async_client.get(f"{base}", headers=make.headers(member))
        assert resp.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_read_grant_over_http(self, db, make, async_client):
        team = await make.team()
        creator = await make.member(team)
        teammate = await make.member(team)
        admin = await make.admin(team)
        order = await make.order(team, creator)
        await db.commit()

        resp = await async_client.get(f"{API}/orders/{order.id}", headers=make.headers(teammate))
        assert resp.status_code == 403

        resp = await async_client.put(
            f"{API}/orders/{order.id}/access/read",
            json={"user_ids": [str(teammate.id)]},
            headers=make.headers(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["read_access_user_ids"] == [str(teammate.id)]

        resp = await async_client.get(f"{API}/orders/{order.id}", headers=make.headers(teammate))
        assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Sign-up and audit log
# ---------------------------------------------------------------------------


class TestIdentityAndAudit:
    @pytest.mark.asyncio
    async def test_public_signup(self, async_client):
        resp = await async_client.post(
            f"{API}/signup", json={"email": "walk-in@example.com", "name": "Walk In"}
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["user"]["email"] == "walk-in@example.com"
        assert body["membership"]["status"] == "default_member"

    @pytest.mark.asyncio
    async def test_audit_log_is_owner_only(self, db, make, async_client):
        owner = await make.owner()
        team = await make.team()
        admin = await make.admin(team)
        staff = await make.staff()
        order = await make.order(team, admin)
        await db.commit()

        await async_client.post(f"{API}/orders/{order.id}/pick", headers=make.headers(staff))

        resp = await async_client.get(f"{API}/audit-logs/", headers=make.headers(admin))
        assert resp.status_code == 403

        resp = await async_client.get(
            f"{API}/audit-logs/", params={"action": "order_picked"}, headers=make.headers(owner)
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 1
        assert body["items"][0]["actor_user_id"] == str(staff.id)
        assert body["items"][0]["order_id"] == str(order.id)
