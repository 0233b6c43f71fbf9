"""
HTTP tests for the lead, policy, commission and time tracking routes.

Covers:
- Bearer authentication and team lead gating
- Error body shape {"error", "message", "details"} and status codes
- Handoff guard surfaced as 412
- Commission reads: idempotent JSON, degraded snapshots, 400/404
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from leadflow.auth import create_access_token
from leadflow.db import get_db
from leadflow.main import app
from leadflow.models import Department, LeadStatus, PolicyType
from leadflow.services.notifier import LEAD_STATUS_CHANGED, get_notifier

from factories import create_invoice, create_lead, create_org, create_policy, create_user


@pytest_asyncio.fixture
async def client(db_session, notifier):
    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest_asyncio.fixture
async def org(db_session):
    return await create_org(db_session)


@pytest_asyncio.fixture
async def rep(db_session, org):
    return await create_user(db_session, org, "rep")


@pytest_asyncio.fixture
async def team_lead(db_session, org):
    return await create_user(db_session, org, "lead", is_team_lead=True)


# ── Health & auth ─────────────────────────────────────────


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_ready(self, client):
        response = await client.get("/api/health/ready")
        assert response.json() == {"status": "ready", "database": "connected"}


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/commissions/monthly/user/1/2026-03")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/commissions/monthly/user/1/2026-03",
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401


# ── Leads ─────────────────────────────────────────────────


class TestLeadRoutes:
    @pytest.mark.asyncio
    async def test_handoff_guard_is_412(self, client, db_session, rep):
        lead = await create_lead(
            db_session, rep, status=LeadStatus.IN_PROGRESS, call_attempts=1, mc_number="MC-100200"
        )

        response = await client.patch(
            f"/api/leads/{lead.id}/status",
            json={"status": "HandToDispatch"},
            headers=auth(rep.id),
        )

        assert response.status_code == 412
        body = response.json()
        assert body["error"] == "INSUFFICIENT_CALL_ATTEMPTS"
        assert body["details"] == {"current": 1, "required": 3, "missing": 2}
        assert body["message"].startswith("Log 2 more call attempts")

    @pytest.mark.asyncio
    async def test_handoff_succeeds(self, client, db_session, rep, notifier):
        lead = await create_lead(
            db_session, rep, status=LeadStatus.IN_PROGRESS, call_attempts=3, mc_number="MC-100200"
        )

        response = await client.patch(
            f"/api/leads/{lead.id}/status",
            json={"status": "HandToDispatch", "notes": "ready to roll"},
            headers=auth(rep.id),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["lead"]["status"] == "HandToDispatch"
        assert body["lead"]["hand_to_dispatch_at"] is not None
        assert body["handoff"]["lead_id"] == lead.id
        assert body["handoff"]["sales_rep_id"] == rep.id
        assert LEAD_STATUS_CHANGED in notifier.events()

    @pytest.mark.asyncio
    async def test_invalid_transition_is_409(self, client, db_session, rep):
        lead = await create_lead(db_session, rep, status=LeadStatus.LOST)

        response = await client.patch(
            f"/api/leads/{lead.id}/status",
            json={"status": "InProgress"},
            headers=auth(rep.id),
        )

        assert response.status_code == 409
        assert response.json()["details"] == {"from": "Lost", "to": "InProgress"}

    @pytest.mark.asyncio
    async def test_unknown_status_is_400(self, client, db_session, rep):
        lead = await create_lead(db_session, rep)

        response = await client.patch(
            f"/api/leads/{lead.id}/status",
            json={"status": "Dormant"},
            headers=auth(rep.id),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_missing_lead_is_404(self, client, rep):
        response = await client.patch(
            "/api/leads/9999/status",
            json={"status": "InProgress"},
            headers=auth(rep.id),
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_call_attempts_and_timeline(self, client, db_session, rep):
        lead = await create_lead(db_session, rep)

        logged = await client.post(
            f"/api/leads/{lead.id}/call-attempts", json={"notes": "voicemail"}, headers=auth(rep.id)
        )
        moved = await client.patch(
            f"/api/leads/{lead.id}/status", json={"status": "InProgress"}, headers=auth(rep.id)
        )
        timeline = await client.get(f"/api/leads/{lead.id}/timeline", headers=auth(rep.id))

        assert logged.json()["call_attempts"] == 1
        assert moved.status_code == 200
        items = timeline.json()["items"]
        assert [i["activity_type"] for i in items] == ["call_logged", "status_changed"]
        assert items[1]["previous_status"] == "New"
        assert items[1]["next_status"] == "InProgress"

    @pytest.mark.asyncio
    async def test_sales_users_require_one_id(self, client, db_session, rep):
        lead = await create_lead(db_session, rep)

        response = await client.put(
            f"/api/leads/{lead.id}/sales-users", json={}, headers=auth(rep.id)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_sales_users_assigned(self, client, db_session, org, rep):
        closer = await create_user(db_session, org, "closer")
        lead = await create_lead(db_session, rep)

        response = await client.put(
            f"/api/leads/{lead.id}/sales-users",
            json={"starter_id": rep.id, "closer_id": closer.id},
            headers=auth(rep.id),
        )

        assert response.status_code == 200
        roles = {item["role"]: item["user_id"] for item in response.json()}
        assert roles == {"starter": rep.id, "closer": closer.id}


# ── Policies ──────────────────────────────────────────────


class TestPolicyRoutes:
    def _payload(self, org_id, **overrides):
        payload = {
            "org_id": org_id,
            "type": "sales",
            "name": "Q2 plan",
            "active_lead_table": [
                {"active_leads": 3, "amount": "500"},
                {"active_leads": 6, "amount": "1000"},
            ],
            "starter_split": "0.5",
            "closer_split": "0.5",
            "activate": True,
        }
        payload.update(overrides)
        return payload

    @pytest.mark.asyncio
    async def test_team_lead_creates_active_policy(self, client, org, team_lead):
        created = await client.post(
            "/api/commissions/policy", json=self._payload(org.id), headers=auth(team_lead.id)
        )
        active = await client.get(
            "/api/commissions/policy/active", params={"type": "sales"}, headers=auth(team_lead.id)
        )

        assert created.status_code == 201
        assert created.json()["is_active"] is True
        assert created.json()["type"] == "sales"
        assert active.json()["id"] == created.json()["id"]

    @pytest.mark.asyncio
    async def test_non_lead_is_forbidden(self, client, org, rep):
        response = await client.post(
            "/api/commissions/policy", json=self._payload(org.id), headers=auth(rep.id)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_payload_is_400(self, client, org, team_lead):
        response = await client.post(
            "/api/commissions/policy",
            json=self._payload(org.id, starter_split="1.5"),
            headers=auth(team_lead.id),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_no_active_policy_is_409(self, client, team_lead):
        response = await client.get(
            "/api/commissions/policy/active", params={"type": "dispatch"}, headers=auth(team_lead.id)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "NO_ACTIVE_POLICY"

    @pytest.mark.asyncio
    async def test_activate_type_guard(self, client, db_session, org, team_lead):
        policy = await create_policy(db_session, org, PolicyType.DISPATCH, is_active=False)

        response = await client.patch(
            f"/api/commissions/policy/{policy.id}/activate",
            json={"type": "sales"},
            headers=auth(team_lead.id),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "POLICY_TYPE_MISMATCH"

    @pytest.mark.asyncio
    async def test_activate_switches_versions(self, client, db_session, org, team_lead):
        old = await create_policy(db_session, org, PolicyType.SALES)
        new = await create_policy(db_session, org, PolicyType.SALES, is_active=False)

        response = await client.patch(
            f"/api/commissions/policy/{new.id}/activate", headers=auth(team_lead.id)
        )
        listed = await client.get(
            "/api/commissions/policy", params={"type": "sales"}, headers=auth(team_lead.id)
        )

        assert response.status_code == 200
        flags = {p["id"]: p["is_active"] for p in listed.json()}
        assert flags == {old.id: False, new.id: True}

    @pytest.mark.asyncio
    async def test_archive(self, client, db_session, org, team_lead):
        policy = await create_policy(db_session, org, PolicyType.SALES)

        response = await client.patch(
            f"/api/commissions/policy/{policy.id}/archive", headers=auth(team_lead.id)
        )

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["valid_to"] is not None


# ── Commissions ───────────────────────────────────────────


class TestCommissionRoutes:
    @pytest.mark.asyncio
    async def test_read_is_idempotent(self, client, db_session, org, rep):
        await create_policy(db_session, org)
        for i in range(3):
            lead = await create_lead(db_session, rep, status=LeadStatus.ACTIVE, company_name=f"C{i}")
        await create_invoice(db_session, lead, "900", datetime(2026, 3, 4, tzinfo=timezone.utc))
        url = f"/api/commissions/monthly/user/{rep.id}/2026-03"

        first = await client.get(url, headers=auth(rep.id))
        second = await client.get(url, headers=auth(rep.id))

        assert first.status_code == second.status_code == 200
        assert first.json()["total_commission"] == "500.00"
        assert first.json()["cached"] is False
        assert second.json()["cached"] is True
        first_body = {k: v for k, v in first.json().items() if k != "cached"}
        second_body = {k: v for k, v in second.json().items() if k != "cached"}
        assert first_body == second_body

    @pytest.mark.asyncio
    async def test_history_lists_runs(self, client, db_session, org, rep):
        await create_policy(db_session, org)
        await client.get(f"/api/commissions/monthly/user/{rep.id}/2026-02", headers=auth(rep.id))
        await client.get(f"/api/commissions/monthly/user/{rep.id}/2026-03", headers=auth(rep.id))

        response = await client.get(f"/api/commissions/runs/user/{rep.id}", headers=auth(rep.id))

        assert [(r["year"], r["month"]) for r in response.json()] == [(2026, 3), (2026, 2)]

    @pytest.mark.asyncio
    async def test_missing_policy_degrades(self, client, db_session, org, rep):
        dispatcher = await create_user(db_session, org, "dispatcher", department=Department.DISPATCH)
        dispatcher_id, rep_id = dispatcher.id, rep.id

        response = await client.get(
            f"/api/commissions/monthly/user/{dispatcher_id}/2026-03", headers=auth(rep_id)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["degraded"] is True
        assert body["error"] == "NO_ACTIVE_POLICY"
        assert body["department"] == "dispatch"
        assert body["deals"] == []

    @pytest.mark.asyncio
    async def test_bad_month_is_400(self, client, rep):
        response = await client.get(
            f"/api/commissions/monthly/user/{rep.id}/2026-3", headers=auth(rep.id)
        )

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, client, rep):
        response = await client.get(
            "/api/commissions/monthly/user/9999/2026-03", headers=auth(rep.id)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_has_no_commission(self, client, db_session, org, rep):
        admin = await create_user(db_session, org, "admin", department=Department.ADMIN)

        response = await client.get(
            f"/api/commissions/monthly/user/{admin.id}/2026-03", headers=auth(rep.id)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_generate_requires_team_lead(self, client, rep):
        response = await client.post(
            "/api/commissions/monthly/generate", json={"month": "2026-03"}, headers=auth(rep.id)
        )
        assert response.status_code == 403


# ── Time tracking ─────────────────────────────────────────


class TestTimeRoutes:
    @pytest.mark.asyncio
    async def test_clock_in_then_repeat(self, client, rep):
        # The 400 rolls the session back and expires fixture objects
        rep_id = rep.id

        first = await client.post(
            "/api/time/clock", json={"type": "IN", "location": "HQ"}, headers=auth(rep_id)
        )
        repeat = await client.post("/api/time/clock", json={"type": "IN"}, headers=auth(rep_id))
        listed = await client.get(f"/api/time/clock/user/{rep_id}", headers=auth(rep_id))

        assert first.status_code == 201
        assert first.json()["event_type"] == "IN"
        assert repeat.status_code == 400
        assert [e["location"] for e in listed.json()] == ["HQ"]
