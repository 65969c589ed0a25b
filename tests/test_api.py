from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

from checktrack.checks.infrastructure import InMemoryCheckRepository, InMemoryStatusHistoryRepository
from checktrack.config import Settings
from checktrack.digest.infrastructure import InMemoryDigestPreferencesRepository
from checktrack.escalation.infrastructure import InMemoryEscalationEventRepository
from checktrack.main import create_app
from checktrack.policy import PolicyConfigManager
from checktrack.shared.api import dependencies
from checktrack.shared.infrastructure.locks import KeyedLockRegistry
from checktrack.sla.infrastructure import InMemorySLANotificationLogRepository

CHECK = {
    "id": "chk-1",
    "candidate_id": "cand-1",
    "candidate_name": "Jordan Reyes",
    "status": "pending-consent",
    "initiated_by": "recruiter-1",
    "initiated_date": "2026-01-05T09:00:00Z",
    "check_types": [{"type": "criminal"}, {"type": "employment"}],
}


def provide(repo):
    return lambda: repo


@pytest.fixture
def app(gateway):
    # In-memory repositories stand in for the per-request database session.
    app = create_app(Settings(designated_reviewers=["hr-director"]), with_lifespan=False)
    app.state.policy_manager = PolicyConfigManager()
    app.state.notification_gateway = gateway
    app.state.lock_registry = KeyedLockRegistry()

    repos = {
        dependencies.get_check_repository: InMemoryCheckRepository(),
        dependencies.get_history_repository: InMemoryStatusHistoryRepository(),
        dependencies.get_escalation_event_repository: InMemoryEscalationEventRepository(),
        dependencies.get_sla_notification_log: InMemorySLANotificationLogRepository(),
        dependencies.get_digest_preferences_repository: InMemoryDigestPreferencesRepository(),
    }
    for provider, repo in repos.items():
        app.dependency_overrides[provider] = provide(repo)
    return app


@asynccontextmanager
async def client_for(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_health(app):
    async with client_for(app) as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


@pytest.mark.asyncio
async def test_check_lifecycle_over_http(app, gateway):
    async with client_for(app) as client:
        assert (await client.post("/checks", json=CHECK)).status_code == 201

        response = await client.post("/checks/chk-1/consent", json={})
        assert response.status_code == 200
        body = response.json()
        assert body["transitioned"] is True
        assert body["check"]["status"] == "in-progress"

        await client.post("/checks/chk-1/results", json={"check_type": "criminal", "status": "clear"})
        response = await client.post(
            "/checks/chk-1/results", json={"check_type": "employment", "status": "not-clear"}
        )
        assert response.json()["check"]["status"] == "issues-found"
        assert response.json()["check"]["overall_verdict"] == "not-clear"

        history = (await client.get("/checks/chk-1/history")).json()
        assert [h["new_status"] for h in history] == ["issues-found", "in-progress"]

    assert {n.recipient for n in gateway.sent} == {"recruiter-1", "hr-director"}


@pytest.mark.asyncio
async def test_no_transition_is_not_an_error(app):
    async with client_for(app) as client:
        await client.post("/checks", json={**CHECK, "status": "in-progress"})
        response = await client.post("/checks/chk-1/evaluate")
    assert response.status_code == 200
    assert response.json()["transitioned"] is False


@pytest.mark.asyncio
async def test_error_mapping(app):
    async with client_for(app) as client:
        assert (await client.get("/checks/missing")).status_code == 404

        await client.post("/checks", json=CHECK)
        duplicate = await client.post("/checks", json=CHECK)
        assert duplicate.status_code == 409
        assert duplicate.json()["error_type"] == "DomainException"

        invalid = await client.post("/checks", json={**CHECK, "id": "chk-2", "status": "archived"})
        assert invalid.status_code == 422
        blank = await client.post("/checks/chk-1/cancel", json={"actor_id": "hr-1", "reason": " "})
        assert blank.status_code == 422

        cancel = {"actor_id": "hr-1", "reason": "Withdrawn"}
        cancelled = await client.post("/checks/chk-1/cancel", json=cancel)
        assert cancelled.json()["check"]["status"] == "cancelled"

        again = await client.post("/checks/chk-1/cancel", json=cancel)
        assert again.status_code == 409
        assert again.json()["error_type"] == "InvalidTransitionException"


@pytest.mark.asyncio
async def test_history_filters_and_export(app):
    async with client_for(app) as client:
        await client.post("/checks", json={**CHECK, "consent_given": True})
        await client.post("/checks/chk-1/evaluate")

        filtered = await client.get("/history", params={"candidate_id": "cand-1", "automated": "true"})
        assert len(filtered.json()) == 1

        export = await client.get("/history/export")
        assert export.headers["content-type"].startswith("text/csv")
        assert "Jordan Reyes" in export.text

        stats = (await client.get("/history/stats")).json()
        assert stats["total_changes"] == 1


@pytest.mark.asyncio
async def test_sla_endpoints(app):
    async with client_for(app) as client:
        await client.post("/checks", json=CHECK)

        status = (await client.get("/sla/checks/chk-1")).json()
        assert status["status"] == "pending-consent"
        assert status["breached"] is True

        dashboard = (await client.get("/sla/dashboard")).json()
        assert dashboard["stats"]["total"] == 1
        assert [s["check_id"] for s in dashboard["breached"]] == ["chk-1"]

        configs = (await client.get("/sla/configurations")).json()
        assert "sla-pending-consent" in {c["id"] for c in configs}

        bad = {**configs[0], "warning_threshold_percent": 95, "critical_threshold_percent": 90}
        response = await client.put(f"/sla/configurations/{configs[0]['id']}", json=bad)
        assert response.status_code == 422

        run = (await client.post("/sla/notifications/run")).json()
        assert run["check_ids"] == ["chk-1"]
        assert (await client.post("/sla/notifications/run")).json()["notifications_sent"] == 0


@pytest.mark.asyncio
async def test_escalation_endpoints(app):
    async with client_for(app) as client:
        await client.post("/checks", json=CHECK)

        [event] = (await client.post("/escalations/run")).json()["escalations"]
        assert event["check_id"] == "chk-1"
        assert (await client.post("/escalations/run")).json()["escalations"] == []

        ack = await client.post(f"/escalations/events/{event['id']}/acknowledge", json={"user_id": "manager-1"})
        assert ack.json()["acknowledged"] is True

        resolve = {"user_id": "manager-1", "notes": "Chased"}
        assert (await client.post(f"/escalations/events/{event['id']}/resolve", json=resolve)).status_code == 200
        assert (await client.post(f"/escalations/events/{event['id']}/resolve", json=resolve)).status_code == 409

        active = await client.get("/escalations/events", params={"active_only": "true"})
        assert active.json() == []
        assert (await client.delete("/escalations/rules/unknown")).status_code == 404


@pytest.mark.asyncio
async def test_digest_endpoints(app):
    async with client_for(app) as client:
        assert (await client.get("/digests/preferences/u1")).status_code == 404

        saved = await client.put("/digests/preferences/u1", json={"user_id": "ignored", "frequency": "daily"})
        assert saved.json()["user_id"] == "u1"

        await client.post("/checks", json=CHECK)
        preview = (await client.get("/digests/preview/u1")).json()
        assert preview["empty"] is False

        run = (await client.post("/digests/run")).json()
        assert run["user_ids"] == ["u1"]
        assert (await client.post("/digests/run")).json()["digests_sent"] == 0


@pytest.mark.asyncio
async def test_datetimes_without_timezone_are_rejected(app):
    async with client_for(app) as client:
        response = await client.post("/checks", json={**CHECK, "initiated_date": "2026-01-05T09:00:00"})
        assert response.status_code == 422
        assert (await client.get("/checks/chk-1")).status_code == 404

        assert (await client.post("/checks", json=CHECK)).status_code == 201
        response = await client.post("/checks/chk-1/consent", json={"consent_date": "2026-01-06T10:00:00"})
        assert response.status_code == 422

        assert (await client.post("/escalations/run")).status_code == 200
