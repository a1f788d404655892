"""Integration tests for the FastAPI REST API."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from scanwizard.api.app import create_app
from scanwizard.service.session_manager import SessionManager
from scanwizard.settings import Settings
from tests.conftest import (
    NO_CREDENTIALS_WORKFLOW,
    UNTRUSTED_TITLE_WORKFLOW,
    USES_AND_RUN_WORKFLOW,
    VALID_WORKFLOW,
    FakeClock,
    ManualScheduler,
)


@pytest.fixture
def app(scheduler: ManualScheduler, clock: FakeClock):
    settings = Settings(session_idle_timeout_seconds=1800, session_warning_seconds=300)
    app = create_app(settings=settings)
    # ASGITransport doesn't trigger lifespan; install a manager on the fake clock
    mgr = SessionManager(
        idle_timeout=settings.session_idle_timeout_seconds,
        warning_before=settings.session_warning_seconds,
        scheduler=scheduler,
        clock=clock,
    )
    mgr.start()
    app.state.session_manager = mgr
    yield app
    mgr.stop()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "version" in data
        assert data["active_sessions"] == 0

    async def test_security_headers(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Request-Duration-Ms" in response.headers


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidateEndpoint:
    async def test_valid(self, client: AsyncClient) -> None:
        response = await client.post("/validate", json={"workflow_yaml": VALID_WORKFLOW})
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["diagnostics"] == []

    async def test_errors(self, client: AsyncClient) -> None:
        response = await client.post(
            "/validate", json={"workflow_yaml": USES_AND_RUN_WORKFLOW}
        )
        data = response.json()
        assert data["valid"] is False
        assert data["error_count"] == 1
        diagnostic = data["diagnostics"][0]
        assert diagnostic["type"] == "structure"
        assert diagnostic["line"] == 7
        assert diagnostic["severity"] == "error"

    async def test_warnings(self, client: AsyncClient) -> None:
        response = await client.post(
            "/validate", json={"workflow_yaml": UNTRUSTED_TITLE_WORKFLOW}
        )
        data = response.json()
        assert data["valid"] is True
        assert data["warning_count"] == 1
        assert data["diagnostics"][0]["type"] == "expression"

    async def test_missing_body_field(self, client: AsyncClient) -> None:
        response = await client.post("/validate", json={})
        assert response.status_code == 422

    async def test_report(self, client: AsyncClient) -> None:
        response = await client.post(
            "/validate/report", json={"workflow_yaml": USES_AND_RUN_WORKFLOW}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text.startswith("line:7, col:")

    async def test_scan_steps(self, client: AsyncClient) -> None:
        response = await client.post(
            "/validate/scan-steps", json={"workflow_yaml": NO_CREDENTIALS_WORKFLOW}
        )
        data = response.json()
        assert data["valid"] is False
        assert data["steps"][0]["job"] == "security-scan"
        assert "missing required configuration" in data["errors"][0]

    async def test_scan_steps_unparseable(self, client: AsyncClient) -> None:
        response = await client.post("/validate/scan-steps", json={"workflow_yaml": "a: [b"})
        data = response.json()
        assert data["valid"] is False
        assert data["errors"]

    async def test_variables(self, client: AsyncClient) -> None:
        response = await client.post("/validate/variables", json={"workflow_yaml": VALID_WORKFLOW})
        assert response.status_code == 200
        data = response.json()
        assert data["secrets"] == {
            "POLARIS_ACCESS_TOKEN": "${{ secrets.POLARIS_ACCESS_TOKEN }}"
        }


# ---------------------------------------------------------------------------
# Filenames
# ---------------------------------------------------------------------------


class TestFilenameEndpoints:
    async def test_validate_valid(self, client: AsyncClient) -> None:
        response = await client.post("/filenames/validate", json={"filename": "scan.yml"})
        data = response.json()
        assert data["valid"] is True
        assert data["errors"] == []
        assert data["suggestion"] is None

    async def test_validate_reserved(self, client: AsyncClient) -> None:
        response = await client.post("/filenames/validate", json={"filename": "con.yml"})
        data = response.json()
        assert data["valid"] is False
        assert data["errors"][0]["type"] == "reserved"
        assert data["suggestion"] == "con-workflow.yml"

    async def test_suggest(self, client: AsyncClient) -> None:
        response = await client.post("/filenames/suggest", json={"filename": "my scan"})
        assert response.json() == {"filename": "my scan", "suggestion": "my-scan.yml"}


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class TestSessionEndpoints:
    async def test_create_session(self, client: AsyncClient) -> None:
        response = await client.post("/sessions")
        assert response.status_code == 201
        data = response.json()
        assert len(data["session_id"]) == 32
        assert data["state"] == "active"
        assert data["remaining_seconds"] == 1800

    async def test_create_with_metadata(self, client: AsyncClient) -> None:
        response = await client.post("/sessions", json={"metadata": {"repo": "acme/app"}})
        assert response.json()["metadata"] == {"repo": "acme/app"}

    async def test_list_sessions(self, client: AsyncClient) -> None:
        await client.post("/sessions")
        await client.post("/sessions")
        response = await client.get("/sessions")
        assert response.status_code == 200
        assert len(response.json()["sessions"]) == 2

    async def test_get_session(self, client: AsyncClient) -> None:
        sid = (await client.post("/sessions")).json()["session_id"]
        response = await client.get(f"/sessions/{sid}")
        assert response.status_code == 200
        assert response.json()["session_id"] == sid

    async def test_get_missing(self, client: AsyncClient) -> None:
        response = await client.get("/sessions/nonexistent")
        assert response.status_code == 404

    async def test_activity_extends(
        self, client: AsyncClient, scheduler: ManualScheduler
    ) -> None:
        sid = (await client.post("/sessions")).json()["session_id"]
        scheduler.advance(1600)
        assert (await client.get(f"/sessions/{sid}")).json()["state"] == "warning"
        response = await client.post(f"/sessions/{sid}/activity")
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "active"
        assert data["remaining_seconds"] == 1800

    async def test_expired_session_404(
        self, client: AsyncClient, scheduler: ManualScheduler
    ) -> None:
        sid = (await client.post("/sessions")).json()["session_id"]
        scheduler.advance(1800)
        response = await client.get(f"/sessions/{sid}")
        assert response.status_code == 404
        assert "expired" in response.json()["detail"]
        response = await client.post(f"/sessions/{sid}/activity")
        assert response.status_code == 404

    async def test_close_session(self, client: AsyncClient) -> None:
        sid = (await client.post("/sessions")).json()["session_id"]
        response = await client.delete(f"/sessions/{sid}")
        assert response.status_code == 204
        assert (await client.get(f"/sessions/{sid}")).status_code == 404

    async def test_close_missing(self, client: AsyncClient) -> None:
        response = await client.delete("/sessions/nonexistent")
        assert response.status_code == 404

    async def test_health_counts_sessions(self, client: AsyncClient) -> None:
        await client.post("/sessions")
        assert (await client.get("/health")).json()["active_sessions"] == 1


class TestSessionListDisabled:
    async def test_list_forbidden(self, clock: FakeClock, scheduler: ManualScheduler) -> None:
        app = create_app(settings=Settings(disable_session_list=True))
        app.state.session_manager = SessionManager(scheduler=scheduler, clock=clock)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/sessions")
        assert response.status_code == 403
