"""Regression tests for RequestBodyLimitMiddleware."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from scanwizard.api.app import create_app
from scanwizard.service.session_manager import SessionManager
from scanwizard.settings import Settings
from tests.conftest import VALID_WORKFLOW, FakeClock, ManualScheduler


@pytest.fixture
def app(scheduler: ManualScheduler, clock: FakeClock):
    application = create_app(settings=Settings())
    application.state.session_manager = SessionManager(scheduler=scheduler, clock=clock)
    return application


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestInvalidContentLength:
    """Malformed Content-Length must not cause a 500."""

    async def test_non_integer_content_length(self, client: AsyncClient) -> None:
        response = await client.post(
            "/filenames/validate",
            content=b"small body",
            headers={"content-length": "not-a-number"},
        )
        assert response.status_code == 400

    async def test_negative_content_length(self, client: AsyncClient) -> None:
        response = await client.post(
            "/filenames/validate",
            content=b"small body",
            headers={"content-length": "-1"},
        )
        assert response.status_code != 500


class TestOverLimit:
    async def test_chunked_body_over_default_limit(self, client: AsyncClient) -> None:
        oversized = b"x" * (100 * 1024)
        response = await client.post(
            "/filenames/validate",
            content=oversized,
            headers={"transfer-encoding": "chunked"},
        )
        assert response.status_code == 413
        assert response.json()["detail"] == "Request body too large (max 64 KB)"

    async def test_workflow_endpoint_allows_larger_documents(self, client: AsyncClient) -> None:
        padded = VALID_WORKFLOW + "# padding line\n" * 10_000
        response = await client.post("/validate", json={"workflow_yaml": padded})
        assert response.status_code == 200
        assert response.json()["valid"] is True

    async def test_workflow_endpoint_limit(self, client: AsyncClient) -> None:
        response = await client.post(
            "/validate",
            content=b"x" * (2 * 1024 * 1024 + 1),
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 413
        assert "2 MB" in response.json()["detail"]

    async def test_filename_path_uses_default_limit(self, client: AsyncClient) -> None:
        response = await client.post(
            "/filenames/validate", json={"filename": "a" * (70 * 1024)}
        )
        assert response.status_code == 413
