"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and DB readiness probe works in test mode.
- Ensure the dev token endpoint mints tokens the API accepts.
"""

from __future__ import annotations

import httpx
import pytest

from autodocs.api.app import create_app
from autodocs.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"

    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "req-123"})
    assert r.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_dev_token_round_trip(client: httpx.AsyncClient) -> None:
    r = await client.post("/v1/dev/token", json={"subject": "dev-user"})
    assert r.status_code == 200
    assert r.json()["expires_in"] == 3600
    token = r.json()["access_token"]

    r = await client.get("/v1/repos", headers={"authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_api_requires_bearer_token(client: httpx.AsyncClient) -> None:
    r = await client.get("/v1/repos")
    assert r.status_code == 401

    r = await client.get("/v1/repos", headers={"authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_dev_token_hidden_in_prod(tmp_path) -> None:
    settings = Settings(env="prod", database_url=f"sqlite+aiosqlite:///{tmp_path / 'p.db'}")
    app = create_app(settings=settings, http_transport=httpx.MockTransport(lambda r: httpx.Response(404)))
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.post("/v1/dev/token", json={"subject": "x"})
            assert r.status_code == 404
