import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from middleware.logging import RequestLoggingMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/api/v1/physique/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/api/v1/thing")
    async def thing():
        return {"ok": True}

    return app


@pytest.mark.asyncio
async def test_request_id_header_and_sanitized_params(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("api.requests"), "propagate", True)
    transport = ASGITransport(app=_app())
    with caplog.at_level(logging.INFO, logger="api.requests"):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/v1/thing", params={"token": "secret", "page": "2"})

    assert response.status_code == 200
    assert len(response.headers["X-Request-ID"]) == 8
    assert "secret" not in caplog.text
    assert "'page': '2'" in caplog.text


@pytest.mark.asyncio
async def test_excluded_paths_are_not_logged(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("api.requests"), "propagate", True)
    transport = ASGITransport(app=_app())
    with caplog.at_level(logging.INFO, logger="api.requests"):
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/v1/physique/health")

    assert response.status_code == 200
    assert "X-Request-ID" not in response.headers
    assert [r for r in caplog.records if r.name == "api.requests"] == []
