"""Tests for request timeout middleware."""

import asyncio

from fastapi import FastAPI
from fastapi.testclient import TestClient

from regtrack.api.middleware.timeout import TimeoutMiddleware


def _create_test_app(timeout: float = 1.0) -> FastAPI:
    app = FastAPI()
    app.add_middleware(TimeoutMiddleware, timeout_seconds=timeout)

    @app.post("/scheduler/tick")
    async def slow_tick():
        await asyncio.sleep(10)
        return {"status": "ok"}

    @app.get("/health")
    async def health():
        await asyncio.sleep(0.2)
        return {"status": "healthy"}

    @app.post("/health-checks/run")
    async def slow_run():
        await asyncio.sleep(10)
        return {"status": "ok"}

    return app


class TestTimeoutMiddleware:
    def test_slow_request_returns_504(self):
        client = TestClient(_create_test_app(timeout=0.1))

        response = client.post("/scheduler/tick")

        assert response.status_code == 504
        assert response.json()["timeout_seconds"] == 0.1

    def test_health_excluded(self):
        client = TestClient(_create_test_app(timeout=0.05))

        assert client.get("/health").status_code == 200

    def test_health_checks_not_excluded(self):
        client = TestClient(_create_test_app(timeout=0.1))

        assert client.post("/health-checks/run").status_code == 504
