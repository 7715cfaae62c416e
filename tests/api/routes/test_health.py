"""Testes das rotas de health."""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routes import health


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


class TestHealth:

    def test_liveness(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_com_lock_local_nao_consulta_redis(self, client):
        with patch("app.api.routes.health.settings") as settings, \
                patch("app.api.routes.health.verificar_conexao_redis", new=AsyncMock()) as redis:
            settings.LOCK_BACKEND = "local"
            response = client.get("/health/ready")

        assert response.json()["status"] == "ready"
        redis.assert_not_awaited()

    def test_ready_degradado_sem_redis(self, client):
        with patch("app.api.routes.health.settings") as settings, \
                patch("app.api.routes.health.verificar_conexao_redis", new=AsyncMock(return_value=False)):
            settings.LOCK_BACKEND = "redis"
            response = client.get("/health/ready")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["redis"] == "error"

    def test_circuits(self, client):
        circuits = client.get("/health/circuits").json()["circuits"]
        assert set(circuits) == {"ml", "supabase"}

    def test_ml(self, client):
        oraculo = MagicMock()
        oraculo.health = AsyncMock(return_value={"status": "ok", "model_loaded": True})

        with patch("app.api.routes.health.get_cliente_oraculo", return_value=oraculo):
            response = client.get("/health/ml")

        assert response.json()["ml"] == {"status": "ok", "model_loaded": True}
