"""
Rotas de health check.

- /health: Liveness básico (sempre 200 se app rodando)
- /health/ready: Readiness (Redis quando o lock é distribuído)
- /health/circuits: Estado dos circuit breakers
- /health/ml: Servico de ML respondendo
"""
from fastapi import APIRouter
import logging

from app.core.config import settings
from app.core.timezone import iso_utc
from app.services.circuit_breaker import obter_status_circuits
from app.services.ml.oraculo import get_cliente_oraculo
from app.services.redis import verificar_conexao_redis

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """
    Verifica se a API está funcionando.
    Usado para monitoramento e load balancers.
    """
    return {
        "status": "healthy",
        "timestamp": iso_utc(),
        "service": "motor-campanhas",
    }


@router.get("/health/ready")
async def readiness_check():
    """
    Verifica se a API está pronta para receber requests.

    Redis só entra na conta com LOCK_BACKEND=redis.
    """
    checks = {"lock_backend": settings.LOCK_BACKEND}
    status = "ready"

    if settings.LOCK_BACKEND.lower() == "redis":
        redis_ok = await verificar_conexao_redis()
        checks["redis"] = "ok" if redis_ok else "error"
        if not redis_ok:
            status = "degraded"

    return {"status": status, "checks": checks}


@router.get("/health/circuits")
async def circuit_status():
    """
    Retorna status dos circuit breakers.
    """
    return {
        "circuits": obter_status_circuits(),
        "timestamp": iso_utc(),
    }


@router.get("/health/ml")
async def ml_status():
    """Repassa o health do servico de ML."""
    resposta = await get_cliente_oraculo().health()
    return {
        "ml": resposta,
        "circuit": obter_status_circuits()["ml"],
        "timestamp": iso_utc(),
    }
