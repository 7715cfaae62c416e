"""
Cliente Redis para locks distribuidos.
"""
import logging
from functools import lru_cache

import redis.asyncio as redis

from app.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_redis_client() -> redis.Redis:
    """
    Retorna cliente Redis cacheado.

    A conexao so e aberta no primeiro comando.
    """
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True
    )


async def verificar_conexao_redis() -> bool:
    """Verifica se Redis está acessível."""
    try:
        await get_redis_client().ping()
        logger.debug("Redis conectado")
        return True
    except Exception as e:
        logger.error(f"Redis não acessível: {e}")
        return False
