"""
HTTP Client Singleton com connection pooling.

Centraliza as chamadas HTTP externas (servico de ML) para:
- Reutilização de conexões (evita overhead de TCP handshake)
- Connection pooling configurável
- HTTP/2 multiplexing
- Timeout padronizado
- Fechamento gracioso no shutdown
"""

import logging
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

# Cliente HTTP global (singleton)
_client: Optional[httpx.AsyncClient] = None


async def get_http_client() -> httpx.AsyncClient:
    """
    Obtém o cliente HTTP singleton.

    Cria o cliente na primeira chamada com configurações otimizadas.

    Returns:
        httpx.AsyncClient configurado com pooling
    """
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=10.0,
                read=settings.ML_TIMEOUT_SEGUNDOS,
                write=settings.ML_TIMEOUT_SEGUNDOS,
                pool=5.0,  # Timeout para obter conexão do pool
            ),
            # Pool acima do numero de workers de pontuacao
            limits=httpx.Limits(
                max_connections=max(20, settings.dispatch_workers * 2),
                max_keepalive_connections=max(10, settings.dispatch_workers),
                keepalive_expiry=30.0,
            ),
            http2=True,
            headers={
                "User-Agent": "Motor-Campanhas/1.0",
            },
            follow_redirects=True,
        )
        logger.info("HTTP client singleton criado com pooling configurado")

    return _client


async def close_http_client() -> None:
    """
    Fecha o cliente HTTP.

    Deve ser chamado no shutdown da aplicação para liberar recursos.
    """
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
        logger.info("HTTP client singleton fechado")
