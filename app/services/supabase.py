"""
Cliente Supabase para operacoes de banco de dados.

O client supabase-py e sincrono: as queries rodam no executor padrao,
atras do circuit breaker, para nao travar o loop enquanto o pool de
pontuacao esta ativo.
"""
import asyncio
import logging
from functools import lru_cache
from typing import Any, Callable

from postgrest.exceptions import APIError
from supabase import Client, create_client

from app.core.config import settings
from app.core.exceptions import ConfigurationError, DatabaseError, ValidationError
from app.services.circuit_breaker import (
    CircuitOpenError,
    circuit_supabase,
    erro_do_chamador_supabase,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_supabase_client() -> Client:
    """
    Retorna cliente Supabase cacheado.
    Usa service key para acesso completo.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_URL e SUPABASE_SERVICE_KEY sao obrigatorios")

    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )


async def executar_query(func: Callable[[], Any], operacao: str) -> Any:
    """
    Executa query síncrona do Supabase com circuit breaker.

    Args:
        func: Função síncrona que monta e executa a query
        operacao: Descricao curta para logs/erros

    Returns:
        Resposta da query (objeto com .data / .count)

    Raises:
        ValidationError: Se o PostgREST rejeitar a requisicao (ex.: id que nao e UUID)
        DatabaseError: Se a query falhar ou o Supabase estiver indisponível
    """
    async def _async_wrapper():
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    try:
        return await circuit_supabase.executar(_async_wrapper)
    except CircuitOpenError as e:
        raise DatabaseError(f"Supabase indisponivel: {operacao}", original_error=e) from e
    except asyncio.TimeoutError as e:
        raise DatabaseError(f"Timeout no Supabase: {operacao}", original_error=e) from e
    except APIError as e:
        if erro_do_chamador_supabase(e):
            logger.warning(f"Requisicao rejeitada pelo Supabase ({operacao}): {e.code} {e.message}")
            raise ValidationError(
                f"Valor invalido para o banco: {operacao}",
                {"codigo": e.code},
                original_error=e,
            ) from e
        logger.error(f"Erro no Supabase ({operacao}): {e}")
        raise DatabaseError(f"Erro no Supabase: {operacao}", original_error=e) from e
    except Exception as e:
        logger.error(f"Erro no Supabase ({operacao}): {e}")
        raise DatabaseError(f"Erro no Supabase: {operacao}", original_error=e) from e
