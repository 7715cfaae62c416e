"""
Configuração global de testes - Fixtures compartilhadas.

Este arquivo contém fixtures reutilizáveis em todos os testes do projeto.
Repositories e oraculo em memoria ficam em tests/fakes.py.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Any

from app.core.distributed_lock import RegistroLocksLocais
from app.services.circuit_breaker import circuit_ml, circuit_supabase


# =============================================================================
# MOCK FACTORIES - Funções para criar mocks configuráveis
# =============================================================================


def criar_mock_supabase(dados_retorno: list[dict[str, Any]] | None = None) -> MagicMock:
    """
    Cria mock do cliente Supabase com chain de métodos configurado.

    Args:
        dados_retorno: Lista de dicts que será retornada em .execute().data

    Returns:
        MagicMock configurado para suportar chain: .table().select().eq().execute()

    Example:
        mock = criar_mock_supabase([{"id": "123", "nome": "Teste"}])
        mock.table("clientes").select("*").execute().data  # retorna os dados
    """
    mock = MagicMock()
    mock.table.return_value = mock
    mock.select.return_value = mock
    mock.insert.return_value = mock
    mock.update.return_value = mock
    mock.delete.return_value = mock
    mock.eq.return_value = mock
    mock.gt.return_value = mock
    mock.gte.return_value = mock
    mock.lt.return_value = mock
    mock.lte.return_value = mock
    mock.ilike.return_value = mock
    mock.in_.return_value = mock
    mock.order.return_value = mock
    mock.limit.return_value = mock
    mock.range.return_value = mock

    # Configurar response
    response = MagicMock()
    response.data = dados_retorno if dados_retorno is not None else []
    response.count = len(response.data) if response.data else 0
    mock.execute.return_value = response

    return mock


def criar_mock_redis() -> MagicMock:
    """
    Cria mock do cliente redis.asyncio para locks.

    Returns:
        MagicMock com set/eval/ping async
    """
    mock = MagicMock()
    mock.set = AsyncMock(return_value=True)
    mock.eval = AsyncMock(return_value=1)
    mock.ping = AsyncMock(return_value=True)
    return mock


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_circuits():
    """Circuits globais comecam fechados em todo teste."""
    circuit_ml.reset()
    circuit_supabase.reset()
    yield
    circuit_ml.reset()
    circuit_supabase.reset()


@pytest.fixture
def mock_supabase_factory():
    """
    Factory para criar mocks de Supabase com dados específicos.

    Uso:
        def test_algo(mock_supabase_factory):
            mock = mock_supabase_factory([{"id": "123"}])
    """
    return criar_mock_supabase


@pytest.fixture
def mock_redis():
    return criar_mock_redis()


@pytest.fixture
def registro_locks():
    """Registro de locks isolado por teste."""
    return RegistroLocksLocais()
