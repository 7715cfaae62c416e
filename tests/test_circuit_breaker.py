"""
Testes para o circuit breaker.
"""
import asyncio
from datetime import datetime, timedelta

import httpx
import pytest
from postgrest.exceptions import APIError

from app.core.exceptions import DatabaseError, OraculoError, ValidationError
from app.services.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    circuit_supabase,
    erro_do_chamador_supabase,
    falha_do_oraculo,
    obter_status_circuits,
)
from app.services.supabase import executar_query


def erro_postgrest(codigo: str) -> APIError:
    return APIError({"code": codigo, "message": "erro", "details": None, "hint": None})


async def funcao_sucesso():
    return "ok"


async def funcao_falha():
    raise Exception("Erro simulado")


class TestCircuitBreaker:
    """Testes para a classe CircuitBreaker."""

    @pytest.mark.asyncio
    async def test_chamada_sucesso_mantem_fechado(self):
        """Chamada bem-sucedida mantém circuit fechado."""
        cb = CircuitBreaker(nome="test")

        assert await cb.executar(funcao_sucesso) == "ok"
        assert cb.estado == CircuitState.CLOSED
        assert cb.ultimo_sucesso is not None

    @pytest.mark.asyncio
    async def test_circuit_abre_apos_falhas(self):
        """Circuit deve abrir após número configurado de falhas."""
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3)

        for _ in range(3):
            with pytest.raises(Exception):
                await cb.executar(funcao_falha)

        assert cb.estado == CircuitState.OPEN
        assert cb.falhas_consecutivas == 3

    @pytest.mark.asyncio
    async def test_sucesso_zera_falhas_consecutivas(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3)

        for _ in range(2):
            with pytest.raises(Exception):
                await cb.executar(funcao_falha)
        await cb.executar(funcao_sucesso)

        assert cb.falhas_consecutivas == 0
        assert cb.estado == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_circuit_aberto_bloqueia_chamadas(self):
        """Circuit aberto falha rápido sem chamar a função."""
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1)
        chamadas = []

        async def funcao():
            chamadas.append(1)
            raise Exception("Erro")

        with pytest.raises(Exception):
            await cb.executar(funcao)

        with pytest.raises(CircuitOpenError):
            await cb.executar(funcao)
        assert len(chamadas) == 1

    @pytest.mark.asyncio
    async def test_timeout_conta_como_falha(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1, timeout_segundos=0.01)

        async def lenta():
            await asyncio.sleep(1)

        with pytest.raises(asyncio.TimeoutError):
            await cb.executar(lenta)
        assert cb.estado == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_half_open_apos_tempo_reset(self):
        """Após tempo de reset, circuit testa uma chamada e fecha se passar."""
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1, tempo_reset_segundos=60)

        with pytest.raises(Exception):
            await cb.executar(funcao_falha)
        cb.ultima_falha = datetime.now() - timedelta(seconds=61)

        assert await cb.executar(funcao_sucesso) == "ok"
        assert cb.estado == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_falha_em_half_open_reabre(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=3, tempo_reset_segundos=60)
        cb.estado = CircuitState.OPEN
        cb.ultima_falha = datetime.now() - timedelta(seconds=61)

        with pytest.raises(Exception):
            await cb.executar(funcao_falha)
        assert cb.estado == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_reset_manual(self):
        cb = CircuitBreaker(nome="test", falhas_para_abrir=1)
        with pytest.raises(Exception):
            await cb.executar(funcao_falha)

        cb.reset()

        assert cb.estado == CircuitState.CLOSED
        assert cb.falhas_consecutivas == 0


class TestStatusCircuits:

    def test_status_dos_circuits_globais(self):
        status = obter_status_circuits()

        assert set(status) == {"ml", "supabase"}
        assert status["ml"]["estado"] == "closed"


class TestClassificacaoDeFalhas:
    """So erro de servico indisponivel abre o circuit."""

    @pytest.mark.asyncio
    async def test_erro_ignorado_pelo_classificador_nao_abre(self):
        cb = CircuitBreaker(
            nome="test", falhas_para_abrir=1, conta_como_falha=lambda e: not isinstance(e, ValueError)
        )

        async def rejeitada():
            raise ValueError("entrada ruim")

        for _ in range(3):
            with pytest.raises(ValueError):
                await cb.executar(rejeitada)

        assert cb.estado == CircuitState.CLOSED
        assert cb.falhas_consecutivas == 0

    def test_oraculo_corpo_invalido_e_4xx_nao_contam(self):
        assert not falha_do_oraculo(OraculoError("probabilidades ausentes"))
        assert not falha_do_oraculo(OraculoError("json", original_error=ValueError("x")))
        assert not falha_do_oraculo(OraculoError("HTTP", {"status_code": 422}))

    def test_oraculo_transporte_e_5xx_contam(self):
        assert falha_do_oraculo(OraculoError("HTTP", {"status_code": 503}))
        assert falha_do_oraculo(OraculoError("timeout", original_error=httpx.ReadTimeout("lento")))
        assert falha_do_oraculo(RuntimeError("inesperado"))

    def test_supabase_codigos_do_chamador(self):
        assert erro_do_chamador_supabase(erro_postgrest("22P02"))
        assert erro_do_chamador_supabase(erro_postgrest("PGRST100"))
        assert not erro_do_chamador_supabase(erro_postgrest("57014"))
        assert not erro_do_chamador_supabase(Exception("conexao recusada"))


class TestExecutarQuery:

    @pytest.mark.asyncio
    async def test_valor_rejeitado_vira_validation_sem_abrir_circuit(self):
        def query():
            raise erro_postgrest("22P02")

        for _ in range(circuit_supabase.falhas_para_abrir + 1):
            with pytest.raises(ValidationError) as exc_info:
                await executar_query(query, "campanhas.buscar_por_id")

        assert exc_info.value.details == {"codigo": "22P02"}
        assert circuit_supabase.estado == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_erro_do_servidor_vira_database_e_conta(self):
        def query():
            raise erro_postgrest("57014")

        with pytest.raises(DatabaseError):
            await executar_query(query, "clientes.listar_todos")

        assert circuit_supabase.falhas_consecutivas == 1
