"""
Circuit breaker para o servico de ML e para o Supabase.

So conta como falha o que indica servico fora do ar (timeout, transporte,
5xx). Erro causado pelo chamador (corpo invalido do ML, 4xx, valor que a
coluna rejeita) prova que o servico respondeu e nao abre o circuit.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import httpx
from postgrest.exceptions import APIError

from app.core.exceptions import OraculoError

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"        # Normal, chamadas passam
    OPEN = "open"            # Bloqueando chamadas
    HALF_OPEN = "half_open"  # Testando recuperação


class CircuitOpenError(Exception):
    """Exceção quando circuit breaker está aberto."""
    pass


@dataclass
class CircuitBreaker:
    """
    Circuit breaker para um serviço específico.

    Estados:
    - CLOSED: Normal, todas as chamadas passam
    - OPEN: Muitas falhas, bloqueia chamadas
    - HALF_OPEN: Testando se serviço recuperou
    """
    nome: str
    falhas_para_abrir: int = 5           # Falhas consecutivas para abrir
    timeout_segundos: float = 30.0       # Timeout para chamadas
    tempo_reset_segundos: int = 60       # Tempo antes de tentar half-open

    # Estado interno
    estado: CircuitState = field(default=CircuitState.CLOSED)
    falhas_consecutivas: int = field(default=0)
    ultima_falha: Optional[datetime] = field(default=None)
    ultimo_sucesso: Optional[datetime] = field(default=None)

    # Decide se a excecao indica servico indisponivel
    conta_como_falha: Callable[[BaseException], bool] = field(default=lambda erro: True, repr=False)

    def _verificar_transicao_half_open(self):
        """Verifica se deve transicionar para half-open."""
        if self.estado != CircuitState.OPEN or self.ultima_falha is None:
            return

        tempo_desde_falha = datetime.now() - self.ultima_falha
        if tempo_desde_falha.total_seconds() >= self.tempo_reset_segundos:
            logger.info(f"Circuit {self.nome}: OPEN -> HALF_OPEN")
            self.estado = CircuitState.HALF_OPEN

    def _registrar_sucesso(self):
        """Registra uma chamada bem-sucedida."""
        self.falhas_consecutivas = 0
        self.ultimo_sucesso = datetime.now()

        if self.estado == CircuitState.HALF_OPEN:
            logger.info(f"Circuit {self.nome}: HALF_OPEN -> CLOSED (recuperado)")
            self.estado = CircuitState.CLOSED

    def _registrar_falha(self, erro: BaseException):
        """Registra uma falha."""
        self.falhas_consecutivas += 1
        self.ultima_falha = datetime.now()

        logger.warning(
            f"Circuit {self.nome}: falha {self.falhas_consecutivas}/{self.falhas_para_abrir} - {erro!r}"
        )

        if self.estado == CircuitState.HALF_OPEN:
            logger.info(f"Circuit {self.nome}: HALF_OPEN -> OPEN (falha na recuperação)")
            self.estado = CircuitState.OPEN

        elif self.falhas_consecutivas >= self.falhas_para_abrir:
            logger.warning(f"Circuit {self.nome}: CLOSED -> OPEN (muitas falhas)")
            self.estado = CircuitState.OPEN

    async def executar(self, func: Callable, *args, **kwargs) -> Any:
        """
        Executa função async com proteção do circuit breaker.

        Args:
            func: Função async a executar
            *args: Argumentos para a função
            **kwargs: Kwargs para a função

        Returns:
            Resultado da função

        Raises:
            CircuitOpenError: Se circuit está aberto
            asyncio.TimeoutError: Se a chamada exceder timeout_segundos
        """
        self._verificar_transicao_half_open()

        if self.estado == CircuitState.OPEN:
            raise CircuitOpenError(f"Circuit {self.nome} está aberto")

        try:
            resultado = await asyncio.wait_for(
                func(*args, **kwargs),
                timeout=self.timeout_segundos
            )
        except Exception as e:
            if self.conta_como_falha(e):
                self._registrar_falha(e)
            else:
                self._registrar_sucesso()
            raise

        self._registrar_sucesso()
        return resultado

    def status(self) -> dict:
        """Retorna status atual do circuit."""
        return {
            "nome": self.nome,
            "estado": self.estado.value,
            "falhas_consecutivas": self.falhas_consecutivas,
            "ultima_falha": self.ultima_falha.isoformat() if self.ultima_falha else None,
            "ultimo_sucesso": self.ultimo_sucesso.isoformat() if self.ultimo_sucesso else None,
        }

    def reset(self):
        """Reseta o circuit breaker manualmente."""
        self.estado = CircuitState.CLOSED
        self.falhas_consecutivas = 0
        logger.info(f"Circuit {self.nome}: reset manual para CLOSED")


# Classes de SQLSTATE/PostgREST causadas pela requisicao:
# 22 (dado invalido para o tipo), 23 (integridade), PGRST1xx (requisicao malformada)
PREFIXOS_ERRO_CHAMADOR = ("22", "23", "PGRST1")


def erro_do_chamador_supabase(erro: BaseException) -> bool:
    """PostgREST rejeitou a requisicao; o banco esta de pe."""
    if not isinstance(erro, APIError):
        return False
    return str(erro.code or "").startswith(PREFIXOS_ERRO_CHAMADOR)


def falha_do_oraculo(erro: BaseException) -> bool:
    """
    Timeout, transporte ou 5xx contam; corpo fora do contrato e 4xx nao.
    """
    if not isinstance(erro, OraculoError):
        return True
    status_code = erro.details.get("status_code")
    if status_code is not None:
        return status_code >= 500
    return isinstance(erro.original_error, httpx.TransportError)


# Instâncias globais para cada serviço
circuit_ml = CircuitBreaker(
    nome="ml",
    falhas_para_abrir=10,         # Lote grande tolera falhas isoladas
    timeout_segundos=60.0,        # Cobre as retentativas do cliente
    tempo_reset_segundos=30,
    conta_como_falha=falha_do_oraculo,
)

circuit_supabase = CircuitBreaker(
    nome="supabase",
    falhas_para_abrir=5,
    timeout_segundos=10.0,
    tempo_reset_segundos=30,
    conta_como_falha=lambda erro: not erro_do_chamador_supabase(erro),
)


def obter_status_circuits() -> dict:
    """Retorna status de todos os circuits."""
    return {
        "ml": circuit_ml.status(),
        "supabase": circuit_supabase.status(),
    }
