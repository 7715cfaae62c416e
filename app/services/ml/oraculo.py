"""
Cliente do servico de ML (oraculo de pontuacao).

POST {ML_BASE_URL}/api/predict com o payload do MlMapper. Resposta:

    {
        "success": true,
        "data": {
            "predicted_class": "YES" | "NO",
            "probability_yes": 0.81,
            "probability_no": 0.19
        }
    }

Qualquer falha (timeout, conexao, HTTP != 2xx, corpo invalido, circuit
aberto) vira OraculoError. Nunca inventamos classe para uma falha.
"""
import asyncio
import logging
from dataclasses import dataclass
from numbers import Real
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.exceptions import OraculoError, ValidationError
from app.services.circuit_breaker import CircuitBreaker, CircuitOpenError, circuit_ml
from app.services.http_client import get_http_client
from app.services.predicoes.probabilidades import derivar_classe, normalizar_probabilidades
from app.services.predicoes.types import ClassePredita

logger = logging.getLogger(__name__)


@dataclass
class RespostaOraculo:
    """Resposta validada do servico de ML."""

    classe_predita: ClassePredita
    probabilidade_sim: float
    probabilidade_nao: float
    classe_derivada: bool = False  # True quando a classe veio das probabilidades


def _probabilidade(data: dict, chave: str) -> float:
    valor = data.get(chave)
    if isinstance(valor, bool) or not isinstance(valor, Real):
        raise OraculoError(f"Resposta sem {chave} numerico", {"valor": repr(valor)})
    return float(valor)


def interpretar_resposta(corpo: Any, tolerancia: float = 0.05) -> RespostaOraculo:
    """
    Valida o corpo da resposta e normaliza probabilidades.

    Raises:
        OraculoError: Corpo fora do contrato
    """
    if not isinstance(corpo, dict) or not corpo.get("success"):
        raise OraculoError("Resposta do ML sem sucesso", {"corpo": repr(corpo)[:200]})

    data = corpo.get("data")
    if not isinstance(data, dict):
        raise OraculoError("Resposta do ML sem data")

    prob_sim = _probabilidade(data, "probability_yes")
    prob_nao = _probabilidade(data, "probability_no")
    try:
        prob_sim, prob_nao = normalizar_probabilidades(prob_sim, prob_nao, tolerancia)
    except ValidationError as e:
        raise OraculoError(f"Probabilidades invalidas: {e.message}", e.details) from e

    bruto = data.get("predicted_class")
    if bruto is None:
        return RespostaOraculo(derivar_classe(prob_sim, prob_nao), prob_sim, prob_nao, True)

    classe = ClassePredita.parse(bruto)
    if classe is None:
        raise OraculoError("predicted_class desconhecida", {"valor": repr(bruto)})
    return RespostaOraculo(classe, prob_sim, prob_nao)


class ClienteOraculo:
    """Chamadas ao servico de ML com retentativa e circuit breaker."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        tentativas: Optional[int] = None,
        tolerancia: Optional[float] = None,
        circuit: CircuitBreaker = circuit_ml,
    ):
        self.base_url = (base_url or settings.ML_BASE_URL).rstrip("/")
        self._http_client = http_client
        self.tentativas = max(1, tentativas or settings.ML_TENTATIVAS)
        self.tolerancia = settings.PROB_TOLERANCIA if tolerancia is None else tolerancia
        self.circuit = circuit

    async def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            return await get_http_client()
        return self._http_client

    async def _post(self, payload: dict) -> httpx.Response:
        """POST com retentativa apenas para erro de transporte."""
        client = await self._client()
        async for tentativa in AsyncRetrying(
            stop=stop_after_attempt(self.tentativas),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with tentativa:
                resp = await client.post(
                    f"{self.base_url}/api/predict",
                    json=payload,
                    timeout=settings.ML_TIMEOUT_SEGUNDOS,
                )
        return resp

    async def _chamar(self, payload: dict) -> RespostaOraculo:
        try:
            resp = await self._post(payload)
            resp.raise_for_status()
            corpo = resp.json()
        except httpx.TimeoutException as e:
            raise OraculoError("Timeout no servico de ML", original_error=e) from e
        except httpx.HTTPStatusError as e:
            raise OraculoError(
                "Servico de ML respondeu erro",
                {"status_code": e.response.status_code},
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise OraculoError(f"Falha de transporte no ML: {e!r}", original_error=e) from e
        except ValueError as e:
            raise OraculoError("Corpo da resposta do ML nao e JSON", original_error=e) from e

        return interpretar_resposta(corpo, self.tolerancia)

    async def prever(self, payload: dict) -> RespostaOraculo:
        """
        Pontua um payload.

        Raises:
            OraculoError: Qualquer falha na chamada ou no contrato da resposta
        """
        try:
            return await self.circuit.executar(self._chamar, payload)
        except CircuitOpenError as e:
            raise OraculoError("Circuit do ML aberto", original_error=e) from e
        except asyncio.TimeoutError as e:
            raise OraculoError("Timeout no servico de ML", original_error=e) from e

    async def health(self) -> dict:
        """Health check do servico de ML. Nunca levanta excecao."""
        try:
            client = await self._client()
            resp = await client.get(f"{self.base_url}/api/health", timeout=5.0)
            resp.raise_for_status()
            return resp.json()
        except Exception as e:
            logger.error(f"Health check do ML falhou: {e}")
            return {"status": "down"}


_oraculo: Optional[ClienteOraculo] = None


def get_cliente_oraculo() -> ClienteOraculo:
    """Retorna o cliente do oraculo singleton."""
    global _oraculo
    if _oraculo is None:
        _oraculo = ClienteOraculo()
    return _oraculo
