"""
Pontuacao em lote.

Pool fixo de workers consome a fila de clientes (mapeamento + chamada ao
ML). Um unico coletor grava as predicoes e soma os resultados, entao os
contadores saem de um lugar so.

Falha de mapeamento ou do ML pula o cliente. Falha de banco cancela os
workers e propaga.
"""
import asyncio
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from app.core.config import settings
from app.core.exceptions import MapeamentoError, OraculoError
from app.core.logging import get_logger
from app.repositories.cliente import Cliente
from app.services.ml.mapper import MlMapper
from app.services.predicoes.types import Predicao

logger = get_logger(__name__)

CATEGORIA_MAPEAMENTO = "mapeamento"
CATEGORIA_ORACULO = "oraculo"

_FIM = object()


@dataclass
class ResultadoLote:
    """Resultado agregado de um lote."""

    predicoes: List[Predicao] = field(default_factory=list)
    falhas_mapeamento: int = 0
    falhas_oraculo: int = 0
    cancelado: bool = False

    @property
    def pontuados(self) -> int:
        return len(self.predicoes)

    @property
    def falhas(self) -> int:
        return self.falhas_mapeamento + self.falhas_oraculo

    @property
    def positivos(self) -> int:
        return sum(1 for p in self.predicoes if p.positiva)

    @property
    def negativos(self) -> int:
        return self.pontuados - self.positivos


async def _pontuar(cliente: Cliente, oraculo, origem: str):
    """Mapeia e pontua um cliente. Retorna (cliente, resposta, categoria_falha)."""
    try:
        payload = MlMapper.para_payload(cliente)
    except MapeamentoError as e:
        logger.warning(
            f"Cliente {cliente.id} pulado: {e}",
            extra={"extra_fields": {
                "categoria_falha": CATEGORIA_MAPEAMENTO, "cliente_id": cliente.id, "origem": origem,
            }},
        )
        return cliente, None, CATEGORIA_MAPEAMENTO

    try:
        resposta = await oraculo.prever(payload)
    except OraculoError as e:
        logger.warning(
            f"Cliente {cliente.id} pulado: {e}",
            extra={"extra_fields": {
                "categoria_falha": CATEGORIA_ORACULO, "cliente_id": cliente.id, "origem": origem,
            }},
        )
        return cliente, None, CATEGORIA_ORACULO

    return cliente, resposta, None


async def pontuar_lote(
    clientes: Sequence[Cliente],
    origem: str,
    oraculo,
    predicao_repo,
    workers: Optional[int] = None,
    cancelamento: Optional[asyncio.Event] = None,
) -> ResultadoLote:
    """
    Pontua os clientes e grava uma predicao por cliente pontuado.

    Args:
        clientes: Alvos do lote
        origem: Tag de origem gravada nas predicoes
        oraculo: ClienteOraculo (ou compativel)
        predicao_repo: PredicaoRepository (ou compativel)
        workers: Chamadas simultaneas ao ML (default: settings)
        cancelamento: Evento checado entre clientes

    Raises:
        DatabaseError: Falha ao gravar predicao
    """
    resultado = ResultadoLote()
    if not clientes:
        return resultado

    total_workers = max(1, min(workers or settings.dispatch_workers, len(clientes)))
    entrada: asyncio.Queue = asyncio.Queue()
    for cliente in clientes:
        entrada.put_nowait(cliente)
    saida: asyncio.Queue = asyncio.Queue()

    async def _worker():
        try:
            while not (cancelamento is not None and cancelamento.is_set()):
                try:
                    cliente = entrada.get_nowait()
                except asyncio.QueueEmpty:
                    return
                await saida.put(await _pontuar(cliente, oraculo, origem))
        finally:
            saida.put_nowait(_FIM)

    tarefas = [asyncio.create_task(_worker()) for _ in range(total_workers)]

    try:
        ativos = total_workers
        while ativos:
            item = await saida.get()
            if item is _FIM:
                ativos -= 1
                continue

            cliente, resposta, categoria = item
            if categoria == CATEGORIA_MAPEAMENTO:
                resultado.falhas_mapeamento += 1
                continue
            if categoria == CATEGORIA_ORACULO:
                resultado.falhas_oraculo += 1
                continue

            predicao = await predicao_repo.registrar(
                cliente_id=cliente.id,
                classe=resposta.classe_predita,
                probabilidade_sim=resposta.probabilidade_sim,
                probabilidade_nao=resposta.probabilidade_nao,
                origem=origem,
            )
            resultado.predicoes.append(predicao)

        # Propaga erro inesperado de algum worker
        await asyncio.gather(*tarefas)
    except BaseException:
        for tarefa in tarefas:
            tarefa.cancel()
        await asyncio.gather(*tarefas, return_exceptions=True)
        raise

    resultado.cancelado = (
        cancelamento is not None and cancelamento.is_set() and not entrada.empty()
    )

    logger.info(
        f"Lote {origem}: {resultado.pontuados}/{len(clientes)} pontuados "
        f"(mapeamento={resultado.falhas_mapeamento}, oraculo={resultado.falhas_oraculo}, "
        f"cancelado={resultado.cancelado})"
    )
    return resultado
