"""
Executor de campanhas.

Responsavel por:
- Resolver o publico-alvo a partir dos criterios
- Pontuar cada alvo no servico de ML (pool de workers)
- Gravar uma predicao por alvo pontuado (origem campanha:{id})
- Gravar os contadores uma unica vez no fim

Uma execucao por campanha por vez (lock); campanhas diferentes rodam em
paralelo.
"""

import asyncio
import logging
from typing import Dict, Optional

from app.core.distributed_lock import LockNotAcquiredError, criar_lock
from app.core.exceptions import CampanhaEmExecucaoError, NotFoundError
from app.services.campanhas.contadores import chave_lock
from app.services.campanhas.repository import CampanhaRepository
from app.services.campanhas.types import (
    CampanhaData,
    Contadores,
    ResultadoExecucao,
    StatusCampanha,
)
from app.services.ml.oraculo import ClienteOraculo, get_cliente_oraculo
from app.services.predicoes.lote import pontuar_lote
from app.services.predicoes.repository import PredicaoRepository
from app.services.predicoes.types import origem_campanha
from app.services.segmentacao import ResolvedorAlvos

logger = logging.getLogger(__name__)


class CampanhaExecutor:
    """Executor de campanhas."""

    def __init__(
        self,
        campanha_repo: Optional[CampanhaRepository] = None,
        predicao_repo: Optional[PredicaoRepository] = None,
        resolvedor: Optional[ResolvedorAlvos] = None,
        oraculo: Optional[ClienteOraculo] = None,
        workers: Optional[int] = None,
        lock_backend: Optional[str] = None,
        registro_locks=None,
        intervalo_renovacao: Optional[float] = None,
    ):
        self._campanha_repo = campanha_repo
        self._predicao_repo = predicao_repo
        self.resolvedor = resolvedor or ResolvedorAlvos()
        self._oraculo = oraculo
        self.workers = workers
        self.lock_backend = lock_backend
        self.registro_locks = registro_locks
        # Default: um terco do TTL do lock
        self.intervalo_renovacao = intervalo_renovacao
        self._cancelamentos: Dict[str, asyncio.Event] = {}

    @property
    def campanha_repo(self) -> CampanhaRepository:
        if self._campanha_repo is None:
            from app.repositories.deps import get_campanha_repo

            self._campanha_repo = get_campanha_repo()
        return self._campanha_repo

    @property
    def predicao_repo(self) -> PredicaoRepository:
        if self._predicao_repo is None:
            from app.repositories.deps import get_predicao_repo

            self._predicao_repo = get_predicao_repo()
        return self._predicao_repo

    @property
    def oraculo(self) -> ClienteOraculo:
        if self._oraculo is None:
            self._oraculo = get_cliente_oraculo()
        return self._oraculo

    def em_execucao(self, campanha_id: str) -> bool:
        return campanha_id in self._cancelamentos

    async def executar(self, campanha_id: str) -> ResultadoExecucao:
        """
        Executa uma campanha.

        Args:
            campanha_id: ID da campanha a executar

        Returns:
            ResultadoExecucao com alvos resolvidos vs pontuados

        Raises:
            NotFoundError: Campanha inexistente
            CampanhaEmExecucaoError: Ja existe execucao/recalculo da campanha
            DatabaseError: Falha de banco (contadores ficam como estavam)
        """
        logger.info(f"Iniciando execucao da campanha {campanha_id}")

        campanha = await self.campanha_repo.buscar_por_id(campanha_id)
        if campanha is None:
            raise NotFoundError("Campanha", campanha_id)

        try:
            async with criar_lock(
                chave_lock(campanha_id), self.lock_backend, self.registro_locks
            ) as lock:
                return await self._executar(campanha, lock)
        except LockNotAcquiredError as e:
            logger.warning(f"Campanha {campanha_id} ja em execucao; pedido rejeitado")
            raise CampanhaEmExecucaoError(campanha_id) from e

    async def _renovar_lock(self, lock, cancelamento: asyncio.Event, perdido: asyncio.Event) -> None:
        """Renova o TTL do lock enquanto a execucao roda; sem renovacao, cancela."""
        intervalo = self.intervalo_renovacao or max(1.0, lock.ttl / 3)
        while True:
            await asyncio.sleep(intervalo)
            if not await lock.extend():
                logger.error(f"Lock {lock.key} perdido durante a execucao; cancelando")
                perdido.set()
                cancelamento.set()
                return

    async def _executar(self, campanha: CampanhaData, lock) -> ResultadoExecucao:
        cancelamento = asyncio.Event()
        lock_perdido = asyncio.Event()
        status_anterior = campanha.status
        finalizada = False
        self._cancelamentos[campanha.id] = cancelamento

        renovacao = None
        if lock.ttl:
            renovacao = asyncio.create_task(self._renovar_lock(lock, cancelamento, lock_perdido))

        try:
            await self.campanha_repo.atualizar_status(campanha.id, StatusCampanha.EXECUTANDO)

            alvos = await self.resolvedor.resolver_clientes(campanha.criterios)
            lote = await pontuar_lote(
                alvos,
                origem_campanha(campanha.id),
                self.oraculo,
                self.predicao_repo,
                workers=self.workers,
                cancelamento=cancelamento,
            )

            resultado = ResultadoExecucao(
                campanha_id=campanha.id,
                total_alvos=len(alvos),
                pontuados=lote.pontuados,
                falhas_mapeamento=lote.falhas_mapeamento,
                falhas_oraculo=lote.falhas_oraculo,
                positivos=lote.positivos,
                negativos=lote.negativos,
                # Sem o lock outro escritor pode ter entrado: contadores nao sao gravados
                cancelada=lote.cancelado or lock_perdido.is_set(),
            )

            if resultado.cancelada:
                # Predicoes gravadas ficam; o proximo recalculo as inclui
                await self.campanha_repo.atualizar_status(campanha.id, StatusCampanha.CANCELADA)
            else:
                await self.campanha_repo.atualizar_contadores(
                    campanha.id,
                    Contadores(len(alvos), lote.positivos, lote.negativos),
                    status=StatusCampanha.CONCLUIDA,
                )
            finalizada = True
        except BaseException:
            if not finalizada:
                await self._restaurar_status(campanha.id, status_anterior)
            raise
        finally:
            if renovacao is not None:
                renovacao.cancel()
                await asyncio.gather(renovacao, return_exceptions=True)
            self._cancelamentos.pop(campanha.id, None)

        logger.info(
            f"Campanha {campanha.id}: {resultado.pontuados}/{resultado.total_alvos} pontuados "
            f"(positivos={resultado.positivos}, negativos={resultado.negativos}, "
            f"falhas={resultado.falhas}, cancelada={resultado.cancelada})"
        )
        return resultado

    async def _restaurar_status(self, campanha_id: str, status: StatusCampanha) -> None:
        """Volta o status anterior quando a execucao nao chegou ao fim."""
        try:
            await self.campanha_repo.atualizar_status(campanha_id, status)
        except Exception as e:
            logger.error(f"Campanha {campanha_id} ficou com status executando: {e}")

    def cancelar(self, campanha_id: str) -> bool:
        """
        Pede o cancelamento de uma execucao em andamento.

        O pool para entre um cliente e outro; chamadas ja em voo terminam.

        Returns:
            True se havia execucao para cancelar
        """
        cancelamento = self._cancelamentos.get(campanha_id)
        if cancelamento is None:
            return False
        cancelamento.set()
        logger.info(f"Cancelamento solicitado para campanha {campanha_id}")
        return True
