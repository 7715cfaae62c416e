"""
Recalculo dos contadores de campanha a partir das predicoes gravadas.

Usa os criterios atuais da campanha. Para cada alvo conta apenas a
predicao mais recente (timestamp, desempate por id), de qualquer origem.
Assim positivos + negativos nunca passa de total_alvos, mesmo com
historico acumulado. Nao chama o ML e nao renormaliza nada.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from app.core.distributed_lock import LockNotAcquiredError, criar_lock
from app.core.exceptions import CampanhaEmExecucaoError, NotFoundError
from app.core.timezone import TZ_UTC
from app.services.campanhas.repository import CampanhaRepository
from app.services.campanhas.types import Contadores
from app.services.predicoes.repository import PredicaoRepository
from app.services.predicoes.types import Predicao
from app.services.segmentacao import ResolvedorAlvos

logger = logging.getLogger(__name__)

_SEM_TIMESTAMP = datetime.min.replace(tzinfo=TZ_UTC)


def chave_lock(campanha_id: str) -> str:
    """Chave do lock de escrita da campanha (execucao e recalculo)."""
    return f"campanha:{campanha_id}"


def _ordem(predicao: Predicao):
    return (predicao.timestamp or _SEM_TIMESTAMP, predicao.id)


def mais_recentes(predicoes: Iterable[Predicao]) -> Dict[str, Predicao]:
    """Predicao mais recente de cada cliente."""
    ultimas: Dict[str, Predicao] = {}
    for predicao in predicoes:
        atual = ultimas.get(predicao.cliente_id)
        if atual is None or _ordem(predicao) > _ordem(atual):
            ultimas[predicao.cliente_id] = predicao
    return ultimas


def contar_resultados(alvos: Iterable[str], predicoes: Iterable[Predicao]) -> Contadores:
    """
    Contadores de um conjunto de alvos.

    Predicoes de clientes fora do conjunto sao ignoradas.
    """
    alvos = set(alvos)
    ultimas = mais_recentes(p for p in predicoes if p.cliente_id in alvos)
    positivos = sum(1 for p in ultimas.values() if p.positiva)
    return Contadores(
        total_alvos=len(alvos),
        positivos=positivos,
        negativos=len(ultimas) - positivos,
    )


class ContadoresCampanha:
    """Recalcula e grava os contadores de uma campanha."""

    def __init__(
        self,
        campanha_repo: Optional[CampanhaRepository] = None,
        predicao_repo: Optional[PredicaoRepository] = None,
        resolvedor: Optional[ResolvedorAlvos] = None,
        lock_backend: Optional[str] = None,
        registro_locks=None,
    ):
        self._campanha_repo = campanha_repo
        self._predicao_repo = predicao_repo
        self.resolvedor = resolvedor or ResolvedorAlvos()
        self.lock_backend = lock_backend
        self.registro_locks = registro_locks

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

    async def calcular(self, campanha_id: str) -> Contadores:
        """
        Calcula os contadores sem gravar.

        Raises:
            NotFoundError: Campanha inexistente
            DatabaseError: Falha de leitura
        """
        campanha = await self.campanha_repo.buscar_por_id(campanha_id)
        if campanha is None:
            raise NotFoundError("Campanha", campanha_id)

        alvos = await self.resolvedor.resolver(campanha.criterios)
        predicoes = await self.predicao_repo.listar_por_clientes(alvos) if alvos else []
        return contar_resultados(alvos, predicoes)

    async def recalcular(self, campanha_id: str) -> Contadores:
        """
        Recalcula e grava os contadores sob o lock da campanha.

        Raises:
            CampanhaEmExecucaoError: Execucao ou recalculo em andamento
            NotFoundError: Campanha inexistente
            DatabaseError: Falha de leitura/escrita (contadores ficam como estavam)
        """
        try:
            async with criar_lock(chave_lock(campanha_id), self.lock_backend, self.registro_locks):
                contadores = await self.calcular(campanha_id)
                await self.campanha_repo.atualizar_contadores(campanha_id, contadores)
        except LockNotAcquiredError as e:
            raise CampanhaEmExecucaoError(campanha_id) from e

        logger.info(f"Campanha {campanha_id} recalculada: {contadores.to_dict()}")
        return contadores
