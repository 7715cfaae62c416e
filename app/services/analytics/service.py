"""
Servico de analytics: visao geral, tendencia e quebra por profissao.
"""
import logging
from typing import List, Optional

from app.core.config import settings
from app.repositories.cliente import ClienteRepository
from app.services.analytics.tendencia import Granularidade, agrupar_por_atributo, agrupar_por_periodo
from app.services.campanhas.contadores import mais_recentes
from app.services.campanhas.repository import CampanhaRepository
from app.services.predicoes.repository import PredicaoRepository
from app.services.predicoes.types import ClassePredita

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(
        self,
        cliente_repo: Optional[ClienteRepository] = None,
        predicao_repo: Optional[PredicaoRepository] = None,
        campanha_repo: Optional[CampanhaRepository] = None,
    ):
        self._cliente_repo = cliente_repo
        self._predicao_repo = predicao_repo
        self._campanha_repo = campanha_repo

    @property
    def cliente_repo(self) -> ClienteRepository:
        if self._cliente_repo is None:
            from app.repositories.deps import get_cliente_repo

            self._cliente_repo = get_cliente_repo()
        return self._cliente_repo

    @property
    def predicao_repo(self) -> PredicaoRepository:
        if self._predicao_repo is None:
            from app.repositories.deps import get_predicao_repo

            self._predicao_repo = get_predicao_repo()
        return self._predicao_repo

    @property
    def campanha_repo(self) -> CampanhaRepository:
        if self._campanha_repo is None:
            from app.repositories.deps import get_campanha_repo

            self._campanha_repo = get_campanha_repo()
        return self._campanha_repo

    async def overview(self) -> dict:
        """Totais gerais da base."""
        total_clientes = await self.cliente_repo.contar()
        positivas = await self.predicao_repo.contar(ClassePredita.SIM)
        negativas = await self.predicao_repo.contar(ClassePredita.NAO)
        total_campanhas = await self.campanha_repo.contar()

        total_predicoes = positivas + negativas
        return {
            "total_clientes": total_clientes,
            "total_predicoes": total_predicoes,
            "predicoes_yes": positivas,
            "predicoes_no": negativas,
            "taxa_positiva": round(positivas / total_predicoes, 4) if total_predicoes else 0.0,
            "total_campanhas": total_campanhas,
        }

    async def tendencia(self, granularidade: str, origem: Optional[str] = None) -> List[dict]:
        """
        Serie de positivos/negativos por periodo.

        Raises:
            ValidationError: Granularidade desconhecida
        """
        granularidade = Granularidade.parse(granularidade)
        if origem:
            predicoes = await self.predicao_repo.listar_por_origem(origem)
        else:
            predicoes = await self.predicao_repo.listar_todas()
        return agrupar_por_periodo(predicoes, granularidade)

    async def por_profissao(self, apenas_recentes: bool = False) -> List[dict]:
        """
        Predicoes agrupadas pelo job do cliente.

        Por padrao conta todo o historico (cada predicao gravada). Com
        apenas_recentes, so a mais recente de cada cliente, que e a mesma
        base dos contadores de campanha.
        """
        predicoes = await self.predicao_repo.listar_todas()
        if apenas_recentes:
            predicoes = list(mais_recentes(predicoes).values())
        if not predicoes:
            return []

        ids = {p.cliente_id for p in predicoes}
        clientes = await self.cliente_repo.listar_por_ids(ids, settings.LOTE_IN_PREDICOES)
        jobs = {c.id: c.job for c in clientes}
        return agrupar_por_atributo((jobs.get(p.cliente_id), p) for p in predicoes)


analytics_service = AnalyticsService()
