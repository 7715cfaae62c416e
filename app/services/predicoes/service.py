"""
Servico de predicoes.

- prever_cliente: pontuacao avulsa de um cliente
- pontuar_clientes: pontuacao automatica apos importacao
- corrigir: correcao manual de uma predicao
- listar: consulta com filtros
"""
import logging
from typing import Iterable, List, Optional

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.repositories.cliente import ClienteRepository
from app.services.ml.mapper import MlMapper
from app.services.ml.oraculo import ClienteOraculo, get_cliente_oraculo
from app.services.predicoes.lote import ResultadoLote, pontuar_lote
from app.services.predicoes.probabilidades import derivar_classe, normalizar_probabilidades
from app.services.predicoes.repository import FiltroPredicoes, PredicaoRepository
from app.services.predicoes.types import (
    ORIGEM_IMPORTACAO,
    ORIGEM_PREDICAO_AVULSA,
    ClassePredita,
    Predicao,
)

logger = logging.getLogger(__name__)


class PredicaoService:
    """Operacoes de predicao fora da execucao de campanha."""

    def __init__(
        self,
        predicao_repo: Optional[PredicaoRepository] = None,
        cliente_repo: Optional[ClienteRepository] = None,
        oraculo: Optional[ClienteOraculo] = None,
    ):
        self._predicao_repo = predicao_repo
        self._cliente_repo = cliente_repo
        self._oraculo = oraculo

    @property
    def predicao_repo(self) -> PredicaoRepository:
        if self._predicao_repo is None:
            from app.repositories.deps import get_predicao_repo

            self._predicao_repo = get_predicao_repo()
        return self._predicao_repo

    @property
    def cliente_repo(self) -> ClienteRepository:
        if self._cliente_repo is None:
            from app.repositories.deps import get_cliente_repo

            self._cliente_repo = get_cliente_repo()
        return self._cliente_repo

    @property
    def oraculo(self) -> ClienteOraculo:
        if self._oraculo is None:
            self._oraculo = get_cliente_oraculo()
        return self._oraculo

    async def prever_cliente(self, cliente_id: str) -> Predicao:
        """
        Pontua um cliente e grava a predicao (origem single_predict).

        Raises:
            NotFoundError: Cliente inexistente
            MapeamentoError: Cliente sem campos numericos exigidos
            OraculoError: Falha no servico de ML
        """
        cliente = await self.cliente_repo.buscar_por_id(cliente_id)
        if cliente is None:
            raise NotFoundError("Cliente", cliente_id)

        resposta = await self.oraculo.prever(MlMapper.para_payload(cliente))
        predicao = await self.predicao_repo.registrar(
            cliente_id=cliente.id,
            classe=resposta.classe_predita,
            probabilidade_sim=resposta.probabilidade_sim,
            probabilidade_nao=resposta.probabilidade_nao,
            origem=ORIGEM_PREDICAO_AVULSA,
        )
        logger.info(f"Predicao avulsa: cliente {cliente.id} -> {predicao.classe_predita.value}")
        return predicao

    async def pontuar_clientes(self, cliente_ids: Iterable[str]) -> ResultadoLote:
        """
        Pontua clientes recem-importados (origem import_auto_predict).

        Clientes com falha sao pulados; o resultado traz as contagens.
        """
        clientes = await self.cliente_repo.listar_por_ids(cliente_ids, settings.LOTE_IN_PREDICOES)
        return await pontuar_lote(
            clientes,
            ORIGEM_IMPORTACAO,
            self.oraculo,
            self.predicao_repo,
        )

    async def corrigir(
        self,
        predicao_id: str,
        classe: Optional[str] = None,
        probabilidade_sim: Optional[float] = None,
        probabilidade_nao: Optional[float] = None,
    ) -> Predicao:
        """
        Corrige uma predicao gravada.

        Probabilidades sao renormalizadas; a classe e derivada delas quando
        nao vier explicita.

        Raises:
            ValidationError: Nada para atualizar, classe ou probabilidade invalida
            NotFoundError: Predicao inexistente
        """
        if classe is None and probabilidade_sim is None and probabilidade_nao is None:
            raise ValidationError("Nenhum campo para atualizar")

        classe_nova = None
        if classe is not None:
            classe_nova = ClassePredita.parse(classe)
            if classe_nova is None:
                raise ValidationError("classe_predita deve ser YES ou NO", {"valor": classe})

        prob_sim, prob_nao = normalizar_probabilidades(
            probabilidade_sim, probabilidade_nao, settings.PROB_TOLERANCIA
        )

        dados = {}
        if prob_sim is not None:
            dados["probabilidade_sim"] = prob_sim
            dados["probabilidade_nao"] = prob_nao
            if classe_nova is None:
                classe_nova = derivar_classe(prob_sim, prob_nao)
        if classe_nova is not None:
            dados["classe_predita"] = classe_nova.value

        predicao = await self.predicao_repo.atualizar(predicao_id, dados)
        if predicao is None:
            raise NotFoundError("Predicao", predicao_id)

        logger.info(f"Predicao {predicao_id} corrigida: {dados}")
        return predicao

    async def listar(
        self,
        filtro: Optional[FiltroPredicoes] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Predicao]:
        return await self.predicao_repo.listar(limit=limit, offset=offset, filtro=filtro)


predicao_service = PredicaoService()
