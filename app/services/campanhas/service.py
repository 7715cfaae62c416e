"""
Servico de aplicacao de campanhas.

As rotas so falam com este servico. Operacoes que mexem em criterios ou
removem a campanha rodam sob o mesmo lock da execucao.
"""
import logging
from typing import List, Optional

from app.core.distributed_lock import LockNotAcquiredError, criar_lock
from app.core.exceptions import CampanhaEmExecucaoError, NotFoundError, ValidationError
from app.services.campanhas.contadores import ContadoresCampanha, chave_lock
from app.services.campanhas.executor import CampanhaExecutor
from app.services.campanhas.repository import CampanhaRepository
from app.services.campanhas.types import CampanhaData, Contadores, ResultadoExecucao
from app.services.predicoes.repository import PredicaoRepository
from app.services.predicoes.types import origem_campanha
from app.services.segmentacao import Criterios, ResolvedorAlvos

logger = logging.getLogger(__name__)

TAMANHO_AMOSTRA = 10


def _avisar_problemas(criterios: Optional[dict]) -> None:
    problemas = Criterios.from_dict(criterios).problemas()
    if problemas:
        logger.warning(f"Criterios com restricoes invalidas (nunca casam): {problemas}")


def _validar_nome(nome: Optional[str]) -> str:
    if nome is None or not nome.strip():
        raise ValidationError("Nome da campanha e obrigatorio")
    return nome.strip()


class CampanhaService:
    """CRUD de campanhas, execucao e recalculo."""

    def __init__(
        self,
        campanha_repo: Optional[CampanhaRepository] = None,
        predicao_repo: Optional[PredicaoRepository] = None,
        resolvedor: Optional[ResolvedorAlvos] = None,
        executor: Optional[CampanhaExecutor] = None,
        contadores: Optional[ContadoresCampanha] = None,
        lock_backend: Optional[str] = None,
        registro_locks=None,
    ):
        self._campanha_repo = campanha_repo
        self._predicao_repo = predicao_repo
        self.resolvedor = resolvedor or ResolvedorAlvos()
        self.lock_backend = lock_backend
        self.registro_locks = registro_locks
        self.executor = executor or CampanhaExecutor(
            campanha_repo=campanha_repo,
            predicao_repo=predicao_repo,
            resolvedor=self.resolvedor,
            lock_backend=lock_backend,
            registro_locks=registro_locks,
        )
        self.contadores = contadores or ContadoresCampanha(
            campanha_repo=campanha_repo,
            predicao_repo=predicao_repo,
            resolvedor=self.resolvedor,
            lock_backend=lock_backend,
            registro_locks=registro_locks,
        )

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

    def _lock(self, campanha_id: str):
        return criar_lock(chave_lock(campanha_id), self.lock_backend, self.registro_locks)

    async def criar(self, nome: str, criterios: Optional[dict] = None) -> CampanhaData:
        """Cria campanha com contadores zerados (execute ou recalcule depois)."""
        _avisar_problemas(criterios)
        return await self.campanha_repo.criar({"nome": _validar_nome(nome), "criterios": criterios})

    async def listar(
        self,
        busca: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        ordem_desc: bool = True,
    ) -> List[CampanhaData]:
        return await self.campanha_repo.listar(
            limit=limit, offset=offset, busca=busca, status=status, ordem_desc=ordem_desc
        )

    async def buscar(self, campanha_id: str) -> CampanhaData:
        """
        Raises:
            NotFoundError: Campanha inexistente
        """
        campanha = await self.campanha_repo.buscar_por_id(campanha_id)
        if campanha is None:
            raise NotFoundError("Campanha", campanha_id)
        return campanha

    async def atualizar(
        self,
        campanha_id: str,
        nome: Optional[str] = None,
        criterios: Optional[dict] = None,
        recalcular: bool = True,
    ) -> CampanhaData:
        """
        Atualiza nome e/ou criterios.

        Criterios novos invalidam os contadores; eles sao recalculados na
        mesma operacao, a menos que recalcular=False.

        Raises:
            ValidationError: Nada para atualizar ou nome vazio
            NotFoundError: Campanha inexistente
            CampanhaEmExecucaoError: Execucao em andamento
        """
        dados = {}
        if nome is not None:
            dados["nome"] = _validar_nome(nome)
        if criterios is not None:
            _avisar_problemas(criterios)
            dados["criterios"] = criterios
        if not dados:
            raise ValidationError("Nenhum campo para atualizar")

        if criterios is None:
            campanha = await self.campanha_repo.atualizar(campanha_id, dados)
            if campanha is None:
                raise NotFoundError("Campanha", campanha_id)
            return campanha

        try:
            async with self._lock(campanha_id):
                campanha = await self.campanha_repo.atualizar(campanha_id, dados)
                if campanha is None:
                    raise NotFoundError("Campanha", campanha_id)
                if recalcular:
                    contadores = await self.contadores.calcular(campanha_id)
                    await self.campanha_repo.atualizar_contadores(campanha_id, contadores)
                    campanha.total_alvos = contadores.total_alvos
                    campanha.positivos = contadores.positivos
                    campanha.negativos = contadores.negativos
        except LockNotAcquiredError as e:
            raise CampanhaEmExecucaoError(campanha_id) from e

        return campanha

    async def deletar(self, campanha_id: str) -> int:
        """
        Remove a campanha e as predicoes geradas por ela.

        Returns:
            Quantidade de predicoes removidas

        Raises:
            NotFoundError: Campanha inexistente
            CampanhaEmExecucaoError: Execucao em andamento
        """
        try:
            async with self._lock(campanha_id):
                await self.buscar(campanha_id)
                removidas = await self.predicao_repo.deletar_por_origem(origem_campanha(campanha_id))
                await self.campanha_repo.deletar(campanha_id)
        except LockNotAcquiredError as e:
            raise CampanhaEmExecucaoError(campanha_id) from e

        logger.info(f"Campanha {campanha_id} removida ({removidas} predicoes)")
        return removidas

    async def preview(self, criterios: Optional[dict]) -> dict:
        """Quantos clientes os criterios atingem, com amostra de IDs."""
        _avisar_problemas(criterios)
        alvos = sorted(await self.resolvedor.resolver(criterios))
        return {"total_alvos": len(alvos), "amostra": alvos[:TAMANHO_AMOSTRA]}

    async def executar(self, campanha_id: str) -> ResultadoExecucao:
        return await self.executor.executar(campanha_id)

    async def recalcular(self, campanha_id: str) -> Contadores:
        return await self.contadores.recalcular(campanha_id)

    def cancelar(self, campanha_id: str) -> bool:
        return self.executor.cancelar(campanha_id)


campanha_service = CampanhaService()
