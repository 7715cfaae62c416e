"""
Repository para campanhas.

Contadores (total_alvos, positivos, negativos) so sao escritos por
atualizar_contadores, em um unico update.
"""

import logging
from typing import List, Optional

from app.core.timezone import agora_utc
from app.repositories.base import BaseRepository
from app.services.campanhas.types import CampanhaData, Contadores, StatusCampanha

logger = logging.getLogger(__name__)


class CampanhaRepository(BaseRepository[CampanhaData]):
    """Repository para operacoes de campanhas no banco."""

    @property
    def table_name(self) -> str:
        return "campanhas"

    async def buscar_por_id(self, campanha_id: str) -> Optional[CampanhaData]:
        """
        Busca campanha por ID.

        Args:
            campanha_id: ID da campanha

        Returns:
            CampanhaData ou None se nao encontrada
        """
        response = await self._executar(
            lambda: self.table().select("*").eq("id", campanha_id).execute(),
            "buscar_por_id",
        )
        if not response.data:
            return None
        return CampanhaData.from_db_row(response.data[0])

    async def listar(
        self,
        limit: int = 50,
        offset: int = 0,
        busca: Optional[str] = None,
        status: Optional[str] = None,
        ordem_desc: bool = True,
    ) -> List[CampanhaData]:
        """
        Lista campanhas com filtros opcionais.

        Args:
            limit: Limite de resultados
            offset: Pular N primeiras
            busca: Trecho do nome (case-insensitive)
            status: Filtrar por status (valor string do enum)
            ordem_desc: Mais recentes primeiro

        Returns:
            Lista de CampanhaData
        """

        def _query():
            query = self.table().select("*")
            if busca:
                query = query.ilike("nome", f"%{busca}%")
            if status:
                query = query.eq("status", status)
            return (
                query.order("created_at", desc=ordem_desc)
                .range(offset, offset + limit - 1)
                .execute()
            )

        response = await self._executar(_query, "listar")
        return [CampanhaData.from_db_row(row) for row in (response.data or [])]

    async def contar(self) -> int:
        response = await self._executar(
            lambda: self.table().select("id", count="exact").limit(1).execute(),
            "contar",
        )
        return response.count or 0

    async def criar(self, data: dict) -> CampanhaData:
        """
        Cria nova campanha com contadores zerados.

        Args:
            data: nome e criterios
        """
        payload = {
            "nome": data["nome"],
            "criterios": data.get("criterios") or {},
            "status": StatusCampanha.RASCUNHO.value,
            "total_alvos": 0,
            "positivos": 0,
            "negativos": 0,
        }
        response = await self._executar(
            lambda: self.table().insert(payload).execute(),
            "criar",
        )
        if not response.data:
            raise ValueError("Insert de campanha nao retornou linha")

        campanha = CampanhaData.from_db_row(response.data[0])
        logger.info(f"Campanha criada: {campanha.id} ({campanha.nome})")
        return campanha

    async def atualizar(self, campanha_id: str, data: dict) -> Optional[CampanhaData]:
        """
        Atualiza nome/criterios. Criterios sao substituidos inteiros.

        Returns:
            CampanhaData atualizada ou None se nao encontrada
        """
        permitido = {k: v for k, v in data.items() if k in ("nome", "criterios")}
        permitido["updated_at"] = agora_utc().isoformat()

        response = await self._executar(
            lambda: self.table().update(permitido).eq("id", campanha_id).execute(),
            "atualizar",
        )
        if not response.data:
            return None
        return CampanhaData.from_db_row(response.data[0])

    async def atualizar_status(self, campanha_id: str, novo_status: StatusCampanha) -> None:
        """
        Atualiza status da campanha.

        Args:
            campanha_id: ID da campanha
            novo_status: Novo status
        """
        data = {
            "status": novo_status.value,
            "updated_at": agora_utc().isoformat(),
        }

        # Adicionar timestamps especificos
        if novo_status == StatusCampanha.EXECUTANDO:
            data["ultima_execucao_em"] = data["updated_at"]

        await self._executar(
            lambda: self.table().update(data).eq("id", campanha_id).execute(),
            "atualizar_status",
        )
        logger.info(f"Campanha {campanha_id} atualizada para status {novo_status.value}")

    async def atualizar_contadores(
        self,
        campanha_id: str,
        contadores: Contadores,
        status: Optional[StatusCampanha] = None,
    ) -> None:
        """
        Grava os tres contadores (e opcionalmente o status) de uma vez.

        Args:
            campanha_id: ID da campanha
            contadores: Agregados calculados
            status: Novo status junto com os contadores
        """
        data = contadores.to_dict()
        data["updated_at"] = agora_utc().isoformat()
        if status is not None:
            data["status"] = status.value

        await self._executar(
            lambda: self.table().update(data).eq("id", campanha_id).execute(),
            "atualizar_contadores",
        )
        logger.info(f"Contadores da campanha {campanha_id}: {contadores.to_dict()}")

    async def deletar(self, campanha_id: str) -> bool:
        response = await self._executar(
            lambda: self.table().delete().eq("id", campanha_id).execute(),
            "deletar",
        )
        return bool(response.data)
