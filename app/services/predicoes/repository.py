"""
Repository para predicoes.

Tabela append-only: cada pontuacao vira uma linha nova. A unica mutacao
de linha existente e a correcao manual (atualizar).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from app.core.timezone import iso_utc
from app.repositories.base import BaseRepository
from app.services.predicoes.types import ClassePredita, Predicao

logger = logging.getLogger(__name__)


@dataclass
class FiltroPredicoes:
    """Filtros da listagem de predicoes."""

    classe: Optional[ClassePredita] = None
    cliente_id: Optional[str] = None
    origem: Optional[str] = None
    prob_sim_min: Optional[float] = None
    prob_sim_max: Optional[float] = None
    desde: Optional[datetime] = None
    ate: Optional[datetime] = None

    def aplicar(self, query):
        if self.classe is not None:
            query = query.eq("classe_predita", self.classe.value)
        if self.cliente_id:
            query = query.eq("cliente_id", self.cliente_id)
        if self.origem:
            query = query.eq("origem", self.origem)
        if self.prob_sim_min is not None:
            query = query.gte("probabilidade_sim", self.prob_sim_min)
        if self.prob_sim_max is not None:
            query = query.lte("probabilidade_sim", self.prob_sim_max)
        if self.desde is not None:
            query = query.gte("timestamp", iso_utc(self.desde))
        if self.ate is not None:
            query = query.lte("timestamp", iso_utc(self.ate))
        return query


class PredicaoRepository(BaseRepository[Predicao]):
    """Repository para operacoes de predicoes no banco."""

    def __init__(self, db_client, tamanho_pagina: int = 1000, lote_in: int = 200):
        super().__init__(db_client)
        self.tamanho_pagina = tamanho_pagina
        self.lote_in = lote_in

    @property
    def table_name(self) -> str:
        return "predicoes"

    async def registrar(
        self,
        cliente_id: str,
        classe: ClassePredita,
        probabilidade_sim: float,
        probabilidade_nao: float,
        origem: str,
        timestamp: Optional[datetime] = None,
    ) -> Predicao:
        """
        Grava uma predicao nova.

        Raises:
            DatabaseError: Falha no insert
        """
        return await self.criar({
            "cliente_id": cliente_id,
            "classe_predita": classe.value,
            "probabilidade_sim": probabilidade_sim,
            "probabilidade_nao": probabilidade_nao,
            "origem": origem,
            "timestamp": iso_utc(timestamp),
        })

    async def criar(self, data: dict) -> Predicao:
        response = await self._executar(
            lambda: self.table().insert(data).execute(),
            "criar",
        )
        if not response.data:
            raise ValueError("Insert de predicao nao retornou linha")
        return Predicao.from_db_row(response.data[0])

    async def buscar_por_id(self, id: str) -> Optional[Predicao]:
        response = await self._executar(
            lambda: self.table().select("*").eq("id", id).execute(),
            "buscar_por_id",
        )
        if response.data:
            return Predicao.from_db_row(response.data[0])
        return None

    async def listar(
        self,
        limit: int = 100,
        offset: int = 0,
        filtro: Optional[FiltroPredicoes] = None,
        **filters,
    ) -> List[Predicao]:
        """Lista predicoes mais recentes primeiro."""
        filtro = filtro or FiltroPredicoes(**filters)

        def _query():
            query = filtro.aplicar(self.table().select("*"))
            return query.order("timestamp", desc=True).range(offset, offset + limit - 1).execute()

        response = await self._executar(_query, "listar")
        return [Predicao.from_db_row(row) for row in response.data or []]

    async def listar_por_clientes(self, cliente_ids: Iterable[str]) -> List[Predicao]:
        """
        Todas as predicoes dos clientes informados (qualquer origem).

        IDs vao em blocos de in() para nao estourar o tamanho da URL.
        """
        ids = sorted(set(cliente_ids))
        predicoes: List[Predicao] = []
        for i in range(0, len(ids), self.lote_in):
            bloco = ids[i:i + self.lote_in]
            linhas = await self._varrer(
                lambda bloco=bloco: self.table().select("*").in_("cliente_id", bloco).order("id"),
                "listar_por_clientes",
                self.tamanho_pagina,
            )
            predicoes.extend(Predicao.from_db_row(row) for row in linhas)
        return predicoes

    async def listar_por_origem(self, origem: str) -> List[Predicao]:
        linhas = await self._varrer(
            lambda: self.table().select("*").eq("origem", origem).order("id"),
            "listar_por_origem",
            self.tamanho_pagina,
        )
        return [Predicao.from_db_row(row) for row in linhas]

    async def listar_todas(self) -> List[Predicao]:
        """Historico completo (usado pelas tendencias)."""
        linhas = await self._varrer(
            lambda: self.table().select("*").order("id"),
            "listar_todas",
            self.tamanho_pagina,
        )
        return [Predicao.from_db_row(row) for row in linhas]

    async def contar(self, classe: Optional[ClassePredita] = None) -> int:
        def _query():
            query = self.table().select("id", count="exact")
            if classe is not None:
                query = query.eq("classe_predita", classe.value)
            return query.limit(1).execute()

        response = await self._executar(_query, "contar")
        return response.count or 0

    async def atualizar(self, id: str, data: dict) -> Optional[Predicao]:
        """Correcao manual; retorna None se a predicao nao existe."""
        response = await self._executar(
            lambda: self.table().update(data).eq("id", id).execute(),
            "atualizar",
        )
        if response.data:
            return Predicao.from_db_row(response.data[0])
        return None

    async def deletar(self, id: str) -> bool:
        response = await self._executar(
            lambda: self.table().delete().eq("id", id).execute(),
            "deletar",
        )
        return bool(response.data)

    async def deletar_por_origem(self, origem: str) -> int:
        """Remove todas as predicoes de uma origem. Retorna quantas removeu."""
        response = await self._executar(
            lambda: self.table().delete().eq("origem", origem).execute(),
            "deletar_por_origem",
        )
        removidas = len(response.data or [])
        logger.info(f"Predicoes removidas da origem {origem}: {removidas}")
        return removidas
