"""
Base Repository - Interface comum para todos os repositories.

Este modulo define a interface base que todos os repositories
devem implementar, garantindo consistencia e facilitando testes.

Erros de banco NAO sao engolidos aqui: chegam como DatabaseError para
quem chamou (execucao/recalculo abortam sem tocar nos contadores).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, TypeVar

from app.services.supabase import executar_query

# Type variable para entidades
T = TypeVar('T')

OPERADORES_NATIVOS = ("eq", "in", "lt", "lte", "gt", "gte")


@dataclass(frozen=True)
class FiltroNativo:
    """Filtro aplicado direto na query do banco (PostgREST)."""

    operador: str
    campo: str
    valor: Any

    def aplicar(self, query):
        """Encadeia o filtro na query do supabase-py."""
        if self.operador == "eq":
            return query.eq(self.campo, self.valor)
        if self.operador == "in":
            return query.in_(self.campo, list(self.valor))
        if self.operador in ("lt", "lte", "gt", "gte"):
            return getattr(query, self.operador)(self.campo, self.valor)
        raise ValueError(f"Operador nao suportado: {self.operador}")


class BaseRepository(ABC, Generic[T]):
    """
    Interface base para repositories.

    Attributes:
        db: Cliente de banco de dados (Supabase, Mock, etc.)
        table_name: Nome da tabela no banco de dados

    Example:
        class ClienteRepository(BaseRepository[Cliente]):
            @property
            def table_name(self) -> str:
                return "clientes"
    """

    def __init__(self, db_client: Any):
        """
        Inicializa o repository.

        Args:
            db_client: Cliente de banco de dados (Supabase, Mock, etc.)
        """
        self.db = db_client

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Nome da tabela no banco."""
        pass

    def table(self):
        """Atalho para a tabela do repository."""
        return self.db.table(self.table_name)

    async def _executar(self, func: Callable[[], Any], operacao: str) -> Any:
        """Executa query com circuit breaker; falhas viram DatabaseError."""
        return await executar_query(func, f"{self.table_name}.{operacao}")

    async def _varrer(
        self, montar_query: Callable[[], Any], operacao: str, tamanho_pagina: int
    ) -> list:
        """
        Le todas as paginas de uma query.

        Args:
            montar_query: Monta a query ja ordenada (sem range)
            operacao: Descricao para logs/erros
            tamanho_pagina: Linhas por pagina
        """
        linhas: list = []
        offset = 0
        while True:
            inicio, fim = offset, offset + tamanho_pagina - 1
            response = await self._executar(
                lambda inicio=inicio, fim=fim: montar_query().range(inicio, fim).execute(),
                operacao,
            )
            pagina = response.data or []
            linhas.extend(pagina)
            if len(pagina) < tamanho_pagina:
                return linhas
            offset += tamanho_pagina

    @abstractmethod
    async def buscar_por_id(self, id: str) -> Optional[T]:
        """
        Busca entidade por ID.

        Returns:
            Entidade ou None se nao encontrada
        """
        pass

    @abstractmethod
    async def listar(self, limit: int = 100, offset: int = 0, **filters) -> List[T]:
        """
        Lista entidades com filtros opcionais.

        Args:
            limit: Maximo de resultados
            offset: Pular N primeiros resultados
            **filters: Filtros adicionais
        """
        pass

    @abstractmethod
    async def criar(self, data: dict) -> T:
        """Cria nova entidade e retorna com ID."""
        pass

    @abstractmethod
    async def deletar(self, id: str) -> bool:
        """
        Deleta entidade.

        Returns:
            True se deletou, False se nao encontrada
        """
        pass

    # Metodos utilitarios (implementacao padrao)

    async def existe(self, id: str) -> bool:
        """Verifica se entidade existe."""
        return await self.buscar_por_id(id) is not None
