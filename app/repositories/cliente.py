"""
Repository para Clientes (base de marketing bancario).

O motor so le clientes; escrita aqui existe para cadastro/importacao.
"""

import logging
from dataclasses import asdict, dataclass, fields
from typing import Iterable, List, Optional

from .base import BaseRepository, FiltroNativo

logger = logging.getLogger(__name__)

# Colunas por tipo; usadas para decidir o que pode ir como filtro nativo
CAMPOS_TEXTO = (
    "id", "ext_id", "nome", "job", "marital", "education", "credit_default",
    "housing", "loan", "contact", "month", "day_of_week", "poutcome",
)
CAMPOS_NUMERICOS = (
    "age", "duration", "campaign", "pdays", "previous", "emp_var_rate",
    "cons_price_idx", "cons_conf_idx", "euribor3m", "nr_employed",
)

# Subconjuntos com tipo mais estrito no banco (UUID, INTEGER)
CAMPOS_UUID = ("id",)
CAMPOS_INTEIROS = ("age", "duration", "campaign", "pdays", "previous")

PDAYS_NUNCA_CONTATADO = 999


@dataclass
class Cliente:
    """
    Entidade Cliente.

    Atributos demograficos, historico de contato e contexto macroeconomico
    usados nos criterios de campanha e no payload do ML.
    """

    id: str
    nome: str = ""
    ext_id: Optional[str] = None
    age: Optional[int] = None
    job: Optional[str] = None
    marital: Optional[str] = None
    education: Optional[str] = None
    credit_default: Optional[str] = None
    housing: Optional[str] = None
    loan: Optional[str] = None
    contact: Optional[str] = None
    month: Optional[str] = None
    day_of_week: Optional[str] = None
    duration: Optional[int] = None
    campaign: Optional[int] = None
    pdays: Optional[int] = PDAYS_NUNCA_CONTATADO
    previous: Optional[int] = None
    poutcome: Optional[str] = None
    emp_var_rate: Optional[float] = None
    cons_price_idx: Optional[float] = None
    cons_conf_idx: Optional[float] = None
    euribor3m: Optional[float] = None
    nr_employed: Optional[float] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Cliente":
        """Cria Cliente a partir de dict do banco (colunas extras sao ignoradas)."""
        nomes = {f.name for f in fields(cls)}
        valores = {k: v for k, v in data.items() if k in nomes}
        # Planilhas de origem usam "default"/"name"
        if "credit_default" not in valores and "default" in data:
            valores["credit_default"] = data["default"]
        if "nome" not in valores and "name" in data:
            valores["nome"] = data["name"]
        valores["id"] = str(valores.get("id") or "")
        return cls(**valores)

    def as_registro(self) -> dict:
        """Registro plano (coluna -> valor) avaliado pelos criterios."""
        return asdict(self)

    def to_dict(self) -> dict:
        """Converte para dict (para insert/update), sem campos vazios."""
        return {
            k: v for k, v in asdict(self).items()
            if v is not None and k not in ("id", "created_at")
        }


class ClienteRepository(BaseRepository[Cliente]):
    """
    Repository para operacoes de Cliente.

    Uso:
        repo = ClienteRepository(get_supabase_client())
        clientes = await repo.listar_todos([FiltroNativo("eq", "contact", "cellular")])
    """

    def __init__(self, db_client, tamanho_pagina: int = 1000):
        super().__init__(db_client)
        self.tamanho_pagina = tamanho_pagina

    @property
    def table_name(self) -> str:
        return "clientes"

    async def buscar_por_id(self, id: str) -> Optional[Cliente]:
        """Busca cliente por ID."""
        response = await self._executar(
            lambda: self.table().select("*").eq("id", id).execute(),
            "buscar_por_id",
        )
        if response.data:
            return Cliente.from_dict(response.data[0])
        return None

    async def listar(self, limit: int = 100, offset: int = 0, **filters) -> List[Cliente]:
        """Lista clientes com filtros de igualdade por coluna."""

        def _query():
            query = self.table().select("*")
            for campo, valor in filters.items():
                if campo in CAMPOS_TEXTO or campo in CAMPOS_NUMERICOS:
                    query = query.eq(campo, valor)
            return query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()

        response = await self._executar(_query, "listar")
        return [Cliente.from_dict(item) for item in response.data or []]

    async def listar_todos(self, filtros: Iterable[FiltroNativo] = ()) -> List[Cliente]:
        """
        Varre a tabela inteira (paginado) aplicando filtros nativos.

        Args:
            filtros: Filtros empurrados para o banco

        Returns:
            Todos os clientes que passam nos filtros
        """
        filtros = list(filtros)

        def _query():
            query = self.table().select("*")
            for filtro in filtros:
                query = filtro.aplicar(query)
            return query.order("id")

        linhas = await self._varrer(_query, "listar_todos", self.tamanho_pagina)
        clientes = [Cliente.from_dict(row) for row in linhas]

        logger.debug(f"Varredura de clientes: {len(clientes)} registros ({len(filtros)} filtros)")
        return clientes

    async def listar_por_ids(self, ids: Iterable[str], lote: int = 200) -> List[Cliente]:
        """Busca clientes por ID em blocos de in()."""
        ids = list(dict.fromkeys(ids))
        clientes: List[Cliente] = []
        for i in range(0, len(ids), lote):
            bloco = ids[i:i + lote]
            response = await self._executar(
                lambda bloco=bloco: self.table().select("*").in_("id", bloco).execute(),
                "listar_por_ids",
            )
            clientes.extend(Cliente.from_dict(row) for row in response.data or [])
        return clientes

    async def contar(self) -> int:
        """Conta clientes da base."""
        response = await self._executar(
            lambda: self.table().select("id", count="exact").limit(1).execute(),
            "contar",
        )
        return response.count or 0

    async def criar(self, data: dict) -> Cliente:
        """Cria novo cliente."""
        payload = Cliente.from_dict({"id": "", **data}).to_dict()
        response = await self._executar(
            lambda: self.table().insert(payload).execute(),
            "criar",
        )
        if not response.data:
            raise ValueError("Falha ao criar cliente")
        cliente = Cliente.from_dict(response.data[0])
        logger.info(f"Cliente criado: {cliente.id}")
        return cliente

    async def deletar(self, id: str) -> bool:
        """Deleta cliente."""
        response = await self._executar(
            lambda: self.table().delete().eq("id", id).execute(),
            "deletar",
        )
        return bool(response.data)
